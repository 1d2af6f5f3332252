"""Default finite-difference probe over a gridded scalar volume.

Derivatives are reconstructed with central differences (``numpy.gradient``,
one-sided at the faces), optionally after a Gaussian pre-blur. Derivative
fields are computed lazily, once per item, and then indexed per voxel or
per slice.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike
from scipy.ndimage import gaussian_filter

from hvoltf.config.defaults import DEFAULTS
from hvoltf.errors import InvalidPolicyParameter, ProbeFailure, ShapeMismatch
from hvoltf.protocols import ProbeItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeConfig:
    """
    Reconstruction settings for ``GridProbe``.

    Attributes:
        kernel_sigma: Gaussian pre-blur in voxels (0 = none)
        renormalize: Divide the blurred field by the blurred inside-mask so
            values near the faces are not darkened by zero padding
        k3pack: Read the value from the blurred field as well (otherwise
            only derivatives come from the blurred field)
        margin: Voxels on each face that cannot be probed
    """

    kernel_sigma: float = 0.0
    renormalize: bool = DEFAULTS.renormalize
    k3pack: bool = True
    margin: int = 0

    def __post_init__(self):
        if self.kernel_sigma < 0:
            raise InvalidPolicyParameter(
                f"kernel_sigma must be non-negative, got {self.kernel_sigma}", kernel_sigma=self.kernel_sigma
            )
        if self.margin < 0:
            raise InvalidPolicyParameter(f"margin must be non-negative, got {self.margin}", margin=self.margin)


class GridProbe:
    """
    Probe of a 3D scalar volume indexed ``[x, y, z]``.

    Example:
        >>> probe = GridProbe(volume, spacing=(1.0, 1.0, 2.0))
        >>> out = probe.probe(frozenset({ProbeItem.GRADIENT}), 4, 4, 4)
        >>> out[ProbeItem.GRADIENT].shape
        (3,)
    """

    def __init__(
        self,
        volume: ArrayLike,
        spacing: tuple[float, float, float] = (1.0, 1.0, 1.0),
        config: ProbeConfig | None = None,
    ):
        volume = np.asarray(volume)
        if volume.ndim != 3:
            raise ShapeMismatch(f"probe needs a 3D volume, got {volume.ndim}D", shape=volume.shape)
        if len(spacing) != 3 or any(s <= 0 for s in spacing):
            raise InvalidPolicyParameter(f"spacing must be 3 positive values, got {spacing}", spacing=spacing)

        self.config = config if config is not None else ProbeConfig()
        self.volume = volume
        self.spacing = tuple(float(s) for s in spacing)
        self.shape: tuple[int, int, int] = tuple(int(n) for n in volume.shape)
        self.margin = self.config.margin
        self._fields: dict[ProbeItem, np.ndarray] = {}

    def _blurred(self) -> np.ndarray:
        data = self.volume.astype(np.float64)
        sigma = self.config.kernel_sigma
        if sigma == 0:
            return data
        if not self.config.renormalize:
            return gaussian_filter(data, sigma, mode="nearest")
        blurred = gaussian_filter(data, sigma, mode="constant", cval=0.0)
        weight = gaussian_filter(np.ones_like(data), sigma, mode="constant", cval=0.0)
        return blurred / weight

    def _field(self, item: ProbeItem) -> np.ndarray:
        if item in self._fields:
            return self._fields[item]

        if item is ProbeItem.VALUE:
            base = self._blurred() if self.config.k3pack else self.volume.astype(np.float64)
            result = base
        elif item is ProbeItem.GRADIENT:
            parts = np.gradient(self._blurred(), *self.spacing, edge_order=1)
            result = np.stack(parts, axis=-1)
        else:
            grad = self._field(ProbeItem.GRADIENT)
            rows = [np.stack(np.gradient(grad[..., i], *self.spacing, edge_order=1), axis=-1) for i in range(3)]
            result = np.stack(rows, axis=-2)
            # Symmetrize away the differencing order
            result = 0.5 * (result + np.swapaxes(result, -1, -2))

        logger.debug("[GridProbe] Computed %s field for grid %s", item.value, self.shape)
        self._fields[item] = result
        return result

    def probe(self, query: frozenset[ProbeItem], x: int, y: int, z: int) -> Mapping[ProbeItem, np.ndarray]:
        """Reconstruct the queried items at voxel ``(x, y, z)``.

        :raises ProbeFailure: If the voxel lies within the margin
        """
        m = self.margin
        sx, sy, sz = self.shape
        if not (m <= x < sx - m and m <= y < sy - m and m <= z < sz - m):
            raise ProbeFailure(
                f"voxel ({x}, {y}, {z}) is outside the probe-able region (margin {m})",
                coord=(x, y, z),
                margin=m,
            )
        return {item: self._field(item)[x, y, z] for item in query}

    def probe_slab(self, query: frozenset[ProbeItem], z: int) -> Mapping[ProbeItem, np.ndarray]:
        """Reconstruct the queried items at all interior voxels of slice ``z``.

        :raises ProbeFailure: If the slice lies within the margin
        """
        m = self.margin
        sx, sy, sz = self.shape
        if not m <= z < sz - m:
            raise ProbeFailure(f"slice {z} is outside the probe-able region (margin {m})", coord=(None, None, z), margin=m)

        out = {}
        for item in query:
            block = self._field(item)[m : sx - m, m : sy - m, z]
            # x fastest, matching the per-voxel traversal order
            block = np.swapaxes(block, 0, 1)
            out[item] = block.reshape((-1,) + block.shape[2:])
        return out
