"""Measurements: the scalar extracted at each voxel for one histogram axis."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

import numpy as np

from hvoltf.errors import enum_member
from hvoltf.policies.range import Range, RangeKind
from hvoltf.protocols import ProbeItem

# Gradient magnitudes below this are treated as zero (direction undefined)
GRAD_EPSILON = 1e-12


class MeasurementKind(str, Enum):
    """Kind of measurement along a histogram volume axis."""

    VALUE_POSITIVE = "val-pos"
    VALUE_ZERO_CENTERED = "val-zc"
    VALUE_ANYWHERE = "val"
    GRAD_MAG = "gm"
    LAPLACIAN = "lapl"
    SECOND_DD = "2dd"
    TOTAL_CURV = "totcurv"
    FLOWLINE_CURV = "flowcurv"


_RANGES: dict[MeasurementKind, RangeKind] = {
    MeasurementKind.VALUE_POSITIVE: RangeKind.POSITIVE,
    MeasurementKind.VALUE_ZERO_CENTERED: RangeKind.ZERO_CENTERED,
    MeasurementKind.VALUE_ANYWHERE: RangeKind.ANYWHERE,
    MeasurementKind.GRAD_MAG: RangeKind.POSITIVE,
    MeasurementKind.LAPLACIAN: RangeKind.ZERO_CENTERED,
    MeasurementKind.SECOND_DD: RangeKind.ZERO_CENTERED,
    MeasurementKind.TOTAL_CURV: RangeKind.POSITIVE,
    MeasurementKind.FLOWLINE_CURV: RangeKind.POSITIVE,
}

_QUERIES: dict[MeasurementKind, frozenset[ProbeItem]] = {
    MeasurementKind.VALUE_POSITIVE: frozenset({ProbeItem.VALUE}),
    MeasurementKind.VALUE_ZERO_CENTERED: frozenset({ProbeItem.VALUE}),
    MeasurementKind.VALUE_ANYWHERE: frozenset({ProbeItem.VALUE}),
    MeasurementKind.GRAD_MAG: frozenset({ProbeItem.GRADIENT}),
    MeasurementKind.LAPLACIAN: frozenset({ProbeItem.HESSIAN}),
    MeasurementKind.SECOND_DD: frozenset({ProbeItem.GRADIENT, ProbeItem.HESSIAN}),
    MeasurementKind.TOTAL_CURV: frozenset({ProbeItem.GRADIENT, ProbeItem.HESSIAN}),
    MeasurementKind.FLOWLINE_CURV: frozenset({ProbeItem.GRADIENT, ProbeItem.HESSIAN}),
}

VALUE_KINDS = frozenset(
    {MeasurementKind.VALUE_POSITIVE, MeasurementKind.VALUE_ZERO_CENTERED, MeasurementKind.VALUE_ANYWHERE}
)


@dataclass
class Measurement:
    """One measurement kind together with its range.

    ``answer`` accepts probe output for a single voxel (scalar value, [3]
    gradient, [3, 3] Hessian) or for a batch of N voxels ([N], [N, 3],
    [N, 3, 3]) and returns a scalar or an [N] array accordingly.

    Example:
        >>> gm = Measurement(MeasurementKind.GRAD_MAG)
        >>> gm.query
        frozenset({<ProbeItem.GRADIENT: 'gradient'>})
        >>> gm.answer({ProbeItem.GRADIENT: np.array([3.0, 4.0, 0.0])})
        5.0
    """

    kind: MeasurementKind
    range: Range | None = None

    def __post_init__(self):
        self.kind = enum_member(MeasurementKind, self.kind, "measurement")
        if self.range is None:
            self.range = Range(_RANGES[self.kind])

    @property
    def query(self) -> frozenset[ProbeItem]:
        """Probe items this measurement needs."""
        return _QUERIES[self.kind]

    def answer(self, probed: Mapping[ProbeItem, np.ndarray]) -> np.ndarray | float:
        """Compute the measurement from probed values.

        :param probed: Probe output containing at least ``self.query``
        :returns: Measured value(s)
        """
        kind = self.kind
        if kind in VALUE_KINDS:
            result = np.asarray(probed[ProbeItem.VALUE], dtype=np.float64)
        elif kind is MeasurementKind.GRAD_MAG:
            result = np.linalg.norm(probed[ProbeItem.GRADIENT], axis=-1)
        elif kind is MeasurementKind.LAPLACIAN:
            result = np.trace(probed[ProbeItem.HESSIAN], axis1=-2, axis2=-1)
        elif kind is MeasurementKind.SECOND_DD:
            result = second_dd(probed[ProbeItem.GRADIENT], probed[ProbeItem.HESSIAN])
        elif kind is MeasurementKind.TOTAL_CURV:
            result = total_curvature(probed[ProbeItem.GRADIENT], probed[ProbeItem.HESSIAN])
        else:
            result = flowline_curvature(probed[ProbeItem.GRADIENT], probed[ProbeItem.HESSIAN])

        if np.ndim(result) == 0:
            return float(result)
        return result


def second_dd(gradient: np.ndarray, hessian: np.ndarray) -> np.ndarray:
    """Second directional derivative along the gradient, ``g^T H g / |g|^2``.

    Zero where the gradient vanishes.
    """
    g = np.asarray(gradient, dtype=np.float64)
    H = np.asarray(hessian, dtype=np.float64)
    gHg = np.einsum("...i,...ij,...j->...", g, H, g)
    gg = np.einsum("...i,...i->...", g, g)
    return np.divide(gHg, gg, out=np.zeros_like(gg), where=gg > GRAD_EPSILON**2)


def _curvature_terms(gradient: np.ndarray, hessian: np.ndarray):
    g = np.asarray(gradient, dtype=np.float64)
    H = np.asarray(hessian, dtype=np.float64)
    gm = np.linalg.norm(g, axis=-1)
    ok = gm > GRAD_EPSILON
    safe_gm = np.where(ok, gm, 1.0)
    n = -g / safe_gm[..., None]
    P = np.eye(3) - n[..., :, None] * n[..., None, :]
    return H, n, P, safe_gm, ok


def total_curvature(gradient: np.ndarray, hessian: np.ndarray) -> np.ndarray:
    """L2 norm of the two principal curvatures of the isosurface.

    The geometry tensor ``-P H P / |g|`` has the principal curvatures as its
    only non-zero eigenvalues, so its Frobenius norm is ``sqrt(k1^2 + k2^2)``.
    """
    H, _, P, gm, ok = _curvature_terms(gradient, hessian)
    G = -(P @ H @ P) / gm[..., None, None]
    return np.where(ok, np.linalg.norm(G, axis=(-2, -1)), 0.0)


def flowline_curvature(gradient: np.ndarray, hessian: np.ndarray) -> np.ndarray:
    """Curvature of the gradient flowline (normal streamline), ``|P H n| / |g|``."""
    H, n, P, gm, ok = _curvature_terms(gradient, hessian)
    bend = np.einsum("...ij,...jk,...k->...i", P, H, n)
    return np.where(ok, np.linalg.norm(bend, axis=-1) / gm, 0.0)
