"""Histogram volume construction.

A build makes up to three passes over the interior voxels of the grid:

1. Inclusion discovery (``find_inclusion``): every voxel is measured and
   fed to the inclusion policy of each axis. Percentile inclusion needs a
   second discovery pass, absolute inclusion needs none.
2. Binning (``make_hvol``): every voxel is measured again (or read from the
   measurement cache) and counted in the bin of its three measurements.
   Out-of-bounds measurements saturate into the end bins, so the raw
   counts always sum to the number of voxels.
3. Clipping (``clip_hvol``): raw counts are mapped to bounded storage.

Example:
    >>> from hvoltf import HistogramVolumeBuilder, gkms_params
    >>>
    >>> builder = HistogramVolumeBuilder.from_volume(volume, gkms_params())
    >>> hvol = builder.build()
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Literal

import numpy as np
from numpy.typing import ArrayLike

from hvoltf.errors import (
    InclusionTooAggressive,
    InsufficientData,
    InvalidPolicyParameter,
    ProbeFailure,
)
from hvoltf.histogram.params import HistogramVolumeParams
from hvoltf.histogram.result import AxisInfo, HistogramVolume
from hvoltf.measure.probe import GridProbe
from hvoltf.policies.clip import Clip
from hvoltf.protocols import Probe, SlabProbe
from hvoltf.shared.kernels import bin_measurements_numba, clip_linear_numba

logger = logging.getLogger(__name__)

ClipMode = Literal["linear", "ceiling"]


@dataclass
class MeasurementCache:
    """Measurements of every interior voxel, kept between passes of a build.

    The cache is filled during the first complete pass and marked done only
    then. It is bound to the probe that filled it: a cache used with another
    probe, or whose key (measurement kinds and interior shape) differs from
    the current configuration, is refilled.

    Attributes:
        probe: Probe the values were measured with
        key: Configuration the values were measured with
        values: Measurements [3, N]
        done: True once ``values`` holds a complete pass
    """

    probe: Probe | None = field(default=None, repr=False, compare=False)
    key: tuple | None = None
    values: np.ndarray | None = None
    done: bool = False

    def matches(self, probe: Probe, key: tuple) -> bool:
        return self.done and self.probe is probe and self.key == key

    def invalidate(self) -> None:
        self.probe = None
        self.key = None
        self.values = None
        self.done = False


class HistogramVolumeBuilder:
    """Build histogram volumes from a probe and a configuration.

    :param params: Build configuration
    :param probe: Probe answering derivative queries on the grid
    """

    def __init__(self, params: HistogramVolumeParams, probe: Probe):
        if not isinstance(probe, Probe):
            raise TypeError(f"Expected a Probe, got {type(probe).__name__}")
        self.params = params
        self.probe = probe

    @classmethod
    def from_volume(
        cls,
        volume: ArrayLike,
        params: HistogramVolumeParams,
        spacing: tuple[float, float, float] = (1.0, 1.0, 1.0),
    ) -> HistogramVolumeBuilder:
        """Create a builder probing ``volume`` with the default grid probe.

        :param volume: 3D scalar volume indexed [x, y, z]
        :param params: Build configuration (its ``probe`` settings are used)
        :param spacing: Voxel spacing per axis
        """
        from hvoltf.verification import input_check

        input_check(volume, params)
        return cls(params, GridProbe(volume, spacing=spacing, config=params.probe))

    # ========================================================================
    # Measurement
    # ========================================================================

    def _log(self, msg: str, *args) -> None:
        if self.params.verbose:
            logger.info(msg, *args)
        else:
            logger.debug(msg, *args)

    @property
    def _extent(self) -> tuple[range, range, range]:
        m = self.probe.margin
        sx, sy, sz = self.probe.shape
        return range(m, sx - m), range(m, sy - m), range(m, sz - m)

    @property
    def n_voxels(self) -> int:
        """Number of voxels probed per pass."""
        xs, ys, zs = self._extent
        return len(xs) * len(ys) * len(zs)

    def _cache_key(self) -> tuple:
        return (self.params.measurement_kinds, tuple(len(r) for r in self._extent))

    def probe_measurements(self, x: int, y: int, z: int) -> np.ndarray:
        """Measure all three axes at one voxel with a single fused probe.

        :returns: Measurements [3]
        :raises ProbeFailure: If the probe cannot answer at this voxel
        """
        probed = self.probe.probe(self.params.query, x, y, z)
        return np.array([axis.measurement.answer(probed) for axis in self.params.axes], dtype=np.float64)

    def _measure_slab(self, z: int) -> np.ndarray:
        xs, ys, _ = self._extent
        if isinstance(self.probe, SlabProbe):
            probed = self.probe.probe_slab(self.params.query, z)
            block = np.stack(
                [np.asarray(axis.measurement.answer(probed), dtype=np.float64) for axis in self.params.axes]
            )
        else:
            block = np.empty((3, len(xs) * len(ys)), dtype=np.float64)
            i = 0
            for y in ys:
                for x in xs:
                    block[:, i] = self.probe_measurements(x, y, z)
                    i += 1

        if not np.isfinite(block).all():
            raise ProbeFailure(f"probe produced non-finite measurements in slice {z}", coord=(None, None, z))
        return block

    def _iter_blocks(self, cache: MeasurementCache | None) -> Iterator[np.ndarray]:
        key = self._cache_key()
        if cache is not None and cache.matches(self.probe, key):
            yield cache.values
            return

        if cache is not None:
            cache.invalidate()
            cache.values = np.empty((3, self.n_voxels), dtype=np.float64)

        offset = 0
        for z in self._extent[2]:
            block = self._measure_slab(z)
            if cache is not None:
                cache.values[:, offset : offset + block.shape[1]] = block
            offset += block.shape[1]
            yield block

        if cache is not None:
            cache.probe = self.probe
            cache.key = key
            cache.done = True
            self._log("[Builder] Cached measurements of %d voxels", offset)

    # ========================================================================
    # Passes
    # ========================================================================

    def find_inclusion(self, cache: MeasurementCache | None = None) -> tuple[np.ndarray, np.ndarray]:
        """Determine the bounds of each axis from the data.

        :param cache: Measurement cache shared with ``make_hvol``
        :returns: (mins [3], maxs [3])
        :raises InsufficientData: If a statistics-based inclusion saw no values
        """
        if self.n_voxels == 0:
            raise InsufficientData("no voxels inside the probe margin", shape=self.probe.shape)

        axes = self.params.axes
        for axis in axes:
            axis.inclusion.reset()

        for pass_idx in range(self.params.discovery_passes):
            self._log("[Builder] Inclusion pass %d", pass_idx)
            for block in self._iter_blocks(cache):
                for a, axis in enumerate(axes):
                    if pass_idx < axis.inclusion.passes:
                        axis.inclusion.process_many(pass_idx, block[a])

        mins = np.empty(3, dtype=np.float64)
        maxs = np.empty(3, dtype=np.float64)
        for a, axis in enumerate(axes):
            try:
                mins[a], maxs[a] = axis.inclusion.answer()
            except InsufficientData as err:
                raise InsufficientData(f"axis {a}: {err}", axis=a, **err.context) from err
            if maxs[a] <= mins[a]:
                logger.warning("[Builder] Axis %d has an empty inclusion range [%g, %g]", a, mins[a], maxs[a])
            self._log(
                "[Builder] Axis %d (%s, %s): [%g, %g]",
                a, axis.measurement.kind.value, axis.inclusion.name, mins[a], maxs[a],
            )
        return mins, maxs

    def make_hvol(self, cache: MeasurementCache | None = None) -> HistogramVolume:
        """Build the raw (unclipped) histogram volume.

        :param cache: Measurement cache shared across the passes
        :returns: HistogramVolume with int64 counts
        :raises InclusionTooAggressive: If fewer than ``inc_limit`` of the
            voxels fall inside all three inclusion ranges
        """
        mins, maxs = self.find_inclusion(cache)
        res = np.array(self.params.resolutions, dtype=np.int64)
        counts = np.zeros(tuple(res), dtype=np.int64)

        total = 0
        included = 0
        self._log("[Builder] Binning pass over %d voxels", self.n_voxels)
        for block in self._iter_blocks(cache):
            block = np.ascontiguousarray(block)
            included += int(bin_measurements_numba(block, mins, maxs, res, counts))
            total += block.shape[1]

        fraction = included / total
        if fraction < self.params.inc_limit:
            raise InclusionTooAggressive(
                f"only {100 * fraction:.2f}% of the voxels are inside the inclusion ranges, "
                f"less than inc_limit {100 * self.params.inc_limit:.2f}%",
                fraction=fraction,
                inc_limit=self.params.inc_limit,
                mins=mins.tolist(),
                maxs=maxs.tolist(),
            )

        axes = tuple(
            AxisInfo(axis.measurement.kind, float(mins[a]), float(maxs[a]), axis.resolution)
            for a, axis in enumerate(self.params.axes)
        )
        self._log("[Builder] Binned %d voxels, %.2f%% inside all ranges", total, 100 * fraction)
        return HistogramVolume(counts=counts, axes=axes, n_samples=total, n_included=included)

    def build(self, mode: ClipMode = "linear") -> HistogramVolume:
        """Run all passes and clip the result.

        A fresh measurement cache is used when ``cache_measurements`` is set.

        :param mode: Clip storage mode, see ``clip_hvol``
        :returns: Clipped HistogramVolume
        """
        cache = MeasurementCache() if self.params.cache_measurements else None
        raw = self.make_hvol(cache)
        return clip_hvol(raw, self.params.clip, mode)


def clip_hvol(raw: HistogramVolume, clip: Clip, mode: ClipMode = "linear") -> HistogramVolume:
    """Map raw counts into bounded storage.

    ``linear`` stores uint8 with the cutoff mapped to 255; ``ceiling``
    stores uint32 counts capped at the cutoff.

    :param raw: Raw histogram volume
    :param clip: Policy choosing the cutoff
    :param mode: "linear" or "ceiling"
    :returns: New clipped HistogramVolume (``raw`` is not modified)
    """
    if not raw.is_raw:
        raise InvalidPolicyParameter("histogram volume is already clipped", clip_count=raw.clip_count)

    cutoff = clip.answer(raw.counts)
    if mode == "linear":
        flat = np.ascontiguousarray(raw.counts, dtype=np.int64).ravel()
        out = np.zeros(flat.shape, dtype=np.uint8)
        clip_linear_numba(flat, cutoff, out)
        counts = out.reshape(raw.counts.shape)
    elif mode == "ceiling":
        counts = np.minimum(raw.counts, cutoff).astype(np.uint32)
    else:
        raise InvalidPolicyParameter(f"Unknown clip mode: {mode}. Available: linear, ceiling", mode=mode)

    logger.debug("[Builder] Clipped with %s at %d hits (%s)", clip.name, cutoff, mode)
    return HistogramVolume(
        counts=counts,
        axes=raw.axes,
        n_samples=raw.n_samples,
        n_included=raw.n_included,
        clip_count=cutoff,
    )


def build_hvol(
    volume: ArrayLike,
    params: HistogramVolumeParams,
    spacing: tuple[float, float, float] = (1.0, 1.0, 1.0),
    mode: ClipMode = "linear",
) -> HistogramVolume:
    """Build a clipped histogram volume of ``volume`` with the default probe."""
    return HistogramVolumeBuilder.from_volume(volume, params, spacing).build(mode)


def gkms_hvol(
    volume: ArrayLike,
    grad_perc: float = 0.15,
    hess_perc: float = 0.25,
    spacing: tuple[float, float, float] = (1.0, 1.0, 1.0),
) -> HistogramVolume:
    """Build the standard value x gradient x second-derivative histogram volume.

    :param volume: 3D scalar volume indexed [x, y, z]
    :param grad_perc: Percent of gradient magnitudes excluded
    :param hess_perc: Percent of second derivatives excluded
    :param spacing: Voxel spacing per axis
    """
    from hvoltf.config.presets import gkms_params

    return build_hvol(volume, gkms_params(grad_perc, hess_perc), spacing)
