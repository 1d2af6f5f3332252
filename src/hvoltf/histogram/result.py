"""Histogram volume dataclass with axis metadata."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from hvoltf.measure.measurement import MeasurementKind


@dataclass(frozen=True)
class AxisInfo:
    """Metadata of one histogram axis.

    Attributes:
        measurement: Measurement tag of the axis
        min_value: Lower edge of the first bin
        max_value: Upper edge of the last bin
        resolution: Number of bins
    """

    measurement: MeasurementKind
    min_value: float
    max_value: float
    resolution: int

    @property
    def bin_edges(self) -> np.ndarray:
        """Bin edges, shape [resolution + 1]."""
        return np.linspace(self.min_value, self.max_value, self.resolution + 1)

    @property
    def bin_centers(self) -> np.ndarray:
        """Bin centers, shape [resolution]."""
        edges = self.bin_edges
        return (edges[:-1] + edges[1:]) / 2

    def index(self, value: float) -> int:
        """Bin a value falls into, saturating at the ends.

        :param value: Measured value
        :returns: Bin index in [0, resolution - 1]
        """
        if self.max_value <= self.min_value:
            return 0
        idx = int(np.floor((value - self.min_value) * self.resolution / (self.max_value - self.min_value)))
        return max(0, min(self.resolution - 1, idx))


@dataclass
class HistogramVolume:
    """Joint histogram of three per-voxel measurements.

    Attributes:
        counts: Bin counts [res0, res1, res2]; int64 when raw, uint8 when
            clipped linearly, uint32 when clipped by ceiling
        axes: Per-axis metadata
        n_samples: Number of voxels binned
        n_included: Voxels whose three measurements were inside all bounds
        clip_count: Count mapped to the storage maximum (None when raw)

    Example:
        >>> hvol = builder.build()
        >>> vg = hvol.project(2)  # value x gradient magnitude
        >>> print(hvol.axes[1].bin_centers[vg.argmax(axis=1)])
    """

    counts: np.ndarray
    axes: tuple[AxisInfo, AxisInfo, AxisInfo]
    n_samples: int
    n_included: int
    clip_count: int | None = None

    @property
    def is_raw(self) -> bool:
        return self.clip_count is None

    @property
    def shape(self) -> tuple[int, int, int]:
        return tuple(self.counts.shape)

    @property
    def included_fraction(self) -> float:
        return self.n_included / self.n_samples if self.n_samples else 0.0

    @property
    def mins(self) -> np.ndarray:
        return np.array([a.min_value for a in self.axes], dtype=np.float64)

    @property
    def maxs(self) -> np.ndarray:
        return np.array([a.max_value for a in self.axes], dtype=np.float64)

    def project(self, axis: int) -> np.ndarray:
        """Sum the counts along one axis.

        :param axis: Axis to sum out (0, 1 or 2)
        :returns: 2D array of int64 sums
        """
        return self.counts.sum(axis=axis, dtype=np.int64)
