"""Histogram volume configuration: axes, clip policy and probe settings."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from hvoltf.config.defaults import DEFAULTS
from hvoltf.errors import InvalidPolicyParameter
from hvoltf.measure.measurement import Measurement, MeasurementKind
from hvoltf.measure.probe import ProbeConfig
from hvoltf.policies.clip import Clip, ClipAbsolute
from hvoltf.policies.inclusion import Inclusion
from hvoltf.protocols import ProbeItem


@dataclass
class Axis:
    """One axis of a histogram volume.

    The inclusion is copied on construction so that each axis owns its own
    running statistics; an inclusion without a range adopts the range of
    the measurement.

    Attributes:
        resolution: Number of bins (>= 1)
        measurement: What is measured along this axis
        inclusion: How the axis bounds are determined
    """

    resolution: int
    measurement: Measurement
    inclusion: Inclusion

    def __post_init__(self):
        if self.resolution < 1:
            raise InvalidPolicyParameter(
                f"axis resolution must be >= 1, got {self.resolution}", resolution=self.resolution
            )
        if not isinstance(self.measurement, Measurement):
            self.measurement = Measurement(self.measurement)
        rng = self.inclusion.range if self.inclusion.range is not None else self.measurement.range
        self.inclusion = replace(self.inclusion, range=rng)


@dataclass
class HistogramVolumeParams:
    """Full configuration of a histogram volume build.

    Attributes:
        axes: The three axes, in histogram volume order
        clip: Policy choosing the count that saturates stored bins
        probe: Reconstruction settings for the default grid probe
        verbose: Log build progress at INFO instead of DEBUG
        cache_measurements: Keep measurements between the passes of a build
        inc_limit: Lowest permissible fraction of voxels inside all bounds
    """

    axes: tuple[Axis, Axis, Axis]
    clip: Clip = field(default_factory=lambda: ClipAbsolute(256))
    probe: ProbeConfig = field(default_factory=ProbeConfig)
    verbose: bool = DEFAULTS.verbose
    cache_measurements: bool = DEFAULTS.cache_measurements
    inc_limit: float = DEFAULTS.inc_limit

    def __post_init__(self):
        self.axes = tuple(self.axes)
        if len(self.axes) != 3:
            raise InvalidPolicyParameter(f"histogram volume needs 3 axes, got {len(self.axes)}", n_axes=len(self.axes))
        if not 0.0 < self.inc_limit <= 1.0:
            raise InvalidPolicyParameter(
                f"inc_limit must be in (0, 1], got {self.inc_limit}", inc_limit=self.inc_limit
            )

    @property
    def resolutions(self) -> tuple[int, int, int]:
        return tuple(axis.resolution for axis in self.axes)

    @property
    def measurement_kinds(self) -> tuple[MeasurementKind, MeasurementKind, MeasurementKind]:
        return tuple(axis.measurement.kind for axis in self.axes)

    @property
    def query(self) -> frozenset[ProbeItem]:
        """Union of the probe queries of all three measurements."""
        return frozenset().union(*(axis.measurement.query for axis in self.axes))

    @property
    def discovery_passes(self) -> int:
        """Passes over the data needed before the axis bounds are known."""
        return max(axis.inclusion.passes for axis in self.axes)
