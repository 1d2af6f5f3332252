"""Per-voxel measurements and the default grid probe.

Example:
    >>> from hvoltf.measure import GridProbe, Measurement, MeasurementKind
    >>>
    >>> probe = GridProbe(volume)
    >>> gm = Measurement(MeasurementKind.GRAD_MAG)
    >>> gm.answer(probe.probe(gm.query, 5, 5, 5))
"""

from hvoltf.measure.measurement import (
    VALUE_KINDS,
    Measurement,
    MeasurementKind,
    flowline_curvature,
    second_dd,
    total_curvature,
)
from hvoltf.measure.probe import GridProbe, ProbeConfig

__all__ = [
    "Measurement",
    "MeasurementKind",
    "VALUE_KINDS",
    "second_dd",
    "total_curvature",
    "flowline_curvature",
    "GridProbe",
    "ProbeConfig",
]
