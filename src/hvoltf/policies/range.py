"""Natural numeric domains of measurements.

A range never excludes data: ``answer`` always returns an interval that is
as large as or larger than the one passed in. Deciding what to leave out is
the job of the inclusion policies.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from hvoltf.errors import enum_member


class RangeKind(str, Enum):
    """Kind of values a measurement produces."""

    UNKNOWN = "unknown"
    POSITIVE = "positive"  # enforce min == 0
    NEGATIVE = "negative"  # enforce max == 0
    ZERO_CENTERED = "zero-centered"  # symmetric around the center
    ANYWHERE = "anywhere"  # no-op


@dataclass
class Range:
    """Range classification of one measurement.

    Attributes:
        kind: Range kind
        center: Nominal center of the values. Zero-centered ranges are
            symmetrized around it (0.0 when unset); range-ratio and
            percentile inclusion use it as the anchor for anywhere ranges.
    """

    kind: RangeKind = RangeKind.ANYWHERE
    center: float | None = None

    def __post_init__(self):
        self.kind = enum_member(RangeKind, self.kind, "range kind")

    def answer(self, imin: float, imax: float) -> tuple[float, float]:
        """Widen ``[imin, imax]`` to respect the range kind.

        :param imin: Observed minimum
        :param imax: Observed maximum
        :returns: ``(omin, omax)`` with ``omin <= imin`` and ``omax >= imax``
        """
        imin, imax = float(imin), float(imax)
        if self.kind is RangeKind.POSITIVE:
            return min(0.0, imin), imax
        if self.kind is RangeKind.NEGATIVE:
            return imin, max(0.0, imax)
        if self.kind is RangeKind.ZERO_CENTERED:
            center = 0.0 if self.center is None else float(self.center)
            half = max(center - imin, imax - center)
            return min(center - half, imin), max(center + half, imax)
        return imin, imax

    def anchor(self, omin: float, omax: float) -> float:
        """Point that scaling of an answered interval is done around.

        :param omin: Interval minimum (already through ``answer``)
        :param omax: Interval maximum (already through ``answer``)
        :returns: 0.0 for one-sided ranges, the center otherwise
        """
        if self.kind in (RangeKind.POSITIVE, RangeKind.NEGATIVE):
            return 0.0
        if self.center is not None:
            return float(self.center)
        if self.kind is RangeKind.ZERO_CENTERED:
            return 0.0
        return (omin + omax) / 2
