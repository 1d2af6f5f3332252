"""Range, inclusion and clip policies.

Example:
    >>> from hvoltf.policies import IncPercentile, Range, RangeKind
    >>>
    >>> inc = IncPercentile(percent=1.0, range=Range(RangeKind.ANYWHERE))
    >>> inc.process_many(0, samples)
    >>> inc.process_many(1, samples)
    >>> lo, hi = inc.answer()
"""

from hvoltf.policies.clip import (
    CLIPS,
    Clip,
    ClipAbsolute,
    ClipPeakRatio,
    ClipPercentile,
    ClipTopN,
)
from hvoltf.policies.inclusion import (
    INCLUSIONS,
    IncAbsolute,
    Inclusion,
    IncPercentile,
    IncRangeRatio,
    IncStdv,
)
from hvoltf.policies.range import Range, RangeKind

__all__ = [
    # Ranges
    "Range",
    "RangeKind",
    # Inclusions
    "Inclusion",
    "IncAbsolute",
    "IncRangeRatio",
    "IncPercentile",
    "IncStdv",
    "INCLUSIONS",
    # Clips
    "Clip",
    "ClipAbsolute",
    "ClipPeakRatio",
    "ClipPercentile",
    "ClipTopN",
    "CLIPS",
]
