"""Clip policies: how raw histogram volume counts map to bounded storage.

The hits of the near-constant background of a large volume can outnumber
those of boundary bins by orders of magnitude, so a cutoff count is chosen
and everything above it saturates.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

import numpy as np

from hvoltf.errors import InvalidPolicyParameter


def _at_least_one(count: float) -> int:
    return max(1, int(count))


@dataclass(frozen=True)
class ClipAbsolute:
    """Clip at an explicitly specified bin count.

    Attributes:
        count: Cutoff count (>= 1)
    """

    name: ClassVar[str] = "absolute"

    count: int = 256

    def __post_init__(self):
        if self.count < 1:
            raise InvalidPolicyParameter(f"absolute clip count must be >= 1, got {self.count}", count=self.count)

    def answer(self, counts: np.ndarray) -> int:
        return _at_least_one(self.count)


@dataclass(frozen=True)
class ClipPeakRatio:
    """Clip at a fraction of the largest bin count.

    Attributes:
        ratio: Fraction of the peak count (> 0)
    """

    name: ClassVar[str] = "peak-ratio"

    ratio: float = 1.0

    def __post_init__(self):
        if not self.ratio > 0:
            raise InvalidPolicyParameter(f"peak ratio must be positive, got {self.ratio}", ratio=self.ratio)

    def answer(self, counts: np.ndarray) -> int:
        return _at_least_one(self.ratio * float(np.max(counts)))


@dataclass(frozen=True)
class ClipPercentile:
    """Clip at the count found at a percentile of all bin counts, sorted.

    Attributes:
        percent: Percentile in [0, 100]
    """

    name: ClassVar[str] = "percentile"

    percent: float = 99.0

    def __post_init__(self):
        if not 0.0 <= self.percent <= 100.0:
            raise InvalidPolicyParameter(
                f"clip percentile must be in [0, 100], got {self.percent}", percent=self.percent
            )

    def answer(self, counts: np.ndarray) -> int:
        ordered = np.sort(counts, axis=None)
        idx = int(round(self.percent / 100.0 * (ordered.size - 1)))
        return _at_least_one(ordered[idx])


@dataclass(frozen=True)
class ClipTopN:
    """Ignore the N bins with the highest counts; clip at the next one.

    Attributes:
        n: Number of top bins to ignore (>= 0)
    """

    name: ClassVar[str] = "top-n"

    n: int = 10

    def __post_init__(self):
        if self.n < 0:
            raise InvalidPolicyParameter(f"top-N needs n >= 0, got {self.n}", n=self.n)

    def answer(self, counts: np.ndarray) -> int:
        ordered = np.sort(counts, axis=None)[::-1]
        idx = min(self.n, ordered.size - 1)
        return _at_least_one(ordered[idx])


# Union type for clip policies
Clip = ClipAbsolute | ClipPeakRatio | ClipPercentile | ClipTopN

CLIPS: dict[str, type[Clip]] = {
    cls.name: cls for cls in (ClipAbsolute, ClipPeakRatio, ClipPercentile, ClipTopN)
}
