"""Inclusion policies: which measured values make it onto a histogram axis.

Each policy runs a two-pass protocol. Pass 0 sees every value once; pass 1
(only for policies with ``passes == 2``) sees every value again, now that
pass 0 has established the observed extent. ``answer`` then yields the
final ``(min, max)`` bounds. ``reset`` clears the running state so the
same policy can serve an independent run.

Example:
    >>> inc = IncStdv(k=3.0, range=Range(RangeKind.POSITIVE))
    >>> inc.process_many(0, gradient_magnitudes)
    >>> lo, hi = inc.answer()
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import ClassVar

import numpy as np
from numpy.typing import ArrayLike

from hvoltf.config.defaults import DEFAULTS
from hvoltf.errors import InsufficientData, InvalidPolicyParameter
from hvoltf.policies.range import Range, RangeKind
from hvoltf.shared.kernels import accumulate_moments_numba, histogram_1d_numba

logger = logging.getLogger(__name__)


class _Inclusion:
    """Running state and pass bookkeeping shared by all inclusion variants."""

    name: ClassVar[str] = "unknown"
    # Number of passes over the data this policy needs (0, 1 or 2)
    passes: ClassVar[int] = 1

    range: Range | None

    def reset(self) -> None:
        """Clear all accumulated statistics."""
        self._S = 0.0
        self._SS = 0.0
        self._num = 0
        self._min = math.inf
        self._max = -math.inf

    @property
    def num(self) -> int:
        """Number of values seen in pass 0."""
        return self._num

    @property
    def observed(self) -> tuple[float, float]:
        """Extent of the values seen in pass 0."""
        return self._min, self._max

    def process(self, pass_idx: int, value: float) -> None:
        """Feed a single measured value.

        :param pass_idx: 0 or 1
        :param value: Measured value
        """
        self.process_many(pass_idx, np.array([value], dtype=np.float64))

    def process_many(self, pass_idx: int, values: ArrayLike) -> None:
        """Feed a block of measured values.

        :param pass_idx: 0 or 1
        :param values: Measured values (any shape, flattened)
        """
        if pass_idx not in (0, 1):
            raise InvalidPolicyParameter(f"pass index must be 0 or 1, got {pass_idx}", pass_idx=pass_idx)
        values = np.ascontiguousarray(values, dtype=np.float64).ravel()
        if values.size == 0:
            return
        if pass_idx == 0:
            self._learn(values)
        elif self.passes == 2:
            self._refine(values)

    def _learn(self, values: np.ndarray) -> None:
        S, SS, num, vmin, vmax = accumulate_moments_numba(values)
        self._S += S
        self._SS += SS
        self._num += num
        self._min = min(self._min, vmin)
        self._max = max(self._max, vmax)

    def _refine(self, values: np.ndarray) -> None:
        pass

    def _range(self) -> Range:
        return self.range if self.range is not None else Range(RangeKind.ANYWHERE)

    def _require_samples(self) -> None:
        if self._num == 0:
            raise InsufficientData(
                f"{self.name} inclusion has seen no values",
                inclusion=self.name,
            )

    def answer(self) -> tuple[float, float]:
        raise NotImplementedError


@dataclass
class IncAbsolute(_Inclusion):
    """Include values within explicitly specified bounds.

    Attributes:
        min_value: Lower bound
        max_value: Upper bound
    """

    name: ClassVar[str] = "absolute"
    passes: ClassVar[int] = 0

    min_value: float
    max_value: float
    range: Range | None = None

    def __post_init__(self):
        if not self.min_value < self.max_value:
            raise InvalidPolicyParameter(
                f"absolute inclusion needs min < max, got [{self.min_value}, {self.max_value}]",
                min_value=self.min_value,
                max_value=self.max_value,
            )
        self.reset()

    def answer(self) -> tuple[float, float]:
        return float(self.min_value), float(self.max_value)


@dataclass
class IncRangeRatio(_Inclusion):
    """Include a scaled version of the observed range.

    The observed extent is first widened by the axis range, then scaled by
    ``ratio`` around the range anchor (0 for one-sided ranges, the center
    or midpoint otherwise).

    Attributes:
        ratio: Scale factor of the range size (> 0)
    """

    name: ClassVar[str] = "range-ratio"
    passes: ClassVar[int] = 1

    ratio: float = 1.0
    range: Range | None = None

    def __post_init__(self):
        if not self.ratio > 0:
            raise InvalidPolicyParameter(f"range ratio must be positive, got {self.ratio}", ratio=self.ratio)
        self.reset()

    def answer(self) -> tuple[float, float]:
        self._require_samples()
        rng = self._range()
        omin, omax = rng.answer(self._min, self._max)
        mid = rng.anchor(omin, omax)
        return mid + self.ratio * (omin - mid), mid + self.ratio * (omax - mid)


@dataclass
class IncPercentile(_Inclusion):
    """Exclude some percentage of the values, nibbling at the tails.

    Pass 0 learns the extent, pass 1 fills an auxiliary histogram of
    ``bins`` bins over the range-widened extent. Which tails are nibbled
    depends on the range kind: positive ranges lose only high values,
    negative ranges only low values, zero-centered ranges lose both tails
    symmetrically around the center, and anywhere ranges lose half the
    budget from each tail, or, when the range has a center, lose bins from
    whichever tail lies farther from it.

    Attributes:
        percent: PERCENT of the hits to throw away, in [0, 100)
        bins: Resolution of the auxiliary histogram
    """

    name: ClassVar[str] = "percentile"
    passes: ClassVar[int] = 2

    percent: float = 1.0
    bins: int = DEFAULTS.perc_hist_bins
    range: Range | None = None
    _hist: np.ndarray | None = field(default=None, init=False, repr=False, compare=False)
    _hist_range: tuple[float, float] = field(default=(0.0, 0.0), init=False, repr=False, compare=False)

    def __post_init__(self):
        if not 0.0 <= self.percent < 100.0:
            raise InvalidPolicyParameter(
                f"percentile inclusion needs percent in [0, 100), got {self.percent}",
                percent=self.percent,
            )
        if self.bins < 1:
            raise InvalidPolicyParameter(f"percentile histogram needs >= 1 bin, got {self.bins}", bins=self.bins)
        self.reset()

    def reset(self) -> None:
        super().reset()
        self._hist = None
        self._hist_range = (0.0, 0.0)

    @property
    def histogram(self) -> np.ndarray | None:
        """Auxiliary histogram filled during pass 1."""
        return self._hist

    def _refine(self, values: np.ndarray) -> None:
        self._require_samples()
        if self._hist is None:
            self._hist = np.zeros(self.bins, dtype=np.int64)
            self._hist_range = self._range().answer(self._min, self._max)
        lo, hi = self._hist_range
        histogram_1d_numba(values, self.bins, lo, hi, self._hist)

    def answer(self) -> tuple[float, float]:
        self._require_samples()
        if self._hist is None or self._hist.sum() == 0:
            raise InsufficientData(
                "percentile inclusion has an empty histogram (was pass 1 run?)",
                inclusion=self.name,
            )
        counts = self._hist
        hmin, hmax = self._hist_range
        budget = self.percent / 100.0 * float(counts.sum())
        rng = self._range()
        kind = rng.kind

        lo, hi = 0, self.bins - 1
        if kind is RangeKind.POSITIVE:
            hi = _nibble_high(counts, lo, hi, budget)
        elif kind is RangeKind.NEGATIVE:
            lo = _nibble_low(counts, lo, hi, budget)
        elif kind is RangeKind.ZERO_CENTERED:
            removed = 0.0
            while hi - lo >= 2 and removed + counts[lo] + counts[hi] <= budget:
                removed += counts[lo] + counts[hi]
                lo += 1
                hi -= 1
        elif rng.center is not None and hmax > hmin:
            mid = (rng.center - hmin) / (hmax - hmin) * self.bins
            lo, hi = _nibble_around(counts, lo, hi, budget, mid)
        else:
            lo = _nibble_low(counts, lo, hi, budget / 2)
            hi = _nibble_high(counts, lo, hi, budget / 2)

        width = (hmax - hmin) / self.bins
        new_min = hmin + lo * width
        new_max = hmin + (hi + 1) * width
        logger.debug(
            "[Inclusion] percentile %.3g%% kept bins [%d, %d] of %d -> [%g, %g]",
            self.percent, lo, hi, self.bins, new_min, new_max,
        )
        return new_min, new_max


@dataclass
class IncStdv(_Inclusion):
    """Include ``mean +/- k * stdv`` of the values, widened by the axis range.

    On a positive range the lower bound is exactly 0, on a negative range
    the upper bound is exactly 0.

    Attributes:
        k: Multiple of the standard deviation (>= 0)
    """

    name: ClassVar[str] = "stdev"
    passes: ClassVar[int] = 1

    k: float = 1.0
    range: Range | None = None

    def __post_init__(self):
        if not self.k >= 0:
            raise InvalidPolicyParameter(f"stdev multiple must be non-negative, got {self.k}", k=self.k)
        self.reset()

    @property
    def mean(self) -> float:
        self._require_samples()
        return self._S / self._num

    @property
    def stdv(self) -> float:
        mean = self.mean
        return math.sqrt(max(0.0, self._SS / self._num - mean * mean))

    def answer(self) -> tuple[float, float]:
        mean, stdv = self.mean, self.stdv
        rng = self._range()
        lo, hi = rng.answer(mean - self.k * stdv, mean + self.k * stdv)
        # One-sided ranges pin the near bound at 0
        if rng.kind is RangeKind.POSITIVE:
            lo = max(lo, 0.0)
        elif rng.kind is RangeKind.NEGATIVE:
            hi = min(hi, 0.0)
        return lo, hi


def _nibble_low(counts: np.ndarray, lo: int, hi: int, budget: float) -> int:
    removed = 0.0
    while lo < hi and removed + counts[lo] <= budget:
        removed += counts[lo]
        lo += 1
    return lo


def _nibble_high(counts: np.ndarray, lo: int, hi: int, budget: float) -> int:
    removed = 0.0
    while hi > lo and removed + counts[hi] <= budget:
        removed += counts[hi]
        hi -= 1
    return hi


def _nibble_around(counts: np.ndarray, lo: int, hi: int, budget: float, mid: float) -> tuple[int, int]:
    """Remove bins from whichever end lies farther from ``mid`` (in bin units)."""
    removed = 0.0
    while lo < hi:
        if hi + 1 - mid >= mid - lo:
            if removed + counts[hi] > budget:
                break
            removed += counts[hi]
            hi -= 1
        else:
            if removed + counts[lo] > budget:
                break
            removed += counts[lo]
            lo += 1
    return lo, hi


# Union type for inclusion policies
Inclusion = IncAbsolute | IncRangeRatio | IncPercentile | IncStdv

INCLUSIONS: dict[str, type[Inclusion]] = {
    cls.name: cls for cls in (IncAbsolute, IncRangeRatio, IncPercentile, IncStdv)
}
