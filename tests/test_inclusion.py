"""Tests for inclusion policies."""

import math

import numpy as np
import pytest

from hvoltf import (
    INCLUSIONS,
    IncAbsolute,
    IncPercentile,
    IncRangeRatio,
    IncStdv,
    InsufficientData,
    InvalidPolicyParameter,
    Range,
    RangeKind,
)


def _run(inc, values):
    """Feed ``values`` through every pass the policy needs."""
    for pass_idx in range(inc.passes):
        inc.process_many(pass_idx, values)
    return inc.answer()


class TestIncAbsolute:
    """Test absolute inclusion."""

    def test_answer(self):
        """Test bounds are returned unchanged."""
        inc = IncAbsolute(-1.0, 2.0)
        assert inc.passes == 0
        assert inc.answer() == (-1.0, 2.0)

    def test_invalid_bounds(self):
        """Test min must be below max."""
        with pytest.raises(InvalidPolicyParameter, match="min < max"):
            IncAbsolute(2.0, 2.0)


class TestIncRangeRatio:
    """Test range-ratio inclusion."""

    def test_ratio_one_is_observed_range(self):
        """Test ratio 1 keeps the observed extent."""
        inc = IncRangeRatio(1.0, range=Range(RangeKind.ANYWHERE))
        assert _run(inc, [2.0, 3.0, 6.0]) == pytest.approx((2.0, 6.0))

    def test_scales_around_midpoint(self):
        """Test anywhere ranges scale around the midpoint."""
        inc = IncRangeRatio(2.0, range=Range(RangeKind.ANYWHERE))
        assert _run(inc, [2.0, 6.0]) == pytest.approx((0.0, 8.0))

    def test_positive_scales_from_zero(self):
        """Test positive ranges scale with 0 fixed."""
        inc = IncRangeRatio(0.5, range=Range(RangeKind.POSITIVE))
        assert _run(inc, [2.0, 6.0]) == pytest.approx((0.0, 3.0))

    def test_zero_centered_symmetric(self):
        """Test zero-centered ranges stay symmetric."""
        inc = IncRangeRatio(1.0, range=Range(RangeKind.ZERO_CENTERED))
        assert _run(inc, [-1.0, 4.0]) == pytest.approx((-4.0, 4.0))

    def test_no_samples(self):
        """Test answering without samples."""
        with pytest.raises(InsufficientData):
            IncRangeRatio(1.0).answer()

    def test_invalid_ratio(self):
        """Test ratio must be positive."""
        with pytest.raises(InvalidPolicyParameter):
            IncRangeRatio(0.0)

    def test_blocks_accumulate(self):
        """Test feeding values in blocks matches feeding them at once."""
        values = np.random.default_rng(1).normal(size=1000)
        whole = IncRangeRatio(1.0)
        whole.process_many(0, values)
        blocks = IncRangeRatio(1.0)
        for chunk in np.array_split(values, 7):
            blocks.process_many(0, chunk)
        assert blocks.answer() == whole.answer()
        assert blocks.num == 1000

    def test_single_values(self):
        """Test per-value processing."""
        inc = IncRangeRatio(1.0)
        for v in (3.0, -1.0, 5.0):
            inc.process(0, v)
        assert inc.observed == (-1.0, 5.0)


class TestIncStdv:
    """Test standard deviation inclusion."""

    def test_mean_and_stdv(self):
        """Test running moments."""
        inc = IncStdv(1.0, range=Range(RangeKind.ANYWHERE))
        inc.process_many(0, [1.0, 2.0, 3.0, 4.0, 5.0])
        assert inc.mean == pytest.approx(3.0)
        assert inc.stdv == pytest.approx(math.sqrt(2.0))

    def test_answer(self):
        """Test bounds are mean +/- k stdv."""
        inc = IncStdv(2.0, range=Range(RangeKind.ANYWHERE))
        lo, hi = _run(inc, [1.0, 2.0, 3.0, 4.0, 5.0])
        assert lo == pytest.approx(3.0 - 2 * math.sqrt(2.0))
        assert hi == pytest.approx(3.0 + 2 * math.sqrt(2.0))

    def test_positive_range_widens(self):
        """Test positive range pulls the lower bound to 0."""
        inc = IncStdv(0.5, range=Range(RangeKind.POSITIVE))
        lo, hi = _run(inc, [4.0, 6.0])
        assert lo == 0.0
        assert hi == pytest.approx(5.5)

    def test_positive_clamps_at_zero(self):
        """Test a wide spread on a positive range never reaches below 0."""
        inc = IncStdv(3.0, range=Range(RangeKind.POSITIVE))
        lo, hi = _run(inc, [0.0, 0.0, 0.0, 10.0])
        assert lo == 0.0
        assert hi == pytest.approx(2.5 + 3 * math.sqrt(18.75))

    def test_negative_clamps_at_zero(self):
        """Test a wide spread on a negative range never reaches above 0."""
        inc = IncStdv(3.0, range=Range(RangeKind.NEGATIVE))
        lo, hi = _run(inc, [0.0, 0.0, 0.0, -10.0])
        assert lo == pytest.approx(-2.5 - 3 * math.sqrt(18.75))
        assert hi == 0.0

    def test_larger_k_never_shrinks(self):
        """Test the interval grows with the multiplier."""
        values = np.random.default_rng(4).gamma(2.0, size=5000)
        previous = None
        for k in (0.0, 0.5, 1.0, 2.0, 4.0):
            inc = IncStdv(k, range=Range(RangeKind.POSITIVE))
            lo, hi = _run(inc, values)
            if previous is not None:
                assert lo <= previous[0] and hi >= previous[1]
            previous = (lo, hi)

    def test_no_samples(self):
        """Test answering without samples."""
        with pytest.raises(InsufficientData, match="no values"):
            IncStdv(1.0).answer()

    def test_reset(self):
        """Test reset clears accumulated statistics."""
        inc = IncStdv(1.0)
        inc.process_many(0, [1.0, 2.0])
        inc.reset()
        assert inc.num == 0
        with pytest.raises(InsufficientData):
            inc.answer()


class TestIncPercentile:
    """Test percentile inclusion."""

    def test_uniform_anywhere(self):
        """Test both tails lose half of the budget."""
        values = np.linspace(0.0, 1.0, 100_000)
        inc = IncPercentile(1.0, range=Range(RangeKind.ANYWHERE))
        lo, hi = _run(inc, values)
        assert lo == pytest.approx(0.005, abs=2 / 1024)
        assert hi == pytest.approx(0.995, abs=2 / 1024)

    def test_anywhere_with_center(self):
        """Test the tail farther from the center loses the budget first."""
        values = np.linspace(0.0, 1.0, 100_000)
        inc = IncPercentile(20.0, range=Range(RangeKind.ANYWHERE, center=0.8))
        lo, hi = _run(inc, values)
        assert lo == pytest.approx(0.2, abs=2 / 1024)
        assert hi == 1.0
        excluded = int(((values < lo) | (values > hi)).sum())
        assert excluded <= 0.2 * values.size

    def test_positive_trims_high_only(self):
        """Test positive ranges only lose high values."""
        values = np.linspace(0.0, 1.0, 100_000)
        inc = IncPercentile(10.0, range=Range(RangeKind.POSITIVE))
        lo, hi = _run(inc, values)
        assert lo == 0.0
        assert hi == pytest.approx(0.9, abs=2 / 1024)

    def test_negative_trims_low_only(self):
        """Test negative ranges only lose low values."""
        values = np.linspace(-1.0, 0.0, 100_000)
        inc = IncPercentile(10.0, range=Range(RangeKind.NEGATIVE))
        lo, hi = _run(inc, values)
        assert lo == pytest.approx(-0.9, abs=2 / 1024)
        assert hi == 0.0

    def test_zero_centered_symmetric(self):
        """Test zero-centered ranges lose both tails in pairs."""
        values = np.random.default_rng(2).normal(0.5, 1.0, size=50_000)
        inc = IncPercentile(5.0, range=Range(RangeKind.ZERO_CENTERED))
        lo, hi = _run(inc, values)
        assert lo == pytest.approx(-hi)

    @pytest.mark.parametrize("kind", [RangeKind.POSITIVE, RangeKind.ZERO_CENTERED, RangeKind.ANYWHERE])
    def test_never_exceeds_budget(self, kind):
        """Test at most ``percent`` of the values fall outside the bounds."""
        values = np.abs(np.random.default_rng(3).normal(size=20_000))
        if kind is RangeKind.ZERO_CENTERED:
            values = values - 0.5
        inc = IncPercentile(2.0, range=Range(kind))
        lo, hi = _run(inc, values)
        excluded = int(((values < lo) | (values > hi)).sum())
        assert excluded <= 0.02 * values.size

    def test_zero_percent_keeps_everything(self):
        """Test percent 0 returns the histogram range."""
        inc = IncPercentile(0.0, range=Range(RangeKind.ANYWHERE))
        assert _run(inc, [1.0, 2.0, 5.0]) == pytest.approx((1.0, 5.0))

    def test_histogram_filled_in_pass_one(self):
        """Test the auxiliary histogram holds every value."""
        inc = IncPercentile(1.0, bins=64)
        values = np.arange(500, dtype=np.float64)
        _run(inc, values)
        assert inc.histogram.shape == (64,)
        assert inc.histogram.sum() == 500

    def test_pass_one_needs_pass_zero(self):
        """Test pass 1 without pass 0."""
        with pytest.raises(InsufficientData):
            IncPercentile(1.0).process_many(1, [1.0, 2.0])

    def test_answer_needs_pass_one(self):
        """Test answering after pass 0 only."""
        inc = IncPercentile(1.0)
        inc.process_many(0, [1.0, 2.0])
        with pytest.raises(InsufficientData, match="pass 1"):
            inc.answer()

    @pytest.mark.parametrize("percent", [-1.0, 100.0])
    def test_invalid_percent(self, percent):
        """Test percent must be in [0, 100)."""
        with pytest.raises(InvalidPolicyParameter):
            IncPercentile(percent)


class TestInclusionRegistry:
    """Test inclusion lookup by tag."""

    def test_names(self):
        """Test every variant is registered by its tag."""
        assert INCLUSIONS == {
            "absolute": IncAbsolute,
            "range-ratio": IncRangeRatio,
            "percentile": IncPercentile,
            "stdev": IncStdv,
        }

    def test_invalid_pass_index(self):
        """Test pass index must be 0 or 1."""
        with pytest.raises(InvalidPolicyParameter):
            IncStdv(1.0).process_many(2, [1.0])
