"""Tests for clip policies."""

import numpy as np
import pytest

from hvoltf import CLIPS, ClipAbsolute, ClipPeakRatio, ClipPercentile, ClipTopN, InvalidPolicyParameter


@pytest.fixture
def counts():
    return np.array([5, 100, 50, 7], dtype=np.int64).reshape(2, 2, 1)


class TestClipVariants:
    """Test the cutoff each clip variant picks."""

    def test_absolute(self, counts):
        """Test absolute clip ignores the counts."""
        assert ClipAbsolute(10).answer(counts) == 10

    def test_peak_ratio(self, counts):
        """Test peak-ratio clip scales the maximum."""
        assert ClipPeakRatio(0.5).answer(counts) == 50

    def test_percentile(self):
        """Test percentile clip indexes the sorted counts."""
        counts = np.arange(101, dtype=np.int64)
        assert ClipPercentile(50.0).answer(counts) == 50
        assert ClipPercentile(100.0).answer(counts) == 100

    def test_top_n(self, counts):
        """Test top-N clip skips the N largest counts."""
        assert ClipTopN(0).answer(counts) == 100
        assert ClipTopN(1).answer(counts) == 50
        assert ClipTopN(10).answer(counts) == 5

    @pytest.mark.parametrize(
        "clip", [ClipAbsolute(1), ClipPeakRatio(0.01), ClipPercentile(0.0), ClipTopN(3)]
    )
    def test_at_least_one(self, clip):
        """Test every cutoff is at least 1."""
        assert clip.answer(np.zeros((2, 2, 2), dtype=np.int64)) >= 1


class TestClipValidation:
    """Test clip parameter checks."""

    def test_absolute_zero(self):
        with pytest.raises(InvalidPolicyParameter):
            ClipAbsolute(0)

    def test_peak_ratio_zero(self):
        with pytest.raises(InvalidPolicyParameter):
            ClipPeakRatio(0.0)

    def test_percentile_out_of_range(self):
        with pytest.raises(InvalidPolicyParameter):
            ClipPercentile(101.0)

    def test_top_n_negative(self):
        with pytest.raises(InvalidPolicyParameter):
            ClipTopN(-1)

    def test_registry(self):
        """Test every variant is registered by its tag."""
        assert set(CLIPS) == {"absolute", "peak-ratio", "percentile", "top-n"}
