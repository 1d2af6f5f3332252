"""Numba-optimized kernels for histogram volume construction."""

from __future__ import annotations

import logging
import math

import numpy as np
from numba import njit, prange
from numpy.typing import NDArray

logger = logging.getLogger(__name__)


# Note: Not using parallel=True because histogram accumulation has race conditions
@njit(fastmath=True, cache=True, nogil=True)
def histogram_1d_numba(
    values: NDArray[np.float64],
    n_bins: int,
    min_val: float,
    max_val: float,
    out: NDArray[np.int64],
) -> None:
    """Accumulate a 1D histogram, clamping out-of-range values to the end bins.

    :param values: Input values [N]
    :param n_bins: Number of bins
    :param min_val: Lower edge of bin 0
    :param max_val: Upper edge of the last bin
    :param out: Histogram [n_bins] (accumulated in-place)
    """
    N = values.shape[0]
    scale = n_bins / (max_val - min_val) if max_val > min_val else 0.0

    for i in range(N):
        bin_idx = int(math.floor((values[i] - min_val) * scale))
        bin_idx = max(0, min(n_bins - 1, bin_idx))
        out[bin_idx] += 1


# Note: Sequential sums keep results independent of thread scheduling
@njit(fastmath=True, cache=True, nogil=True)
def accumulate_moments_numba(
    values: NDArray[np.float64],
) -> tuple[float, float, int, float, float]:
    """Compute the running statistics of a block of values.

    :param values: Input values [N]
    :returns: Tuple of (sum, sum of squares, count, min, max)
    """
    N = values.shape[0]
    if N == 0:
        return 0.0, 0.0, 0, 0.0, 0.0

    S = 0.0
    SS = 0.0
    min_val = values[0]
    max_val = values[0]
    for i in range(N):
        x = values[i]
        S += x
        SS += x * x
        if x < min_val:
            min_val = x
        if x > max_val:
            max_val = x

    return S, SS, N, min_val, max_val


# Note: Not using parallel=True because bin increments must stay exact
@njit(fastmath=True, cache=True, nogil=True)
def bin_measurements_numba(
    values: NDArray[np.float64],
    mins: NDArray[np.float64],
    maxs: NDArray[np.float64],
    res: NDArray[np.int64],
    out: NDArray[np.int64],
) -> int:
    """Add a block of voxel measurements to a 3D histogram volume.

    Values outside ``[mins[a], maxs[a]]`` are saturated into the first or
    last bin of axis ``a``, so every voxel is counted exactly once.

    :param values: Measurements [3, N]
    :param mins: Inclusion minimum per axis [3]
    :param maxs: Inclusion maximum per axis [3]
    :param res: Resolution per axis [3]
    :param out: Raw counts [res[0], res[1], res[2]] (accumulated in-place)
    :returns: Number of voxels whose three measurements were all inside the bounds
    """
    N = values.shape[1]
    idx = np.zeros(3, dtype=np.int64)
    included = 0

    for i in range(N):
        inside = True
        for a in range(3):
            v = values[a, i]
            lo = mins[a]
            hi = maxs[a]
            if v < lo or v > hi:
                inside = False
            if hi > lo:
                b = int(math.floor((v - lo) * res[a] / (hi - lo)))
            else:
                b = 0
            idx[a] = max(0, min(res[a] - 1, b))

        out[idx[0], idx[1], idx[2]] += 1
        if inside:
            included += 1

    return included


@njit(parallel=True, fastmath=True, cache=True, nogil=True)
def clip_linear_numba(
    raw: NDArray[np.int64],
    cutoff: int,
    out: NDArray[np.uint8],
) -> None:
    """Map raw counts linearly to 8 bits, the cutoff going to 255.

    :param raw: Raw counts [N] (flattened volume)
    :param cutoff: Count mapped to 255; larger counts saturate
    :param out: Output [N] (modified in-place)
    """
    n = raw.shape[0]
    scale = 255.0 / cutoff

    for i in prange(n):
        c = raw[i]
        if c >= cutoff:
            out[i] = 255
        else:
            out[i] = np.uint8(int(c * scale))


def warmup_histogram_kernels() -> None:
    """Warm up Numba JIT compilation for the histogram volume kernels.

    Called on module import to avoid first-call overhead.
    """
    values = np.random.rand(3, 100)
    flat = values[0].copy()

    out_1d = np.zeros(16, dtype=np.int64)
    out_3d = np.zeros((4, 4, 4), dtype=np.int64)
    out_u8 = np.zeros(64, dtype=np.uint8)
    mins = np.zeros(3, dtype=np.float64)
    maxs = np.ones(3, dtype=np.float64)
    res = np.full(3, 4, dtype=np.int64)

    histogram_1d_numba(flat, 16, 0.0, 1.0, out_1d)
    accumulate_moments_numba(flat)
    bin_measurements_numba(values, mins, maxs, res, out_3d)
    clip_linear_numba(out_3d.ravel(), 10, out_u8)

    logger.debug("Histogram volume Numba kernels warmed up")


# Warmup on import
warmup_histogram_kernels()
