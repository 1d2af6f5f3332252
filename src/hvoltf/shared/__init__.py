"""Shared Numba kernels.

Used by the inclusion policies, the histogram volume builder and the
clipping step alike.
"""

from hvoltf.shared.kernels import (
    accumulate_moments_numba,
    bin_measurements_numba,
    clip_linear_numba,
    histogram_1d_numba,
    warmup_histogram_kernels,
)

__all__ = [
    "accumulate_moments_numba",
    "bin_measurements_numba",
    "clip_linear_numba",
    "histogram_1d_numba",
    "warmup_histogram_kernels",
]
