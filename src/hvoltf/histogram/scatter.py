"""Scatterplot projections of a histogram volume."""

from __future__ import annotations

import numpy as np

from hvoltf.config.defaults import DEFAULTS
from hvoltf.histogram.result import HistogramVolume
from hvoltf.verification import hvol_check


def histogram_equalize(
    image: np.ndarray,
    bins: int = DEFAULTS.hist_eq_bins,
    smart: int = DEFAULTS.hist_eq_smart,
) -> np.ndarray:
    """Histogram-equalize an image to [0, 1].

    The ``smart`` most populated histogram bins are left out when forming
    the cumulative distribution, so a dominant background does not eat the
    whole output range.

    :param image: Input array (any shape)
    :param bins: Number of histogram bins
    :param smart: Number of most populated bins to ignore
    :returns: Equalized float64 array of the same shape
    """
    data = np.asarray(image, dtype=np.float64)
    lo, hi = float(data.min()), float(data.max())
    if hi <= lo:
        return np.zeros_like(data)

    counts, edges = np.histogram(data, bins=bins, range=(lo, hi))
    counts = counts.astype(np.float64)
    if 0 < smart < bins:
        counts[np.argsort(counts, kind="stable")[-smart:]] = 0.0
    cdf = np.cumsum(counts)
    if cdf[-1] == 0:
        return (data - lo) / (hi - lo)
    cdf /= cdf[-1]

    centers = (edges[:-1] + edges[1:]) / 2
    return np.interp(data, centers, cdf)


def raw_scatterplots(hvol: HistogramVolume, hist_eq: bool = False) -> tuple[np.ndarray, np.ndarray]:
    """Project a histogram volume onto its (axis0, axis1) and (axis0, axis2) planes.

    For the standard layout these are the value x gradient and the value x
    second-derivative scatterplots.

    :param hvol: Histogram volume
    :param hist_eq: Histogram-equalize each scatterplot
    :returns: (vg [res0, res1], vh [res0, res2]) as float64
    """
    hvol_check(hvol)
    vg = hvol.project(2).astype(np.float64)
    vh = hvol.project(1).astype(np.float64)
    if hist_eq:
        vg = histogram_equalize(vg)
        vh = histogram_equalize(vh)
    return vg, vh
