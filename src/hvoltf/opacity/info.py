"""Opacity info: per-value statistics of a histogram volume.

The histogram volume is expected in the standard layout: axis 0 a data
value, axis 1 gradient magnitude, axis 2 a second derivative measure
(second directional derivative or Laplacian).

1D info holds, per value bin, a measure of the gradient magnitude and of
the second derivative. 2D info holds, per value x gradient bin, the hit
count and a measure of the second derivative.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np

from hvoltf.errors import InvalidPolicyParameter, ShapeMismatch, enum_member
from hvoltf.histogram.result import AxisInfo, HistogramVolume
from hvoltf.measure.measurement import VALUE_KINDS, MeasurementKind
from hvoltf.verification import hvol_check, info_check

logger = logging.getLogger(__name__)


class HistoMeasure(str, Enum):
    """Statistic summarizing a 1D histogram as a single position."""

    MEAN = "mean"  # weighted centroid
    MEDIAN = "median"
    MODE = "mode"  # peak


@dataclass
class OpacityInfo:
    """Per-bin statistics derived from a histogram volume.

    Attributes:
        data: [2, res0] (1D) or [2, res0, res1] (2D); NaN marks empty bins
        axes: Axis metadata of the source histogram volume
    """

    data: np.ndarray
    axes: tuple[AxisInfo, AxisInfo, AxisInfo]

    @property
    def dim(self) -> int:
        return self.data.ndim - 1


def histo_measure(counts: np.ndarray, positions: np.ndarray, measure: HistoMeasure) -> np.ndarray:
    """Summarize histograms laid out along the last axis of ``counts``.

    :param counts: Histogram counts [..., n]
    :param positions: Bin positions [n]
    :param measure: Statistic to compute
    :returns: Positions [...]; NaN where a histogram is empty
    """
    counts = np.asarray(counts, dtype=np.float64)
    total = counts.sum(axis=-1)
    empty = total == 0
    measure = enum_member(HistoMeasure, measure, "histogram measure")

    if measure is HistoMeasure.MEAN:
        weighted = (counts * positions).sum(axis=-1)
        result = np.divide(weighted, total, out=np.zeros_like(total), where=~empty)
    elif measure is HistoMeasure.MODE:
        result = positions[np.argmax(counts, axis=-1)]
    else:
        cdf = np.cumsum(counts, axis=-1)
        idx = np.argmax(cdf >= (total / 2)[..., None], axis=-1)
        result = positions[idx]

    return np.where(empty, np.nan, result)


def _check_layout(hvol: HistogramVolume) -> None:
    kinds = [a.measurement for a in hvol.axes]
    if kinds[0] not in VALUE_KINDS:
        raise ShapeMismatch(f"histogram volume axis 0 must be a data value, got {kinds[0].value}", axis=0)
    if kinds[1] is not MeasurementKind.GRAD_MAG:
        raise ShapeMismatch(f"histogram volume axis 1 must be gradient magnitude, got {kinds[1].value}", axis=1)
    if kinds[2] not in (MeasurementKind.SECOND_DD, MeasurementKind.LAPLACIAN):
        raise ShapeMismatch(
            f"histogram volume axis 2 must be a second derivative, got {kinds[2].value}", axis=2
        )


def opac_info(hvol: HistogramVolume, dim: int = 1, measure: HistoMeasure = HistoMeasure.MEAN) -> OpacityInfo:
    """Compute opacity info from a histogram volume.

    :param hvol: Histogram volume in the standard layout
    :param dim: 1 for per-value info, 2 for per value x gradient info
    :param measure: Statistic locating gradient / second derivative per bin
    :returns: OpacityInfo
    """
    hvol_check(hvol)
    _check_layout(hvol)
    counts = hvol.counts.astype(np.float64)
    g_pos = hvol.axes[1].bin_centers
    h_pos = hvol.axes[2].bin_centers

    if dim == 1:
        # g(v): collapse the second derivative, then measure along gradient
        g = histo_measure(counts.sum(axis=2), g_pos, measure)
        # h(v): collapse the gradient, then measure along second derivative
        h = histo_measure(counts.sum(axis=1), h_pos, measure)
        data = np.stack([g, h])
    elif dim == 2:
        hits = counts.sum(axis=2)
        h = histo_measure(counts, h_pos, measure)
        data = np.stack([hits, h])
    else:
        raise InvalidPolicyParameter(f"info dimension must be 1 or 2, got {dim}", dim=dim)

    info = OpacityInfo(data=data, axes=hvol.axes)
    info_check(info, dim)
    logger.debug("[OpacityFit] %dD info from histogram volume %s (%s)", dim, hvol.shape, HistoMeasure(measure).value)
    return info


def info_1d_from_2d(info2d: OpacityInfo) -> OpacityInfo:
    """Collapse 2D info to 1D info by hit-weighted averaging over gradient.

    :param info2d: 2D opacity info
    :returns: 1D opacity info
    """
    info_check(info2d, 2)
    hits = info2d.data[0]
    h2d = np.nan_to_num(info2d.data[1], nan=0.0)
    g_pos = info2d.axes[1].bin_centers

    total = hits.sum(axis=1)
    empty = total == 0
    safe = np.where(empty, 1.0, total)
    g = np.where(empty, np.nan, (hits * g_pos).sum(axis=1) / safe)
    h = np.where(empty, np.nan, (hits * h2d).sum(axis=1) / safe)

    info = OpacityInfo(data=np.stack([g, h]), axes=info2d.axes)
    info_check(info, 1)
    return info
