"""Histogram volume module.

Build joint histograms of per-voxel measurements over a 3D scalar volume.

Example:
    >>> from hvoltf.histogram import HistogramVolumeBuilder, raw_scatterplots
    >>>
    >>> builder = HistogramVolumeBuilder.from_volume(volume, params)
    >>> hvol = builder.build()
    >>> vg, vh = raw_scatterplots(hvol, hist_eq=True)
"""

from hvoltf.histogram.build import (
    HistogramVolumeBuilder,
    MeasurementCache,
    build_hvol,
    clip_hvol,
    gkms_hvol,
)
from hvoltf.histogram.params import Axis, HistogramVolumeParams
from hvoltf.histogram.result import AxisInfo, HistogramVolume
from hvoltf.histogram.scatter import histogram_equalize, raw_scatterplots

__all__ = [
    "Axis",
    "HistogramVolumeParams",
    "AxisInfo",
    "HistogramVolume",
    "HistogramVolumeBuilder",
    "MeasurementCache",
    "build_hvol",
    "clip_hvol",
    "gkms_hvol",
    # Scatterplots
    "raw_scatterplots",
    "histogram_equalize",
]
