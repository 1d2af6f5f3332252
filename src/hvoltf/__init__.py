"""
hvoltf - Histogram Volumes and Transfer Functions

Semi-automatic opacity functions for direct volume rendering, from the
joint histogram of data value, gradient magnitude and second derivative.

Features:
- Histogram volumes over any three per-voxel measurements
- Range, inclusion (absolute, range-ratio, percentile, stdev) and clip
  (absolute, peak-ratio, percentile, top-N) policies
- Numba-compiled binning with a measurement cache shared between passes
- Pluggable probes; finite-difference grid probe with optional pre-blur
- Scatterplots, opacity info, boundary thickness and position estimates
- Boundary emphasis functions and opacity LUTs

Example:
    >>> import numpy as np
    >>> from hvoltf import BoundaryEmphasis, OpacityFit, gkms_hvol
    >>>
    >>> hvol = gkms_hvol(volume, grad_perc=0.15, hess_perc=0.25)
    >>> emphasis = BoundaryEmphasis.from_pairs([-2, 0, 2], [0, 1, 0])
    >>> result = OpacityFit(gthresh=1.0).fit(hvol, emphasis)
    >>> lut = result.lut(256)

Example - Custom Axes:
    >>> from hvoltf import Axis, HistogramVolumeParams, IncAbsolute, IncPercentile, IncStdv, build_hvol
    >>>
    >>> params = HistogramVolumeParams(
    ...     axes=(
    ...         Axis(128, "val-pos", IncAbsolute(0, 255)),
    ...         Axis(128, "gm", IncStdv(3.0)),
    ...         Axis(64, "lapl", IncPercentile(1.0)),
    ...     ),
    ... )
    >>> hvol = build_hvol(volume, params, mode="ceiling")
"""

__version__ = "0.1.0"

from hvoltf.config.defaults import DEFAULTS, Defaults
from hvoltf.errors import (
    HVolError,
    InclusionTooAggressive,
    InsufficientData,
    InvalidPolicyParameter,
    ProbeFailure,
    ShapeMismatch,
)
from hvoltf.policies import (
    CLIPS,
    INCLUSIONS,
    Clip,
    ClipAbsolute,
    ClipPeakRatio,
    ClipPercentile,
    ClipTopN,
    IncAbsolute,
    Inclusion,
    IncPercentile,
    IncRangeRatio,
    IncStdv,
    Range,
    RangeKind,
)
from hvoltf.protocols import Probe, ProbeItem, SlabProbe
from hvoltf.measure import GridProbe, Measurement, MeasurementKind, ProbeConfig
from hvoltf.histogram import (
    Axis,
    AxisInfo,
    HistogramVolume,
    HistogramVolumeBuilder,
    HistogramVolumeParams,
    MeasurementCache,
    build_hvol,
    clip_hvol,
    gkms_hvol,
    histogram_equalize,
    raw_scatterplots,
)
from hvoltf.config.presets import (
    clip_from_dict,
    gkms_params,
    inclusion_from_dict,
    load_params_json,
    params_from_dict,
    params_to_dict,
    save_params_json,
)
from hvoltf.opacity import (
    BoundaryEmphasis,
    HistoMeasure,
    OpacityFit,
    OpacityFitResult,
    OpacityInfo,
    PositionFunction,
    info_1d_from_2d,
    opac_calc,
    opac_info,
    pos_calc,
    sigma_calc,
)
from hvoltf.verification import bcpts_check, hvol_check, info_check, input_check, pos_check

__all__ = [
    "__version__",
    # Config
    "Defaults",
    "DEFAULTS",
    "gkms_params",
    "params_from_dict",
    "params_to_dict",
    "load_params_json",
    "save_params_json",
    "inclusion_from_dict",
    "clip_from_dict",
    # Errors
    "HVolError",
    "InsufficientData",
    "InclusionTooAggressive",
    "ProbeFailure",
    "ShapeMismatch",
    "InvalidPolicyParameter",
    # Policies
    "Range",
    "RangeKind",
    "Inclusion",
    "IncAbsolute",
    "IncRangeRatio",
    "IncPercentile",
    "IncStdv",
    "INCLUSIONS",
    "Clip",
    "ClipAbsolute",
    "ClipPeakRatio",
    "ClipPercentile",
    "ClipTopN",
    "CLIPS",
    # Probing
    "Probe",
    "SlabProbe",
    "ProbeItem",
    "GridProbe",
    "ProbeConfig",
    "Measurement",
    "MeasurementKind",
    # Histogram volumes
    "Axis",
    "AxisInfo",
    "HistogramVolume",
    "HistogramVolumeParams",
    "HistogramVolumeBuilder",
    "MeasurementCache",
    "build_hvol",
    "clip_hvol",
    "gkms_hvol",
    "raw_scatterplots",
    "histogram_equalize",
    # Opacity
    "HistoMeasure",
    "OpacityInfo",
    "opac_info",
    "info_1d_from_2d",
    "sigma_calc",
    "PositionFunction",
    "pos_calc",
    "BoundaryEmphasis",
    "opac_calc",
    "OpacityFit",
    "OpacityFitResult",
    # Verification
    "input_check",
    "hvol_check",
    "info_check",
    "pos_check",
    "bcpts_check",
]
