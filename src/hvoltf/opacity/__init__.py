"""Opacity functions from histogram volumes.

Example:
    >>> from hvoltf.opacity import BoundaryEmphasis, OpacityFit
    >>>
    >>> emphasis = BoundaryEmphasis.from_pairs([-2, 0, 2], [0, 1, 0])
    >>> result = OpacityFit(gthresh=1.0).fit(hvol, emphasis)
    >>> lut = result.lut(256)
"""

from hvoltf.opacity.apply import (
    BoundaryEmphasis,
    OpacityFit,
    OpacityFitResult,
    PositionFunction,
    opac_calc,
    pos_calc,
    sigma_calc,
)
from hvoltf.opacity.info import (
    HistoMeasure,
    OpacityInfo,
    histo_measure,
    info_1d_from_2d,
    opac_info,
)

__all__ = [
    # Info
    "HistoMeasure",
    "OpacityInfo",
    "histo_measure",
    "opac_info",
    "info_1d_from_2d",
    # Position and opacity
    "PositionFunction",
    "sigma_calc",
    "pos_calc",
    "BoundaryEmphasis",
    "opac_calc",
    "OpacityFit",
    "OpacityFitResult",
]
