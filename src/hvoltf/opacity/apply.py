"""Boundary emphasis opacity functions.

For a blurred step boundary, gradient magnitude ``g`` and second directional
derivative ``h`` relate to the signed distance ``p`` from the boundary by
``p = -sigma^2 * h / g``. Positions are estimated per value bin (or per
value x gradient bin) from opacity info, and a boundary emphasis function
``b(p)`` given by control points turns positions into opacities.

Example:
    >>> fit = OpacityFit(gthresh=0.5)
    >>> emphasis = BoundaryEmphasis.from_bcpts(np.array([[-2, 0, 2], [0, 1, 0]], float))
    >>> result = fit.fit(hvol, emphasis)
    >>> lut = result.lut(256)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Literal

import numpy as np
from numpy.typing import ArrayLike
from scipy.interpolate import PchipInterpolator

from hvoltf.errors import InsufficientData, InvalidPolicyParameter, ShapeMismatch, enum_member
from hvoltf.histogram.result import AxisInfo, HistogramVolume
from hvoltf.opacity.info import HistoMeasure, OpacityInfo, info_1d_from_2d, opac_info
from hvoltf.verification import bcpts_check, info_check, pos_check

logger = logging.getLogger(__name__)

Interpolation = Literal["spline", "linear"]


@dataclass
class PositionFunction:
    """Estimated signed distance to the nearest boundary.

    Attributes:
        data: Positions [res0] or [res0, res1]; NaN where no boundary
        axes: Axis metadata of the source histogram volume
    """

    data: np.ndarray
    axes: tuple[AxisInfo, AxisInfo, AxisInfo]

    @property
    def dim(self) -> int:
        return self.data.ndim


def sigma_calc(info: OpacityInfo) -> float:
    """Estimate the boundary thickness from opacity info.

    Uses ``sigma = 2 * gmax / (sqrt(e) * (hmax - hmin))``, the relation
    between the gradient peak and the second derivative extremes of a
    Gaussian-blurred step. 2D info is collapsed to 1D first.

    :param info: 1D or 2D opacity info
    :returns: sigma (> 0)
    :raises InsufficientData: If no gradient peak or second derivative
        spread can be detected
    """
    if info.dim == 2:
        info = info_1d_from_2d(info)
    info_check(info, 1)
    g, h = info.data
    finite = np.isfinite(g) & np.isfinite(h)
    if not finite.any():
        raise InsufficientData("opacity info has no populated value bins")

    maxg = float(g[finite].max())
    maxh = float(h[finite].max())
    minh = float(h[finite].min())
    if maxg <= 0 or maxh <= minh:
        raise InsufficientData(
            f"couldn't detect gradient peak or second derivative spread (gmax={maxg}, h=[{minh}, {maxh}])",
            maxg=maxg,
            minh=minh,
            maxh=maxh,
        )
    sigma = 2 * maxg / (math.sqrt(math.e) * (maxh - minh))
    logger.debug("[OpacityFit] sigma=%g from gmax=%g, h=[%g, %g]", sigma, maxg, minh, maxh)
    return sigma


def pos_calc(info: OpacityInfo, sigma: float, gthresh: float = 0.0) -> PositionFunction:
    """Estimate boundary position per bin, ``p = -sigma^2 * h / (g - gthresh)``.

    Bins with ``g <= gthresh`` (too flat to be a boundary) or without hits
    get NaN.

    :param info: 1D or 2D opacity info
    :param sigma: Boundary thickness
    :param gthresh: Gradient magnitude threshold
    :returns: PositionFunction of the same dimension as ``info``
    """
    if not sigma > 0:
        raise InvalidPolicyParameter(f"sigma must be positive, got {sigma}", sigma=sigma)
    dim = info.dim
    info_check(info, dim)

    if dim == 1:
        g, h = info.data
        valid = np.isfinite(g) & np.isfinite(h)
    else:
        hits, h = info.data
        g = np.broadcast_to(info.axes[1].bin_centers[None, :], h.shape)
        valid = (hits > 0) & np.isfinite(h)

    denom = np.where(valid, g - gthresh, 0.0)
    valid &= denom > 0
    safe = np.where(valid, denom, 1.0)
    data = np.where(valid, -sigma * sigma * np.nan_to_num(h) / safe, np.nan)

    pos = PositionFunction(data=data, axes=info.axes)
    pos_check(pos, dim)
    return pos


class BoundaryEmphasis:
    """Boundary emphasis function ``b(p)`` through control points.

    Two construction modes:

    - ``from_bcpts``: ordered [2, N] control points, interpolated with a
      monotone piecewise-cubic Hermite spline (never overshoots the
      ordinates).
    - ``from_pairs``: abscissa / ordinate arrays in any order, sorted and
      interpolated piecewise-linearly.

    Outside the control points the function is clamped to the end
    ordinates; NaN positions (no boundary) map to opacity 0.
    """

    def __init__(self, positions: np.ndarray, opacities: np.ndarray, interpolation: Interpolation):
        if interpolation not in ("spline", "linear"):
            raise InvalidPolicyParameter(
                f"Unknown interpolation: {interpolation}. Available: spline, linear", interpolation=interpolation
            )
        self.positions = positions
        self.opacities = opacities
        self.interpolation = interpolation
        self._spline = PchipInterpolator(positions, opacities, extrapolate=False) if interpolation == "spline" else None

    @classmethod
    def from_bcpts(cls, bcpts: np.ndarray) -> BoundaryEmphasis:
        """Mode A: smooth curve through ordered control points [2, N]."""
        bcpts_check(bcpts)
        return cls(bcpts[0].astype(np.float64), bcpts[1].astype(np.float64), "spline")

    @classmethod
    def from_pairs(cls, positions: ArrayLike, opacities: ArrayLike) -> BoundaryEmphasis:
        """Mode B: piecewise-linear reconstruction from explicit pairs."""
        x = np.asarray(positions, dtype=np.float64).ravel()
        o = np.asarray(opacities, dtype=np.float64).ravel()
        if x.shape != o.shape:
            raise ShapeMismatch(
                f"positions {x.shape} and opacities {o.shape} differ in length",
                role="control points",
                shape=(x.shape, o.shape),
            )
        order = np.argsort(x, kind="stable")
        bcpts = np.stack([x[order], o[order]])
        bcpts_check(bcpts)
        return cls(bcpts[0], bcpts[1], "linear")

    @property
    def bcpts(self) -> np.ndarray:
        return np.stack([self.positions, self.opacities])

    def __call__(self, pos: ArrayLike) -> np.ndarray:
        """Evaluate at positions; NaN positions give 0."""
        p = np.asarray(pos, dtype=np.float64)
        missing = ~np.isfinite(p)
        clamped = np.clip(np.where(missing, self.positions[0], p), self.positions[0], self.positions[-1])

        if self._spline is not None:
            out = self._spline(clamped)
            out = np.clip(out, self.opacities.min(), self.opacities.max())
        else:
            out = np.interp(clamped, self.positions, self.opacities)

        return np.where(missing, 0.0, out)

    def lut(self, length: int) -> np.ndarray:
        """Sample the curve at ``length`` evenly spaced positions.

        The samples span the first to the last control point, so the first
        and last entries are the end ordinates.

        :param length: Number of LUT entries (>= 2)
        :returns: LUT [length]
        """
        if length < 2:
            raise InvalidPolicyParameter(f"LUT length must be >= 2, got {length}", length=length)
        lut = self(np.linspace(self.positions[0], self.positions[-1], length))
        lut[0] = self.opacities[0]
        lut[-1] = self.opacities[-1]
        return lut


def opac_calc(
    emphasis: BoundaryEmphasis | np.ndarray,
    pos: PositionFunction,
    interpolation: Interpolation = "spline",
) -> np.ndarray:
    """Opacity per position entry.

    :param emphasis: BoundaryEmphasis, or ordered [2, N] control points
    :param pos: 1D or 2D position function
    :param interpolation: Used when ``emphasis`` is given as control points
    :returns: Opacities with the shape of ``pos.data``
    """
    if not isinstance(emphasis, BoundaryEmphasis):
        bcpts_check(emphasis)
        emphasis = BoundaryEmphasis(emphasis[0].astype(np.float64), emphasis[1].astype(np.float64), interpolation)
    pos_check(pos, pos.dim)
    return emphasis(pos.data)


@dataclass
class OpacityFitResult:
    """Everything derived while fitting an opacity function.

    Attributes:
        info: Opacity info
        sigma: Boundary thickness used
        pos: Position function
        opacity: Opacity per value bin (1D) or value x gradient bin (2D)
    """

    info: OpacityInfo
    sigma: float
    pos: PositionFunction
    opacity: np.ndarray

    def lut(self, length: int) -> np.ndarray:
        """Resample 1D opacity to a LUT over the value axis range.

        Entries are linearly interpolated between value bin centers and
        clamped beyond the first and last centers.

        :param length: Number of LUT entries (>= 2)
        :returns: LUT [length]
        """
        if self.opacity.ndim != 1:
            raise ShapeMismatch("LUT resampling needs 1D opacity", role="opacity", shape=self.opacity.shape)
        if length < 2:
            raise InvalidPolicyParameter(f"LUT length must be >= 2, got {length}", length=length)
        value_axis = self.info.axes[0]
        xs = np.linspace(value_axis.min_value, value_axis.max_value, length)
        return np.interp(xs, value_axis.bin_centers, self.opacity)


@dataclass
class OpacityFit:
    """Semi-automatic opacity function from a histogram volume.

    Attributes:
        dim: 1 for opacity as a function of value, 2 for value x gradient
        measure: Statistic used to build the opacity info
        gthresh: Gradient magnitudes at or below this are not boundaries
        sigma: Boundary thickness; estimated from the data when None
    """

    dim: int = 1
    measure: HistoMeasure = HistoMeasure.MEAN
    gthresh: float = 0.0
    sigma: float | None = None

    def __post_init__(self):
        self.measure = enum_member(HistoMeasure, self.measure, "histogram measure")

    def fit(self, hvol: HistogramVolume, emphasis: BoundaryEmphasis | np.ndarray) -> OpacityFitResult:
        """Run info, sigma, position and opacity calculation.

        :param hvol: Histogram volume in the standard layout
        :param emphasis: Boundary emphasis function or [2, N] control points
        :returns: OpacityFitResult
        """
        info = opac_info(hvol, self.dim, self.measure)
        sigma = self.sigma if self.sigma is not None else sigma_calc(info)
        pos = pos_calc(info, sigma, self.gthresh)
        opacity = opac_calc(emphasis, pos)
        logger.info(
            "[OpacityFit] %dD fit: sigma=%g, %d of %d bins on a boundary",
            self.dim, sigma, int(np.isfinite(pos.data).sum()), pos.data.size,
        )
        return OpacityFitResult(info=info, sigma=sigma, pos=pos, opacity=opacity)
