"""Structural validation of inputs and intermediate artifacts.

Each check raises ``ShapeMismatch`` (or ``InvalidPolicyParameter`` for a bad
request) instead of letting a malformed array reach the numerics.

Example:
    >>> from hvoltf.verification import hvol_check, info_check
    >>>
    >>> hvol_check(hvol)
    >>> info_check(info, want_dim=1)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from hvoltf.errors import InvalidPolicyParameter, ShapeMismatch

if TYPE_CHECKING:
    from hvoltf.histogram.params import HistogramVolumeParams
    from hvoltf.histogram.result import HistogramVolume
    from hvoltf.opacity.info import OpacityInfo
    from hvoltf.opacity.apply import PositionFunction

logger = logging.getLogger(__name__)


def _require_ndarray(arr, role: str) -> np.ndarray:
    if not isinstance(arr, np.ndarray):
        raise ShapeMismatch(f"{role} must be a numpy array, got {type(arr).__name__}", role=role)
    return arr


def _require_float(arr: np.ndarray, role: str) -> None:
    if not np.issubdtype(arr.dtype, np.floating):
        raise ShapeMismatch(f"{role} must be floating point, got {arr.dtype}", role=role, dtype=str(arr.dtype))


def _require_dim(want_dim: int) -> None:
    if want_dim not in (1, 2):
        raise InvalidPolicyParameter(f"want_dim must be 1 or 2, got {want_dim}", want_dim=want_dim)


def input_check(volume, params: HistogramVolumeParams) -> None:
    """Check that a volume can be turned into a histogram volume with ``params``.

    :param volume: 3D scalar volume
    :param params: Build configuration
    :raises ShapeMismatch: If the volume is not a 3D real array large enough
        for the probe margin
    """
    volume = _require_ndarray(volume, "input volume")
    if volume.ndim != 3:
        raise ShapeMismatch(f"input volume must be 3D, got {volume.ndim}D", role="input volume", shape=volume.shape)
    if not (np.issubdtype(volume.dtype, np.integer) or np.issubdtype(volume.dtype, np.floating)):
        raise ShapeMismatch(
            f"input volume must be integer or floating point, got {volume.dtype}",
            role="input volume",
            dtype=str(volume.dtype),
        )
    # Central differences need at least two samples past the margin
    need = 2 * params.probe.margin + 2
    if min(volume.shape) < need:
        raise ShapeMismatch(
            f"input volume {volume.shape} is too small for probe margin {params.probe.margin}",
            role="input volume",
            shape=volume.shape,
            margin=params.probe.margin,
        )
    logger.debug("[Verification] Input volume %s %s ok", volume.shape, volume.dtype)


def hvol_check(hvol: HistogramVolume) -> None:
    """Check that a histogram volume is well-formed.

    :raises ShapeMismatch: If counts are not a 3D integer array matching the
        axis metadata, or the axis bounds are not finite
    """
    counts = _require_ndarray(getattr(hvol, "counts", None), "histogram volume")
    axes = getattr(hvol, "axes", ())
    if counts.ndim != 3 or len(axes) != 3:
        raise ShapeMismatch(
            f"histogram volume must be 3D with 3 axes, got {counts.ndim}D with {len(axes)} axes",
            role="histogram volume",
            shape=counts.shape,
        )
    if not np.issubdtype(counts.dtype, np.integer):
        raise ShapeMismatch(
            f"histogram volume counts must be integers, got {counts.dtype}",
            role="histogram volume",
            dtype=str(counts.dtype),
        )
    expected = tuple(a.resolution for a in axes)
    if counts.shape != expected:
        raise ShapeMismatch(
            f"histogram volume shape {counts.shape} does not match axis resolutions {expected}",
            role="histogram volume",
            shape=counts.shape,
            expected=expected,
        )
    for i, a in enumerate(axes):
        if not (np.isfinite(a.min_value) and np.isfinite(a.max_value)) or a.max_value < a.min_value:
            raise ShapeMismatch(
                f"histogram volume axis {i} has invalid bounds [{a.min_value}, {a.max_value}]",
                role="histogram volume",
                axis=i,
            )


def info_check(info: OpacityInfo, want_dim: int) -> None:
    """Check an opacity info array of dimension ``want_dim`` (1 or 2).

    1D info is [2, res_value]; 2D info is [2, res_value, res_gradient].
    """
    _require_dim(want_dim)
    data = _require_ndarray(getattr(info, "data", None), "opacity info")
    _require_float(data, "opacity info")
    if data.ndim != want_dim + 1 or data.shape[0] != 2:
        raise ShapeMismatch(
            f"{want_dim}D opacity info must have shape [2, ...] with {want_dim + 1} dims, got {data.shape}",
            role="opacity info",
            shape=data.shape,
        )
    axes = info.axes
    expected = tuple(axes[i].resolution for i in range(want_dim))
    if data.shape[1:] != expected:
        raise ShapeMismatch(
            f"opacity info shape {data.shape[1:]} does not match axis resolutions {expected}",
            role="opacity info",
            shape=data.shape,
            expected=expected,
        )


def pos_check(pos: PositionFunction, want_dim: int) -> None:
    """Check a position array of dimension ``want_dim`` (1 or 2)."""
    _require_dim(want_dim)
    data = _require_ndarray(getattr(pos, "data", None), "position")
    _require_float(data, "position")
    if data.ndim != want_dim:
        raise ShapeMismatch(
            f"position must be {want_dim}D, got {data.ndim}D", role="position", shape=data.shape
        )


def bcpts_check(bcpts: np.ndarray) -> None:
    """Check boundary emphasis control points.

    Control points are [2, N] (row 0 positions, row 1 opacities), N >= 2,
    finite, with strictly increasing positions.
    """
    bcpts = _require_ndarray(bcpts, "control points")
    _require_float(bcpts, "control points")
    if bcpts.ndim != 2 or bcpts.shape[0] != 2 or bcpts.shape[1] < 2:
        raise ShapeMismatch(
            f"control points must have shape [2, N>=2], got {bcpts.shape}",
            role="control points",
            shape=bcpts.shape,
        )
    if not np.isfinite(bcpts).all():
        raise ShapeMismatch("control points must be finite", role="control points")
    if not np.all(np.diff(bcpts[0]) > 0):
        raise ShapeMismatch(
            "control point positions must be strictly increasing",
            role="control points",
            positions=bcpts[0].tolist(),
        )
