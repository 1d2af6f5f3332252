"""Preset histogram volume configurations and dict/JSON loading.

Example:
    >>> from hvoltf.config.presets import gkms_params, load_params_json
    >>>
    >>> params = gkms_params(grad_perc=0.15, hess_perc=0.25)
    >>> params = load_params_json("hvol.json")

A configuration document names every variant by its string tag::

    {
      "axes": [
        {"measurement": "val", "resolution": 256,
         "inclusion": {"type": "range-ratio", "ratio": 1.0}},
        {"measurement": "gm", "resolution": 256,
         "inclusion": {"type": "percentile", "percent": 0.15}},
        {"measurement": "2dd", "resolution": 256,
         "inclusion": {"type": "percentile", "percent": 0.25}}
      ],
      "clip": {"type": "absolute", "count": 256},
      "probe": {"kernel_sigma": 0.0, "margin": 0},
      "inc_limit": 0.8
    }
"""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path

from hvoltf.errors import InvalidPolicyParameter
from hvoltf.histogram.params import Axis, HistogramVolumeParams
from hvoltf.measure.measurement import Measurement, MeasurementKind
from hvoltf.measure.probe import ProbeConfig
from hvoltf.policies.clip import CLIPS, Clip, ClipAbsolute
from hvoltf.policies.inclusion import INCLUSIONS, Inclusion, IncPercentile, IncRangeRatio
from hvoltf.policies.range import Range, RangeKind

# ============================================================================
# Presets
# ============================================================================


def gkms_params(grad_perc: float = 0.15, hess_perc: float = 0.25) -> HistogramVolumeParams:
    """Standard value x gradient magnitude x second derivative configuration.

    :param grad_perc: Percent of gradient magnitudes excluded (high tail)
    :param hess_perc: Percent of second derivatives excluded (both tails)
    :returns: HistogramVolumeParams with 256 bins per axis and an absolute
        clip at 256 hits
    """
    return HistogramVolumeParams(
        axes=(
            Axis(256, Measurement(MeasurementKind.VALUE_ANYWHERE), IncRangeRatio(1.0)),
            Axis(256, Measurement(MeasurementKind.GRAD_MAG), IncPercentile(grad_perc)),
            Axis(256, Measurement(MeasurementKind.SECOND_DD), IncPercentile(hess_perc)),
        ),
        clip=ClipAbsolute(256),
    )


# ============================================================================
# Dict/JSON Loading
# ============================================================================


def _tagged(d: dict, registry: dict, what: str) -> tuple[type, dict]:
    d = dict(d)
    tag = d.pop("type", None)
    if tag not in registry:
        available = ", ".join(registry)
        raise InvalidPolicyParameter(f"Unknown {what} type '{tag}'. Available: {available}", type=tag)
    return registry[tag], d


def range_from_dict(d: dict | str | None) -> Range | None:
    """Create a Range from ``{"kind": ..., "center": ...}`` or a bare kind string."""
    if d is None:
        return None
    if isinstance(d, str):
        d = {"kind": d}
    try:
        return Range(kind=RangeKind(d["kind"]), center=d.get("center"))
    except (KeyError, ValueError) as err:
        raise InvalidPolicyParameter(f"Invalid range: {d!r}", range=d) from err


def inclusion_from_dict(d: dict) -> Inclusion:
    """Create an inclusion policy from a dictionary.

    :param d: Dictionary with a ``type`` tag (``absolute``, ``range-ratio``,
        ``percentile``, ``stdev``), the policy's parameters and an optional
        ``range``
    :returns: Inclusion instance
    :raises InvalidPolicyParameter: On an unknown tag or bad parameters

    Example:
        >>> inclusion_from_dict({"type": "stdev", "k": 3.0})
        IncStdv(k=3.0, range=None)
    """
    cls, kwargs = _tagged(d, INCLUSIONS, "inclusion")
    kwargs["range"] = range_from_dict(kwargs.get("range"))
    try:
        return cls(**kwargs)
    except TypeError as err:
        raise InvalidPolicyParameter(f"Invalid {cls.name} inclusion parameters: {err}", params=d) from err


def clip_from_dict(d: dict) -> Clip:
    """Create a clip policy from a dictionary.

    :param d: Dictionary with a ``type`` tag (``absolute``, ``peak-ratio``,
        ``percentile``, ``top-n``) and the policy's parameters
    :returns: Clip instance
    :raises InvalidPolicyParameter: On an unknown tag or bad parameters
    """
    cls, kwargs = _tagged(d, CLIPS, "clip")
    try:
        return cls(**kwargs)
    except TypeError as err:
        raise InvalidPolicyParameter(f"Invalid {cls.name} clip parameters: {err}", params=d) from err


def _axis_from_dict(d: dict) -> Axis:
    try:
        kind = MeasurementKind(d["measurement"])
        resolution = int(d["resolution"])
        inclusion = d["inclusion"]
    except KeyError as err:
        raise InvalidPolicyParameter(f"axis is missing {err}", axis=d) from err
    except ValueError as err:
        raise InvalidPolicyParameter(f"Invalid axis: {err}", axis=d) from err
    measurement = Measurement(kind, range_from_dict(d.get("range")))
    return Axis(resolution, measurement, inclusion_from_dict(inclusion))


def params_from_dict(d: dict) -> HistogramVolumeParams:
    """Create HistogramVolumeParams from a dictionary.

    Keys other than ``axes``, ``clip``, ``probe``, ``verbose``,
    ``cache_measurements`` and ``inc_limit`` are ignored.

    :param d: Configuration dictionary (see module docstring)
    :returns: HistogramVolumeParams instance
    """
    axes = d.get("axes")
    if not isinstance(axes, list) or len(axes) != 3:
        raise InvalidPolicyParameter("configuration needs a list of 3 axes", axes=axes)

    kwargs = {"axes": tuple(_axis_from_dict(a) for a in axes)}
    if "clip" in d:
        kwargs["clip"] = clip_from_dict(d["clip"])
    if "probe" in d:
        valid_fields = {"kernel_sigma", "renormalize", "k3pack", "margin"}
        kwargs["probe"] = ProbeConfig(**{k: v for k, v in d["probe"].items() if k in valid_fields})
    for k in ("verbose", "cache_measurements", "inc_limit"):
        if k in d:
            kwargs[k] = d[k]
    return HistogramVolumeParams(**kwargs)


def load_params_json(path: str | Path) -> HistogramVolumeParams:
    """Load HistogramVolumeParams from a JSON file.

    :param path: Path to JSON file
    :returns: HistogramVolumeParams instance
    """
    with open(path) as f:
        d = json.load(f)
    return params_from_dict(d)


# ============================================================================
# Saving Functions
# ============================================================================


def _range_to_dict(rng: Range | None) -> dict | None:
    if rng is None:
        return None
    return {"kind": rng.kind.value, "center": rng.center}


def params_to_dict(params: HistogramVolumeParams) -> dict:
    """Convert HistogramVolumeParams to a dictionary accepted by ``params_from_dict``."""
    axes = []
    for axis in params.axes:
        inc = axis.inclusion
        inc_d = {"type": inc.name, **{k: v for k, v in asdict(inc).items() if k != "range" and not k.startswith("_")}}
        inc_d["range"] = _range_to_dict(inc.range)
        axes.append(
            {
                "measurement": axis.measurement.kind.value,
                "resolution": axis.resolution,
                "range": _range_to_dict(axis.measurement.range),
                "inclusion": inc_d,
            }
        )
    return {
        "axes": axes,
        "clip": {"type": params.clip.name, **asdict(params.clip)},
        "probe": asdict(params.probe),
        "verbose": params.verbose,
        "cache_measurements": params.cache_measurements,
        "inc_limit": params.inc_limit,
    }


def save_params_json(params: HistogramVolumeParams, path: str | Path) -> None:
    """Save HistogramVolumeParams to a JSON file.

    :param params: Configuration to save
    :param path: Output path
    """
    with open(path, "w") as f:
        json.dump(params_to_dict(params), f, indent=2)
