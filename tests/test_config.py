"""Tests for defaults, presets and dict/JSON configuration."""

import json

import pytest

from hvoltf import (
    DEFAULTS,
    ClipAbsolute,
    ClipTopN,
    IncPercentile,
    IncRangeRatio,
    IncStdv,
    InvalidPolicyParameter,
    MeasurementKind,
    ProbeItem,
    Range,
    RangeKind,
    clip_from_dict,
    gkms_params,
    inclusion_from_dict,
    load_params_json,
    params_from_dict,
    params_to_dict,
    save_params_json,
)


@pytest.fixture
def config_dict():
    return {
        "axes": [
            {"measurement": "val", "resolution": 64, "inclusion": {"type": "range-ratio", "ratio": 1.0}},
            {"measurement": "gm", "resolution": 32, "inclusion": {"type": "stdev", "k": 3.0}},
            {
                "measurement": "lapl",
                "resolution": 16,
                "inclusion": {"type": "percentile", "percent": 1.0, "range": "zero-centered"},
            },
        ],
        "clip": {"type": "top-n", "n": 5},
        "probe": {"kernel_sigma": 1.0, "margin": 1},
        "inc_limit": 0.5,
        "comment": "ignored",
    }


class TestDefaults:
    """Test library defaults."""

    def test_values(self):
        assert DEFAULTS.verbose is False
        assert DEFAULTS.cache_measurements is True
        assert DEFAULTS.inc_limit == 0.80
        assert DEFAULTS.perc_hist_bins == 1024
        assert DEFAULTS.hist_eq_bins == 1024
        assert DEFAULTS.hist_eq_smart == 2

    def test_params_use_defaults(self):
        params = gkms_params()
        assert params.inc_limit == DEFAULTS.inc_limit
        assert params.cache_measurements is DEFAULTS.cache_measurements


class TestGkmsParams:
    """Test the standard boundary configuration."""

    def test_axes(self):
        params = gkms_params(grad_perc=0.2, hess_perc=0.3)
        assert params.measurement_kinds == (
            MeasurementKind.VALUE_ANYWHERE,
            MeasurementKind.GRAD_MAG,
            MeasurementKind.SECOND_DD,
        )
        assert params.resolutions == (256, 256, 256)
        value, grad, hess = (axis.inclusion for axis in params.axes)
        assert isinstance(value, IncRangeRatio) and value.ratio == 1.0
        assert isinstance(grad, IncPercentile) and grad.percent == 0.2
        assert isinstance(hess, IncPercentile) and hess.percent == 0.3
        assert grad.range.kind is RangeKind.POSITIVE
        assert hess.range.kind is RangeKind.ZERO_CENTERED

    def test_clip_and_passes(self):
        params = gkms_params()
        assert params.clip == ClipAbsolute(256)
        assert params.discovery_passes == 2
        assert params.query == frozenset(ProbeItem)


class TestFromDict:
    """Test building configurations from dictionaries."""

    def test_params(self, config_dict):
        params = params_from_dict(config_dict)
        assert params.resolutions == (64, 32, 16)
        assert params.measurement_kinds[2] is MeasurementKind.LAPLACIAN
        assert params.axes[1].inclusion == IncStdv(3.0, range=Range(RangeKind.POSITIVE))
        assert params.clip == ClipTopN(5)
        assert params.probe.kernel_sigma == 1.0
        assert params.probe.margin == 1
        assert params.inc_limit == 0.5

    def test_inclusion(self):
        inc = inclusion_from_dict({"type": "stdev", "k": 2.0, "range": {"kind": "positive"}})
        assert inc == IncStdv(2.0, range=Range(RangeKind.POSITIVE))

    def test_inclusion_unknown_type(self):
        with pytest.raises(InvalidPolicyParameter, match="Unknown inclusion type"):
            inclusion_from_dict({"type": "median"})

    def test_inclusion_bad_parameter(self):
        with pytest.raises(InvalidPolicyParameter, match="stdev"):
            inclusion_from_dict({"type": "stdev", "sigma": 2.0})

    def test_inclusion_out_of_domain(self):
        with pytest.raises(InvalidPolicyParameter):
            inclusion_from_dict({"type": "percentile", "percent": 150.0})

    def test_bad_range(self):
        with pytest.raises(InvalidPolicyParameter, match="range"):
            inclusion_from_dict({"type": "stdev", "range": "sideways"})

    def test_clip(self):
        assert clip_from_dict({"type": "absolute", "count": 64}) == ClipAbsolute(64)

    def test_clip_unknown_type(self):
        with pytest.raises(InvalidPolicyParameter, match="Unknown clip type"):
            clip_from_dict({"type": "log"})

    def test_unknown_measurement(self, config_dict):
        config_dict["axes"][0]["measurement"] = "entropy"
        with pytest.raises(InvalidPolicyParameter):
            params_from_dict(config_dict)

    def test_missing_inclusion(self, config_dict):
        del config_dict["axes"][0]["inclusion"]
        with pytest.raises(InvalidPolicyParameter, match="missing"):
            params_from_dict(config_dict)

    def test_wrong_axis_count(self, config_dict):
        config_dict["axes"].pop()
        with pytest.raises(InvalidPolicyParameter, match="3 axes"):
            params_from_dict(config_dict)


class TestJson:
    """Test JSON loading and saving."""

    def test_round_trip(self, tmp_path):
        path = tmp_path / "gkms.json"
        params = gkms_params(0.5, 1.0)
        save_params_json(params, path)
        assert load_params_json(path) == params

    def test_load(self, tmp_path, config_dict):
        path = tmp_path / "params.json"
        path.write_text(json.dumps(config_dict))
        assert load_params_json(path) == params_from_dict(config_dict)

    def test_to_dict_is_json(self):
        d = params_to_dict(gkms_params())
        assert json.loads(json.dumps(d)) == d
        assert d["axes"][1]["inclusion"]["type"] == "percentile"
