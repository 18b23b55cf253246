import pytest

from hydrafix.core.codec import flatten_config
from hydrafix.core.dimensions import Dimensions
from hydrafix.core.effect_registry import effect_config_registry
from hydrafix.core.errors import ERROR, issues_of_kind
from hydrafix.core.hydration import hydrate, hydrate_flat_only
from hydrafix.core.params.types import (
    ArcPath,
    ColorPicker,
    PercentageRange,
    PercentageSide,
    Point,
    Position,
    Range,
    SelectionType,
)


@pytest.fixture
def hex_default():
    return effect_config_registry.get_default_config("hex")


@pytest.fixture
def amp_default():
    return effect_config_registry.get_default_config("amp")


def test_malformed_color_keeps_default(hex_default):
    result = hydrate({"innerColor": {"garbage": True}}, hex_default)

    assert result.config["innerColor"] == hex_default["innerColor"]
    assert result.failed_fields == ("innerColor",)
    assert [i.kind for i in result.issues] == ["ConfigReconstructionFailure"]
    assert result.fell_back is False


def test_unknown_field_is_reported_and_omitted(hex_default, caplog_warnings):
    result = hydrate({"bogus": 1, "stroke": 3}, hex_default)

    assert "bogus" not in result.config
    assert result.config["stroke"] == 3
    assert [(i.kind, i.path) for i in result.issues] == [("UnknownConfigField", "bogus")]
    assert "bogus" in caplog_warnings.text


@pytest.mark.parametrize("flat", [None, {}])
def test_empty_blob_yields_default_field_set(hex_default, flat):
    result = hydrate(flat, hex_default)
    assert set(result.config) == set(hex_default)
    assert result.config == hex_default
    assert result.issues == ()


def test_field_set_always_matches_default(hex_default):
    result = hydrate({"stroke": 9, "innerColor": 12, "extra": True}, hex_default)
    assert set(result.config) == set(hex_default)


def test_result_does_not_share_default_instance(hex_default):
    result = hydrate({}, hex_default)
    assert result.config is not hex_default


def test_round_trip_through_flat_form(amp_default):
    canvas = Dimensions(width=1920, height=1080)
    flat = flatten_config(amp_default).value
    config = hydrate(flat, amp_default).config

    assert config["innerColor"] == amp_default["innerColor"]
    assert config["center"] == amp_default["center"]
    assert config["accentRange"] == amp_default["accentRange"]
    assert config["featherTimes"].evaluate() == pytest.approx(
        amp_default["featherTimes"].evaluate(), abs=1e-9
    )
    assert config["lineRange"].evaluate(canvas) == pytest.approx(
        amp_default["lineRange"].evaluate(canvas), abs=1e-9
    )


def test_range_reads_only_safe_keys(amp_default):
    flat = {"featherTimes": {"typeTag": "Range", "lower": 1, "upper": 9, "evaluate": "x"}}
    result = hydrate(flat, amp_default)
    assert result.config["featherTimes"] == Range(lower_value=1.0, upper_value=9.0)
    assert result.issues == ()


def test_range_partial_blob_keeps_missing_bound(amp_default):
    result = hydrate({"featherTimes": {"upperValue": 9}}, amp_default)
    assert result.config["featherTimes"] == Range(lower_value=2.0, upper_value=9.0)


def test_range_without_safe_keys_keeps_default(amp_default):
    result = hydrate({"featherTimes": {"junk": 1}}, amp_default)
    assert result.config["featherTimes"] == amp_default["featherTimes"]


def test_range_non_mapping_is_reconstruction_failure(amp_default):
    result = hydrate({"featherTimes": 5}, amp_default)
    assert result.config["featherTimes"] == amp_default["featherTimes"]
    assert result.failed_fields == ("featherTimes",)


def test_percentage_range_is_rebuilt_from_side_expressions(amp_default):
    flat = {
        "lineRange": {
            "typeTag": "PercentageRange",
            "lower": {"typeTag": "PercentageLongestSide", "percent": 0.2},
            "upper": {"typeTag": "PercentageLongestSide", "percent": 0.3},
        }
    }
    config = hydrate(flat, amp_default).config
    assert isinstance(config["lineRange"], PercentageRange)
    assert config["lineRange"].lower() == PercentageSide(percent=0.2, side="longest")
    assert config["lineRange"].evaluate(Dimensions(width=1000, height=500)) == pytest.approx(
        (200.0, 300.0)
    )


def test_color_is_rebuilt_whole(hex_default):
    flat = {"outerColor": {"selectionType": "colorBucket", "colorValue": "#ffffff"}}
    config = hydrate(flat, hex_default).config
    assert config["outerColor"] == ColorPicker(selection_type=SelectionType.COLOR_BUCKET)


def test_strings_are_coerced_to_default_primitive_type(amp_default):
    flat = {"stroke": "3", "invertLayers": "true", "layerOpacity": "0.25"}
    config = hydrate(flat, amp_default).config
    assert config["stroke"] == 3
    assert config["invertLayers"] is True
    assert config["layerOpacity"] == 0.25


def test_position_merges_markers(hex_default):
    flat = {
        "center": {
            "name": "position",
            "x": 100,
            "y": 200,
            "__autoScaled": True,
            "__scaledAt": "2026-01-01T00:00:00+00:00",
        }
    }
    config = hydrate(flat, hex_default).config
    assert config["center"] == Position(
        x=100, y=200, auto_scaled=True, scaled_at="2026-01-01T00:00:00+00:00"
    )


def test_position_accepts_bare_pair(hex_default):
    assert hydrate({"center": [10, 20]}, hex_default).config["center"] == Position(x=10, y=20)


def test_arc_path_is_rebuilt():
    default = effect_config_registry.get_default_config("red-eye")
    flat = {"eyePath": {"name": "arc-path", "center": {"x": 1, "y": 2}, "radius": 50}}
    arc = hydrate(flat, default).config["eyePath"]
    assert isinstance(arc, ArcPath)
    assert arc.center == Point(x=1, y=2)
    assert arc.radius == 50


def test_marker_keys_are_not_unknown_fields(hex_default):
    result = hydrate({"__centerOverrideApplied": True, "__autoScaled": True}, hex_default)
    assert result.issues == ()


def test_nested_mapping_merges_and_reports_paths(amp_default):
    flat = {"accentRange": {"bottom": {"lower": 9}, "middle": {}}}
    result = hydrate(flat, amp_default)
    assert result.config["accentRange"]["bottom"] == {"lower": 9, "upper": 6}
    assert result.config["accentRange"]["top"] == amp_default["accentRange"]["top"]
    assert [i.path for i in result.issues] == ["accentRange.middle"]


def test_list_field_takes_flat_list(hex_default):
    config = hydrate({"sparsityFactor": [1, 2]}, hex_default).config
    assert config["sparsityFactor"] == [1, 2]


def test_unexpected_failure_falls_back_to_flat_copy():
    cyclic = []
    cyclic.append(cyclic)
    flat = {"extra": cyclic, "other": 1}
    result = hydrate(flat, {"extra": None, "other": 0})

    assert result.fell_back is True
    assert result.config == flat
    assert result.config is not flat
    assert result.issues[-1].severity == ERROR
    assert result.issues[-1].kind == "MalformedConfigCycle"


def test_non_mapping_blob_uses_default(hex_default):
    result = hydrate("not a config", hex_default)
    assert result.config == hex_default
    assert [i.kind for i in result.issues] == ["ConfigReconstructionFailure"]


def test_flat_only_rebuilds_tagged_values_and_keeps_the_rest():
    result = hydrate_flat_only(
        {
            "color": {"typeTag": "ColorSelection", "selectionType": "color", "colorValue": "#fff"},
            "bad": {"typeTag": "ColorSelection"},
            "speed": 3,
        }
    )
    assert result.config["color"].color_value == "#fff"
    assert result.config["bad"] == {"typeTag": "ColorSelection"}
    assert result.config["speed"] == 3
    assert len(issues_of_kind(result.issues, "ConfigReconstructionFailure")) == 1
