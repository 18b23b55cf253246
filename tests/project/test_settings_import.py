import asyncio
from datetime import datetime, timezone

from hydrafix.core.effect_registry import RegistryDefaultSource
from hydrafix.core.errors import issues_of_kind
from hydrafix.core.params.types import Position
from hydrafix.project import import_settings

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _import(settings, **kwargs):
    return asyncio.run(import_settings(settings, RegistryDefaultSource(), now=NOW, **kwargs))


def _settings(**overrides):
    settings = {
        "finalSize": {"width": 1920, "height": 1080, "longestSide": 1920, "shortestSide": 1080},
        "config": {
            "finalFileName": "my-run",
            "_INVOKER_": "someone",
            "numberOfFrame": 300,
            "frameInc": 2,
        },
        "colorScheme": {"name": "neon", "colorBucket": ["#f00"]},
        "effects": [
            {
                "name": "hex",
                "percentChance": 50,
                "currentEffectConfig": {
                    "stroke": 3,
                    "center": {"name": "position", "x": 500, "y": 350},
                },
                "possibleSecondaryEffects": [
                    {"name": "amp", "currentEffectConfig": {"stroke": 2}},
                ],
            }
        ],
        "finalImageEffects": [{"name": "red-eye"}],
    }
    settings.update(overrides)
    return settings


def test_import_maps_effects_and_metadata():
    result = _import(_settings())
    project = result.project

    assert result.issues == ()
    assert result.scaled is False
    assert project.name == "my-run"
    assert project.resolution == 1920
    assert project.is_horizontal is True
    assert project.extras["artist"] == "someone"
    assert project.extras["numFrames"] == 300
    assert project.extras["renderJumpFrames"] == 2
    assert project.extras["colorScheme"] == "neon"

    hex_effect, final = project.effects
    assert hex_effect.registry_key == "hex"
    assert hex_effect.percent_chance == 50.0
    assert hex_effect.config["stroke"] == 3
    assert hex_effect.secondary_effects[0].registry_key == "amp"
    assert hex_effect.secondary_effects[0].config["stroke"] == 2
    assert final.registry_key == "red-eye"
    assert final.effect_type == "finalImage"


def test_attached_effects_become_children():
    settings = _settings(
        effects=[
            {
                "name": "hex",
                "currentEffectConfig": {},
                "attachedEffects": {
                    "secondary": [{"name": "amp", "currentEffectConfig": {"stroke": 4}}],
                    "keyFrame": [{"name": "fuzz-flare", "frame": 12}],
                },
            }
        ],
        finalImageEffects=[],
    )
    result = _import(settings)

    assert issues_of_kind(result.issues, "MalformedEffectEntry") == []
    (hex_effect,) = result.project.effects
    (secondary,) = hex_effect.secondary_effects
    assert secondary.registry_key == "amp"
    assert secondary.effect_type == "secondary"
    assert secondary.config["stroke"] == 4
    (keyframe,) = hex_effect.keyframe_effects
    assert keyframe.registry_key == "fuzz-flare"
    assert keyframe.effect_type == "keyframe"
    assert keyframe.frame == 12


def test_custom_size_snaps_and_rescales():
    result = _import(_settings(finalSize={"width": 1000, "height": 700}))

    assert result.project.resolution == 1024
    assert result.project.dimensions().as_dict() == {"width": 1024, "height": 768}
    assert result.scaled is True
    center = result.project.effects[0].config["center"]
    assert center == Position(x=512, y=384, auto_scaled=True, scaled_at=NOW.isoformat())


def test_vertical_size_keeps_key_and_flips_orientation():
    size = {"width": 1080, "height": 1920, "longestSide": 1920, "shortestSide": 1080}
    result = _import(_settings(finalSize=size))

    assert result.project.resolution == 1920
    assert result.project.is_horizontal is False
    assert result.scaled is False


def test_square_size_maps_to_square_preset():
    result = _import(_settings(finalSize={"width": 1080, "height": 1080}))

    assert result.project.resolution == 1081
    assert result.project.is_horizontal is False
    assert result.scaled is False


def test_missing_size_uses_default_resolution():
    settings = _settings()
    del settings["finalSize"]
    result = _import(settings)
    assert result.project.resolution == 1920
    assert result.scaled is False


def test_invalid_size_is_reported():
    result = _import(_settings(finalSize={"width": 0, "height": 1080}))
    assert result.project.resolution == 1920
    assert [i.kind for i in result.issues] == ["InvalidDimensions"]


def test_unnamed_effect_uses_placeholder_key():
    result = _import(_settings(effects=[{"currentEffectConfig": {"speed": 1}}]))
    assert result.project.effects[0].registry_key == "base-config"
    assert issues_of_kind(result.issues, "UnknownEffectType")


def test_malformed_entries_are_skipped():
    result = _import(_settings(effects=["oops"]))
    assert [e.registry_key for e in result.project.effects] == ["red-eye"]
    assert [i.path for i in issues_of_kind(result.issues, "MalformedEffectEntry")] == ["effects[0]"]


def test_project_name_falls_back_to_output_path():
    settings = _settings(config={"fileOut": "out/renders/night-drive"})
    assert _import(settings).project.name == "night-drive"
    assert _import(settings, project_name="explicit").project.name == "explicit"
    assert _import(_settings(config={})).project.name == "imported-project"


def test_non_mapping_settings_are_rejected():
    result = _import("settings.json")
    assert result.project.effects == ()
    assert [i.kind for i in result.issues] == ["InvalidResolutionInput"]
