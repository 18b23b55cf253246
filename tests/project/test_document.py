from pathlib import Path

from hydrafix.core.dimensions import Dimensions
from hydrafix.core.effect import Effect
from hydrafix.core.runtime_config import set_config_path
from hydrafix.project import ProjectDocument


def test_dimensions_are_derived_from_key_and_orientation():
    assert ProjectDocument(resolution=1280).dimensions() == Dimensions(width=1280, height=720)
    vertical = ProjectDocument(resolution=1280, is_horizontal=False)
    assert vertical.dimensions() == Dimensions(width=720, height=1280)


def test_empty_uses_runtime_defaults(tmp_path: Path):
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        "resolution:\n  default_key: 640\n  default_is_horizontal: false\n",
        encoding="utf-8",
    )
    set_config_path(cfg)

    project = ProjectDocument.empty("blank")
    assert project.name == "blank"
    assert project.resolution == 640
    assert project.dimensions() == Dimensions(width=480, height=640)


def test_find_effect_searches_children():
    child = Effect.create("amp", effect_type="secondary")
    root = Effect.create("hex", secondary_effects=(child,))
    project = ProjectDocument().with_effects([root])

    assert project.find_effect(child.effect_id) is child
    assert project.find_effect("missing") is None
