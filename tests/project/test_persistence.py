import asyncio
import json
from pathlib import Path

from hydrafix.core.effect import Effect
from hydrafix.core.effect_registry import RegistryDefaultSource
from hydrafix.core.errors import ERROR
from hydrafix.core.params.types import ColorPicker, Position, Range
from hydrafix.project import ProjectDocument, load_project_file, save_project


def _load(path: Path):
    return asyncio.run(load_project_file(path, RegistryDefaultSource()))


def test_project_file_roundtrip(tmp_path: Path):
    effect = Effect.create(
        "hex",
        {"center": Position(x=100, y=200), "gapFactor": Range(lower_value=1, upper_value=2)},
    )
    project = ProjectDocument(name="demo", resolution=1280, effects=(effect,))

    path = tmp_path / "nested" / "demo.json"
    assert save_project(project, path) == ()
    loaded = _load(path)

    assert loaded.issues == ()
    assert loaded.project.name == "demo"
    assert loaded.project.resolution == 1280
    config = loaded.project.effects[0].config
    assert config["center"] == Position(x=100, y=200)
    assert config["gapFactor"] == Range(lower_value=1.0, upper_value=2.0)
    assert isinstance(config["innerColor"], ColorPicker)


def test_saved_file_is_plain_json(tmp_path: Path):
    path = tmp_path / "demo.json"
    save_project(ProjectDocument(name="demo"), path)

    text = path.read_text(encoding="utf-8")
    assert text.endswith("\n")
    data = json.loads(text)
    assert data["projectName"] == "demo"
    assert data["effects"] == []


def test_load_project_file_ignores_broken_json(tmp_path: Path):
    path = tmp_path / "broken.json"
    path.write_text("{broken-json", encoding="utf-8")

    loaded = _load(path)
    assert loaded.project.name == "broken"
    assert loaded.project.effects == ()
    assert [(i.kind, i.severity) for i in loaded.issues] == [("ProjectFileCorrupt", ERROR)]


def test_load_project_file_reports_missing_file(tmp_path: Path):
    loaded = _load(tmp_path / "missing.json")
    assert loaded.project.name == "missing"
    assert [i.kind for i in loaded.issues] == ["ProjectFileUnreadable"]
