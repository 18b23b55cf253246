from pathlib import Path

import pytest

from hydrafix.core.runtime_config import runtime_config, set_config_path


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_packaged_defaults_are_loaded():
    cfg = runtime_config()
    assert cfg.config_path is None
    assert cfg.default_resolution_key == 1920
    assert cfg.default_is_horizontal is True
    assert cfg.scaling_tolerance == pytest.approx(0.05)
    assert cfg.min_arc_radius == 10.0
    assert cfg.center_context_tolerance == pytest.approx(0.01)
    assert cfg.center_fallback_tolerance == pytest.approx(0.05)
    assert cfg.max_depth == 64
    assert cfg.registry_timeout_s == pytest.approx(5.0)


def test_runtime_config_is_cached():
    assert runtime_config() is runtime_config()


def test_discovered_config_overrides_single_keys(tmp_path: Path):
    discovered = _write(tmp_path / ".hydrafix" / "config.yaml", "scaling:\n  min_arc_radius: 4\n")

    cfg = runtime_config()
    assert cfg.config_path == discovered
    assert cfg.min_arc_radius == 4.0
    # 同じセクションの他のキーは同梱値のまま。
    assert cfg.scaling_tolerance == pytest.approx(0.05)


def test_home_config_is_discovered(tmp_path: Path):
    home_cfg = _write(
        tmp_path / ".config" / "hydrafix" / "config.yaml",
        "resolution:\n  default_key: 1280\n",
    )

    cfg = runtime_config()
    assert cfg.config_path == home_cfg
    assert cfg.default_resolution_key == 1280


def test_explicit_config_overrides_discovered_config(tmp_path: Path):
    _write(tmp_path / ".hydrafix" / "config.yaml", "traversal:\n  max_depth: 16\n")
    explicit = _write(tmp_path / "explicit.yaml", "traversal:\n  max_depth: 8\n")
    set_config_path(explicit)

    cfg = runtime_config()
    assert cfg.config_path == explicit
    assert cfg.max_depth == 8


def test_explicit_config_path_missing_raises(tmp_path: Path):
    set_config_path(tmp_path / "missing.yaml")

    with pytest.raises(FileNotFoundError):
        runtime_config()


def test_unsupported_version_raises(tmp_path: Path):
    set_config_path(_write(tmp_path / "v2.yaml", "version: 2\n"))

    with pytest.raises(RuntimeError, match="version"):
        runtime_config()


def test_non_positive_values_are_rejected(tmp_path: Path):
    set_config_path(_write(tmp_path / "bad.yaml", "hydration:\n  registry_timeout_s: 0\n"))

    with pytest.raises(ValueError):
        runtime_config()


def test_non_bool_orientation_is_rejected(tmp_path: Path):
    set_config_path(_write(tmp_path / "bad.yaml", "resolution:\n  default_is_horizontal: 'yes'\n"))

    with pytest.raises(RuntimeError, match="default_is_horizontal"):
        runtime_config()


def test_set_config_path_resets_cache(tmp_path: Path):
    first = runtime_config()
    set_config_path(_write(tmp_path / "c.yaml", "scaling:\n  idempotence_tolerance: 0.0\n"))

    second = runtime_config()
    assert second is not first
    assert second.scaling_tolerance == 0.0
