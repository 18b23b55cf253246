# どこで: `src/hydrafix/core/runtime_config.py`。
# 何を: config.yaml による実行時設定（探索・ロード・キャッシュ）を提供する。
# なぜ: スケーリング許容幅やタイムアウトなどの定数を、利用側が差し替えられるようにするため。

from __future__ import annotations

import os
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """hydrafix の実行時設定。"""

    config_path: Path | None
    default_resolution_key: int
    default_is_horizontal: bool
    scaling_tolerance: float
    min_arc_radius: float
    center_context_tolerance: float
    center_fallback_tolerance: float
    max_depth: int
    registry_timeout_s: float


_EXPLICIT_CONFIG_PATH: Path | None = None
_CONFIG_CACHE: RuntimeConfig | None = None


def set_config_path(path: str | Path | None) -> None:
    """以降の設定探索で使う明示 config パスを設定する。

    Notes
    -----
    `path` を None にすると明示指定を解除し、既定の探索に戻る。
    """

    global _EXPLICIT_CONFIG_PATH, _CONFIG_CACHE
    if path is None:
        _EXPLICIT_CONFIG_PATH = None
        _CONFIG_CACHE = None
        return
    p = Path(os.path.expandvars(os.path.expanduser(str(path))))
    _EXPLICIT_CONFIG_PATH = p
    _CONFIG_CACHE = None


def _default_config_candidates() -> tuple[Path, ...]:
    cwd = Path.cwd()
    home = Path.home()
    return (
        cwd / ".hydrafix" / "config.yaml",
        home / ".config" / "hydrafix" / "config.yaml",
    )


def _as_mapping(value: Any, *, key: str) -> dict[str, Any]:
    if value is None:
        return {}
    if isinstance(value, dict):
        return dict(value)
    raise RuntimeError(f"{key} は mapping である必要があります: got={value!r}")


def _merge_sections(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """セクション単位（1 段）で override を base に重ねた dict を返す。"""

    out = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = {**out[key], **value}
        else:
            out[key] = value
    return out


def _as_positive_float(value: Any, *, key: str) -> float:
    if value is None:
        raise RuntimeError(f"{key} が未設定です（同梱 default_config.yaml を確認してください）")
    try:
        f = float(value)
    except Exception as exc:
        raise RuntimeError(f"{key} は数値である必要があります: got={value!r}") from exc
    if not f > 0:
        raise ValueError(f"{key} は正の値である必要があります: got={f}")
    return f


def _as_positive_int(value: Any, *, key: str) -> int:
    if value is None:
        raise RuntimeError(f"{key} が未設定です（同梱 default_config.yaml を確認してください）")
    if isinstance(value, bool):
        raise RuntimeError(f"{key} は整数である必要があります: got={value!r}")
    try:
        i = int(value)
    except Exception as exc:
        raise RuntimeError(f"{key} は整数である必要があります: got={value!r}") from exc
    if i <= 0:
        raise ValueError(f"{key} は正の値である必要があります: got={i}")
    return i


def _load_yaml_text(text: str, *, source: str) -> dict[str, Any]:
    try:
        import yaml  # type: ignore[import-untyped]
    except Exception as exc:  # pragma: no cover
        raise RuntimeError(f"PyYAML を import できません: {exc}") from exc

    try:
        data = yaml.safe_load(text)
    except Exception as exc:
        raise RuntimeError(f"config.yaml の読み込みに失敗しました: source={source}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise RuntimeError(f"config.yaml は mapping である必要があります: source={source}")

    return dict(data)


def _load_yaml_config(path: Path) -> dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    return _load_yaml_text(text, source=str(path))


def _load_packaged_default_config() -> dict[str, Any]:
    """同梱デフォルト config をロードして dict を返す。"""

    try:
        blob = (
            resources.files("hydrafix")
            .joinpath("resource", "default_config.yaml")
            .read_text(encoding="utf-8")
        )
    except Exception as exc:  # pragma: no cover
        raise RuntimeError(
            "同梱 default_config.yaml の読み込みに失敗しました"
            "（パッケージ配布物の package-data を確認してください）"
        ) from exc

    return _load_yaml_text(blob, source="hydrafix/resource/default_config.yaml")


def runtime_config() -> RuntimeConfig:
    """実行時設定をロードして返す（キャッシュ）。

    上書き順（後勝ち）:
    1) 同梱 default_config.yaml
    2) `./.hydrafix/config.yaml` / `~/.config/hydrafix/config.yaml`
    3) `set_config_path()` で指定したファイル
    """

    global _CONFIG_CACHE
    if _CONFIG_CACHE is not None:
        return _CONFIG_CACHE

    explicit_path = _EXPLICIT_CONFIG_PATH
    if explicit_path is not None and not explicit_path.is_file():
        raise FileNotFoundError(f"config.yaml が見つかりません: {explicit_path}")

    discovered_path: Path | None = None
    for p in _default_config_candidates():
        if p.is_file():
            discovered_path = p
            break

    payload = _load_packaged_default_config()
    if discovered_path is not None:
        payload = _merge_sections(payload, _load_yaml_config(discovered_path))
    if explicit_path is not None:
        payload = _merge_sections(payload, _load_yaml_config(explicit_path))

    version = payload.get("version")
    if version is None:
        raise RuntimeError(
            "config.yaml の version が未設定です（同梱 default_config.yaml を確認してください）"
        )
    try:
        version_i = int(version)
    except Exception as exc:
        raise RuntimeError(f"config.yaml の version は整数である必要があります: got={version!r}") from exc
    if version_i != 1:
        raise RuntimeError(f"未対応の config.yaml version です: got={version_i}")

    resolution = _as_mapping(payload.get("resolution"), key="resolution")
    scaling = _as_mapping(payload.get("scaling"), key="scaling")
    centering = _as_mapping(payload.get("centering"), key="centering")
    traversal = _as_mapping(payload.get("traversal"), key="traversal")
    hydration = _as_mapping(payload.get("hydration"), key="hydration")

    default_is_horizontal = resolution.get("default_is_horizontal", True)
    if not isinstance(default_is_horizontal, bool):
        raise RuntimeError(
            "resolution.default_is_horizontal は bool である必要があります: "
            f"got={default_is_horizontal!r}"
        )

    tolerance = scaling.get("idempotence_tolerance")
    if tolerance is None:
        raise RuntimeError(
            "scaling.idempotence_tolerance が未設定です（同梱 default_config.yaml を確認してください）"
        )
    try:
        tolerance_f = float(tolerance)
    except Exception as exc:
        raise RuntimeError(
            f"scaling.idempotence_tolerance は数値である必要があります: got={tolerance!r}"
        ) from exc
    if tolerance_f < 0:
        raise ValueError(f"scaling.idempotence_tolerance は 0 以上である必要があります: got={tolerance_f}")

    cfg = RuntimeConfig(
        config_path=explicit_path or discovered_path,
        default_resolution_key=_as_positive_int(
            resolution.get("default_key"), key="resolution.default_key"
        ),
        default_is_horizontal=default_is_horizontal,
        scaling_tolerance=tolerance_f,
        min_arc_radius=_as_positive_float(
            scaling.get("min_arc_radius"), key="scaling.min_arc_radius"
        ),
        center_context_tolerance=_as_positive_float(
            centering.get("context_tolerance"), key="centering.context_tolerance"
        ),
        center_fallback_tolerance=_as_positive_float(
            centering.get("fallback_tolerance"), key="centering.fallback_tolerance"
        ),
        max_depth=_as_positive_int(traversal.get("max_depth"), key="traversal.max_depth"),
        registry_timeout_s=_as_positive_float(
            hydration.get("registry_timeout_s"), key="hydration.registry_timeout_s"
        ),
    )
    _CONFIG_CACHE = cfg
    return cfg


__all__ = ["RuntimeConfig", "runtime_config", "set_config_path"]
