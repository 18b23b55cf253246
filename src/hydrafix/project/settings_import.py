# どこで: `src/hydrafix/project/settings_import.py`。
# 何を: 旧形式の設定ファイル（レンダラの settings.json）を ProjectDocument へ変換する。
# なぜ: finalSize と effect 配列しか持たない旧ファイルを、解像度キー + 向き + 型付き config に揃えるため。

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from pathlib import PurePosixPath
from typing import Any

from hydrafix.core.dimensions import as_dimensions
from hydrafix.core.errors import HydrafixError, Issue, InvalidResolutionInput
from hydrafix.core.hydration import DefaultConfigSource, hydrate_effects
from hydrafix.core.resolution import match_resolution_key, resolve_resolution
from hydrafix.core.scaling import scale_tree

from .document import ProjectDocument
from .flow import ProjectLoadResult

_logger = logging.getLogger(__name__)

PLACEHOLDER_KEY = "base-config"

# (settings のキー, エフェクト種別)。先に見つかったキーを使う。
_EFFECT_GROUPS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("effects", "allPrimaryEffects"), "primary"),
    (("finalImageEffects", "allFinalImageEffects"), "finalImage"),
    (("additionalEffects", "allAdditionalEffects"), "secondary"),
    (("secondaryEffects", "allSecondaryEffects"), "secondary"),
    (("keyFrameEffects", "allKeyFrameEffects"), "keyframe"),
)


def _settings_config(entry: Mapping[str, Any]) -> Any:
    config = entry.get("currentEffectConfig")
    return config if config else entry.get("config")


def _child_entry(entry: Any, fallback_key: str, effect_type: str = "secondary") -> dict[str, Any]:
    if not isinstance(entry, Mapping):
        return {"registryKey": fallback_key, "type": effect_type, "config": {}}
    out: dict[str, Any] = {
        "registryKey": entry.get("name") or fallback_key,
        "type": effect_type,
        "config": _settings_config(entry) or {},
        "percentChance": entry.get("percentChance") or 100,
    }
    frame = entry.get("frame")
    if effect_type == "keyframe" and isinstance(frame, int) and not isinstance(frame, bool):
        out["frame"] = frame
    return out


def _effect_entry(entry: Any, effect_type: str) -> dict[str, Any]:
    """settings のエフェクト 1 件を保存形式の mapping に変換する。"""

    if not isinstance(entry, Mapping):
        raise ValueError(f"エフェクトは mapping である必要がある: got={type(entry).__name__}")
    secondary = [
        _child_entry(e, "secondary-effect") for e in entry.get("possibleSecondaryEffects") or []
    ]
    additional = entry.get("additionalEffects")
    if isinstance(additional, list) and additional:
        # additionalEffects は primary に付く secondary として扱う。
        secondary = [_child_entry(e, "additional-effect") for e in additional]
    keyframe: list[dict[str, Any]] = []
    attached = entry.get("attachedEffects")
    if isinstance(attached, Mapping):
        # attachedEffects も settings 形式（name/currentEffectConfig）なので同じ変換を通す。
        secondary.extend(
            _child_entry(e, "secondary-effect") for e in attached.get("secondary") or []
        )
        frames = attached.get("keyFrame", attached.get("keyframe")) or []
        keyframe = [_child_entry(e, "keyframe-effect", "keyframe") for e in frames]
    out: dict[str, Any] = {
        "registryKey": entry.get("name") or PLACEHOLDER_KEY,
        "type": effect_type,
        "config": _settings_config(entry) or {},
        "visible": True,
        "percentChance": entry.get("percentChance") or 100,
    }
    if secondary:
        out["secondaryEffects"] = secondary
    if keyframe:
        out["keyframeEffects"] = keyframe
    return out


def _collect_effects(settings: Mapping[str, Any], issues: list[Issue]) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for keys, effect_type in _EFFECT_GROUPS:
        entries = next((settings[k] for k in keys if settings.get(k)), None)
        if entries is None:
            continue
        if not isinstance(entries, list):
            issues.append(
                Issue(kind="MalformedEffectEntry", path=keys[0], message="エフェクト配列ではありません")
            )
            continue
        for i, entry in enumerate(entries):
            try:
                out.append(_effect_entry(entry, effect_type))
            except ValueError as exc:
                path = f"{keys[0]}[{i}]"
                _logger.warning("settings のエフェクトをスキップします: path=%s reason=%s", path, exc)
                issues.append(Issue(kind="MalformedEffectEntry", path=path, message=str(exc)))
    return out


def _project_name(settings: Mapping[str, Any], override: str | None) -> str:
    if override:
        return override
    config = settings.get("config")
    if isinstance(config, Mapping):
        for key in ("finalFileName", "runName"):
            if config.get(key):
                return str(config[key])
        file_out = config.get("fileOut")
        if isinstance(file_out, str) and file_out:
            return PurePosixPath(file_out).name or "imported-project"
    return "imported-project"


def _extras(settings: Mapping[str, Any]) -> dict[str, Any]:
    config = settings.get("config")
    config = config if isinstance(config, Mapping) else {}
    extras: dict[str, Any] = {
        "artist": config.get("_INVOKER_", ""),
        "numFrames": config.get("numberOfFrame", 100),
        "renderJumpFrames": config.get("frameInc", 1),
    }
    scheme = settings.get("colorScheme")
    if isinstance(scheme, Mapping):
        extras["colorScheme"] = scheme.get("name") or scheme.get("colorSchemeName")
        extras["colorSchemeData"] = dict(scheme)
    elif isinstance(scheme, str):
        extras["colorScheme"] = scheme
    return extras


async def import_settings(
    settings: Any,
    source: DefaultConfigSource,
    *,
    project_name: str | None = None,
    timeout: float | None = None,
    now: datetime | None = None,
) -> ProjectLoadResult:
    """旧形式の settings を ProjectDocument に変換する。

    Notes
    -----
    - `finalSize` の実寸に対応する解像度キーを探し（向きは問わない）、
      向きは `width > height` で決める（正方形は縦扱い）。`finalSize` が無ければ既定解像度を使う。
    - キーが実寸と一致しない場合（独自解像度）は、最も近いプリセットへ寄せたうえで
      エフェクトの位置を `finalSize` から新しいキャンバスへ再スケールする。
    """

    if not isinstance(settings, Mapping):
        err = InvalidResolutionInput(
            f"settings は mapping である必要があります: got={type(settings).__name__}"
        )
        return ProjectLoadResult(project=ProjectDocument.empty(), issues=(Issue.from_error(err),))

    issues: list[Issue] = []
    base = ProjectDocument.empty(name=_project_name(settings, project_name))

    final_size = None
    raw_size = settings.get("finalSize")
    if raw_size is not None:
        try:
            final_size = as_dimensions(raw_size, label="finalSize")
        except HydrafixError as exc:
            _logger.warning("finalSize が不正なため既定解像度を使います: %s", exc)
            issues.append(Issue.from_error(exc))

    if final_size is None:
        key, is_horizontal = base.resolution, base.is_horizontal
    else:
        longest = raw_size.get("longestSide") if isinstance(raw_size, Mapping) else None
        if isinstance(longest, bool) or not isinstance(longest, int):
            longest = None
        key = match_resolution_key(
            final_size.width,
            final_size.height,
            longest_side=longest,
        )
        is_horizontal = final_size.width > final_size.height

    raw_effects = _collect_effects(settings, issues)
    hydrated = await hydrate_effects(raw_effects, source, timeout=timeout)
    issues.extend(hydrated.issues)
    effects = hydrated.effects

    resolved = resolve_resolution(key, is_horizontal)
    issues.extend(resolved.issues)
    target = resolved.dimensions
    scaled = False
    if final_size is not None and final_size != target:
        result = scale_tree(effects, final_size, target, now=now)
        effects = tuple(result.effects)
        scaled = result.scaled
        issues.extend(result.issues)

    project = ProjectDocument(
        name=base.name,
        resolution=int(key),
        is_horizontal=bool(is_horizontal),
        effects=effects,
        extras=_extras(settings),
    )
    _logger.info(
        "settings を取り込みました: name=%s resolution=%s effects=%d issues=%d",
        project.name,
        key,
        len(project.effects),
        len(issues),
    )
    return ProjectLoadResult(project=project, issues=tuple(issues), scaled=scaled)


__all__ = ["PLACEHOLDER_KEY", "import_settings"]
