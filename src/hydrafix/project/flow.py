# どこで: `src/hydrafix/project/flow.py`。
# 何を: プロジェクトの読み込み（ハイドレート + 再スケール）、解像度変更、平坦化、エフェクト新規作成を組み立てる。
# なぜ: core の各エンジンを「プロジェクト単位の操作」として 1 箇所で順序付けるため。

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from hydrafix.core.centering import recenter_config
from hydrafix.core.codec import FlattenResult, flatten_config, flatten_effects
from hydrafix.core.dimensions import Dimensions, as_dimensions
from hydrafix.core.effect import Effect
from hydrafix.core.effect_registry import EffectConfigRegistry
from hydrafix.core.errors import HydrafixError, Issue, InvalidResolutionInput, issues_of_kind
from hydrafix.core.hydration import DefaultConfigSource, hydrate_effects
from hydrafix.core.resolution import (
    determine_orientation,
    match_resolution_key,
    resolve_resolution,
)
from hydrafix.core.scaling import scale_tree

from .document import ProjectDocument

_logger = logging.getLogger(__name__)

# ProjectDocument のフィールドに対応する保存キー（extras へ入れない）。
_DOCUMENT_KEYS = frozenset(
    {
        "projectName",
        "name",
        "targetResolution",
        "isHorizontal",
        "isHoz",
        "resolution",
        "effects",
    }
)


@dataclass(frozen=True, slots=True)
class ProjectLoadResult:
    """`load_project()` / `import_settings()` の結果。"""

    project: ProjectDocument
    issues: tuple[Issue, ...] = ()
    scaled: bool = False


@dataclass(frozen=True, slots=True)
class ProjectChangeResult:
    """`apply_resolution_change()` の結果。"""

    project: ProjectDocument
    scaled: bool
    issues: tuple[Issue, ...] = ()


@dataclass(frozen=True, slots=True)
class EffectCreationResult:
    """`create_effect()` の結果。"""

    effect: Effect
    recentered: tuple[str, ...] = ()
    issues: tuple[Issue, ...] = ()


def _authored_dimensions(payload: Mapping[str, Any]) -> Dimensions | None:
    """payload が作られたキャンバスの実寸（`resolution: {width, height}`）を返す。"""

    raw = payload.get("resolution")
    if not isinstance(raw, Mapping):
        return None
    try:
        return as_dimensions(raw, label="resolution")
    except HydrafixError:
        _logger.debug("resolution を実寸として解釈できません: %r", raw)
        return None


def _target_descriptor(payload: Mapping[str, Any]) -> tuple[Any, bool | None]:
    explicit = payload.get("isHorizontal", payload.get("isHoz"))
    horizontal = explicit if isinstance(explicit, bool) else None
    if "targetResolution" in payload:
        return payload["targetResolution"], horizontal
    authored = _authored_dimensions(payload)
    if authored is not None:
        key = match_resolution_key(authored.width, authored.height)
        return key, determine_orientation(authored.width, authored.height, explicit=horizontal)
    if "resolution" in payload:
        return payload["resolution"], horizontal
    return None, horizontal


async def load_project(
    payload: Any,
    source: DefaultConfigSource,
    *,
    timeout: float | None = None,
    now: datetime | None = None,
) -> ProjectLoadResult:
    """保存形式のプロジェクトを読み込み、描画可能な ProjectDocument を返す。

    Parameters
    ----------
    payload : Any
        `projectName`, `targetResolution`, `isHorizontal`, `resolution`
        （作成時の実寸 `{width, height}`）, `effects` を持つ mapping。
    source : DefaultConfigSource
        エフェクト種別ごとの既定インスタンス取得元。
    timeout : float or None, optional
        既定インスタンス 1 件あたりの取得タイムアウト（秒）。

    Notes
    -----
    作成時の実寸と、解像度キー + 向きから導出した実寸が異なる場合は、
    ハイドレート後のツリーを新しいキャンバスへ再スケールする。
    """

    if not isinstance(payload, Mapping):
        err = InvalidResolutionInput(
            f"プロジェクトは mapping である必要があります: got={type(payload).__name__}"
        )
        _logger.warning("プロジェクトを読み込めないため空のプロジェクトを返します: %s", err)
        return ProjectLoadResult(project=ProjectDocument.empty(), issues=(Issue.from_error(err),))

    issues: list[Issue] = []
    descriptor, horizontal = _target_descriptor(payload)
    if descriptor is None:
        resolved = resolve_resolution(ProjectDocument.empty().resolution, horizontal)
    else:
        resolved = resolve_resolution(descriptor, horizontal)
    issues.extend(resolved.issues)
    target = resolved.dimensions
    key = resolved.key
    if key is None:
        key = match_resolution_key(target.width, target.height)
    is_horizontal = determine_orientation(target.width, target.height, explicit=horizontal)

    raw_effects = payload.get("effects") or []
    if not isinstance(raw_effects, list):
        issues.append(
            Issue(kind="MalformedEffectEntry", path="effects", message="effects が list ではありません")
        )
        raw_effects = []
    hydrated = await hydrate_effects(raw_effects, source, timeout=timeout)
    issues.extend(hydrated.issues)
    effects = hydrated.effects

    scaled = False
    authored = _authored_dimensions(payload)
    if authored is not None and authored != target:
        result = scale_tree(effects, authored, target, now=now)
        effects = tuple(result.effects)
        scaled = result.scaled
        issues.extend(result.issues)

    project = ProjectDocument(
        name=str(payload.get("projectName") or payload.get("name") or "untitled"),
        resolution=int(key),
        is_horizontal=is_horizontal,
        effects=effects,
        extras={k: v for k, v in payload.items() if k not in _DOCUMENT_KEYS},
    )
    _logger.info(
        "プロジェクトを読み込みました: name=%s effects=%d scaled=%s issues=%d",
        project.name,
        len(project.effects),
        scaled,
        len(issues),
    )
    return ProjectLoadResult(project=project, issues=tuple(issues), scaled=scaled)


def apply_resolution_change(
    project: ProjectDocument,
    resolution: Any,
    is_horizontal: bool | None = None,
    *,
    now: datetime | None = None,
) -> ProjectChangeResult:
    """解像度/向きを変更し、エフェクトツリーを新しいキャンバスへ再スケールする。

    解決できない解像度が渡された場合はプロジェクトを変更せずに返し、
    `InvalidResolutionInput` を issues に残す（既定解像度へは寄せない）。
    """

    horizontal = project.is_horizontal if is_horizontal is None else bool(is_horizontal)
    old = project.dimensions()
    resolved = resolve_resolution(resolution, horizontal)
    rejected = issues_of_kind(resolved.issues, InvalidResolutionInput.kind)
    if rejected:
        _logger.warning("解像度変更を中止しました: resolution=%r", resolution)
        return ProjectChangeResult(project=project, scaled=False, issues=tuple(rejected))
    new = resolved.dimensions
    key = resolved.key if resolved.key is not None else match_resolution_key(new.width, new.height)

    result = scale_tree(project.effects, old, new, now=now)
    updated = replace(
        project,
        resolution=int(key),
        is_horizontal=horizontal,
        effects=tuple(result.effects),
    )
    return ProjectChangeResult(
        project=updated,
        scaled=result.scaled,
        issues=(*resolved.issues, *result.issues),
    )


def flatten_project(project: ProjectDocument) -> FlattenResult:
    """ProjectDocument を保存形式の dict に変換する。"""

    dims = project.dimensions()
    flat_extras = flatten_config(project.extras)
    flat_effects = flatten_effects(project.effects)
    payload: dict[str, Any] = {
        **flat_extras.value,
        "projectName": project.name,
        "targetResolution": int(project.resolution),
        "isHorizontal": bool(project.is_horizontal),
        "resolution": dims.as_dict(),
        "effects": flat_effects.value,
    }
    return FlattenResult(value=payload, issues=(*flat_extras.issues, *flat_effects.issues))


def create_effect(
    registry: EffectConfigRegistry,
    key: str,
    project: ProjectDocument,
    *,
    reference: Any = None,
    effect_type: str | None = None,
) -> EffectCreationResult:
    """レジストリの既定インスタンスから新しいエフェクトを作る。

    既定インスタンス中の中心位置はプロジェクトのキャンバス中心へ移す。

    Raises
    ------
    KeyError
        key が未登録の場合。
    """

    default = registry.get_default_config(key)
    centered = recenter_config(default, project.dimensions(), reference)
    effect = Effect.create(
        key,
        centered.config,
        effect_type=effect_type or registry.get_effect_type(key),
    )
    return EffectCreationResult(
        effect=effect,
        recentered=centered.recentered,
        issues=centered.issues,
    )


__all__ = [
    "EffectCreationResult",
    "ProjectChangeResult",
    "ProjectLoadResult",
    "apply_resolution_change",
    "create_effect",
    "flatten_project",
    "load_project",
]
