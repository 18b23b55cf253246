# どこで: `src/hydrafix/core/hydration.py`。
# 何を: flat な設定 blob を、既定インスタンス（rich）の骨格へ重ねて rich config を復元する。
# なぜ: 直列化境界を越えて振る舞い/型情報を失った値を、既定インスタンスを正として安全に戻すため。

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from .codec import (
    arc_path_from_flat,
    color_picker_from_flat,
    percentage_side_from_flat,
    range_from_bounds,
    reconstruct_value,
)
from .effect import Effect, effect_from_flat
from .errors import (
    ERROR,
    ConfigReconstructionFailure,
    HydrafixError,
    Issue,
    UnknownConfigField,
    join_path,
)
from .params.types import (
    AUTO_SCALED_KEY,
    CENTER_OVERRIDE_KEY,
    SCALED_AT_KEY,
    ArcPath,
    ColorPicker,
    PercentageRange,
    PercentageSide,
    Point,
    Position,
    Range,
    is_number,
)
from .runtime_config import runtime_config
from .traversal import DepthGuard

_logger = logging.getLogger(__name__)

# Range 系で flat blob から読むサブフィールド（これ以外は無視する）。
RANGE_SAFE_KEYS = ("lower", "upper", "lowerValue", "upperValue")

# 位置マーカーは既定インスタンスに無くても未知フィールド扱いしない。
_MARKER_KEYS = frozenset({AUTO_SCALED_KEY, SCALED_AT_KEY, CENTER_OVERRIDE_KEY})

_TRUE_WORDS = {"true", "1", "on", "yes"}
_FALSE_WORDS = {"false", "0", "off", "no"}


@dataclass(frozen=True, slots=True)
class HydrationResult:
    """`hydrate()` の結果。

    `fell_back` が True の場合、`config` は flat blob の浅いコピーである。
    """

    config: dict[str, Any]
    issues: tuple[Issue, ...] = ()
    fell_back: bool = False

    @property
    def failed_fields(self) -> tuple[str, ...]:
        """再構築に失敗し、既定値を残したフィールドのパス。"""

        return tuple(i.path for i in self.issues if i.kind == ConfigReconstructionFailure.kind)


@dataclass(frozen=True, slots=True)
class TreeHydrationResult:
    """`hydrate_effects()` の結果。"""

    effects: tuple[Effect, ...]
    issues: tuple[Issue, ...] = ()


class DefaultConfigSource(Protocol):
    """エフェクト種別ごとの既定インスタンスを返す非同期ソース。"""

    async def get_default_config(self, key: str) -> Mapping[str, Any]:
        """key の既定インスタンスを返す。未登録なら KeyError を送出する。"""
        ...


def _coerce_primitive(default: Any, value: Any) -> Any:
    """文字列を既定値の型へ可逆に変換できる場合だけ変換する。"""

    if not isinstance(value, str):
        return value
    text = value.strip()
    if isinstance(default, bool):
        lowered = text.lower()
        if lowered in _TRUE_WORDS:
            return True
        if lowered in _FALSE_WORDS:
            return False
        return value
    if isinstance(default, int):
        try:
            return int(text)
        except ValueError:
            return value
    if isinstance(default, float):
        try:
            return float(text)
        except ValueError:
            return value
    return value


def _is_pair(value: Any) -> bool:
    return (
        isinstance(value, Sequence)
        and not isinstance(value, (str, bytes))
        and len(value) == 2
        and is_number(value[0])
        and is_number(value[1])
    )


def _merged_xy(default: Point | Position, flat: Any, *, path: str) -> tuple[float, float]:
    if _is_pair(flat):
        return (flat[0], flat[1])
    if not isinstance(flat, Mapping):
        raise ConfigReconstructionFailure(f"座標として解釈できません: got={flat!r}", path=path)
    x = flat.get("x", default.x)
    y = flat.get("y", default.y)
    if not (is_number(x) and is_number(y)):
        raise ConfigReconstructionFailure(
            f"x/y が数値ではありません: x={x!r} y={y!r}",
            path=path,
        )
    return (x, y)


class _Hydrator:
    def __init__(self) -> None:
        self.guard = DepthGuard.from_runtime_config()
        self.issues: list[Issue] = []

    def merge_mapping(
        self,
        default: Mapping[str, Any],
        flat: Mapping[str, Any],
        *,
        path: str,
    ) -> dict[str, Any]:
        out = dict(default)
        with self.guard.scope(flat, path=path):
            for key, value in flat.items():
                field_path = join_path(path, key)
                if key not in default:
                    if key in _MARKER_KEYS:
                        continue
                    err = UnknownConfigField(f"未知のフィールドを無視します: {key}", path=field_path)
                    _logger.warning("未知のフィールドを無視します: path=%s", field_path)
                    self.issues.append(Issue.from_error(err))
                    continue
                try:
                    out[key] = self.merge_field(default[key], value, path=field_path)
                except ConfigReconstructionFailure as exc:
                    _logger.warning("既定値を維持します: path=%s reason=%s", exc.path, exc)
                    self.issues.append(Issue.from_error(exc))
        return out

    def merge_range(self, default: Range | PercentageRange, flat: Any, *, path: str) -> Any:
        if isinstance(flat, (Range, PercentageRange)):
            return flat
        if not isinstance(flat, Mapping):
            raise ConfigReconstructionFailure(f"Range として解釈できません: got={flat!r}", path=path)
        picked = {k: flat[k] for k in RANGE_SAFE_KEYS if k in flat}
        if not picked:
            return default

        lower = picked.get("lower", picked.get("lowerValue"))
        upper = picked.get("upper", picked.get("upperValue"))
        if isinstance(default, Range):
            if lower is None:
                lower = default.lower_value
            if upper is None:
                upper = default.upper_value
        else:
            if lower is None:
                lower = default.lower_side
            if upper is None:
                upper = default.upper_side
        return range_from_bounds(lower, upper, path=path)

    def merge_arc(self, default: ArcPath, flat: Any, *, path: str) -> ArcPath:
        if isinstance(flat, ArcPath):
            return flat
        if not isinstance(flat, Mapping):
            raise ConfigReconstructionFailure(f"円弧として解釈できません: got={flat!r}", path=path)
        center_flat = flat.get("center", {})
        if isinstance(center_flat, Point):
            center = center_flat
        else:
            cx, cy = _merged_xy(default.center, center_flat, path=join_path(path, "center"))
            center = Point(x=cx, y=cy)
        merged = {
            "center": {"x": center.x, "y": center.y},
            "radius": flat.get("radius", default.radius),
            "startAngle": flat.get("startAngle", default.start_angle),
            "endAngle": flat.get("endAngle", default.end_angle),
            "direction": flat.get("direction", default.direction),
            AUTO_SCALED_KEY: flat.get(AUTO_SCALED_KEY, default.auto_scaled),
            SCALED_AT_KEY: flat.get(SCALED_AT_KEY, default.scaled_at),
        }
        return arc_path_from_flat(merged, path=path)

    def merge_field(self, default: Any, flat: Any, *, path: str) -> Any:
        if isinstance(default, ColorPicker):
            # 部分マージは selectionType と colorValue の不整合を生むため、丸ごと作り直す。
            if isinstance(flat, ColorPicker):
                return flat
            return color_picker_from_flat(flat, path=path)

        if isinstance(default, (Range, PercentageRange)):
            return self.merge_range(default, flat, path=path)

        if isinstance(default, PercentageSide):
            return percentage_side_from_flat(flat, path=path)

        if isinstance(default, Position):
            if isinstance(flat, Position):
                return flat
            x, y = _merged_xy(default, flat, path=path)
            markers = flat if isinstance(flat, Mapping) else {}
            return Position(
                x=x,
                y=y,
                auto_scaled=bool(markers.get(AUTO_SCALED_KEY, default.auto_scaled)),
                scaled_at=markers.get(SCALED_AT_KEY, default.scaled_at),
            )

        if isinstance(default, ArcPath):
            return self.merge_arc(default, flat, path=path)

        if isinstance(default, Point):
            if isinstance(flat, Point):
                return flat
            x, y = _merged_xy(default, flat, path=path)
            return Point(x=x, y=y)

        if isinstance(default, Mapping):
            if not isinstance(flat, Mapping):
                raise ConfigReconstructionFailure(
                    f"mapping フィールドに mapping 以外が来ました: got={type(flat).__name__}",
                    path=path,
                )
            return self.merge_mapping(default, flat, path=path)

        if isinstance(default, (list, tuple)):
            if not isinstance(flat, (list, tuple)):
                raise ConfigReconstructionFailure(
                    f"list フィールドに list 以外が来ました: got={type(flat).__name__}",
                    path=path,
                )
            items = reconstruct_value(list(flat), path=path)
            return tuple(items) if isinstance(default, tuple) else items

        if default is None:
            return reconstruct_value(flat, path=path)

        if isinstance(default, (bool, int, float, str)):
            return _coerce_primitive(default, flat)

        if isinstance(flat, type(default)):
            return flat
        raise ConfigReconstructionFailure(
            f"{type(default).__name__} として再構築できません: got={type(flat).__name__}",
            path=path,
        )


def hydrate(flat: Mapping[str, Any] | None, default: Mapping[str, Any]) -> HydrationResult:
    """flat blob を既定インスタンスへ重ねて rich config を返す。

    Parameters
    ----------
    flat : Mapping[str, Any] or None
        直列化境界を越えてきた flat な設定。None は空 blob として扱う。
    default : Mapping[str, Any]
        エフェクト種別の既定インスタンス。フィールド集合と各フィールドの型の正。

    Returns
    -------
    HydrationResult
        `config` は常に `default` と同じフィールド集合を持つ。
        フィールド単位の再構築失敗は既定値を残して issues に記録する。
        想定外の例外では flat blob の浅いコピーへ退避し（`fell_back=True`）、
        error 重大度の issue を記録する。
    """

    if flat is None:
        return HydrationResult(config=dict(default))
    if not isinstance(flat, Mapping):
        err = ConfigReconstructionFailure(
            f"flat config が mapping ではありません: got={type(flat).__name__}"
        )
        _logger.warning("flat config を無視して既定値を使います: %s", err)
        return HydrationResult(config=dict(default), issues=(Issue.from_error(err),))

    hydrator = _Hydrator()
    try:
        config = hydrator.merge_mapping(default, flat, path="")
    except Exception as exc:
        _logger.warning("ハイドレーションに失敗したため flat blob へ退避します", exc_info=True)
        kind = exc.kind if isinstance(exc, HydrafixError) else ConfigReconstructionFailure.kind
        path = exc.path if isinstance(exc, HydrafixError) else ""
        issue = Issue(kind=kind, path=path, message=str(exc), severity=ERROR)
        return HydrationResult(
            config=dict(flat),
            issues=(*hydrator.issues, issue),
            fell_back=True,
        )
    return HydrationResult(config=config, issues=tuple(hydrator.issues))


def hydrate_flat_only(flat: Mapping[str, Any] | None) -> HydrationResult:
    """既定インスタンス無しで、判別子だけを頼りに rich config を復元する。

    再構築できないフィールドは flat 値のまま残し、issue を記録する。
    """

    if flat is None:
        return HydrationResult(config={})
    if not isinstance(flat, Mapping):
        err = ConfigReconstructionFailure(
            f"flat config が mapping ではありません: got={type(flat).__name__}"
        )
        return HydrationResult(config={}, issues=(Issue.from_error(err),))

    out: dict[str, Any] = {}
    issues: list[Issue] = []
    for key, value in flat.items():
        try:
            out[key] = reconstruct_value(value, path=str(key))
        except HydrafixError as exc:
            _logger.warning("flat 値のまま残します: path=%s reason=%s", exc.path, exc)
            issues.append(Issue.from_error(exc))
            out[key] = value
    return HydrationResult(config=out, issues=tuple(issues))


def _prefixed(issues: Sequence[Issue], prefix: str) -> list[Issue]:
    return [
        Issue(
            kind=i.kind,
            path=f"{prefix}.{i.path}" if i.path else prefix,
            message=i.message,
            severity=i.severity,
        )
        for i in issues
    ]


async def _fetch_default(
    source: DefaultConfigSource,
    key: str,
    timeout: float,
) -> tuple[str, Mapping[str, Any] | None, Issue | None]:
    try:
        default = await asyncio.wait_for(source.get_default_config(key), timeout=timeout)
    except asyncio.TimeoutError:
        _logger.warning("既定インスタンスの取得がタイムアウトしました: key=%s timeout=%s", key, timeout)
        return key, None, Issue(
            kind="RegistryTimeout",
            path=key,
            message=f"既定インスタンスの取得がタイムアウトしました（{timeout}s）",
        )
    except KeyError:
        _logger.warning("未登録のエフェクト種別です: key=%s", key)
        return key, None, Issue(
            kind="UnknownEffectType",
            path=key,
            message="未登録のエフェクト種別のため flat 値のみで復元します",
        )
    except Exception as exc:
        _logger.warning("既定インスタンスの取得に失敗しました: key=%s", key, exc_info=True)
        return key, None, Issue(kind="RegistryLookupFailure", path=key, message=str(exc))
    return key, default, None


async def hydrate_effects(
    flat_effects: Sequence[Mapping[str, Any]],
    source: DefaultConfigSource,
    *,
    timeout: float | None = None,
) -> TreeHydrationResult:
    """保存形式のエフェクト列をハイドレートする。

    Notes
    -----
    既定インスタンスの取得は、ツリー内の異なる registryKey ごとに 1 回だけ並行に行う。
    各取得は `timeout` 秒（省略時は runtime config の `hydration.registry_timeout_s`）で打ち切り、
    タイムアウト/未登録の種別は `hydrate_flat_only()` にフォールバックする。
    保存形式として解釈できないエントリはスキップして issue を記録する。
    """

    limit = float(runtime_config().registry_timeout_s) if timeout is None else float(timeout)
    issues: list[Issue] = []
    roots: list[tuple[str, Effect]] = []
    for i, obj in enumerate(flat_effects):
        path = join_path("effects", i)
        try:
            roots.append((path, effect_from_flat(obj)))
        except (TypeError, ValueError) as exc:
            _logger.warning("エフェクトのエントリをスキップします: path=%s reason=%s", path, exc)
            issues.append(Issue(kind="MalformedEffectEntry", path=path, message=str(exc)))

    keys = sorted({e.registry_key for _, root in roots for e in root.iter_tree()})
    fetched = await asyncio.gather(*(_fetch_default(source, key, limit) for key in keys))
    defaults: dict[str, Mapping[str, Any] | None] = {}
    for key, default, issue in fetched:
        defaults[key] = default
        if issue is not None:
            issues.append(issue)

    def visit(effect: Effect, path: str) -> Effect:
        default = defaults.get(effect.registry_key)
        if default is None:
            result = hydrate_flat_only(effect.config)
        else:
            result = hydrate(effect.config, default)
        issues.extend(_prefixed(result.issues, join_path(path, "config")))
        return effect.with_config(result.config).with_children(
            secondary_effects=[
                visit(c, join_path(join_path(path, "secondaryEffects"), i))
                for i, c in enumerate(effect.secondary_effects)
            ],
            keyframe_effects=[
                visit(c, join_path(join_path(path, "keyframeEffects"), i))
                for i, c in enumerate(effect.keyframe_effects)
            ],
        )

    effects = tuple(visit(root, path) for path, root in roots)
    _logger.debug("エフェクトをハイドレートしました: count=%d issues=%d", len(effects), len(issues))
    return TreeHydrationResult(effects=effects, issues=tuple(issues))


__all__ = [
    "RANGE_SAFE_KEYS",
    "DefaultConfigSource",
    "HydrationResult",
    "TreeHydrationResult",
    "hydrate",
    "hydrate_effects",
    "hydrate_flat_only",
]
