# どこで: `src/hydrafix/core/codec.py`。
# 何を: rich な設定値を、判別子付きの flat（JSON 化可能）形式へ変換する。逆方向の判別子駆動の復元も持つ。
# なぜ: ディスク/プロセス境界を越える値から振る舞い（関数/評価器）を落とし、型情報だけを残すため。

from __future__ import annotations

import dataclasses
import json
import logging
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from enum import Enum
from typing import Any

import numpy as np

from .effect import Effect, effect_to_flat
from .errors import ConfigReconstructionFailure, Issue, MalformedConfigCycle, join_path
from .params.types import (
    ARC_PATH_TAG,
    AUTO_SCALED_KEY,
    CENTER_OVERRIDE_KEY,
    COLOR_SELECTION_TAG,
    LEGACY_CLASS_KEY,
    NAME_KEY,
    PERCENT_LONGEST_TAG,
    PERCENT_SHORTEST_TAG,
    PERCENTAGE_RANGE_TAG,
    POSITION_TAG,
    RANGE_TAG,
    SCALED_AT_KEY,
    TYPE_TAG_KEY,
    ArcPath,
    ColorPicker,
    PercentageRange,
    PercentageSide,
    Point,
    Position,
    Range,
    is_number,
)
from .traversal import DepthGuard

_logger = logging.getLogger(__name__)

# 旧 `__className` 値 -> typeTag
_LEGACY_TAGS = {
    "ColorPicker": COLOR_SELECTION_TAG,
    "ColorSelection": COLOR_SELECTION_TAG,
    "Range": RANGE_TAG,
    "PercentageRange": PERCENTAGE_RANGE_TAG,
    "PercentageShortestSide": PERCENT_SHORTEST_TAG,
    "PercentageLongestSide": PERCENT_LONGEST_TAG,
    "Point2D": "Point2D",
}

_DROP = object()


@dataclasses.dataclass(frozen=True, slots=True)
class FlattenResult:
    """平坦化結果と、その過程で出た問題。"""

    value: Any
    issues: tuple[Issue, ...] = ()


# ---------------------------------------------------------------------------
# rich -> flat
# ---------------------------------------------------------------------------


def _flatten_percentage_side(side: PercentageSide) -> dict[str, Any]:
    return {TYPE_TAG_KEY: side.tag, "percent": float(side.percent), "side": side.side}


def _flatten_bound(bound: Any) -> Any:
    if isinstance(bound, PercentageSide):
        return _flatten_percentage_side(bound)
    return bound


def _markers(auto_scaled: bool, scaled_at: str | None) -> dict[str, Any]:
    if not auto_scaled:
        return {}
    return {AUTO_SCALED_KEY: True, SCALED_AT_KEY: scaled_at}


class _Flattener:
    def __init__(self) -> None:
        self.guard = DepthGuard.from_runtime_config()
        self.issues: list[Issue] = []

    def _warn(self, kind: str, path: str, message: str) -> None:
        _logger.warning("%s: path=%s", message, path)
        self.issues.append(Issue(kind=kind, path=path, message=message))

    def flatten_range(self, value: Range | PercentageRange, *, path: str) -> dict[str, Any]:
        tag = PERCENTAGE_RANGE_TAG if isinstance(value, PercentageRange) else RANGE_TAG
        try:
            lower = _flatten_bound(value.lower())
            upper = _flatten_bound(value.upper())
        except (TypeError, ValueError) as exc:
            self._warn(
                "RangeEvaluationFallback",
                path,
                f"Range の評価に失敗したため内部値で代替します: {exc}",
            )
            if isinstance(value, PercentageRange):
                lower, upper = value.lower_side, value.upper_side
            else:
                lower, upper = value.lower_value, value.upper_value
            lower = self.flatten(lower, path=join_path(path, "lower"))
            upper = self.flatten(upper, path=join_path(path, "upper"))
        return {TYPE_TAG_KEY: tag, "lower": lower, "upper": upper}

    def flatten_structured(self, value: Any, *, path: str) -> Any:
        if isinstance(value, ColorPicker):
            return {
                "selectionType": value.selection_type.value,
                "colorValue": value.color_value,
                TYPE_TAG_KEY: COLOR_SELECTION_TAG,
            }
        if isinstance(value, (Range, PercentageRange)):
            return self.flatten_range(value, path=path)
        if isinstance(value, PercentageSide):
            return _flatten_percentage_side(value)
        if isinstance(value, Position):
            return {
                NAME_KEY: POSITION_TAG,
                "x": value.x,
                "y": value.y,
                **_markers(value.auto_scaled, value.scaled_at),
            }
        if isinstance(value, ArcPath):
            return {
                NAME_KEY: ARC_PATH_TAG,
                "center": {"x": value.center.x, "y": value.center.y},
                "radius": value.radius,
                "startAngle": value.start_angle,
                "endAngle": value.end_angle,
                "direction": value.direction,
                **_markers(value.auto_scaled, value.scaled_at),
            }
        if isinstance(value, Point):
            return {"x": value.x, "y": value.y}
        return _DROP

    def flatten(self, value: Any, *, path: str) -> Any:
        if isinstance(value, Enum):
            return value.value
        if value is None or isinstance(value, (bool, int, float, str)):
            return value
        if isinstance(value, np.generic):
            return value.item()

        structured = self.flatten_structured(value, path=path)
        if structured is not _DROP:
            return structured

        if isinstance(value, Mapping):
            return self.flatten_mapping(value, path=path)
        if isinstance(value, (list, tuple)):
            try:
                with self.guard.scope(value, path=path):
                    items = [self.flatten(v, path=join_path(path, i)) for i, v in enumerate(value)]
            except MalformedConfigCycle as exc:
                return self._cut(exc)
            return [v for v in items if v is not _DROP]
        if isinstance(value, (set, frozenset)):
            items = [self.flatten(v, path=path) for v in value]
            items = [v for v in items if v is not _DROP]
            try:
                return sorted(items)
            except TypeError:
                return sorted(items, key=repr)
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if isinstance(value, np.ndarray):
            return value.tolist()
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            fields = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
            return self.flatten_mapping(fields, path=path)
        if callable(value):
            _logger.debug("関数値は平坦化で落とします: path=%s", path)
            return _DROP

        self._warn(
            "UnserializableValue",
            path,
            f"平坦化できない値を repr で代替します: type={type(value).__name__}",
        )
        return repr(value)

    def flatten_mapping(self, value: Mapping[Any, Any], *, path: str) -> Any:
        try:
            with self.guard.scope(value, path=path):
                out: dict[str, Any] = {}
                for key, item in value.items():
                    flat = self.flatten(item, path=join_path(path, key))
                    if flat is not _DROP:
                        out[str(key)] = flat
        except MalformedConfigCycle as exc:
            return self._cut(exc)
        return out

    def _cut(self, exc: MalformedConfigCycle) -> None:
        # 循環/深すぎるコンテナは None に置き換え、それより上は平坦化を続ける。
        if not any(i.kind == exc.kind and i.path == exc.path for i in self.issues):
            _logger.warning("平坦化を打ち切りました: path=%s reason=%s", exc.path, exc)
            self.issues.append(Issue.from_error(exc))
        return None


def flatten_value(value: Any) -> FlattenResult:
    """1 つの値を flat 形式に変換する（関数値は None になる）。

    `flatten_config()` と同じく、repr 代替などの非致命的な issue を結果に含めて返す。
    """

    flattener = _Flattener()
    flat = flattener.flatten(value, path="")
    return FlattenResult(value=None if flat is _DROP else flat, issues=tuple(flattener.issues))


def flatten_config(config: Mapping[str, Any]) -> FlattenResult:
    """rich config を flat な dict に変換する。

    Notes
    -----
    - 関数値のフィールドは出力から落とす。
    - Range は評価器 `lower()`/`upper()` の現在値を記録する。
      評価に失敗した場合は内部値で代替し、`RangeEvaluationFallback` を記録する。
    - 変換できない値は `repr` で代替し、`UnserializableValue` を記録する（常に成功する）。
    """

    flattener = _Flattener()
    value = flattener.flatten_mapping(config, path="")
    return FlattenResult(value=value if value is not None else {}, issues=tuple(flattener.issues))


def flatten_effects(effects: Sequence[Effect]) -> FlattenResult:
    """エフェクト列を保存形式（camelCase の dict 列）に変換する。"""

    flattener = _Flattener()

    def visit(effect: Effect, path: str) -> dict[str, Any]:
        config = flattener.flatten_mapping(effect.config, path=join_path(path, "config"))
        return effect_to_flat(
            effect,
            config or {},
            secondary=[
                visit(c, join_path(join_path(path, "secondaryEffects"), i))
                for i, c in enumerate(effect.secondary_effects)
            ],
            keyframe=[
                visit(c, join_path(join_path(path, "keyframeEffects"), i))
                for i, c in enumerate(effect.keyframe_effects)
            ],
        )

    out = [visit(e, join_path("effects", i)) for i, e in enumerate(effects)]
    return FlattenResult(value=out, issues=tuple(flattener.issues))


# ---------------------------------------------------------------------------
# flat -> rich（判別子駆動）
# ---------------------------------------------------------------------------


def type_tag_of(flat: Mapping[str, Any]) -> str | None:
    """flat 値の typeTag を返す（旧 `__className` も解釈する）。"""

    tag = flat.get(TYPE_TAG_KEY)
    if isinstance(tag, str) and tag:
        return tag
    legacy = flat.get(LEGACY_CLASS_KEY)
    if isinstance(legacy, str):
        return _LEGACY_TAGS.get(legacy)
    return None


def color_picker_from_flat(flat: Any, *, path: str = "") -> ColorPicker:
    """`{selectionType, colorValue}` または色文字列から ColorPicker を作る。

    Raises
    ------
    ConfigReconstructionFailure
        どちらの形にも当てはまらない、または selectionType と colorValue が矛盾する場合。
    """

    if isinstance(flat, str) and flat.strip():
        return ColorPicker(selection_type="color", color_value=flat)
    if not isinstance(flat, Mapping) or "selectionType" not in flat:
        raise ConfigReconstructionFailure(
            f"色選択として解釈できません: got={flat!r}",
            path=path,
        )
    try:
        return ColorPicker(
            selection_type=flat["selectionType"],
            color_value=flat.get("colorValue"),
        )
    except ValueError as exc:
        raise ConfigReconstructionFailure(f"色選択が不正です: {exc}", path=path) from exc


def percentage_side_from_flat(flat: Any, *, path: str = "") -> PercentageSide:
    """`{typeTag: PercentageShortestSide|PercentageLongestSide, percent}` から PercentageSide を作る。"""

    if isinstance(flat, PercentageSide):
        return flat
    if not isinstance(flat, Mapping):
        raise ConfigReconstructionFailure(f"割合式として解釈できません: got={flat!r}", path=path)
    tag = type_tag_of(flat)
    if tag == PERCENT_SHORTEST_TAG:
        side = "shortest"
    elif tag == PERCENT_LONGEST_TAG:
        side = "longest"
    else:
        side = flat.get("side")
    try:
        return PercentageSide(percent=flat.get("percent"), side=side)
    except ValueError as exc:
        raise ConfigReconstructionFailure(f"割合式が不正です: {exc}", path=path) from exc


def is_percentage_bound(flat: Any) -> bool:
    if isinstance(flat, PercentageSide):
        return True
    return isinstance(flat, Mapping) and (
        type_tag_of(flat) in (PERCENT_SHORTEST_TAG, PERCENT_LONGEST_TAG) or "percent" in flat
    )


def range_from_bounds(lower: Any, upper: Any, *, path: str = "") -> Range | PercentageRange:
    """上下限の組から Range（数値）または PercentageRange（割合式）を作る。

    Raises
    ------
    ConfigReconstructionFailure
        数値と割合式が混在する、またはどちらでもない場合。
    """

    if is_number(lower) and is_number(upper):
        return Range(lower_value=float(lower), upper_value=float(upper))
    if is_percentage_bound(lower) and is_percentage_bound(upper):
        return PercentageRange(
            lower_side=percentage_side_from_flat(lower, path=join_path(path, "lower")),
            upper_side=percentage_side_from_flat(upper, path=join_path(path, "upper")),
        )
    raise ConfigReconstructionFailure(
        f"Range の上下限として解釈できません: lower={lower!r} upper={upper!r}",
        path=path,
    )


def _first_present(flat: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in flat:
            return flat[key]
    return None


def _point_from_flat(flat: Any, *, path: str) -> Point:
    if isinstance(flat, Point):
        return flat
    if isinstance(flat, Mapping) and is_number(flat.get("x")) and is_number(flat.get("y")):
        return Point(x=flat["x"], y=flat["y"])
    raise ConfigReconstructionFailure(f"座標として解釈できません: got={flat!r}", path=path)


def position_from_flat(flat: Mapping[str, Any], *, path: str = "") -> Position:
    point = _point_from_flat(flat, path=path)
    return Position(
        x=point.x,
        y=point.y,
        auto_scaled=bool(flat.get(AUTO_SCALED_KEY, False)),
        scaled_at=flat.get(SCALED_AT_KEY),
    )


def arc_path_from_flat(flat: Mapping[str, Any], *, path: str = "") -> ArcPath:
    center = _point_from_flat(flat.get("center"), path=join_path(path, "center"))
    radius = flat.get("radius")
    if not is_number(radius):
        raise ConfigReconstructionFailure(f"radius が数値ではありません: got={radius!r}", path=path)
    kwargs: dict[str, Any] = {}
    for flat_key, attr in (("startAngle", "start_angle"), ("endAngle", "end_angle")):
        if is_number(flat.get(flat_key)):
            kwargs[attr] = float(flat[flat_key])
    if is_number(flat.get("direction")):
        kwargs["direction"] = int(flat["direction"])
    return ArcPath(
        center=center,
        radius=radius,
        auto_scaled=bool(flat.get(AUTO_SCALED_KEY, False)),
        scaled_at=flat.get(SCALED_AT_KEY),
        **kwargs,
    )


def _reconstruct_tagged(flat: Mapping[str, Any], tag: str, *, path: str) -> Any:
    if tag == COLOR_SELECTION_TAG:
        return color_picker_from_flat(flat, path=path)
    if tag in (RANGE_TAG, PERCENTAGE_RANGE_TAG):
        lower = _first_present(flat, "lower", "lowerValue")
        upper = _first_present(flat, "upper", "upperValue")
        return range_from_bounds(lower, upper, path=path)
    if tag in (PERCENT_SHORTEST_TAG, PERCENT_LONGEST_TAG):
        return percentage_side_from_flat(flat, path=path)
    if tag == "Point2D":
        return _point_from_flat(flat, path=path)
    return _DROP


def _reconstruct(flat: Any, guard: DepthGuard, *, path: str) -> Any:
    if isinstance(flat, Mapping):
        tag = type_tag_of(flat)
        if tag is not None:
            rich = _reconstruct_tagged(flat, tag, path=path)
            if rich is not _DROP:
                return rich
        name = flat.get(NAME_KEY)
        if name == POSITION_TAG:
            return position_from_flat(flat, path=path)
        if name == ARC_PATH_TAG:
            return arc_path_from_flat(flat, path=path)
        if set(flat) == {"x", "y"} and is_number(flat["x"]) and is_number(flat["y"]):
            return Point(x=flat["x"], y=flat["y"])
        with guard.scope(flat, path=path):
            return {
                key: _reconstruct(value, guard, path=join_path(path, key))
                for key, value in flat.items()
                if key != CENTER_OVERRIDE_KEY
            }
    if isinstance(flat, list):
        with guard.scope(flat, path=path):
            return [_reconstruct(v, guard, path=join_path(path, i)) for i, v in enumerate(flat)]
    return flat


def reconstruct_value(flat: Any, *, path: str = "") -> Any:
    """flat 値を判別子に従って rich 値へ戻す。

    判別子（`typeTag` / 旧 `__className` / `name`）を持つ値だけを型付きに戻し、
    判別子の無い `{x, y}` は Point、その他の mapping/list は中身を再帰的に復元する。

    Raises
    ------
    ConfigReconstructionFailure
        判別子が示す型として値が不正な場合。
    MalformedConfigCycle
        入れ子が深さ上限を超えた場合。
    """

    return _reconstruct(flat, DepthGuard.from_runtime_config(), path=path)


def dumps(value: Any) -> str:
    """値を平坦化して JSON 文字列にする。

    平坦化の issue は WARNING でログに残る。issue 自体が必要な場合は `flatten_value()` を使う。
    """

    return json.dumps(flatten_value(value).value, ensure_ascii=False)


def loads(text: str) -> Any:
    """JSON 文字列を flat 値として読み込む（rich への復元はハイドレーションで行う）。"""

    return json.loads(text)


__all__ = [
    "FlattenResult",
    "arc_path_from_flat",
    "color_picker_from_flat",
    "dumps",
    "flatten_config",
    "flatten_effects",
    "flatten_value",
    "is_percentage_bound",
    "loads",
    "percentage_side_from_flat",
    "position_from_flat",
    "range_from_bounds",
    "reconstruct_value",
    "type_tag_of",
]
