# どこで: `src/hydrafix/core/scaling.py`。
# 何を: キャンバス寸法の変更に合わせて、エフェクトツリー内の位置フィールドを再帰的に再スケールする。
# なぜ: 解像度/向きの変更で、既存エフェクトの座標と円弧半径を新しいキャンバスへ移すため。

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

from .classifier import FieldKind, classify
from .dimensions import Dimensions, as_dimensions, round_half_up
from .effect import Effect
from .errors import HydrafixError, Issue, MalformedConfigCycle, join_path
from .params.types import (
    AUTO_SCALED_KEY,
    SCALED_AT_KEY,
    ArcPath,
    Point,
    Position,
    is_number,
)
from .runtime_config import runtime_config
from .traversal import DepthGuard

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ScaleResult:
    """`scale_tree()` の結果。

    `scaled` が False の場合、`effects` は入力と同じオブジェクトである。
    """

    effects: Sequence[Effect]
    scaled: bool
    positions_found: int = 0
    positions_scaled: int = 0
    issues: tuple[Issue, ...] = ()


@dataclass(frozen=True, slots=True)
class ConfigScaleResult:
    """`scale_config()` の結果。"""

    config: Mapping[str, Any]
    scaled: bool
    positions_found: int = 0
    positions_scaled: int = 0
    issues: tuple[Issue, ...] = ()


@dataclass(slots=True)
class _Scaler:
    old: Dimensions
    new: Dimensions
    stamp: str
    min_radius: float
    guard: DepthGuard
    found: int = 0
    rewritten: int = 0
    _sx: float = field(init=False)
    _sy: float = field(init=False)

    def __post_init__(self) -> None:
        self._sx = self.new.width / self.old.width
        self._sy = self.new.height / self.old.height

    @property
    def avg_scale(self) -> float:
        return (self._sx + self._sy) / 2.0

    def scale_x(self, x: float) -> int:
        return min(max(round_half_up(float(x) * self._sx), 0), self.new.width - 1)

    def scale_y(self, y: float) -> int:
        return min(max(round_half_up(float(y) * self._sy), 0), self.new.height - 1)

    def scale_radius(self, radius: float) -> float:
        max_radius = min(self.new.width, self.new.height) / 2
        r = float(round_half_up(float(radius) * self.avg_scale))
        # 短辺が 20px 未満のキャンバスでは上限が優先される。
        return min(max(r, float(self.min_radius)), max_radius)

    def _mark(self, out: dict[str, Any]) -> dict[str, Any]:
        out[AUTO_SCALED_KEY] = True
        out[SCALED_AT_KEY] = self.stamp
        return out

    def _scale_point_like(self, value: Any) -> Any:
        """flat な `{x, y}` または `[x, y]` を再スケールした新しい値を返す。"""

        if isinstance(value, Mapping):
            return {**value, "x": self.scale_x(value["x"]), "y": self.scale_y(value["y"])}
        x, y = value[0], value[1]
        pair = [self.scale_x(x), self.scale_y(y)]
        return tuple(pair) if isinstance(value, tuple) else pair

    def _scale_position(self, kind: FieldKind, value: Any) -> Any:
        self.found += 1
        if kind is FieldKind.POINT:
            if isinstance(value, Point):
                return Point(x=self.scale_x(value.x), y=self.scale_y(value.y))
            return self._scale_point_like(value)

        self.rewritten += 1
        if kind is FieldKind.POSITION:
            if isinstance(value, Position):
                return replace(
                    value,
                    x=self.scale_x(value.x),
                    y=self.scale_y(value.y),
                    auto_scaled=True,
                    scaled_at=self.stamp,
                )
            return self._mark(dict(self._scale_point_like(value)))

        if isinstance(value, ArcPath):
            return replace(
                value,
                center=Point(x=self.scale_x(value.center.x), y=self.scale_y(value.center.y)),
                radius=self.scale_radius(value.radius),
                auto_scaled=True,
                scaled_at=self.stamp,
            )
        out = dict(value)
        center = out["center"]
        if isinstance(center, Point):
            out["center"] = Point(x=self.scale_x(center.x), y=self.scale_y(center.y))
        else:
            out["center"] = self._scale_point_like(center)
        if is_number(out.get("radius")):
            out["radius"] = self.scale_radius(out["radius"])
        return self._mark(out)

    def scale_value(self, name: Any, value: Any, *, path: str) -> Any:
        kind = classify(name, value, self.old)
        if kind.is_position_like:
            _logger.debug("位置フィールドを再スケールします: path=%s kind=%s", path, kind.value)
            return self._scale_position(kind, value)

        if isinstance(value, Mapping):
            return self.scale_mapping(value, path=path)
        if isinstance(value, (list, tuple)):
            with self.guard.scope(value, path=path):
                items = [
                    self.scale_value(name, item, path=join_path(path, i))
                    for i, item in enumerate(value)
                ]
            return tuple(items) if isinstance(value, tuple) else items
        return value

    def scale_mapping(self, config: Mapping[str, Any], *, path: str) -> dict[str, Any]:
        with self.guard.scope(config, path=path):
            return {
                key: self.scale_value(key, val, path=join_path(path, key))
                for key, val in config.items()
            }

    def scale_effect(self, effect: Effect, *, path: str) -> Effect:
        config = self.scale_mapping(effect.config, path=join_path(path, "config"))
        return replace(
            effect,
            config=config,
            secondary_effects=tuple(
                self.scale_effect(child, path=join_path(join_path(path, "secondaryEffects"), i))
                for i, child in enumerate(effect.secondary_effects)
            ),
            keyframe_effects=tuple(
                self.scale_effect(child, path=join_path(join_path(path, "keyframeEffects"), i))
                for i, child in enumerate(effect.keyframe_effects)
            ),
        )


def _prepare(
    old: Any,
    new: Any,
    now: datetime | None,
) -> tuple[_Scaler | None, list[Issue]]:
    """スケーラを作る。不要（許容幅内）または不正な寸法なら None を返す。"""

    try:
        old_dims = as_dimensions(old, label="old")
        new_dims = as_dimensions(new, label="new")
    except HydrafixError as exc:
        _logger.warning("キャンバス寸法が不正なため再スケールをスキップします: %s", exc)
        return None, [Issue.from_error(exc)]

    cfg = runtime_config()
    tol = float(cfg.scaling_tolerance)
    sx = new_dims.width / old_dims.width
    sy = new_dims.height / old_dims.height
    if abs(sx - 1.0) <= tol and abs(sy - 1.0) <= tol:
        _logger.debug("スケール差が許容幅内のため再スケールしません: sx=%s sy=%s", sx, sy)
        return None, []

    stamp = (now if now is not None else datetime.now(timezone.utc)).isoformat()
    scaler = _Scaler(
        old=old_dims,
        new=new_dims,
        stamp=stamp,
        min_radius=float(cfg.min_arc_radius),
        guard=DepthGuard.from_runtime_config(),
    )
    return scaler, []


def scale_tree(
    effects: Sequence[Effect],
    old: Any,
    new: Any,
    *,
    now: datetime | None = None,
) -> ScaleResult:
    """エフェクトツリー全体を old -> new のキャンバスへ再スケールする。

    Parameters
    ----------
    effects : Sequence[Effect]
        ルートエフェクト列。secondary/keyframe の子も再帰的に処理する。
    old, new : Any
        旧/新キャンバス寸法（`Dimensions` / `{"width","height"}` / `(w, h)`）。
    now : datetime or None, optional
        自動スケールマーカーに記録する時刻。省略時は現在時刻（UTC）。

    Returns
    -------
    ScaleResult
        新しいエフェクト列。寸法が不正、許容幅（既定 5%）内、または循環を含む場合は
        入力そのものを返し、不正/循環は issues に記録する。

    Notes
    -----
    座標は `floor(v * s + 0.5)` を `[0, new - 1]` に丸め込む。
    円弧半径は平均スケールで拡縮し、`[min_arc_radius, min(w, h) / 2]` に収める。
    """

    scaler, issues = _prepare(old, new, now)
    if scaler is None:
        return ScaleResult(effects=effects, scaled=False, issues=tuple(issues))

    try:
        out = [
            scaler.scale_effect(effect, path=join_path("effects", i))
            for i, effect in enumerate(effects)
        ]
    except MalformedConfigCycle as exc:
        _logger.warning("設定ツリーが不正なため再スケールをスキップします: path=%s", exc.path)
        return ScaleResult(effects=effects, scaled=False, issues=(Issue.from_error(exc),))

    _logger.info(
        "エフェクトツリーを再スケールしました: %sx%s -> %sx%s positions=%s",
        scaler.old.width,
        scaler.old.height,
        scaler.new.width,
        scaler.new.height,
        scaler.found,
    )
    return ScaleResult(
        effects=out,
        scaled=True,
        positions_found=scaler.found,
        positions_scaled=scaler.rewritten,
    )


def scale_config(
    config: Mapping[str, Any],
    old: Any,
    new: Any,
    *,
    now: datetime | None = None,
) -> ConfigScaleResult:
    """config 1 つを再スケールする（規則は `scale_tree()` と同じ）。"""

    scaler, issues = _prepare(old, new, now)
    if scaler is None:
        return ConfigScaleResult(config=config, scaled=False, issues=tuple(issues))
    try:
        out = scaler.scale_mapping(config, path="")
    except MalformedConfigCycle as exc:
        _logger.warning("設定ツリーが不正なため再スケールをスキップします: path=%s", exc.path)
        return ConfigScaleResult(config=config, scaled=False, issues=(Issue.from_error(exc),))
    return ConfigScaleResult(
        config=out,
        scaled=True,
        positions_found=scaler.found,
        positions_scaled=scaler.rewritten,
    )


__all__ = ["ConfigScaleResult", "ScaleResult", "scale_config", "scale_tree"]
