# どこで: `src/hydrafix/core/effect.py`。
# 何を: エフェクトツリーのノード Effect と、保存形式（camelCase の flat mapping）との相互変換を提供する。
# なぜ: スケーリング/ハイドレーション/平坦化が同じ不変ノード型の上で新しいツリーを組み立てられるようにするため。

from __future__ import annotations

import uuid
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

EFFECT_TYPES = ("primary", "secondary", "keyframe", "finalImage", "specialty")


def new_effect_id() -> str:
    """一意なエフェクト ID を返す（再利用しない）。"""

    return f"effect-{uuid.uuid4().hex}"


@dataclass(frozen=True, slots=True)
class Effect:
    """エフェクトツリーの 1 ノード。

    Notes
    -----
    `config` は「パラメータ名 -> 値」の mapping。rich/flat どちらの値も載り得る。
    変換は常に新しい Effect を返し、既存ノードを書き換えない。
    """

    effect_id: str
    name: str
    registry_key: str
    effect_type: str = "primary"
    config: Mapping[str, Any] = field(default_factory=dict)
    visible: bool = True
    percent_chance: float = 100.0
    secondary_effects: tuple["Effect", ...] = ()
    keyframe_effects: tuple["Effect", ...] = ()
    frame: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.effect_id, str) or not self.effect_id:
            raise ValueError(f"effect_id は空でない文字列である必要がある: got={self.effect_id!r}")
        if self.effect_type not in EFFECT_TYPES:
            raise ValueError(f"未知の effect_type です: {self.effect_type!r}")
        chance = float(self.percent_chance)
        if not 0.0 <= chance <= 100.0:
            raise ValueError(f"percent_chance は 0..100 である必要がある: got={self.percent_chance!r}")
        object.__setattr__(self, "percent_chance", chance)
        object.__setattr__(self, "secondary_effects", tuple(self.secondary_effects))
        object.__setattr__(self, "keyframe_effects", tuple(self.keyframe_effects))

    @classmethod
    def create(
        cls,
        registry_key: str,
        config: Mapping[str, Any] | None = None,
        *,
        name: str | None = None,
        effect_type: str = "primary",
        **kwargs: Any,
    ) -> "Effect":
        """新しい ID を割り当てた Effect を作る。"""

        return cls(
            effect_id=new_effect_id(),
            name=registry_key if name is None else name,
            registry_key=registry_key,
            effect_type=effect_type,
            config=dict(config or {}),
            **kwargs,
        )

    def clone(self) -> "Effect":
        """サブツリー全体に新しい ID を振り直した複製を返す。"""

        return replace(
            self,
            effect_id=new_effect_id(),
            config=dict(self.config),
            secondary_effects=tuple(e.clone() for e in self.secondary_effects),
            keyframe_effects=tuple(e.clone() for e in self.keyframe_effects),
        )

    def with_config(self, config: Mapping[str, Any]) -> "Effect":
        return replace(self, config=config)

    def with_children(
        self,
        *,
        secondary_effects: Sequence["Effect"] | None = None,
        keyframe_effects: Sequence["Effect"] | None = None,
    ) -> "Effect":
        return replace(
            self,
            secondary_effects=(
                self.secondary_effects if secondary_effects is None else tuple(secondary_effects)
            ),
            keyframe_effects=(
                self.keyframe_effects if keyframe_effects is None else tuple(keyframe_effects)
            ),
        )

    def iter_tree(self) -> Iterator["Effect"]:
        """自身と子孫を深さ優先（secondary -> keyframe の順）で列挙する。"""

        yield self
        for child in self.secondary_effects:
            yield from child.iter_tree()
        for child in self.keyframe_effects:
            yield from child.iter_tree()


def _children_of(obj: Mapping[str, Any]) -> tuple[list[Any], list[Any]]:
    secondary = obj.get("secondaryEffects")
    keyframe = obj.get("keyframeEffects")
    attached = obj.get("attachedEffects")
    if isinstance(attached, Mapping):
        # 旧形式: attachedEffects.secondary / attachedEffects.keyFrame
        if secondary is None:
            secondary = attached.get("secondary")
        if keyframe is None:
            keyframe = attached.get("keyFrame", attached.get("keyframe"))
    return list(secondary or []), list(keyframe or [])


def effect_from_flat(
    obj: Mapping[str, Any],
    config: Mapping[str, Any] | None = None,
    *,
    effect_type: str | None = None,
) -> Effect:
    """保存形式の mapping から Effect を作る（子は flat config のまま）。

    Parameters
    ----------
    obj : Mapping[str, Any]
        `id`, `name`, `registryKey` (旧: `className`), `type`, `config`,
        `visible`, `percentChance`, `secondaryEffects`, `keyframeEffects`, `frame`。
    config : Mapping[str, Any] or None, optional
        指定時は obj["config"] の代わりに使う。
    effect_type : str or None, optional
        obj に `type` が無い場合の種別。

    Raises
    ------
    ValueError
        registryKey が無い、または種別/確率が不正な場合。
    """

    if not isinstance(obj, Mapping):
        raise ValueError(f"エフェクトは mapping である必要がある: got={type(obj).__name__}")
    registry_key = obj.get("registryKey") or obj.get("className")
    if not isinstance(registry_key, str) or not registry_key:
        raise ValueError("registryKey がありません")

    raw_config = obj.get("config") if config is None else config
    effect_id = obj.get("id")
    secondary, keyframe = _children_of(obj)
    frame = obj.get("frame")
    return Effect(
        effect_id=str(effect_id) if effect_id else new_effect_id(),
        name=str(obj.get("name") or registry_key),
        registry_key=registry_key,
        effect_type=str(obj.get("type") or effect_type or "primary"),
        config=dict(raw_config) if isinstance(raw_config, Mapping) else {},
        visible=bool(obj.get("visible", True)),
        percent_chance=float(obj.get("percentChance", 100.0)),
        secondary_effects=tuple(effect_from_flat(c, effect_type="secondary") for c in secondary),
        keyframe_effects=tuple(effect_from_flat(c, effect_type="keyframe") for c in keyframe),
        frame=None if frame is None else int(frame),
    )


def effect_to_flat(
    effect: Effect,
    config_flat: Mapping[str, Any],
    *,
    secondary: Sequence[Mapping[str, Any]] = (),
    keyframe: Sequence[Mapping[str, Any]] = (),
) -> dict[str, Any]:
    """Effect を保存形式の mapping にする。

    config と子エフェクトは平坦化済みのものを渡す。
    """

    out: dict[str, Any] = {
        "id": effect.effect_id,
        "name": effect.name,
        "registryKey": effect.registry_key,
        "type": effect.effect_type,
        "config": dict(config_flat),
        "visible": bool(effect.visible),
        "percentChance": float(effect.percent_chance),
        "secondaryEffects": [dict(c) for c in secondary],
        "keyframeEffects": [dict(c) for c in keyframe],
    }
    if effect.frame is not None:
        out["frame"] = int(effect.frame)
    return out


__all__ = ["EFFECT_TYPES", "Effect", "effect_from_flat", "effect_to_flat", "new_effect_id"]
