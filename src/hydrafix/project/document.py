# どこで: `src/hydrafix/project/document.py`。
# 何を: プロジェクト文書 ProjectDocument（解像度キー + 向き + エフェクトツリー）を定義する。
# なぜ: 寸法を第 3 の真実として保存せず、常にキーと向きから導出するため。

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Sequence

from hydrafix.core.dimensions import Dimensions
from hydrafix.core.effect import Effect
from hydrafix.core.resolution import default_resolution_key, resolve_dimensions
from hydrafix.core.runtime_config import runtime_config


@dataclass(frozen=True, slots=True)
class ProjectDocument:
    """エフェクトツリーと、その描画先キャンバスの記述子。

    Notes
    -----
    永続化される真実は `resolution`（解像度キー）と `is_horizontal` だけで、
    実寸法は `dimensions()` で都度導出する。
    """

    name: str = "untitled"
    resolution: int = 1920
    is_horizontal: bool = True
    effects: tuple[Effect, ...] = ()
    extras: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "effects", tuple(self.effects))

    @classmethod
    def empty(cls, name: str = "untitled") -> "ProjectDocument":
        """runtime config の既定解像度で空のプロジェクトを作る。"""

        cfg = runtime_config()
        return cls(
            name=name,
            resolution=default_resolution_key(),
            is_horizontal=bool(cfg.default_is_horizontal),
        )

    def dimensions(self) -> Dimensions:
        return resolve_dimensions(self.resolution, self.is_horizontal)

    def with_effects(self, effects: Sequence[Effect]) -> "ProjectDocument":
        return replace(self, effects=tuple(effects))

    def find_effect(self, effect_id: str) -> Effect | None:
        """ツリー全体から effect_id のエフェクトを探す。"""

        for root in self.effects:
            for effect in root.iter_tree():
                if effect.effect_id == effect_id:
                    return effect
        return None


__all__ = ["ProjectDocument"]
