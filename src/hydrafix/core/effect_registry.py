# どこで: `src/hydrafix/core/effect_registry.py`。
# 何を: registryKey から「既定インスタンス（rich config）」を引けるレジストリを提供する。
# なぜ: ハイドレーションがフィールド集合と型の正として使う骨格を、エフェクト種別ごとに取得するため。

from __future__ import annotations

import logging
from collections.abc import Callable, ItemsView, Mapping
from typing import Any

from .effect import EFFECT_TYPES

_logger = logging.getLogger(__name__)

DefaultConfigFactory = Callable[[], Mapping[str, Any]]


class EffectConfigRegistry:
    """registryKey と既定 config ファクトリを対応付けるレジストリ。

    Notes
    -----
    ファクトリは呼び出しごとに新しい既定インスタンスを返す。
    取得側は戻り値を自由に差し替えてよい（レジストリ側の状態は共有しない）。
    """

    def __init__(self) -> None:
        """空のレジストリを初期化する。"""
        self._items: dict[str, DefaultConfigFactory] = {}
        self._effect_types: dict[str, str] = {}

    def _register(
        self,
        key: str,
        factory: DefaultConfigFactory,
        *,
        overwrite: bool = True,
        effect_type: str = "primary",
    ) -> None:
        """既定 config ファクトリを登録する（内部用）。

        Notes
        -----
        登録は `@effect_config` デコレータ経由に統一する。
        """
        if not overwrite and key in self._items:
            raise ValueError(f"effect config '{key}' は既に登録されている")
        if effect_type not in EFFECT_TYPES:
            raise ValueError(f"未知の effect_type です: {effect_type!r}")
        self._items[key] = factory
        self._effect_types[key] = effect_type

    def get_default_config(self, key: str) -> dict[str, Any]:
        """registryKey に対応する新しい既定インスタンスを返す。

        Raises
        ------
        KeyError
            未登録の registryKey が指定された場合。
        TypeError
            ファクトリが mapping 以外を返した場合。
        """
        factory = self._items[key]
        config = factory()
        if not isinstance(config, Mapping):
            raise TypeError(
                f"effect config '{key}' のファクトリは mapping を返す必要がある: "
                f"got={type(config).__name__}"
            )
        return dict(config)

    def get_effect_type(self, key: str) -> str:
        """registryKey の既定 effect_type を返す。"""
        return self._effect_types.get(key, "primary")

    def __contains__(self, key: object) -> bool:
        """指定された key が登録済みかどうかを返す。"""
        return key in self._items

    def items(self) -> ItemsView[str, DefaultConfigFactory]:
        """登録済みエントリの (key, factory) ビューを返す。"""
        return self._items.items()


effect_config_registry = EffectConfigRegistry()
"""グローバルな既定 config レジストリインスタンス。"""


def effect_config(
    key: str,
    *,
    overwrite: bool = True,
    effect_type: str = "primary",
) -> Callable[[DefaultConfigFactory], DefaultConfigFactory]:
    """グローバルレジストリ用デコレータ。

    Examples
    --------
    @effect_config("hex")
    def hex_config():
        return {"sparsityFactor": 6, ...}
    """

    def decorator(factory: DefaultConfigFactory) -> DefaultConfigFactory:
        effect_config_registry._register(
            key,
            factory,
            overwrite=overwrite,
            effect_type=effect_type,
        )
        return factory

    return decorator


class RegistryDefaultSource:
    """EffectConfigRegistry を非同期の既定インスタンス取得元として見せるアダプタ。"""

    def __init__(self, registry: EffectConfigRegistry | None = None) -> None:
        self._registry = effect_config_registry if registry is None else registry

    async def get_default_config(self, key: str) -> dict[str, Any]:
        _logger.debug("既定インスタンスを取得します: key=%s", key)
        return self._registry.get_default_config(key)


__all__ = [
    "DefaultConfigFactory",
    "EffectConfigRegistry",
    "RegistryDefaultSource",
    "effect_config",
    "effect_config_registry",
]
