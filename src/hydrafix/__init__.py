# どこで: `src/hydrafix/__init__.py`。
# 何を: ルート `hydrafix` パッケージを定義し、主要な公開 API をまとめる。
# なぜ: import 起点を `hydrafix` に統一するため。

from __future__ import annotations

from hydrafix.core import effects as _builtin_effects  # noqa: F401
from hydrafix.core.classifier import FieldKind, classify, looks_like_canvas_center
from hydrafix.core.codec import flatten_config, flatten_effects, reconstruct_value
from hydrafix.core.dimensions import Dimensions
from hydrafix.core.effect import Effect
from hydrafix.core.effect_registry import (
    RegistryDefaultSource,
    effect_config,
    effect_config_registry,
)
from hydrafix.core.errors import Issue
from hydrafix.core.hydration import hydrate, hydrate_effects
from hydrafix.core.resolution import resolve_dimensions, resolve_resolution
from hydrafix.core.runtime_config import runtime_config, set_config_path
from hydrafix.core.scaling import scale_tree

__all__ = [
    "Dimensions",
    "Effect",
    "FieldKind",
    "Issue",
    "RegistryDefaultSource",
    "classify",
    "effect_config",
    "effect_config_registry",
    "flatten_config",
    "flatten_effects",
    "hydrate",
    "hydrate_effects",
    "looks_like_canvas_center",
    "reconstruct_value",
    "resolve_dimensions",
    "resolve_resolution",
    "runtime_config",
    "scale_tree",
    "set_config_path",
]
