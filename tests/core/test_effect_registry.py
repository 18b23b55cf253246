import asyncio

import pytest

from hydrafix.core import effect_registry
from hydrafix.core.effect_registry import (
    EffectConfigRegistry,
    RegistryDefaultSource,
    effect_config,
    effect_config_registry,
)
from hydrafix.core.effects import BUILTIN_KEYS


def test_builtin_effects_are_registered():
    for key in BUILTIN_KEYS:
        assert key in effect_config_registry


def test_each_lookup_returns_a_fresh_instance():
    a = effect_config_registry.get_default_config("amp")
    b = effect_config_registry.get_default_config("amp")
    assert a == b
    assert a is not b
    assert a["accentRange"] is not b["accentRange"]


def test_unknown_key_raises_key_error():
    with pytest.raises(KeyError):
        EffectConfigRegistry().get_default_config("missing")


def test_register_without_overwrite_rejects_duplicates():
    registry = EffectConfigRegistry()
    registry._register("a", dict)
    with pytest.raises(ValueError):
        registry._register("a", dict, overwrite=False)


def test_register_rejects_unknown_effect_type():
    with pytest.raises(ValueError):
        EffectConfigRegistry()._register("a", dict, effect_type="tertiary")


def test_factory_must_return_mapping():
    registry = EffectConfigRegistry()
    registry._register("bad", lambda: [1, 2])
    with pytest.raises(TypeError):
        registry.get_default_config("bad")


def test_decorator_registers_into_global_registry(monkeypatch: pytest.MonkeyPatch):
    registry = EffectConfigRegistry()
    monkeypatch.setattr(effect_registry, "effect_config_registry", registry)

    @effect_config("glow", effect_type="finalImage")
    def glow_config():
        return {"strength": 2}

    assert glow_config() == {"strength": 2}
    assert registry.get_default_config("glow") == {"strength": 2}
    assert registry.get_effect_type("glow") == "finalImage"
    assert registry.get_effect_type("unknown") == "primary"
    assert [key for key, _ in registry.items()] == ["glow"]


def test_registry_source_is_awaitable():
    registry = EffectConfigRegistry()
    registry._register("a", lambda: {"speed": 1})
    source = RegistryDefaultSource(registry)
    assert asyncio.run(source.get_default_config("a")) == {"speed": 1}
    with pytest.raises(KeyError):
        asyncio.run(source.get_default_config("b"))
