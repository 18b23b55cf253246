# どこで: `src/hydrafix/core/effects/__init__.py`。
# 何を: 組み込みエフェクトの既定 config を import してレジストリへ登録する。
# なぜ: `hydrafix.core.effects` の import だけで組み込み種別を引けるようにするため。

from hydrafix.core.effects import amp as _effect_amp  # noqa: F401
from hydrafix.core.effects import fuzz_flare as _effect_fuzz_flare  # noqa: F401
from hydrafix.core.effects import hex as _effect_hex  # noqa: F401
from hydrafix.core.effects import red_eye as _effect_red_eye  # noqa: F401

BUILTIN_KEYS = ("amp", "fuzz-flare", "hex", "red-eye")

__all__ = ["BUILTIN_KEYS"]
