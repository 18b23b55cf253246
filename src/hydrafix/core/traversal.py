# どこで: `src/hydrafix/core/traversal.py`。
# 何を: 再帰走査の深さ上限と循環検出を行うガードを提供する。
# なぜ: 壊れた入力（自己参照 dict など）で再帰が暴走しないようにするため。

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from .errors import MalformedConfigCycle
from .runtime_config import runtime_config


@dataclass(slots=True)
class DepthGuard:
    """走査 1 回分の深さ/循環ガード。

    `enter()` はコンテナ（dict/list）に入るときだけ呼ぶ。
    同じコンテナが現在の経路上に再登場した場合も上限超過と同じ扱いにする。
    """

    max_depth: int
    _active: set[int] = field(default_factory=set)
    _depth: int = 0

    @classmethod
    def from_runtime_config(cls) -> "DepthGuard":
        return cls(max_depth=int(runtime_config().max_depth))

    def enter(self, container: object, *, path: str) -> None:
        self._depth += 1
        if self._depth > self.max_depth:
            self._depth -= 1
            raise MalformedConfigCycle(
                f"走査の深さ上限を超えました: max_depth={self.max_depth}",
                path=path,
            )
        ident = id(container)
        if ident in self._active:
            self._depth -= 1
            raise MalformedConfigCycle("循環参照を検出しました", path=path)
        self._active.add(ident)

    def leave(self, container: object) -> None:
        self._active.discard(id(container))
        self._depth -= 1

    @contextmanager
    def scope(self, container: object, *, path: str) -> Iterator[None]:
        self.enter(container, path=path)
        try:
            yield
        finally:
            self.leave(container)

    @property
    def depth(self) -> int:
        return self._depth


__all__ = ["DepthGuard"]
