# どこで: `src/hydrafix/core/dimensions.py`。
# 何を: 正規化済みキャンバス寸法 Dimensions と、その検証/変換ヘルパを提供する。
# なぜ: 解像度キーと向きから常に導出される「実ピクセル寸法」を 1 つの型で扱うため。

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from numbers import Real
from typing import Any

from .errors import InvalidDimensions


@dataclass(frozen=True, slots=True)
class Dimensions:
    """正規化済みのキャンバス寸法（正の整数ピクセル）。"""

    width: int
    height: int

    @property
    def shortest_side(self) -> int:
        return min(self.width, self.height)

    @property
    def longest_side(self) -> int:
        return max(self.width, self.height)

    @property
    def is_portrait(self) -> bool:
        return self.height > self.width

    def center(self) -> tuple[int, int]:
        """キャンバス中心（半整数は切り上げ）を返す。"""

        return (round_half_up(self.width / 2), round_half_up(self.height / 2))

    def swapped(self) -> "Dimensions":
        return Dimensions(width=self.height, height=self.width)

    def as_dict(self) -> dict[str, int]:
        return {"width": self.width, "height": self.height}


def round_half_up(value: float) -> int:
    """`floor(v + 0.5)` で丸める（.5 は常に正方向）。"""

    return int(math.floor(value + 0.5))


def _as_side(value: Any, *, label: str, path: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidDimensions(f"{label} は数値である必要があります: got={value!r}", path=path)
    f = float(value)
    if math.isnan(f) or math.isinf(f):
        raise InvalidDimensions(f"{label} は有限値である必要があります: got={value!r}", path=path)
    if f <= 0:
        raise InvalidDimensions(f"{label} は正の値である必要があります: got={value!r}", path=path)
    if not f.is_integer():
        raise InvalidDimensions(f"{label} は整数ピクセルである必要があります: got={value!r}", path=path)
    return int(f)


def validate_dimensions(width: Any, height: Any, *, label: str = "") -> Dimensions:
    """幅/高さを検証して Dimensions を返す。

    Raises
    ------
    InvalidDimensions
        どちらかが数値でない、NaN/inf、0 以下、非整数のいずれかの場合。
    """

    return Dimensions(
        width=_as_side(width, label="width", path=label),
        height=_as_side(height, label="height", path=label),
    )


def as_dimensions(value: Any, *, label: str = "") -> Dimensions:
    """Dimensions / (w, h) / {"width","height"} / {"w","h"} を Dimensions に変換する。"""

    if isinstance(value, Dimensions):
        return validate_dimensions(value.width, value.height, label=label)
    if isinstance(value, Mapping):
        if "width" in value and "height" in value:
            return validate_dimensions(value["width"], value["height"], label=label)
        if "w" in value and "h" in value:
            return validate_dimensions(value["w"], value["h"], label=label)
        raise InvalidDimensions(f"width/height を持たない mapping です: got={value!r}", path=label)
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)) and len(value) == 2:
        return validate_dimensions(value[0], value[1], label=label)
    raise InvalidDimensions(f"寸法として解釈できません: got={value!r}", path=label)


__all__ = ["Dimensions", "as_dimensions", "round_half_up", "validate_dimensions"]
