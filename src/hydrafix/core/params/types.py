# どこで: `src/hydrafix/core/params/types.py`。
# 何を: 構造化パラメータ型（Point/Position/ArcPath/Range/PercentageRange/ColorPicker）を定義する。
# なぜ: rich 形式（振る舞い付き）の値を不変な型として扱い、flat 形式との対応を判別子で固定するため。

from __future__ import annotations

import math
import random
from dataclasses import dataclass, replace
from enum import Enum
from numbers import Real
from typing import Any, Union

from hydrafix.core.dimensions import Dimensions

# flat 形式の判別子。
TYPE_TAG_KEY = "typeTag"
LEGACY_CLASS_KEY = "__className"
NAME_KEY = "name"

POSITION_TAG = "position"
ARC_PATH_TAG = "arc-path"
COLOR_SELECTION_TAG = "ColorSelection"
RANGE_TAG = "Range"
PERCENTAGE_RANGE_TAG = "PercentageRange"
PERCENT_SHORTEST_TAG = "PercentageShortestSide"
PERCENT_LONGEST_TAG = "PercentageLongestSide"

# 自動スケーリング/中心補正のマーカー（flat 形式のキー）。
AUTO_SCALED_KEY = "__autoScaled"
SCALED_AT_KEY = "__scaledAt"
CENTER_OVERRIDE_KEY = "__centerOverrideApplied"


def is_number(value: Any) -> bool:
    """bool を除く有限の実数なら True。"""

    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return math.isfinite(float(value))


@dataclass(frozen=True, slots=True)
class Point:
    """判別子を持たない素の 2D 座標。"""

    x: float
    y: float


@dataclass(frozen=True, slots=True)
class Position:
    """意味を持つ名前付き位置。"""

    x: float
    y: float
    auto_scaled: bool = False
    scaled_at: str | None = None

    def moved(self, x: float, y: float) -> "Position":
        return replace(self, x=x, y=y)


@dataclass(frozen=True, slots=True)
class ArcPath:
    """中心と半径で表す円弧パス。"""

    center: Point
    radius: float
    start_angle: float = 0.0
    end_angle: float = 360.0
    direction: int = 1
    auto_scaled: bool = False
    scaled_at: str | None = None

    def point_at(self, angle_deg: float | None = None) -> Point:
        """角度 angle_deg（省略時は start_angle）上の点を返す。"""

        angle = math.radians(self.start_angle if angle_deg is None else angle_deg)
        return Point(
            x=math.floor(self.center.x + self.radius * math.cos(angle)),
            y=math.floor(self.center.y + self.radius * math.sin(angle)),
        )


_SIDES = ("shortest", "longest")


@dataclass(frozen=True, slots=True)
class PercentageSide:
    """キャンバスの短辺/長辺に対する割合。"""

    percent: float
    side: str = "shortest"

    def __post_init__(self) -> None:
        if self.side not in _SIDES:
            raise ValueError(f"side は {_SIDES} のいずれかである必要がある: got={self.side!r}")
        if not is_number(self.percent):
            raise ValueError(f"percent は有限の数値である必要がある: got={self.percent!r}")

    @property
    def tag(self) -> str:
        return PERCENT_SHORTEST_TAG if self.side == "shortest" else PERCENT_LONGEST_TAG

    def resolve(self, canvas: Dimensions) -> float:
        base = canvas.shortest_side if self.side == "shortest" else canvas.longest_side
        return float(self.percent) * float(base)


@dataclass(frozen=True, slots=True)
class Range:
    """固定の数値上下限を持つレンジ。"""

    lower_value: float
    upper_value: float

    def lower(self) -> float:
        return _as_bound(self.lower_value, label="lower")

    def upper(self) -> float:
        return _as_bound(self.upper_value, label="upper")

    def evaluate(self, canvas: Dimensions | None = None) -> tuple[float, float]:
        """(lower, upper) を返す。固定レンジなので canvas は参照しない。"""

        return (self.lower(), self.upper())


@dataclass(frozen=True, slots=True)
class PercentageRange:
    """キャンバス寸法に対する割合で上下限を表すレンジ。"""

    lower_side: PercentageSide
    upper_side: PercentageSide

    def lower(self) -> PercentageSide:
        return self.lower_side

    def upper(self) -> PercentageSide:
        return self.upper_side

    def evaluate(self, canvas: Dimensions | None = None) -> tuple[float, float]:
        """canvas に対して (lower, upper) を解決して返す。

        Raises
        ------
        ValueError
            canvas が与えられていない場合。
        """

        if canvas is None:
            raise ValueError("PercentageRange の評価には canvas が必要")
        return (self.lower_side.resolve(canvas), self.upper_side.resolve(canvas))


RangeLike = Union[Range, PercentageRange]


def _as_bound(value: Any, *, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise TypeError(f"Range.{label} が数値ではありません: got={value!r}")
    f = float(value)
    if math.isnan(f):
        raise ValueError(f"Range.{label} が NaN です")
    return f


class SelectionType(str, Enum):
    """色の選び方。"""

    COLOR = "color"
    COLOR_BUCKET = "colorBucket"
    NEUTRAL_BUCKET = "neutralBucket"

    @classmethod
    def parse(cls, value: Any) -> "SelectionType":
        """表記揺れ（"color-bucket" など）を吸収して SelectionType を返す。

        Raises
        ------
        ValueError
            未知の表記の場合。
        """

        if isinstance(value, SelectionType):
            return value
        text = str(value).strip()
        key = text.replace("-", "").replace("_", "").lower()
        for member in cls:
            if member.value.lower() == key:
                return member
        raise ValueError(f"未知の selectionType です: {value!r}")


@dataclass(frozen=True, slots=True)
class ColorPalette:
    """バケット選択で使う色集合。"""

    color_bucket: tuple[str, ...] = ()
    neutrals: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ColorPicker:
    """色の選び方（固定色 / パレット相対）。

    bucket 系の selection_type では color_value を保持しない。
    """

    selection_type: SelectionType = SelectionType.COLOR_BUCKET
    color_value: str | None = None

    def __post_init__(self) -> None:
        selection = SelectionType.parse(self.selection_type)
        object.__setattr__(self, "selection_type", selection)
        if selection is SelectionType.COLOR:
            if not isinstance(self.color_value, str) or not self.color_value.strip():
                raise ValueError("selection_type=color には color_value が必要")
        else:
            object.__setattr__(self, "color_value", None)

    def get_color(
        self,
        palette: ColorPalette | None = None,
        *,
        rng: random.Random | None = None,
    ) -> str:
        """実際に使う色を返す。

        Raises
        ------
        ValueError
            bucket 系でパレットが空の場合。
        """

        if self.selection_type is SelectionType.COLOR:
            return str(self.color_value)
        palette = palette or ColorPalette()
        choices = (
            palette.color_bucket
            if self.selection_type is SelectionType.COLOR_BUCKET
            else palette.neutrals
        )
        if not choices:
            raise ValueError(f"パレットに {self.selection_type.value} の色がありません")
        chooser = rng if rng is not None else random
        return chooser.choice(list(choices))


STRUCTURED_TYPES = (Point, Position, ArcPath, Range, PercentageRange, PercentageSide, ColorPicker)


def is_structured(value: Any) -> bool:
    return isinstance(value, STRUCTURED_TYPES)


def is_range(value: Any) -> bool:
    return isinstance(value, (Range, PercentageRange))


__all__ = [
    "ARC_PATH_TAG",
    "AUTO_SCALED_KEY",
    "CENTER_OVERRIDE_KEY",
    "COLOR_SELECTION_TAG",
    "LEGACY_CLASS_KEY",
    "NAME_KEY",
    "PERCENTAGE_RANGE_TAG",
    "PERCENT_LONGEST_TAG",
    "PERCENT_SHORTEST_TAG",
    "POSITION_TAG",
    "RANGE_TAG",
    "SCALED_AT_KEY",
    "STRUCTURED_TYPES",
    "TYPE_TAG_KEY",
    "ArcPath",
    "ColorPalette",
    "ColorPicker",
    "PercentageRange",
    "PercentageSide",
    "Point",
    "Position",
    "Range",
    "RangeLike",
    "SelectionType",
    "is_number",
    "is_range",
    "is_structured",
]
