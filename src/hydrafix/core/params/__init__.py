# どこで: `src/hydrafix/core/params/__init__.py`。
# 何を: 構造化パラメータ型の公開エイリアスをまとめる。
# なぜ: エンジン側から最小インポートで使えるようにするため。

from .types import (
    ArcPath,
    ColorPalette,
    ColorPicker,
    PercentageRange,
    PercentageSide,
    Point,
    Position,
    Range,
    RangeLike,
    SelectionType,
    is_number,
    is_range,
    is_structured,
)

__all__ = [
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
