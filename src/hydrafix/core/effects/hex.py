"""六角形の格子を回転させながら描くエフェクトの既定 config。"""

from __future__ import annotations

from typing import Any

from hydrafix.core.effect_registry import effect_config
from hydrafix.core.params.types import ColorPicker, Position, Range, SelectionType


@effect_config("hex")
def hex_config() -> dict[str, Any]:
    return {
        "invertLayers": False,
        "layerOpacity": 1.0,
        "underLayerOpacity": 0.5,
        "sparsityFactor": [12, 15, 18, 20, 24, 30, 36, 40, 45, 60],
        "gapFactor": Range(lower_value=3, upper_value=6),
        "radiusFactor": Range(lower_value=1, upper_value=3),
        "accentRange": {"bottom": {"lower": 2, "upper": 4}, "top": {"lower": 6, "upper": 8}},
        "blurRange": {"bottom": {"lower": 2, "upper": 4}, "top": {"lower": 8, "upper": 12}},
        "featherTimes": 2,
        "stroke": 1,
        "thickness": 2,
        "scaleFactor": 0.5,
        "numberOfHex": 12,
        "strategy": ["static", "angle", "rotate"],
        "overlayStrategy": "flat",
        "center": Position(x=960, y=540),
        "innerColor": ColorPicker(selection_type=SelectionType.COLOR_BUCKET),
        "outerColor": ColorPicker(selection_type=SelectionType.COLOR, color_value="#000000"),
    }
