"""中心の周りに円弧状の「目」を並べるエフェクトの既定 config。"""

from __future__ import annotations

from typing import Any

from hydrafix.core.effect_registry import effect_config
from hydrafix.core.params.types import (
    ArcPath,
    ColorPicker,
    Point,
    Position,
    Range,
    SelectionType,
)


@effect_config("red-eye")
def red_eye_config() -> dict[str, Any]:
    return {
        "invertLayers": False,
        "layerOpacity": 0.55,
        "underLayerOpacity": 0.5,
        "center": Position(x=960, y=540),
        "eyePath": ArcPath(center=Point(x=960, y=540), radius=300),
        "innerColor": ColorPicker(selection_type=SelectionType.NEUTRAL_BUCKET),
        "outerColor": ColorPicker(selection_type=SelectionType.COLOR_BUCKET),
        "stroke": 2,
        "thickness": 12,
        "sparsityFactor": [3, 4, 5, 6],
        "innerRadius": 200,
        "outerRadius": 500,
        "possibleJumpRangeInPixels": Range(lower_value=10, upper_value=30),
        "lineLength": Range(lower_value=150, upper_value=350),
        "numberOfLoops": Range(lower_value=1, upper_value=3),
        "accentRange": {"bottom": {"lower": 1, "upper": 1}, "top": {"lower": 3, "upper": 6}},
        "blurRange": {"bottom": {"lower": 1, "upper": 1}, "top": {"lower": 3, "upper": 6}},
        "featherTimes": 0,
    }
