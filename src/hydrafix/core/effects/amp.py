"""放射状の線を伸縮させるエフェクトの既定 config。"""

from __future__ import annotations

from typing import Any

from hydrafix.core.effect_registry import effect_config
from hydrafix.core.params.types import ColorPicker, PercentageRange, PercentageSide, Position, Range


@effect_config("amp")
def amp_config() -> dict[str, Any]:
    return {
        "invertLayers": False,
        "layerOpacity": 0.55,
        "underLayerOpacity": 0.5,
        "sparsityFactor": 4,
        "stroke": 1,
        "thickness": 6,
        "speed": 20,
        "length": 150,
        "lineStart": 350,
        "center": Position(x=960, y=540),
        "innerColor": ColorPicker(),
        "outerColor": ColorPicker(),
        "accentRange": {"bottom": {"lower": 6, "upper": 6}, "top": {"lower": 12, "upper": 12}},
        "blurRange": {"bottom": {"lower": 2, "upper": 2}, "top": {"lower": 4, "upper": 4}},
        "featherTimes": Range(lower_value=2, upper_value=4),
        "lineRange": PercentageRange(
            lower_side=PercentageSide(percent=0.1, side="shortest"),
            upper_side=PercentageSide(percent=0.4, side="shortest"),
        ),
    }
