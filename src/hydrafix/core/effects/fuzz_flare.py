"""中心から光線と輪を放つフレア系エフェクトの既定 config。"""

from __future__ import annotations

from typing import Any

from hydrafix.core.effect_registry import effect_config
from hydrafix.core.params.types import (
    ColorPicker,
    PercentageRange,
    PercentageSide,
    Position,
    Range,
    SelectionType,
)


@effect_config("fuzz-flare")
def fuzz_flare_config() -> dict[str, Any]:
    """1920x1080 の中心に置いた既定インスタンスを返す。"""

    return {
        "invertLayers": True,
        "layerOpacity": 0.7,
        "underLayerOpacity": 0.5,
        "center": Position(x=960, y=540),
        "innerColor": ColorPicker(selection_type=SelectionType.COLOR_BUCKET),
        "outerColor": ColorPicker(selection_type=SelectionType.NEUTRAL_BUCKET),
        "possibleSidesMin": 6,
        "possibleSidesMax": 12,
        "numberOfFlareRings": Range(lower_value=25, upper_value=25),
        "flareRingsSizeRange": PercentageRange(
            lower_side=PercentageSide(percent=0.05, side="shortest"),
            upper_side=PercentageSide(percent=1.0, side="longest"),
        ),
        "flareRingStroke": Range(lower_value=1, upper_value=1),
        "flareRingThickness": Range(lower_value=1, upper_value=3),
        "numberOfFlareRays": Range(lower_value=50, upper_value=50),
        "flareRaysSizeRange": PercentageRange(
            lower_side=PercentageSide(percent=0.7, side="longest"),
            upper_side=PercentageSide(percent=1.0, side="longest"),
        ),
        "flareRayStroke": Range(lower_value=1, upper_value=1),
        "flareRayThickness": Range(lower_value=1, upper_value=3),
        "flareOffset": PercentageRange(
            lower_side=PercentageSide(percent=0.01, side="shortest"),
            upper_side=PercentageSide(percent=0.06, side="shortest"),
        ),
        "blurRange": {"bottom": 1, "top": 3},
        "featherTimes": 2,
    }
