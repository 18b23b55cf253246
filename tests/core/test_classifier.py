import math

import pytest

from hydrafix.core.classifier import (
    FieldKind,
    classify,
    coordinates_of,
    has_positional_name,
    looks_like_canvas_center,
)
from hydrafix.core.dimensions import Dimensions
from hydrafix.core.params.types import ArcPath, Point, Position


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (Position(x=1, y=2), FieldKind.POSITION),
        ({"name": "position", "x": 1, "y": 2}, FieldKind.POSITION),
        (ArcPath(center=Point(x=10, y=10), radius=5), FieldKind.ARC_PATH),
        ({"name": "arc-path", "center": {"x": 1, "y": 2}, "radius": 3}, FieldKind.ARC_PATH),
        (Point(x=1, y=2), FieldKind.POINT),
        ({"x": 1, "y": 2}, FieldKind.POINT),
    ],
)
def test_shape_wins_regardless_of_name(value, expected):
    assert classify("anything", value) is expected


@pytest.mark.parametrize(
    "value",
    [
        {"x": "1", "y": 2},
        {"x": True, "y": 2},
        {"name": "arc-path", "center": "middle"},
        {"lower": 1, "upper": 2},
        42,
        "center",
        None,
    ],
)
def test_non_positions(value):
    assert classify("value", value) is FieldKind.NOT_A_POSITION


def test_name_fallback_picks_up_bare_pairs():
    assert classify("center", [10, 20]) is FieldKind.POINT
    assert classify("spawnLocation", (10, 20)) is FieldKind.POINT
    assert classify("size", [10, 20]) is FieldKind.NOT_A_POSITION


def test_name_fallback_ignores_fractional_pairs():
    assert classify("placementWeights", [0.3, 0.7]) is FieldKind.NOT_A_POSITION
    assert classify("center", [10.0, 20.0]) is FieldKind.POINT
    assert coordinates_of([0.5, 1]) is None


def test_name_fallback_accepts_unknown_discriminator():
    value = {"name": "pin", "x": 3, "y": 4}
    assert classify("placement", value) is FieldKind.POINT
    assert classify("pin", value) is FieldKind.NOT_A_POSITION


def test_name_fallback_requires_coordinates_inside_canvas():
    dims = Dimensions(width=1920, height=1080)
    assert classify("center", [5000, 20], dims) is FieldKind.NOT_A_POSITION
    assert classify("center", [1920, 1080], dims) is FieldKind.POINT


def test_has_positional_name_is_case_insensitive():
    assert has_positional_name("CenterPoint")
    assert has_positional_name("textPosition")
    assert not has_positional_name("radius")
    assert not has_positional_name(None)


def test_coordinates_of():
    assert coordinates_of(Position(x=1, y=2)) == (1.0, 2.0)
    assert coordinates_of(ArcPath(center=Point(x=5, y=6), radius=1)) == (5.0, 6.0)
    assert coordinates_of({"name": "arc-path", "center": {"x": 7, "y": 8}}) == (7.0, 8.0)
    assert coordinates_of([3, 4]) == (3.0, 4.0)
    assert coordinates_of("nope") is None


def test_center_of_standard_canvas_matches_without_context():
    assert looks_like_canvas_center(960, 540)
    assert looks_like_canvas_center(540, 960)
    assert looks_like_canvas_center(1920, 1080)
    assert not looks_like_canvas_center(100, 100)


def test_context_dimensions_are_checked_first():
    dims = Dimensions(width=2000, height=2000)
    # 代表キャンバスのどの中心からも外れているが、文脈の中心とは一致する。
    assert not looks_like_canvas_center(1000, 1000)
    assert looks_like_canvas_center(1000, 1000, dims)
    assert looks_like_canvas_center(1015, 990, dims)
    assert not looks_like_canvas_center(1100, 1000, dims)


def test_non_finite_coordinates_are_not_centers():
    assert not looks_like_canvas_center(math.nan, 540)
    assert not looks_like_canvas_center(960, math.inf)
