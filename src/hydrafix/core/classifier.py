# どこで: `src/hydrafix/core/classifier.py`。
# 何を: フィールド名と値から「キャンバス上の 2D 位置か」を判定する純粋関数群。
# なぜ: スケーリング/中心補正が、任意形状の設定ツリーから位置フィールドを見つけられるようにするため。

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from enum import Enum
from functools import lru_cache
from typing import Any

import numpy as np

from .dimensions import Dimensions
from .params.types import (
    ARC_PATH_TAG,
    NAME_KEY,
    POSITION_TAG,
    ArcPath,
    Point,
    Position,
    is_number,
)
from .runtime_config import runtime_config

_logger = logging.getLogger(__name__)

POSITIONAL_NAME_HINTS = ("center", "position", "location", "placement")

# 既定値がどのキャンバス向けに作られたか分からないときに照合する代表サイズ。
STANDARD_CANVASES: tuple[tuple[int, int], ...] = (
    (1080, 1920),
    (1920, 1080),
    (720, 720),
    (1080, 1080),
    (800, 600),
    (1280, 720),
    (2560, 1440),
    (3840, 2160),
    (640, 480),
    (320, 240),
)


class FieldKind(str, Enum):
    """位置フィールドの種別。"""

    POINT = "point"
    POSITION = "position"
    ARC_PATH = "arc-path"
    NOT_A_POSITION = "none"

    @property
    def is_position_like(self) -> bool:
        return self is not FieldKind.NOT_A_POSITION


def has_positional_name(name: Any) -> bool:
    """フィールド名が位置を示す語（center/position/location/placement）を含むなら True。"""

    if name is None:
        return False
    lowered = str(name).lower()
    return any(hint in lowered for hint in POSITIONAL_NAME_HINTS)


def _has_xy(value: Mapping[str, Any]) -> bool:
    return is_number(value.get("x")) and is_number(value.get("y"))


def _shape_kind(value: Any) -> FieldKind:
    if isinstance(value, Position):
        return FieldKind.POSITION
    if isinstance(value, ArcPath):
        return FieldKind.ARC_PATH
    if isinstance(value, Point):
        return FieldKind.POINT
    if not isinstance(value, Mapping):
        return FieldKind.NOT_A_POSITION

    tag = value.get(NAME_KEY)
    if tag == POSITION_TAG and _has_xy(value):
        return FieldKind.POSITION
    if tag == ARC_PATH_TAG:
        center = value.get("center")
        if isinstance(center, Mapping) and _has_xy(center):
            return FieldKind.ARC_PATH
        if isinstance(center, Point):
            return FieldKind.ARC_PATH
        return FieldKind.NOT_A_POSITION
    if tag is None and _has_xy(value):
        return FieldKind.POINT
    return FieldKind.NOT_A_POSITION


def _pair_of(value: Any) -> tuple[float, float] | None:
    """名前フォールバック対象の座標ペアを取り出す。"""

    if isinstance(value, Mapping):
        if _has_xy(value):
            return (float(value["x"]), float(value["y"]))
        return None
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)) and len(value) == 2:
        # 配列は整数ピクセルのペアだけを座標とみなす（重みや比率の [0.3, 0.7] は除く）。
        if all(is_number(v) and float(v).is_integer() for v in value):
            return (float(value[0]), float(value[1]))
    return None


def classify(name: Any, value: Any, dimensions: Dimensions | None = None) -> FieldKind:
    """フィールドを位置種別に分類する。

    値の形（判別子/型）を優先し、形で決まらない場合だけ名前を使う。
    名前フォールバックは判別子の無い座標ペア（整数の `[x, y]` や未知の name を持つ `{x, y}`）を拾う。

    Parameters
    ----------
    name : Any
        フィールド名。
    value : Any
        フィールド値（rich / flat どちらでもよい）。
    dimensions : Dimensions or None, optional
        値が属するキャンバス。与えた場合、名前フォールバックの候補は
        キャンバス内の座標に限る。

    Returns
    -------
    FieldKind
        分類結果。
    """

    kind = _shape_kind(value)
    if kind is not FieldKind.NOT_A_POSITION:
        return kind
    if not has_positional_name(name):
        return FieldKind.NOT_A_POSITION

    pair = _pair_of(value)
    if pair is None:
        return FieldKind.NOT_A_POSITION
    if dimensions is not None:
        x, y = pair
        if not (0 <= x <= dimensions.width and 0 <= y <= dimensions.height):
            return FieldKind.NOT_A_POSITION
    _logger.debug("名前から座標ペアと判定しました: name=%s value=%r", name, value)
    return FieldKind.POINT


def coordinates_of(value: Any) -> tuple[float, float] | None:
    """位置様の値から代表座標（ArcPath は中心）を返す。"""

    if isinstance(value, (Point, Position)):
        return (float(value.x), float(value.y))
    if isinstance(value, ArcPath):
        return (float(value.center.x), float(value.center.y))
    if isinstance(value, Mapping):
        if value.get(NAME_KEY) == ARC_PATH_TAG:
            return coordinates_of(value.get("center"))
        return _pair_of(value)
    return _pair_of(value)


@lru_cache(maxsize=1)
def _standard_canvas_array() -> np.ndarray:
    return np.asarray(STANDARD_CANVASES, dtype=np.float64)


def looks_like_canvas_center(x: float, y: float, dimensions: Dimensions | None = None) -> bool:
    """(x, y) がキャンバス中心付近なら True を返す。

    dimensions を与えた場合はその中心を幅/高さの 1% で照合し、
    外れた場合（および与えない場合）は代表キャンバス群の中心を 5% で照合する。
    偶然中心付近にある座標も True になり得る（ベストエフォートの判定）。
    """

    if not (is_number(x) and is_number(y)):
        return False
    cfg = runtime_config()
    if dimensions is not None:
        tol = float(cfg.center_context_tolerance)
        cx, cy = dimensions.width / 2, dimensions.height / 2
        if abs(x - cx) <= dimensions.width * tol and abs(y - cy) <= dimensions.height * tol:
            return True

    sizes = _standard_canvas_array()
    centers = sizes / 2.0
    tolerances = sizes * float(cfg.center_fallback_tolerance)
    hits = np.all(np.abs(np.array([x, y], dtype=np.float64) - centers) <= tolerances, axis=1)
    return bool(np.any(hits))


__all__ = [
    "POSITIONAL_NAME_HINTS",
    "STANDARD_CANVASES",
    "FieldKind",
    "classify",
    "coordinates_of",
    "has_positional_name",
    "looks_like_canvas_center",
]
