# どこで: `src/hydrafix/core/centering.py`。
# 何を: 既定インスタンス中の「中心に置かれた位置」を、プロジェクトのキャンバス中心へ移し替える。
# なぜ: 参照キャンバス向けに作られた既定値を、新規エフェクト作成時に実キャンバスへ合わせるため。

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from .classifier import classify, coordinates_of, has_positional_name, looks_like_canvas_center
from .dimensions import Dimensions, as_dimensions
from .errors import HydrafixError, Issue, MalformedConfigCycle, join_path
from .params.types import ARC_PATH_TAG, CENTER_OVERRIDE_KEY, NAME_KEY, ArcPath, Point, Position
from .traversal import DepthGuard

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CenteringResult:
    """`recenter_config()` の結果。"""

    config: Mapping[str, Any]
    recentered: tuple[str, ...] = ()
    issues: tuple[Issue, ...] = ()


def _moved(value: Any, cx: int, cy: int) -> Any:
    if isinstance(value, Position):
        return replace(value, x=cx, y=cy)
    if isinstance(value, Point):
        return Point(x=cx, y=cy)
    if isinstance(value, ArcPath):
        return replace(value, center=Point(x=cx, y=cy))
    if isinstance(value, Mapping):
        out = dict(value)
        if out.get(NAME_KEY) == ARC_PATH_TAG:
            center = out["center"]
            out["center"] = (
                Point(x=cx, y=cy) if isinstance(center, Point) else {**center, "x": cx, "y": cy}
            )
        else:
            out["x"], out["y"] = cx, cy
        out[CENTER_OVERRIDE_KEY] = True
        return out
    return (cx, cy) if isinstance(value, tuple) else [cx, cy]


class _Recenterer:
    def __init__(self, target: Dimensions, reference: Dimensions | None) -> None:
        self.target = target
        self.reference = reference
        self.guard = DepthGuard.from_runtime_config()
        self.recentered: list[str] = []
        self.issues: list[Issue] = []

    def visit(self, name: Any, value: Any, *, path: str) -> Any:
        kind = classify(name, value, self.reference)
        if kind.is_position_like:
            return self.visit_position(name, value, path=path)
        if isinstance(value, Mapping):
            return self.visit_mapping(value, path=path)
        if isinstance(value, (list, tuple)):
            with self.guard.scope(value, path=path):
                items = [self.visit(name, v, path=join_path(path, i)) for i, v in enumerate(value)]
            return tuple(items) if isinstance(value, tuple) else items
        return value

    def visit_mapping(self, value: Mapping[str, Any], *, path: str) -> dict[str, Any]:
        with self.guard.scope(value, path=path):
            return {k: self.visit(k, v, path=join_path(path, k)) for k, v in value.items()}

    def visit_position(self, name: Any, value: Any, *, path: str) -> Any:
        by_name = name is not None and "center" in str(name).lower()
        coords = coordinates_of(value)
        by_value = coords is not None and looks_like_canvas_center(
            coords[0], coords[1], self.reference
        )
        if not (by_name or by_value):
            return value

        if not by_name and not has_positional_name(name):
            # 値だけが根拠の場合は、移し替えたうえで呼び出し側へ知らせる。
            message = f"名前の裏付けが無い位置を中心として移し替えました: name={name}"
            _logger.warning("%s path=%s", message, path)
            self.issues.append(Issue(kind="UncorroboratedCenter", path=path, message=message))

        cx, cy = self.target.center()
        self.recentered.append(path)
        return _moved(value, cx, cy)


def recenter_config(
    config: Mapping[str, Any],
    dimensions: Any,
    reference: Any = None,
) -> CenteringResult:
    """config 内の中心位置フィールドを dimensions の中心へ移した新しい config を返す。

    Parameters
    ----------
    config : Mapping[str, Any]
        対象 config（rich / flat どちらでもよい）。
    dimensions : Any
        移し先キャンバス。
    reference : Any, optional
        既定値が作られたキャンバス。与えた場合は中心判定をその寸法の 1% で行う。

    Notes
    -----
    フィールド名に "center" を含む位置、または値が中心付近にある位置を移し替える。
    flat 値には `__centerOverrideApplied` を付ける。
    寸法が不正、または循環がある場合は入力をそのまま返し、issue を記録する。
    """

    try:
        target = as_dimensions(dimensions, label="dimensions")
        ref = None if reference is None else as_dimensions(reference, label="reference")
    except HydrafixError as exc:
        _logger.warning("キャンバス寸法が不正なため中心補正をスキップします: %s", exc)
        return CenteringResult(config=config, issues=(Issue.from_error(exc),))

    walker = _Recenterer(target, ref)
    try:
        out = walker.visit_mapping(config, path="")
    except MalformedConfigCycle as exc:
        _logger.warning("設定ツリーが不正なため中心補正をスキップします: path=%s", exc.path)
        return CenteringResult(config=config, issues=(Issue.from_error(exc),))
    return CenteringResult(
        config=out,
        recentered=tuple(walker.recentered),
        issues=tuple(walker.issues),
    )


__all__ = ["CenteringResult", "recenter_config"]
