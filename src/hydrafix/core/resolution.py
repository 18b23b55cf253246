# どこで: `src/hydrafix/core/resolution.py`。
# 何を: 解像度記述子（プリセット名/数値キー/明示寸法/旧文字列キー）を Dimensions に解決する。
# なぜ: 永続化される真実は「解像度キー + 向き」だけにし、寸法は常にここから導出するため。

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from numbers import Real
from typing import Any

import numpy as np

from .dimensions import Dimensions, as_dimensions
from .errors import HydrafixError, InvalidResolutionInput, Issue
from .runtime_config import runtime_config

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResolutionPreset:
    """解像度テーブルの 1 エントリ（自然な向きで保持する）。"""

    key: int
    width: int
    height: int
    name: str
    category: str

    @property
    def is_naturally_portrait(self) -> bool:
        return self.height > self.width

    @property
    def is_square(self) -> bool:
        return self.height == self.width


_PRESETS: tuple[ResolutionPreset, ...] = (
    # SD
    ResolutionPreset(160, 160, 120, "QQVGA", "SD"),
    ResolutionPreset(240, 240, 180, "HQVGA", "SD"),
    ResolutionPreset(320, 320, 240, "QVGA", "SD"),
    ResolutionPreset(480, 480, 360, "nHD", "SD"),
    ResolutionPreset(640, 640, 480, "VGA", "SD"),
    ResolutionPreset(800, 800, 600, "SVGA", "SD"),
    # ワイド SD
    ResolutionPreset(854, 854, 480, "FWVGA", "WSD"),
    ResolutionPreset(960, 960, 540, "qHD", "WSD"),
    # XGA (4:3)
    ResolutionPreset(1024, 1024, 768, "XGA", "XGA"),
    ResolutionPreset(1152, 1152, 864, "XGA+", "XGA"),
    # HD
    ResolutionPreset(1280, 1280, 720, "HD", "HD"),
    ResolutionPreset(1366, 1366, 768, "WXGA", "HD"),
    ResolutionPreset(1440, 1440, 900, "WXGA+", "HD"),
    ResolutionPreset(1600, 1600, 900, "HD+", "HD"),
    ResolutionPreset(1680, 1680, 1050, "WSXGA+", "HD"),
    ResolutionPreset(1920, 1920, 1080, "Full HD", "HD"),
    # シネマ
    ResolutionPreset(2048, 2048, 1080, "2K DCI", "Cinema"),
    # QHD / UHD
    ResolutionPreset(2560, 2560, 1440, "QHD", "QHD"),
    ResolutionPreset(2880, 2880, 1620, "QHD+", "QHD"),
    ResolutionPreset(3200, 3200, 1800, "QHD+ Wide", "QHD"),
    ResolutionPreset(3440, 3440, 1440, "UWQHD", "QHD"),
    ResolutionPreset(3840, 3840, 2160, "4K UHD", "UHD"),
    ResolutionPreset(4096, 4096, 2160, "DCI 4K", "UHD"),
    # 5K 以上
    ResolutionPreset(5120, 5120, 2880, "5K", "5K+"),
    ResolutionPreset(6144, 6144, 3456, "6K", "5K+"),
    ResolutionPreset(7680, 7680, 4320, "8K UHD", "8K+"),
    ResolutionPreset(8192, 8192, 4320, "8K DCI", "8K+"),
    # モバイル（縦向きで保持）
    ResolutionPreset(360, 360, 640, "Mobile SD", "Mobile"),
    ResolutionPreset(375, 375, 667, "iPhone 6/7/8", "Mobile"),
    ResolutionPreset(414, 414, 736, "iPhone Plus", "Mobile"),
    # 正方形（1080 は 1080p との衝突を避けて 1081）
    ResolutionPreset(1081, 1080, 1080, "Instagram Square", "Social"),
)

RESOLUTIONS: dict[int, ResolutionPreset] = {p.key: p for p in _PRESETS}

# 旧プロジェクトファイルで使われていた文字列キー。
LEGACY_STRING_KEYS: dict[str, int] = {
    "qvga": 320,
    "vga": 640,
    "svga": 800,
    "xga": 1024,
    "hd720": 1280,
    "720p": 1280,
    "hd": 1920,
    "fullhd": 1920,
    "fhd": 1920,
    "1080p": 1920,
    "square_small": 1081,
    "square": 1081,
    "wqhd": 2560,
    "qhd": 2560,
    "1440p": 2560,
    "4k": 3840,
    "uhd": 3840,
    "4kuhd": 3840,
    "5k": 5120,
    "8k": 7680,
}

_PRESET_NAMES: dict[str, int] = {p.name.lower(): p.key for p in _PRESETS}


@dataclass(frozen=True, slots=True)
class ResolutionResult:
    """resolve_resolution の結果。"""

    dimensions: Dimensions
    key: int | None
    issues: tuple[Issue, ...] = ()


@lru_cache(maxsize=1)
def _preset_keys() -> np.ndarray:
    return np.asarray([p.key for p in _PRESETS], dtype=np.int64)


def default_resolution_key() -> int:
    return int(runtime_config().default_resolution_key)


def closest_resolution_key(target: float) -> int:
    """target に最も近いプリセットキーを返す（同距離なら小さいキー）。"""

    keys = np.sort(_preset_keys())
    distances = np.abs(keys - float(target))
    return int(keys[int(np.argmin(distances))])


def display_name(key: int) -> str:
    """"1920x1080 (Full HD)" 形式の表示名を返す。"""

    preset = RESOLUTIONS.get(int(key))
    if preset is None:
        return f"{key}x? (Unknown)"
    return f"{preset.width}x{preset.height} ({preset.name})"


def oriented_dimensions(preset: ResolutionPreset, is_horizontal: bool | None) -> Dimensions:
    """プリセットを要求された向きの Dimensions にして返す。

    縦長が自然なプリセット（モバイル）は横向き要求で、横長が自然なプリセットは
    縦向き要求で幅/高さを入れ替える。正方形と `is_horizontal=None` は入れ替えない。
    """

    base = Dimensions(width=preset.width, height=preset.height)
    if is_horizontal is None or preset.is_square:
        return base
    if preset.is_naturally_portrait:
        return base.swapped() if is_horizontal else base
    return base if is_horizontal else base.swapped()


def _lookup_key(key: int, issues: list[Issue], *, path: str) -> int:
    if key <= 0:
        raise InvalidResolutionInput(f"解像度キーは正の整数である必要があります: got={key}", path=path)
    if key in RESOLUTIONS:
        return key
    snapped = closest_resolution_key(key)
    _logger.warning("未知の解像度 %d を最も近いプリセット %s に置き換えました", key, display_name(snapped))
    issues.append(
        Issue(
            kind="ResolutionSnapped",
            path=path,
            message=f"未知の解像度 {key} を {display_name(snapped)} に置き換えました",
        )
    )
    return snapped


def _key_from_string(text: str, issues: list[Issue], *, path: str) -> int:
    normalized = text.strip().lower()
    if not normalized:
        raise InvalidResolutionInput("空の解像度文字列です", path=path)
    if normalized in LEGACY_STRING_KEYS:
        return LEGACY_STRING_KEYS[normalized]
    if normalized in _PRESET_NAMES:
        return _PRESET_NAMES[normalized]
    try:
        parsed = int(normalized)
    except ValueError:
        fallback = default_resolution_key()
        _logger.warning("未知の解像度名 %r のため既定 %s を使います", text, display_name(fallback))
        issues.append(
            Issue(
                kind="ResolutionSnapped",
                path=path,
                message=f"未知の解像度名 {text!r} を {display_name(fallback)} に置き換えました",
            )
        )
        return fallback
    return _lookup_key(parsed, issues, path=path)


def _resolve_key(value: Any, issues: list[Issue], *, path: str) -> int:
    """value をプリセットキーに解決する。"""

    if isinstance(value, bool):
        raise InvalidResolutionInput(f"bool は解像度として解釈できません: got={value!r}", path=path)
    if isinstance(value, Real):
        f = float(value)
        if math.isnan(f) or math.isinf(f) or not f.is_integer():
            raise InvalidResolutionInput(f"解像度キーは整数である必要があります: got={value!r}", path=path)
        return _lookup_key(int(f), issues, path=path)
    if isinstance(value, str):
        return _key_from_string(value, issues, path=path)
    raise InvalidResolutionInput(f"解像度として解釈できません: got={value!r}", path=path)


def _resolve(
    value: Any,
    is_horizontal: bool | None,
    issues: list[Issue],
) -> tuple[Dimensions, int | None]:
    path = "resolution"
    explicit = isinstance(value, Dimensions) or (
        isinstance(value, Mapping)
        and (("width" in value and "height" in value) or ("w" in value and "h" in value))
    )
    if explicit:
        try:
            return as_dimensions(value, label=path), None
        except HydrafixError as exc:
            raise InvalidResolutionInput(str(exc), path=path) from exc
    if isinstance(value, Mapping):
        # {resolution|targetResolution, isHorizontal} 形式の解像度情報。
        inner = value.get("resolution", value.get("targetResolution"))
        if inner is None:
            raise InvalidResolutionInput(f"解像度情報として解釈できません: got={dict(value)!r}", path=path)
        if is_horizontal is None:
            flag = value.get("isHorizontal", value.get("isHoz"))
            is_horizontal = flag if isinstance(flag, bool) else None
        return _resolve(inner, is_horizontal, issues)
    key = _resolve_key(value, issues, path=path)
    return oriented_dimensions(RESOLUTIONS[key], is_horizontal), key


def resolve_dimensions(value: Any, is_horizontal: bool | None = None) -> Dimensions:
    """解像度記述子を Dimensions に解決して返す。

    Parameters
    ----------
    value : Any
        プリセットキー（int）、プリセット名/旧文字列キー（str）、
        `{"width", "height"}` の明示寸法、または
        `{"resolution"|"targetResolution", "isHorizontal"}` の解像度情報。
    is_horizontal : bool or None, optional
        要求する向き。None ならプリセットの自然な向き。明示寸法には作用しない。

    Raises
    ------
    InvalidResolutionInput
        value が既知のどの形にも当てはまらない場合。
    """

    dims, _key = _resolve(value, is_horizontal, [])
    return dims


def resolve_resolution(value: Any, is_horizontal: bool | None = None) -> ResolutionResult:
    """解像度記述子を解決する（例外を投げない版）。

    解決できない入力は既定解像度（runtime config の default_key）へ
    フォールバックし、その旨を issues に残す。
    """

    issues: list[Issue] = []
    try:
        dims, key = _resolve(value, is_horizontal, issues)
    except HydrafixError as exc:
        cfg = runtime_config()
        fallback_key = int(cfg.default_resolution_key)
        _logger.warning("解像度入力を解決できないため既定 %s を使います: %s", display_name(fallback_key), exc)
        issues.append(Issue.from_error(exc))
        preset = RESOLUTIONS.get(fallback_key) or RESOLUTIONS[closest_resolution_key(fallback_key)]
        horizontal = cfg.default_is_horizontal if is_horizontal is None else is_horizontal
        return ResolutionResult(
            dimensions=oriented_dimensions(preset, horizontal),
            key=preset.key,
            issues=tuple(issues),
        )
    return ResolutionResult(dimensions=dims, key=key, issues=tuple(issues))


def match_resolution_key(width: int, height: int, *, longest_side: int | None = None) -> int:
    """実寸 (width, height) に対応するプリセットキーを返す。

    向きを問わず完全一致するプリセットがあればそれを返し（longest_side、次に width と
    同じキーを優先）、無ければ longest_side（無ければ width）に最も近いキーへ寄せる。
    """

    w, h = int(width), int(height)
    matches = [
        p.key
        for p in _PRESETS
        if (p.width, p.height) in ((w, h), (h, w))
    ]
    if matches:
        for preferred in (longest_side, w):
            if preferred is not None and int(preferred) in matches:
                return int(preferred)
        return matches[0]

    target = longest_side if longest_side is not None else w
    snapped = closest_resolution_key(target)
    _logger.info("独自解像度 %dx%d を最も近いプリセット %s に対応付けます", w, h, display_name(snapped))
    return snapped


def determine_orientation(width: int, height: int, *, explicit: bool | None = None) -> bool:
    """実寸から向き（横向きなら True）を判定する。正方形は横向き扱い。"""

    if isinstance(explicit, bool):
        return explicit
    return int(width) >= int(height)


__all__ = [
    "LEGACY_STRING_KEYS",
    "RESOLUTIONS",
    "ResolutionPreset",
    "ResolutionResult",
    "closest_resolution_key",
    "default_resolution_key",
    "determine_orientation",
    "display_name",
    "match_resolution_key",
    "oriented_dimensions",
    "resolve_dimensions",
    "resolve_resolution",
]
