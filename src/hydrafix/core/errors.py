# どこで: `src/hydrafix/core/errors.py`。
# 何を: エンジン内部で送出する例外階層と、公開 API が返す Issue レコードを定義する。
# なぜ: 失敗を例外で局所化しつつ、呼び出し側へは「致命的でない問題の一覧」として渡すため。

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

WARNING = "warning"
ERROR = "error"


class HydrafixError(Exception):
    """hydrafix の例外基底。"""

    kind = "HydrafixError"

    def __init__(self, message: str, *, path: str = "") -> None:
        super().__init__(message)
        self.path = str(path)


class InvalidDimensions(HydrafixError):
    """幅/高さが正の有限値でない。"""

    kind = "InvalidDimensions"


class InvalidResolutionInput(HydrafixError):
    """解像度記述子が既知のどの形にも当てはまらない。"""

    kind = "InvalidResolutionInput"


class ConfigReconstructionFailure(HydrafixError):
    """構造化フィールドを flat 形式から再構築できない。"""

    kind = "ConfigReconstructionFailure"


class UnknownConfigField(HydrafixError):
    """flat blob に既定インスタンスが持たないフィールドがある（警告扱い）。"""

    kind = "UnknownConfigField"


class MalformedConfigCycle(HydrafixError):
    """走査が深さ上限を超えた（循環参照など）。"""

    kind = "MalformedConfigCycle"


@dataclass(frozen=True, slots=True)
class Issue:
    """公開エントリポイントが返す、致命的でない問題 1 件。"""

    kind: str
    path: str
    message: str
    severity: str = WARNING

    @classmethod
    def from_error(cls, err: HydrafixError, *, severity: str = WARNING) -> "Issue":
        return cls(kind=err.kind, path=err.path, message=str(err), severity=severity)


def join_path(parent: str, child: object) -> str:
    """ドット区切りのフィールドパスを連結して返す。"""

    if isinstance(child, int):
        return f"{parent}[{child}]"
    if not parent:
        return str(child)
    return f"{parent}.{child}"


def issues_of_kind(issues: Iterable[Issue], kind: str) -> list[Issue]:
    return [i for i in issues if i.kind == kind]


__all__ = [
    "ERROR",
    "WARNING",
    "ConfigReconstructionFailure",
    "HydrafixError",
    "InvalidDimensions",
    "InvalidResolutionInput",
    "Issue",
    "MalformedConfigCycle",
    "UnknownConfigField",
    "issues_of_kind",
    "join_path",
]
