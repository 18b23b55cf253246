# どこで: `src/hydrafix/project/persistence.py`。
# 何を: ProjectDocument の JSON 永続化（load / save）を提供する。
# なぜ: 平坦化済みのプロジェクトをファイルへ残し、再起動後にハイドレートして復元できるようにするため。

from __future__ import annotations

import json
import logging
from pathlib import Path

from hydrafix.core.codec import loads
from hydrafix.core.errors import ERROR, Issue
from hydrafix.core.hydration import DefaultConfigSource

from .document import ProjectDocument
from .flow import ProjectLoadResult, flatten_project, load_project

_logger = logging.getLogger(__name__)


def _unopenable(path: Path, kind: str, exc: Exception) -> ProjectLoadResult:
    issue = Issue(kind=kind, path=str(path), message=str(exc), severity=ERROR)
    return ProjectLoadResult(
        project=ProjectDocument.empty(name=path.stem or "untitled"),
        issues=(issue,),
    )


def save_project(project: ProjectDocument, path: Path) -> tuple[Issue, ...]:
    """ProjectDocument を JSON として path に保存する（親ディレクトリは作成する）。

    Returns
    -------
    tuple[Issue, ...]
        平坦化で出た問題（repr で代替した値など）。
    """

    flat = flatten_project(project)
    if flat.issues:
        _logger.warning(
            "平坦化で問題が出たまま保存します: path=%s issues=%d",
            path,
            len(flat.issues),
        )
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    text = json.dumps(flat.value, ensure_ascii=False, indent=2)
    path.write_text(text + "\n", encoding="utf-8")
    return flat.issues


async def load_project_file(
    path: Path,
    source: DefaultConfigSource,
    *,
    timeout: float | None = None,
) -> ProjectLoadResult:
    """JSON ファイルから ProjectDocument をロードして返す。

    読めない/壊れたファイルは空のプロジェクトと issue を返す。
    """

    path = Path(path)
    try:
        payload = path.read_text(encoding="utf-8")
    except OSError as exc:
        _logger.warning("プロジェクトファイルを読めません: path=%s reason=%s", path, exc)
        return _unopenable(path, "ProjectFileUnreadable", exc)

    try:
        data = loads(payload)
    except ValueError as exc:
        # 破損した JSON は空のプロジェクトとして開く。
        _logger.warning("プロジェクトファイルが壊れています: path=%s reason=%s", path, exc)
        return _unopenable(path, "ProjectFileCorrupt", exc)

    return await load_project(data, source, timeout=timeout)


__all__ = ["load_project_file", "save_project"]
