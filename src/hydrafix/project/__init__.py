# どこで: `src/hydrafix/project/__init__.py`。
# 何を: プロジェクト文書と、その読み込み/解像度変更/保存の流れをまとめる。
# なぜ: core のエンジン群を「プロジェクト単位の操作」として組み立てる層を分離するため。

from .document import ProjectDocument
from .flow import (
    EffectCreationResult,
    ProjectChangeResult,
    ProjectLoadResult,
    apply_resolution_change,
    create_effect,
    flatten_project,
    load_project,
)
from .persistence import load_project_file, save_project
from .settings_import import import_settings

__all__ = [
    "EffectCreationResult",
    "ProjectChangeResult",
    "ProjectDocument",
    "ProjectLoadResult",
    "apply_resolution_change",
    "create_effect",
    "flatten_project",
    "import_settings",
    "load_project",
    "load_project_file",
    "save_project",
]
