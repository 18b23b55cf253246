"""依存境界（core -> project の逆流）の破りを検出するテスト。"""

from __future__ import annotations

import ast
from pathlib import Path


def _repo_root() -> Path:
    path = Path(__file__).resolve()
    for parent in path.parents:
        if (parent / "src").is_dir() and (parent / "tests").is_dir():
            return parent
    raise RuntimeError("repo root が見つからない")


def _iter_py_files(root: Path) -> list[Path]:
    return sorted([p for p in root.rglob("*.py") if p.is_file()])


def _module_name_for_path(*, path: Path, src_root: Path) -> tuple[str, bool]:
    rel = path.relative_to(src_root)
    parts = list(rel.parts)
    if not parts or not parts[-1].endswith(".py"):
        raise ValueError(f"python ファイルではない: {rel}")

    is_package = parts[-1] == "__init__.py"
    if is_package:
        parts = parts[:-1]
    else:
        parts[-1] = parts[-1].removesuffix(".py")

    if not parts:
        raise ValueError(f"src 直下の __init__.py はモジュール名にできない: {rel}")
    return ".".join(parts), is_package


def _resolve_importfrom_targets(
    *,
    current_module: str,
    is_package: bool,
    node: ast.ImportFrom,
) -> set[str]:
    level = int(node.level or 0)
    if level == 0:
        if node.module is None:
            return set()
        base = str(node.module)
        return {base} | {f"{base}.{a.name}" for a in node.names if a.name != "*"}

    current_package = current_module if is_package else current_module.rsplit(".", 1)[0]
    parts = current_package.split(".")
    up = level - 1
    base_parts = parts[: len(parts) - up] if up <= len(parts) else []
    if not base_parts:
        raise ValueError(
            "相対 import の解決に失敗: "
            f"current_module={current_module!r}, level={level}, module={node.module!r}"
        )

    base = ".".join(base_parts)
    if node.module is not None:
        base = f"{base}.{node.module}"
    return {base} | {f"{base}.{a.name}" for a in node.names if a.name != "*"}


def _import_modules_in_file(*, path: Path, src_root: Path) -> set[str]:
    current_module, is_package = _module_name_for_path(path=path, src_root=src_root)
    tree = ast.parse(path.read_text(encoding="utf-8"))
    modules: set[str] = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            modules.update(str(alias.name) for alias in node.names)
        elif isinstance(node, ast.ImportFrom):
            modules.update(
                _resolve_importfrom_targets(
                    current_module=current_module,
                    is_package=is_package,
                    node=node,
                )
            )
    return modules


def _violations(*, root: Path, forbidden_prefixes: tuple[str, ...]) -> list[str]:
    repo_root = _repo_root()
    src_root = repo_root / "src"
    out: list[str] = []
    for path in _iter_py_files(root):
        rel = path.relative_to(repo_root)
        try:
            modules = _import_modules_in_file(path=path, src_root=src_root)
        except ValueError as e:
            out.append(f"{rel}: {e}")
            continue
        bad = sorted(m for m in modules if m.startswith(forbidden_prefixes))
        if bad:
            out.append(f"{rel}: {', '.join(bad)}")
    return out


def test_core_does_not_depend_on_project() -> None:
    root = _repo_root() / "src" / "hydrafix" / "core"
    violations = _violations(root=root, forbidden_prefixes=("hydrafix.project",))
    assert not violations, "依存境界違反の import を検出:\n" + "\n".join(violations)


def test_engine_modules_do_not_import_asyncio() -> None:
    # 非同期の待ちはハイドレーションのレジストリ参照だけに閉じる。
    core = _repo_root() / "src" / "hydrafix" / "core"
    pure = [core / n for n in ("scaling.py", "codec.py", "classifier.py", "resolution.py")]
    src_root = _repo_root() / "src"
    for path in pure:
        modules = _import_modules_in_file(path=path, src_root=src_root)
        assert "asyncio" not in modules, path.name


def _parse_single_stmt(source: str) -> ast.stmt:
    tree = ast.parse(source)
    assert len(tree.body) == 1
    return tree.body[0]


def test__resolve_importfrom_targets_handles_relative_imports() -> None:
    node = _parse_single_stmt("from ..project import flow\n")
    assert isinstance(node, ast.ImportFrom)
    got = _resolve_importfrom_targets(
        current_module="hydrafix.core.scaling",
        is_package=False,
        node=node,
    )
    assert "hydrafix.project" in got
    assert "hydrafix.project.flow" in got

    node = _parse_single_stmt("from . import codec\n")
    assert isinstance(node, ast.ImportFrom)
    got = _resolve_importfrom_targets(
        current_module="hydrafix.core.hydration",
        is_package=False,
        node=node,
    )
    assert "hydrafix.core.codec" in got


def test__resolve_importfrom_targets_rejects_unresolvable_relative_imports() -> None:
    node = _parse_single_stmt("from ....project import flow\n")
    assert isinstance(node, ast.ImportFrom)
    try:
        _resolve_importfrom_targets(
            current_module="hydrafix.core",
            is_package=True,
            node=node,
        )
    except ValueError:
        return
    raise AssertionError("解決不能な相対 import は ValueError にする")
