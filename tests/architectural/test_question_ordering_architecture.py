"""Architectural tests for question ordering.

Static, file/AST-based checks over the `coursefeedback` package. They never
import application code, so they stay green even when the runtime stack is
misconfigured and pin the layering instead:

- HTTP routes and guards stay free of SQL and SQLAlchemy.
- Within the logic layer only the store issues SQL text.
- Engines are created in exactly one place.
- Every position-mutating operation lives on the reorder engine.
"""

from __future__ import annotations

import ast
from pathlib import Path
from typing import Iterable, List, Set

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[2]
PKG_DIR = PROJECT_ROOT / "coursefeedback"


def _parse(path: Path) -> ast.AST:
    try:
        return ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    except FileNotFoundError:
        pytest.fail(f"Expected file is missing: {path}")
    except SyntaxError as exc:
        pytest.fail(f"Syntax error in {path}: {exc}")


def _py_files(root: Path) -> List[Path]:
    return sorted(p for p in root.rglob("*.py") if "__pycache__" not in p.parts)


def _imported_modules(tree: ast.AST) -> Set[str]:
    mods: Set[str] = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            mods.update(alias.name for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module:
            mods.add(node.module)
    return mods


def _called_names(tree: ast.AST) -> Set[str]:
    names: Set[str] = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Call):
            fn = node.func
            if isinstance(fn, ast.Name):
                names.add(fn.id)
            elif isinstance(fn, ast.Attribute):
                names.add(fn.attr)
    return names


def _class_methods(tree: ast.AST, class_name: str) -> Set[str]:
    for node in ast.walk(tree):
        if isinstance(node, ast.ClassDef) and node.name == class_name:
            return {n.name for n in node.body if isinstance(n, ast.FunctionDef)}
    pytest.fail(f"class {class_name} not found")


def _rel(paths: Iterable[Path]) -> List[str]:
    return [str(p.relative_to(PROJECT_ROOT)) for p in paths]


def test_routes_and_guards_do_not_touch_the_database():
    offenders = []
    for sub in ("routes", "guards"):
        for path in _py_files(PKG_DIR / sub):
            if any(m == "sqlalchemy" or m.startswith("sqlalchemy.") for m in _imported_modules(_parse(path))):
                offenders.append(path)
    assert not offenders, f"SQLAlchemy imported outside the data layer: {_rel(offenders)}"


def test_only_the_store_issues_sql_in_logic_layer():
    offenders = []
    for path in _py_files(PKG_DIR / "logic"):
        if path.name == "repository_questions.py":
            continue
        tree = _parse(path)
        imports_text = any(
            isinstance(node, ast.ImportFrom)
            and node.module == "sqlalchemy"
            and any(alias.name == "text" for alias in node.names)
            for node in ast.walk(tree)
        )
        if imports_text or "exec_driver_sql" in _called_names(tree):
            offenders.append(path)
    assert not offenders, f"SQL issued outside the ordered store: {_rel(offenders)}"


def test_engine_is_created_only_in_db_base():
    creators = [p for p in _py_files(PKG_DIR) if "create_engine" in _called_names(_parse(p))]
    assert _rel(creators) == [str(Path("coursefeedback") / "db" / "base.py")]


def test_reorder_engine_exposes_every_ordering_operation():
    methods = _class_methods(_parse(PKG_DIR / "logic" / "order_sequences.py"), "ReorderEngine")
    assert {"add", "update", "move", "delete", "bulk_reorder"} <= methods


def test_store_exposes_transaction_scoped_primitives():
    methods = _class_methods(_parse(PKG_DIR / "logic" / "repository_questions.py"), "OrderedQuestionStore")
    expected = {
        "list_questions",
        "list_active_questions",
        "acquire_ordering_lock",
        "insert_at_position",
        "shift_range",
        "offset_positions",
        "assign_positions",
        "delete_question",
    }
    assert expected <= methods


def test_error_taxonomy_is_complete_and_mapped():
    errors = _parse(PKG_DIR / "logic" / "errors.py")
    classes = {n.name for n in ast.walk(errors) if isinstance(n, ast.ClassDef)}
    assert {"QuestionOrderingError", "ValidationError", "NotFoundError", "ConflictError", "StoreFailure"} <= classes

    mapping = (PKG_DIR / "http" / "error_mapping.py").read_text(encoding="utf-8")
    for code in ("validation_failed", "question_not_found", "ordering_conflict", "operation_failed"):
        assert f'"{code}"' in mapping, f"error code {code} has no HTTP mapping"


def test_sqlite_and_postgres_migrations_exist_and_are_idempotent():
    for sub in ("migrations", "sqlite_migrations"):
        files = sorted((PKG_DIR / sub).glob("*.sql"))
        assert files, f"no migrations in {sub}"
        for path in files:
            sql = path.read_text(encoding="utf-8").upper()
            assert "CREATE TABLE IF NOT EXISTS FEEDBACK_QUESTIONS" in sql
            assert "CREATE TABLE IF NOT EXISTS ORDERING_LOCK" in sql
