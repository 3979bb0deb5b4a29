"""Lightweight SQL migrations runner.

Applies .sql files in lexical order from a migrations directory shipped with
the package (`migrations/` for PostgreSQL, `sqlite_migrations/` for SQLite).
Skips rollback files. When a journal path is given, applied filenames are
recorded there (file-backed JSON) to avoid reapplying the same migration;
without one, every file is applied and must therefore be idempotent.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from sqlalchemy.engine import Connection, Engine

from coursefeedback.db.base import is_sqlite

logger = logging.getLogger(__name__)

_PACKAGE_ROOT = Path(__file__).resolve().parents[1]


def migrations_dir_for(engine: Engine) -> Path:
    """Return the migrations directory matching the engine's dialect."""
    if is_sqlite(engine):
        return _PACKAGE_ROOT / "sqlite_migrations"
    return _PACKAGE_ROOT / "migrations"


def _iter_sql_files(root: Path) -> Iterable[Path]:
    for p in sorted(root.glob("*.sql")):
        if "rollback" in p.name.lower():
            continue
        yield p


def _exec_sql_compat(conn: Connection, sql: str) -> None:
    """Execute SQL text, tolerating multi-statement files on SQLite.

    pysqlite does not allow multiple statements in one execute() call, so
    statements are split on ';' for SQLite. Other dialects receive the full
    script as-is.
    """
    name = (getattr(conn.dialect, "name", "") or "").lower()
    if "sqlite" in name:
        for stmt in sql.split(";"):
            lines = [ln for ln in stmt.splitlines() if not ln.strip().startswith("--")]
            s = "\n".join(lines).strip()
            if not s:
                continue
            if s.upper() in {"BEGIN", "COMMIT", "END"}:
                continue
            conn.exec_driver_sql(s)
        return
    conn.exec_driver_sql(sql)


def _load_journal(journal_path: Path) -> list[dict]:
    if not journal_path.exists():
        return []
    try:
        data = json.loads(journal_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        logger.error("migration_journal_parse_failed path=%s", str(journal_path), exc_info=True)
        return []
    if not isinstance(data, list):
        return []
    return [e for e in data if isinstance(e, dict)]


def apply_migrations(
    engine: Engine,
    migrations_dir: str | os.PathLike[str] | None = None,
    journal_path: str | os.PathLike[str] | None = None,
) -> list[str]:
    """Apply pending migrations and return the filenames applied in this run."""
    root = Path(migrations_dir) if migrations_dir is not None else migrations_dir_for(engine)
    if not root.exists():
        logger.warning("migrations_dir_missing path=%s", str(root))
        return []

    journal = Path(journal_path) if journal_path is not None else None
    journal_entries = _load_journal(journal) if journal is not None else []
    applied = {Path(str(e.get("filename", ""))).name for e in journal_entries}

    ran: list[str] = []
    with engine.begin() as conn:
        for sql_path in _iter_sql_files(root):
            fname = sql_path.name
            if fname in applied:
                continue
            sql = sql_path.read_text(encoding="utf-8")
            if not sql.strip():
                continue
            _exec_sql_compat(conn, sql)
            ran.append(fname)
    # Journal only after the whole batch committed
    if journal is not None and ran:
        stamp = datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
        journal_entries.extend({"filename": f"{root.name}/{fname}", "applied_at": stamp} for fname in ran)
        _atomic_write_json(journal, journal_entries)
    logger.info("migrations_applied dir=%s files=%s", root.name, ran)
    return ran


def _atomic_write_json(path: Path, content: list[dict]) -> None:
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(json.dumps(content, ensure_ascii=False, indent=2), encoding="utf-8")
    os.replace(tmp_path, path)
