"""Database bootstrap utilities for the course feedback service.

Exposes engine construction and the SQL migrations runner that applies files
from the local `migrations/` (PostgreSQL) or `sqlite_migrations/` directory.
"""

from coursefeedback.db.base import build_engine, is_sqlite
from coursefeedback.db.migrations_runner import apply_migrations, migrations_dir_for

__all__ = [
    "build_engine",
    "is_sqlite",
    "apply_migrations",
    "migrations_dir_for",
]
