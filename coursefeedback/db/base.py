"""SQLAlchemy engine construction.

The service targets PostgreSQL in production but supports SQLite for local
development and CI. The pooled Engine is built once at process start and
passed explicitly to the store; nothing here caches it at module level.
"""

from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from coursefeedback.config import DatabaseConfig

logger = logging.getLogger(__name__)


def build_engine(db_config: DatabaseConfig) -> Engine:
    """Return a pooled SQLAlchemy Engine for ``db_config``.

    For SQLite in-memory URLs, use a StaticPool to keep a single connection
    alive across sessions and threads. The pool timeout doubles as SQLite's
    lock-wait timeout so a blocked writer fails instead of waiting forever.
    """
    url = db_config.dsn
    kwargs: dict = {"future": True, "pool_pre_ping": True}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": db_config.pool_timeout_seconds}
        if ":memory:" in url:
            kwargs["poolclass"] = StaticPool
        else:
            kwargs.update({
                "pool_size": db_config.pool_size,
                "max_overflow": db_config.max_overflow,
                "pool_timeout": db_config.pool_timeout_seconds,
            })
        kwargs["connect_args"] = connect_args
    else:
        kwargs.update({
            "pool_size": db_config.pool_size,
            "max_overflow": db_config.max_overflow,
            "pool_timeout": db_config.pool_timeout_seconds,
        })
    engine = create_engine(url, **kwargs)
    logger.info("db.engine_built dialect=%s pool_size=%s", engine.dialect.name, db_config.pool_size)
    return engine


def is_sqlite(engine: Engine) -> bool:
    return (getattr(engine.dialect, "name", "") or "").lower() == "sqlite"
