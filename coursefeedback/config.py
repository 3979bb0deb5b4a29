"""Configuration utilities for the course feedback service.

This module loads application configuration with the following rules:
- Primary source: `feedback_config.json` at the project root.
- Overrides: environment variables (a local `.env` is honoured), then optional
  text files under `config/`.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_FEEDBACK_CONFIG = Path("feedback_config.json")
DEFAULT_DSN = "sqlite+pysqlite:///./feedback.db"
logger = logging.getLogger(__name__)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


class DatabaseConfig(BaseModel):
    dsn: str
    pool_size: int = Field(default=10, gt=0)
    max_overflow: int = Field(default=0, ge=0)
    pool_timeout_seconds: float = Field(default=30.0, gt=0)
    # File recording applied migrations; unset re-applies the idempotent DDL on every start
    migrations_journal: Optional[str] = None

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class OrderingConfig(BaseModel):
    # Upper bound on the number of questions; also bounds every valid position
    max_questions: int = Field(default=1000, gt=0)


class AuthConfig(BaseModel):
    role_header: str = Field(default="X-Caller-Role", min_length=1)


class AppConfig(BaseModel):
    database: DatabaseConfig
    ordering: OrderingConfig = Field(default_factory=OrderingConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables (including values loaded from `.env`)
    2) Text files in `config/` (optional)
    3) feedback_config.json at project root (primary base)
    4) Safe defaults for development
    """
    load_dotenv(find_dotenv(usecwd=True), override=False)
    base = _read_json_file(ROOT_FEEDBACK_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    # Database
    dsn = _env("DATABASE_URL") or _read_config_file("database.url") or _base("database.dsn") or DEFAULT_DSN
    pool_size_text = _env("DATABASE_POOL_SIZE") or _read_config_file("database.pool_size") or _base("database.pool_size", "10")
    max_overflow_text = _env("DATABASE_MAX_OVERFLOW") or _read_config_file("database.max_overflow") or _base("database.max_overflow", "0")
    pool_timeout_text = (
        _env("DATABASE_POOL_TIMEOUT_SECONDS")
        or _read_config_file("database.pool_timeout_seconds")
        or _base("database.pool_timeout_seconds", "30")
    )
    migrations_journal = (
        _env("DATABASE_MIGRATIONS_JOURNAL")
        or _read_config_file("database.migrations_journal")
        or _base("database.migrations_journal")
    )

    # Ordering
    max_questions_text = _env("ORDERING_MAX_QUESTIONS") or _read_config_file("ordering.max_questions") or _base("ordering.max_questions", "1000")

    # Caller identity
    role_header = _env("AUTH_ROLE_HEADER") or _read_config_file("auth.role_header") or _base("auth.role_header", "X-Caller-Role")

    # Browser origins (comma separated)
    cors_text = _env("CORS_ORIGINS") or _read_config_file("cors.origins") or _base("cors.origins", "*")
    cors_origins = [o.strip() for o in str(cors_text).split(",") if o.strip()] or ["*"]

    try:
        cfg = AppConfig(
            database=DatabaseConfig(
                dsn=dsn,
                pool_size=int(str(pool_size_text).strip()),
                max_overflow=int(str(max_overflow_text).strip()),
                pool_timeout_seconds=float(str(pool_timeout_text).strip()),
                migrations_journal=migrations_journal.strip() if migrations_journal else None,
            ),
            ordering=OrderingConfig(max_questions=int(str(max_questions_text).strip())),
            auth=AuthConfig(role_header=str(role_header).strip()),
            cors_origins=cors_origins,
        )
        return cfg
    except (PydanticValidationError, ValueError) as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "OrderingConfig",
    "AuthConfig",
    "load_config",
]
