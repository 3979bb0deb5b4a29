"""Functional tests for configuration loading and the migrations runner."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import text as sql_text

from coursefeedback.config import DEFAULT_DSN, load_config
from coursefeedback.db.migrations_runner import apply_migrations, migrations_dir_for
from coursefeedback.main import create_app

_ENV_KEYS = (
    "DATABASE_URL",
    "DATABASE_POOL_SIZE",
    "DATABASE_MAX_OVERFLOW",
    "DATABASE_POOL_TIMEOUT_SECONDS",
    "DATABASE_MIGRATIONS_JOURNAL",
    "ORDERING_MAX_QUESTIONS",
    "AUTH_ROLE_HEADER",
    "CORS_ORIGINS",
)


@pytest.fixture()
def clean_env(monkeypatch, tmp_path):
    for key in _ENV_KEYS:
        # setenv first so teardown also removes values loaded from a .env
        monkeypatch.setenv(key, "unset")
        monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_defaults_apply_without_any_source(clean_env):
    cfg = load_config()

    assert cfg.database.dsn == DEFAULT_DSN
    assert cfg.ordering.max_questions == 1000
    assert cfg.auth.role_header == "X-Caller-Role"
    assert cfg.cors_origins == ["*"]


def test_json_file_is_overridden_by_config_dir_then_env(clean_env, monkeypatch):
    (clean_env / "feedback_config.json").write_text(
        json.dumps({"database": {"dsn": "sqlite+pysqlite:///from-json.db", "pool_size": 3}, "ordering": {"max_questions": 20}}),
        encoding="utf-8",
    )
    (clean_env / "config").mkdir()
    (clean_env / "config" / "ordering.max_questions").write_text("30\n", encoding="utf-8")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")

    cfg = load_config()

    assert cfg.database.dsn == "sqlite+pysqlite:///from-json.db"
    assert cfg.database.pool_size == 3
    assert cfg.ordering.max_questions == 30
    assert cfg.cors_origins == ["https://a.example", "https://b.example"]

    monkeypatch.setenv("ORDERING_MAX_QUESTIONS", "40")
    assert load_config().ordering.max_questions == 40


def test_dotenv_file_is_loaded(clean_env):
    (clean_env / ".env").write_text("AUTH_ROLE_HEADER=X-Role\n", encoding="utf-8")

    cfg = load_config()

    assert cfg.auth.role_header == "X-Role"


@pytest.mark.parametrize(
    "key,value,error",
    [
        ("ORDERING_MAX_QUESTIONS", "0", PydanticValidationError),
        ("ORDERING_MAX_QUESTIONS", "many", ValueError),
        ("DATABASE_POOL_SIZE", "-1", PydanticValidationError),
    ],
)
def test_invalid_values_raise(clean_env, monkeypatch, key, value, error):
    monkeypatch.setenv(key, value)

    with pytest.raises(error):
        load_config()


def test_migrations_are_idempotent_and_seed_lock_row(engine):
    again = apply_migrations(engine)

    assert again == ["001_feedback_questions.sql"]
    with engine.connect() as conn:
        locks = conn.execute(sql_text("SELECT name, version FROM ordering_lock")).fetchall()
        count = conn.execute(sql_text("SELECT COUNT(*) FROM feedback_questions")).scalar_one()
    assert [tuple(r) for r in locks] == [("feedback_questions", 0)]
    assert count == 0


def test_journal_skips_applied_files(engine, tmp_path):
    journal = tmp_path / "journal.json"

    first = apply_migrations(engine, journal_path=journal)
    second = apply_migrations(engine, journal_path=journal)

    assert first == ["001_feedback_questions.sql"]
    assert second == []
    entries = json.loads(journal.read_text(encoding="utf-8"))
    assert entries[0]["filename"] == f"{migrations_dir_for(engine).name}/001_feedback_questions.sql"


def test_journal_path_is_read_from_environment(clean_env, monkeypatch):
    monkeypatch.setenv("DATABASE_MIGRATIONS_JOURNAL", str(clean_env / "_journal.json"))

    assert load_config().database.migrations_journal == str(clean_env / "_journal.json")


def test_app_startup_applies_migrations_once_with_journal(app_config, engine, tmp_path, monkeypatch):
    monkeypatch.setenv("AUTO_APPLY_MIGRATIONS", "1")
    journal = tmp_path / "_journal.json"
    config = app_config.model_copy(
        update={"database": app_config.database.model_copy(update={"migrations_journal": str(journal)})}
    )

    create_app(config, engine)
    first = json.loads(journal.read_text(encoding="utf-8"))
    create_app(config, engine)
    second = json.loads(journal.read_text(encoding="utf-8"))

    assert [e["filename"] for e in first] == ["sqlite_migrations/001_feedback_questions.sql"]
    assert second == first
