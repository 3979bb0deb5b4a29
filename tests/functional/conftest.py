"""Functional test bootstrap for question ordering.

Each test gets its own file-backed SQLite database with the bundled SQLite
migrations applied, so ordering state never leaks between tests. The HTTP
client fixture builds the FastAPI app on the same engine.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterator, List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from coursefeedback.config import AppConfig, DatabaseConfig, OrderingConfig
from coursefeedback.db.base import build_engine
from coursefeedback.db.migrations_runner import apply_migrations
from coursefeedback.logic import events
from coursefeedback.logic.order_sequences import ReorderEngine
from coursefeedback.logic.question_service import QuestionService
from coursefeedback.logic.repository_questions import OrderedQuestionStore
from coursefeedback.main import create_app
from coursefeedback.models.question import Question

MAX_QUESTIONS = 50
ADMIN = {"X-Caller-Role": "admin"}
STUDENT = {"X-Caller-Role": "student"}


@pytest.fixture()
def app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        database=DatabaseConfig(dsn=f"sqlite+pysqlite:///{tmp_path / 'feedback.db'}", pool_timeout_seconds=5),
        ordering=OrderingConfig(max_questions=MAX_QUESTIONS),
    )


@pytest.fixture()
def engine(app_config: AppConfig) -> Iterator[Engine]:
    eng = build_engine(app_config.database)
    apply_migrations(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def store(engine: Engine) -> OrderedQuestionStore:
    return OrderedQuestionStore(engine)


@pytest.fixture()
def reorder_engine(store: OrderedQuestionStore) -> ReorderEngine:
    return ReorderEngine(store, max_questions=MAX_QUESTIONS)


@pytest.fixture()
def service(store: OrderedQuestionStore, reorder_engine: ReorderEngine) -> QuestionService:
    return QuestionService(store, reorder_engine)


@pytest.fixture()
def seed(reorder_engine: ReorderEngine) -> Callable[[int], List[Question]]:
    """Append ``n`` questions named Q1..Qn at positions 1..n."""

    def _seed(n: int) -> List[Question]:
        created = []
        for i in range(1, n + 1):
            created.append(reorder_engine.add(text=f"Q{i}", question_type="rating", position=i))
        return created

    return _seed


@pytest.fixture()
def client(app_config: AppConfig, engine: Engine) -> Iterator[TestClient]:
    app = create_app(app_config, engine)
    with TestClient(app) as c:
        yield c


@pytest.fixture(autouse=True)
def clear_event_buffer() -> Iterator[None]:
    events.get_buffered_events(clear=True)
    yield
    events.get_buffered_events(clear=True)
