from __future__ import annotations

import logging
import os
from typing import Callable, Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text as sql_text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from coursefeedback.config import AppConfig, load_config
from coursefeedback.db.base import build_engine
from coursefeedback.db.migrations_runner import apply_migrations
from coursefeedback.http.problem import (
    handle_http_exception,
    handle_ordering_error,
    handle_request_validation_error,
    handle_unexpected_error,
)
from coursefeedback.http.request_id import RequestIdMiddleware
from coursefeedback.logging_setup import configure_logging
from coursefeedback.logic.errors import QuestionOrderingError
from coursefeedback.logic.order_sequences import ReorderEngine
from coursefeedback.logic.question_service import QuestionService
from coursefeedback.logic.repository_questions import OrderedQuestionStore
from coursefeedback.middleware.cors import apply_cors
from coursefeedback.routes import api_router

logger = logging.getLogger(__name__)


def _health_check(engine: Engine) -> Callable[[], dict]:
    def check() -> dict:
        try:
            with engine.connect() as conn:
                conn.execute(sql_text("SELECT 1"))
            return {"status": "ok", "db": True}
        except SQLAlchemyError:
            logger.error("Health DB check failed", exc_info=True)
            return {"status": "degraded", "db": False}

    return check


def create_app(config: Optional[AppConfig] = None, engine: Optional[Engine] = None) -> FastAPI:
    """Build the FastAPI application.

    The pooled engine is acquired here, once, and handed to the store; the
    reorder engine and service are built on top and parked on ``app.state``.
    Set ``AUTO_APPLY_MIGRATIONS=0`` to skip applying the bundled migrations.
    """
    configure_logging()
    config = config or load_config()
    engine = engine or build_engine(config.database)

    if os.getenv("AUTO_APPLY_MIGRATIONS", "1").strip() != "0":
        apply_migrations(engine, journal_path=config.database.migrations_journal)

    store = OrderedQuestionStore(engine)
    reorder_engine = ReorderEngine(store, max_questions=config.ordering.max_questions)

    app = FastAPI(title="Course Feedback Service")
    app.state.config = config
    app.state.engine = engine
    app.state.question_service = QuestionService(store, reorder_engine)

    app.add_exception_handler(QuestionOrderingError, handle_ordering_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    apply_cors(app, origins=config.cors_origins)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router, prefix="/api/v1")

    health_check = _health_check(engine)

    @app.get("/health")
    def health() -> dict:
        return health_check()

    logger.info("app.created dialect=%s max_questions=%s", engine.dialect.name, config.ordering.max_questions)
    return app
