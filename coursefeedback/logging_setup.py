"""Process-wide logging for the feedback service.

One stdout handler on the root logger, configured through dictConfig. Every
record carries the id of the HTTP request being served (``-`` outside a
request) so ordering log lines can be tied to the call that caused them.
``LOG_LEVEL`` raises or lowers the root level; SQLAlchemy's engine logger
stays at WARNING.
"""
from __future__ import annotations

import logging
import os
from logging.config import dictConfig

from coursefeedback.http.request_id import current_request_id


class RequestIdLogFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = current_request_id.get()
        return True


def _dict_config(level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"request_id": {"()": RequestIdLogFilter}},
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s:%(name)s:[%(request_id)s] %(message)s",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "default",
                "filters": ["request_id"],
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": level, "handlers": ["console"]},
        "loggers": {
            "uvicorn": {"level": "INFO", "handlers": ["console"], "propagate": False},
            "uvicorn.error": {"level": "INFO", "handlers": ["console"], "propagate": False},
            "uvicorn.access": {"level": "INFO", "handlers": ["console"], "propagate": False},
            "sqlalchemy.engine": {"level": "WARNING"},
        },
    }


def configure_logging() -> None:
    """Install the stdout handler unless the root logger already has one."""
    root = logging.getLogger()
    if root.handlers:
        return
    level = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        level = "INFO"
    dictConfig(_dict_config(level))
