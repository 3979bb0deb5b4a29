"""Central mapping from ordering outcomes to problem+json statuses.

Single source of truth for the HTTP status and title of each domain
exception; handlers import from here instead of hardcoding numbers.
"""

from __future__ import annotations

ORDERING_ERROR_MAP = {
    "validation_failed": {"status": 400, "title": "Bad Request"},
    "question_not_found": {"status": 404, "title": "Not Found"},
    "ordering_conflict": {"status": 409, "title": "Conflict"},
    "operation_failed": {"status": 500, "title": "Internal Server Error"},
}

DEFAULT_ERROR = {"status": 500, "title": "Internal Server Error"}

__all__ = ["ORDERING_ERROR_MAP", "DEFAULT_ERROR"]
