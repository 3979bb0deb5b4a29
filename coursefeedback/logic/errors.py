"""Outcome taxonomy for question ordering operations.

Routes translate these into problem+json responses; the engine raises them
only after its transaction has been rolled back.
"""

from __future__ import annotations

from typing import Dict, List, Optional


class QuestionOrderingError(Exception):
    code = "ordering_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(QuestionOrderingError):
    code = "validation_failed"

    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None) -> None:
        super().__init__(message)
        self.errors: List[Dict[str, str]] = list(errors or [])


class NotFoundError(QuestionOrderingError):
    code = "question_not_found"

    def __init__(self, question_id: int) -> None:
        super().__init__(f"question {question_id} no longer exists")
        self.question_id = question_id


class ConflictError(QuestionOrderingError):
    code = "ordering_conflict"


class StoreFailure(QuestionOrderingError):
    """Transactional or connectivity failure; detail is logged, never returned."""

    code = "operation_failed"

    def __init__(self, message: str = "operation failed") -> None:
        super().__init__(message)


__all__ = [
    "QuestionOrderingError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "StoreFailure",
]
