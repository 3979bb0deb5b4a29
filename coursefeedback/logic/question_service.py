"""Question service consumed by the HTTP layer.

Validates raw payloads with the Pydantic models before any store
interaction, then delegates to the reorder engine. Outcomes surface as the
exceptions in `coursefeedback.logic.errors`.
"""

from __future__ import annotations

from typing import Any, Dict, List, Type, TypeVar
import logging

from pydantic import BaseModel, ValidationError as PydanticValidationError

from coursefeedback.logic.errors import NotFoundError, ValidationError
from coursefeedback.logic.order_sequences import ReorderEngine
from coursefeedback.logic.repository_questions import OrderedQuestionStore
from coursefeedback.models.question import (
    ActiveQuestion,
    Question,
    QuestionCreate,
    QuestionUpdate,
    ReorderRequest,
)

logger = logging.getLogger(__name__)

_M = TypeVar("_M", bound=BaseModel)


def _error_items(exc: PydanticValidationError) -> List[Dict[str, str]]:
    items: List[Dict[str, str]] = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        items.append({"path": f"$.{loc}" if loc else "$", "code": str(err.get("type", "invalid"))})
    return items


def _parse(model: Type[_M], payload: Any, message: str) -> _M:
    if not isinstance(payload, dict):
        raise ValidationError(message, [{"path": "$", "code": "object_expected"}])
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(message, _error_items(exc)) from exc


class QuestionService:
    def __init__(self, store: OrderedQuestionStore, engine: ReorderEngine) -> None:
        self.store = store
        self.engine = engine

    def list_all(self) -> List[Question]:
        return self.store.list_questions()

    def list_active(self) -> List[ActiveQuestion]:
        return self.store.list_active_questions()

    def get(self, question_id: int) -> Question:
        question = self.store.get_question(question_id)
        if question is None:
            raise NotFoundError(question_id)
        return question

    def create(self, payload: Any) -> Question:
        data = _parse(QuestionCreate, payload, "question text, type, and position are required")
        return self.engine.add(
            text=data.text,
            question_type=data.type,
            position=data.position,
            required=data.required,
        )

    def update(self, question_id: int, payload: Any) -> Question:
        data = _parse(QuestionUpdate, payload, "question text, type, and position are required")
        return self.engine.update(
            question_id,
            position=data.position,
            previous_position=data.previous_position,
            text=data.text,
            question_type=data.type,
            required=data.required,
            active=data.active,
        )

    def delete(self, question_id: int) -> int:
        return self.engine.delete(question_id)

    def bulk_reorder(self, payload: Any) -> int:
        data = _parse(ReorderRequest, payload, "each question must have an id and a position")
        return self.engine.bulk_reorder((item.id, item.position) for item in data.questions)


__all__ = ["QuestionService"]
