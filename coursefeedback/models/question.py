"""Pydantic models for feedback questions and their write payloads.

Wire names follow the question JSON (`text`, `type`, `position`, ...); the
legacy admin client's names (`question_text`, `display_order`, ...) are
accepted as aliases on input.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from coursefeedback.models.question_type import QuestionType


class Question(BaseModel):
    id: int
    text: str
    type: str
    position: int
    required: bool
    active: bool
    created_at: str


class ActiveQuestion(BaseModel):
    """Presentation view of a question on the student feedback form."""

    id: int
    text: str
    type: str
    position: int
    required: bool


class _QuestionFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    text: str = Field(validation_alias=AliasChoices("text", "question_text"))
    type: str = Field(validation_alias=AliasChoices("type", "question_type"))
    position: int = Field(gt=0, strict=True, validation_alias=AliasChoices("position", "display_order"))

    @field_validator("text")
    @classmethod
    def text_must_be_non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("text must be a non-empty string")
        return v

    @field_validator("type")
    @classmethod
    def type_must_be_known(cls, v: str) -> str:
        v = v.strip()
        if v not in QuestionType.ALL:
            raise ValueError(f"type must be one of {sorted(QuestionType.ALL)}")
        return v


class QuestionCreate(_QuestionFields):
    required: bool = Field(default=True, validation_alias=AliasChoices("required", "is_required"))


class QuestionUpdate(_QuestionFields):
    # None leaves the stored flag untouched
    required: Optional[bool] = Field(default=None, validation_alias=AliasChoices("required", "is_required"))
    active: Optional[bool] = Field(default=None, validation_alias=AliasChoices("active", "is_active"))
    previous_position: Optional[int] = Field(
        default=None,
        gt=0,
        strict=True,
        validation_alias=AliasChoices("previous_position", "old_order"),
    )


class ReorderItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int = Field(gt=0, strict=True)
    position: int = Field(gt=0, strict=True, validation_alias=AliasChoices("position", "display_order"))


class ReorderRequest(BaseModel):
    questions: List[ReorderItem] = Field(min_length=1)


__all__ = [
    "Question",
    "ActiveQuestion",
    "QuestionCreate",
    "QuestionUpdate",
    "ReorderItem",
    "ReorderRequest",
]
