"""QuestionType constants for the response kind a question collects.

A plain constants container instead of an Enum keeps the values usable
directly as column values and in Pydantic validators.
"""

from __future__ import annotations


class QuestionType:
    RATING = "rating"
    TEXT = "text"
    YES_NO = "yes_no"

    ALL = frozenset({RATING, TEXT, YES_NO})


__all__ = ["QuestionType"]
