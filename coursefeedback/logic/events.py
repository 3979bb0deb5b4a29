"""Ordering events emitted after a mutation commits.

Each committed add, edit, delete, or bulk reorder publishes one event. The
event is logged, kept in a bounded in-process buffer for inspection, and
passed to any subscribers registered at startup. Nothing is published for a
rolled-back operation.
"""

from __future__ import annotations

from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, List
import logging

logger = logging.getLogger(__name__)

QUESTION_CREATED = "question.created"
QUESTION_UPDATED = "question.updated"
QUESTION_DELETED = "question.deleted"
QUESTIONS_REORDERED = "questions.reordered"

Subscriber = Callable[[Dict[str, Any]], None]

EVENT_BUFFER: Deque[Dict[str, Any]] = deque(maxlen=500)
_SUBSCRIBERS: List[Subscriber] = []


def subscribe(handler: Subscriber) -> None:
    _SUBSCRIBERS.append(handler)


def unsubscribe(handler: Subscriber) -> None:
    if handler in _SUBSCRIBERS:
        _SUBSCRIBERS.remove(handler)


def publish(event_type: str, payload: Dict[str, Any]) -> None:
    event = {
        "type": event_type,
        "payload": payload,
        "at": datetime.now(timezone.utc).isoformat(),
    }
    logger.info("ordering_event type=%s payload=%s", event_type, payload)
    EVENT_BUFFER.append(event)
    for handler in list(_SUBSCRIBERS):
        try:
            handler(event)
        except Exception:
            # Mutation already committed; listener errors are only logged
            logger.error("ordering_event.subscriber_failed type=%s", event_type, exc_info=True)


def get_buffered_events(clear: bool = True) -> List[Dict[str, Any]]:
    """Return buffered events oldest first, optionally clearing the buffer."""
    snapshot = list(EVENT_BUFFER)
    if clear:
        EVENT_BUFFER.clear()
    return snapshot


__all__ = [
    "QUESTION_CREATED",
    "QUESTION_UPDATED",
    "QUESTION_DELETED",
    "QUESTIONS_REORDERED",
    "EVENT_BUFFER",
    "publish",
    "subscribe",
    "unsubscribe",
    "get_buffered_events",
]
