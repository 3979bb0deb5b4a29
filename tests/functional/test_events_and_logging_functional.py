"""Functional tests for ordering events and request-scoped logging."""

from __future__ import annotations

import logging

import pytest

from coursefeedback.http.request_id import current_request_id
from coursefeedback.logging_setup import RequestIdLogFilter
from coursefeedback.logic import events
from coursefeedback.logic.errors import ValidationError


def test_subscribers_receive_committed_events(reorder_engine):
    received = []
    events.subscribe(received.append)
    try:
        created = reorder_engine.add(text="Q1", question_type="rating", position=1)
    finally:
        events.unsubscribe(received.append)

    assert [e["type"] for e in received] == [events.QUESTION_CREATED]
    assert received[0]["payload"] == {"id": created.id, "position": 1}


def test_failing_subscriber_does_not_fail_the_operation(store, reorder_engine):
    def broken(event):
        raise RuntimeError("listener down")

    events.subscribe(broken)
    try:
        reorder_engine.add(text="Q1", question_type="rating", position=1)
    finally:
        events.unsubscribe(broken)

    assert [q.text for q in store.list_questions()] == ["Q1"]


def test_rejected_operation_publishes_nothing(reorder_engine, seed):
    seed(1)
    events.get_buffered_events(clear=True)

    with pytest.raises(ValidationError):
        reorder_engine.add(text="far", question_type="rating", position=9)

    assert events.get_buffered_events() == []


def test_log_filter_stamps_current_request_id():
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
    token = current_request_id.set("req-42")
    try:
        RequestIdLogFilter().filter(record)
    finally:
        current_request_id.reset(token)

    assert record.request_id == "req-42"
    RequestIdLogFilter().filter(record)
    assert record.request_id == "-"
