"""Feedback question endpoints.

Management routes (admin role) list, create, edit, delete, and bulk reorder
questions; the active list is also readable by students for the feedback
form. Handlers are thin: the service validates and the engine orders.
"""

from __future__ import annotations

from typing import Any
import logging

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from coursefeedback.guards.caller import Caller, require_admin, require_reader
from coursefeedback.logic.question_service import QuestionService


router = APIRouter(prefix="/questions")
logger = logging.getLogger(__name__)


def get_question_service(request: Request) -> QuestionService:
    return request.app.state.question_service


@router.get("", summary="List all questions in display order", operation_id="listQuestions")
def list_questions(
    service: QuestionService = Depends(get_question_service),
    _caller: Caller = Depends(require_admin),
) -> list[dict]:
    return [q.model_dump() for q in service.list_all()]


@router.get("/active", summary="List active questions for the feedback form", operation_id="listActiveQuestions")
def list_active_questions(
    service: QuestionService = Depends(get_question_service),
    _caller: Caller = Depends(require_reader),
) -> list[dict]:
    return [q.model_dump() for q in service.list_active()]


@router.get("/{question_id}", summary="Get one question", operation_id="getQuestion")
def get_question(
    question_id: int,
    service: QuestionService = Depends(get_question_service),
    _caller: Caller = Depends(require_admin),
) -> dict:
    return service.get(question_id).model_dump()


@router.post("", summary="Add a question at a position", operation_id="createQuestion")
def create_question(
    payload: Any = Body(default=None),
    service: QuestionService = Depends(get_question_service),
    _caller: Caller = Depends(require_admin),
) -> JSONResponse:
    created = service.create(payload)
    body = {
        "success": True,
        "id": created.id,
        "position": created.position,
        "message": f"Question added at position {created.position}. Existing questions have been shifted down.",
    }
    return JSONResponse(body, status_code=201)


@router.post("/reorder", summary="Bulk reorder questions (drag and drop)", operation_id="reorderQuestions")
def reorder_questions(
    payload: Any = Body(default=None),
    service: QuestionService = Depends(get_question_service),
    _caller: Caller = Depends(require_admin),
) -> dict:
    changed = service.bulk_reorder(payload)
    return {"success": True, "changed": changed, "message": "Questions reordered successfully"}


@router.put("/{question_id}", summary="Edit a question and optionally move it", operation_id="updateQuestion")
def update_question(
    question_id: int,
    payload: Any = Body(default=None),
    service: QuestionService = Depends(get_question_service),
    _caller: Caller = Depends(require_admin),
) -> dict:
    updated = service.update(question_id, payload)
    return {"success": True, "message": "Question updated successfully", "question": updated.model_dump()}


@router.delete("/{question_id}", summary="Delete a question and close the gap", operation_id="deleteQuestion")
def delete_question(
    question_id: int,
    service: QuestionService = Depends(get_question_service),
    _caller: Caller = Depends(require_admin),
) -> dict:
    position = service.delete(question_id)
    return {
        "success": True,
        "position": position,
        "message": "Question deleted and remaining questions reordered",
    }
