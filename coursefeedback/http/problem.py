"""Problem+JSON utilities and global exception handlers.

Defines the RFC7807 media type and handler callables that turn framework
and ordering exceptions into application/problem+json responses.
"""

from __future__ import annotations

import logging
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from coursefeedback.http.error_mapping import DEFAULT_ERROR, ORDERING_ERROR_MAP
from coursefeedback.logic.errors import QuestionOrderingError, StoreFailure, ValidationError

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def problem_response(status: int, title: str, detail: str, code: str, **extra: object) -> JSONResponse:
    body: dict = {"title": title, "status": status, "detail": detail, "code": code}
    body.update(extra)
    return JSONResponse(body, status_code=status, media_type=PROBLEM_MEDIA_TYPE)


async def handle_ordering_error(request: Request, exc: QuestionOrderingError) -> JSONResponse:  # noqa: D401
    mapping = ORDERING_ERROR_MAP.get(exc.code, DEFAULT_ERROR)
    status = int(mapping["status"])
    if isinstance(exc, StoreFailure):
        # Underlying cause was logged where the transaction rolled back
        return problem_response(status, str(mapping["title"]), "operation failed", exc.code)
    extra: dict = {}
    if isinstance(exc, ValidationError) and exc.errors:
        extra["errors"] = exc.errors
    logger.info("error_handler.handle code=%s path=%s", exc.code, request.url.path)
    return problem_response(status, str(mapping["title"]), exc.message, exc.code, **extra)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status = int(getattr(exc, "status_code", 500) or 500)
    if isinstance(exc.detail, dict):
        detail = exc.detail
    else:
        detail = {"title": "Error", "status": status, "detail": str(exc.detail or "")}
    headers = {str(k): str(v) for k, v in (exc.headers or {}).items()}
    return JSONResponse(detail, status_code=status, media_type=PROBLEM_MEDIA_TYPE, headers=headers or None)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    errors = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        errors.append({"path": f"$.{loc}" if loc else "$", "code": str(err.get("type", "invalid"))})
    return problem_response(400, "Bad Request", "Request validation failed", "validation_failed", errors=errors)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return JSONResponse({"title": "Internal Server Error", "status": 500}, status_code=500, media_type=PROBLEM_MEDIA_TYPE)


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "problem_response",
    "handle_ordering_error",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
