"""Caller-role guards for question routes.

Authentication happens upstream (session login is not part of this
service); the upstream layer asserts the caller's role in a configured
request header. These dependencies only decide whether that role may call
the route.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional
import logging

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

ADMIN = "admin"
STUDENT = "student"
KNOWN_ROLES = frozenset({ADMIN, STUDENT})


@dataclass(frozen=True)
class Caller:
    role: str


def get_caller(request: Request) -> Optional[Caller]:
    header_name = request.app.state.config.auth.role_header
    raw = (request.headers.get(header_name) or "").strip().lower()
    if raw not in KNOWN_ROLES:
        return None
    return Caller(role=raw)


def require_roles(*roles: str) -> Callable[[Request], Caller]:
    allowed = frozenset(roles)

    def dependency(request: Request) -> Caller:
        caller = get_caller(request)
        if caller is None:
            raise HTTPException(
                status_code=401,
                detail={"title": "Unauthorized", "status": 401, "detail": "authentication required", "code": "unauthorized"},
            )
        if caller.role not in allowed:
            logger.info("caller_guard.forbidden role=%s path=%s", caller.role, request.url.path)
            raise HTTPException(
                status_code=403,
                detail={"title": "Forbidden", "status": 403, "detail": "role not permitted", "code": "forbidden"},
            )
        return caller

    return dependency


require_admin = require_roles(ADMIN)
require_reader = require_roles(ADMIN, STUDENT)

__all__ = ["ADMIN", "STUDENT", "Caller", "get_caller", "require_roles", "require_admin", "require_reader"]
