"""FastAPI application package for the course feedback service.

Exposes the application factory. Ordering logic lives in
`coursefeedback/logic/`, route handlers in `coursefeedback/routes/`.
"""

from __future__ import annotations

from coursefeedback.main import create_app

__all__ = ["create_app"]
