"""
Translation of exceptions into `{"message": ...}` JSON responses.
"""
from __future__ import annotations

import logging
from typing import Any, Sequence

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.app.domain.errors import (
    AuthenticationError,
    ConcurrentUpdateError,
    NotFoundError,
    PermissionDeniedError,
    RecipeAppError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: list[tuple[type[RecipeAppError], int]] = [
    (NotFoundError, 404),
    (ValidationError, 400),
    (AuthenticationError, 401),
    (PermissionDeniedError, 403),
    (ConcurrentUpdateError, 409),
]


def status_for(exc: RecipeAppError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


def format_validation_errors(errors: Sequence[dict[str, Any]]) -> str:
    parts: list[str] = []
    for error in errors:
        loc = [str(item) for item in error.get("loc", ()) if item not in ("body", "query", "path")]
        message = error.get("msg", "Invalid value")
        parts.append(f"{'.'.join(loc)}: {message}" if loc else message)
    return "; ".join(parts) or "Invalid request"


async def app_error_handler(request: Request, exc: RecipeAppError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("Request failed: %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"message": str(exc)})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    errors = exc.errors() if isinstance(exc, (RequestValidationError, PydanticValidationError)) else []
    return JSONResponse(status_code=400, content={"message": format_validation_errors(errors)})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RecipeAppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PydanticValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
