"""Error Handlers — global exception handlers for the entity application.

Invariants:
    - UnauthorizedAccessError / EntityNotFoundError → 401 / 404 with the message as
      plain text, the same contract EntityRoute gives entity controllers
    - Any other EntityMvcError → structured JSON envelope with its http_status
    - RequestValidationError → 400 with field-level details
    - Exception (catch-all) → 500, never leaks internal details
    - Every JSON error body carries the request id when one was assigned

Design Decisions:
    - Handlers registered explicitly by register_error_handlers(app) from main.py
    - Access handlers cover routes that are not built by EntityController
      (custom routes calling EntityDomainService directly)
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

from entitymvc.core.errors import (
    EntityMvcError, EntityNotFoundError, ErrorSeverity, UnauthorizedAccessError,
)

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    app.add_exception_handler(UnauthorizedAccessError, access_error_handler)
    app.add_exception_handler(EntityNotFoundError, access_error_handler)
    app.add_exception_handler(EntityMvcError, entity_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _with_request_id(body: dict, request: Request) -> dict:
    request_id = _request_id(request)
    if request_id:
        body["error"]["request_id"] = request_id
    return body


async def access_error_handler(request: Request, exc: EntityMvcError):
    """Plain-text 401/404 for access errors raised outside entity controllers."""
    logger.warning(
        exc.message,
        extra={
            "error_code": exc.code, "path": request.url.path,
            "entity": exc.context.entity, "action": exc.context.action,
            "request_id": _request_id(request),
        },
    )
    return PlainTextResponse(exc.message, status_code=exc.http_status)


async def entity_error_handler(request: Request, exc: EntityMvcError):
    """Handle all other domain/infrastructure errors."""
    logger.error(
        f"EntityMvcError: {exc.message}",
        extra={
            "error_code": exc.code, "path": request.url.path,
            "request_id": _request_id(request),
        },
    )
    return JSONResponse(
        status_code=exc.http_status,
        content=_with_request_id(exc.to_response(), request),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors."""
    logger.warning(
        f"Validation error on {request.url.path}: {exc.errors()}",
        extra={"path": request.url.path, "request_id": _request_id(request)},
    )
    body = {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Invalid request data",
            "category": "validation",
            "severity": ErrorSeverity.ERROR.value,
            "details": [
                {
                    "field": ".".join(str(loc) for loc in e["loc"]),
                    "message": e["msg"],
                    "type": e["type"],
                }
                for e in exc.errors()
            ],
        },
    }
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_with_request_id(body, request),
    )


async def generic_error_handler(request: Request, exc: Exception):
    """Catch-all — never leaks internal details."""
    logger.error(
        f"Unhandled exception on {request.url.path}: {exc}",
        exc_info=True,
        extra={"path": request.url.path, "request_id": _request_id(request)},
    )
    body = {
        "error": {
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
            "category": "internal",
            "severity": ErrorSeverity.CRITICAL.value,
        },
    }
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_with_request_id(body, request),
    )
