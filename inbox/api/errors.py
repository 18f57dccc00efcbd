"""Exception handlers rendering every failure as a ``{success, message}`` envelope."""

from __future__ import annotations

import logging

import psycopg
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..domain.errors import InboxError

logger = logging.getLogger(__name__)


def envelope(success: bool, message: str, status_code: int = status.HTTP_200_OK, **payload) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": success, "message": message, **payload},
    )


async def inbox_error_handler(request: Request, exc: InboxError) -> JSONResponse:
    """Translate domain errors into their mapped status and message."""
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return envelope(False, exc.message, exc.status_code)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Reject schema failures before any mutation, with field-level detail."""
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]) or "body",
            "message": err.get("msg", "invalid value"),
        }
        for err in exc.errors()
    ]
    logger.info("validation error on %s: %s", request.url.path, errors)
    message = ", ".join(f"{err['field']}: {err['message']}" for err in errors) or "Invalid request"
    return envelope(False, message, status.HTTP_400_BAD_REQUEST, errors=errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.warning("HTTP %s: %s - %s", exc.status_code, exc.detail, request.url.path)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def store_error_handler(request: Request, exc: psycopg.Error) -> JSONResponse:
    """Hide database failures behind a generic internal error."""
    logger.error("database error on %s %s", request.method, request.url.path, exc_info=exc)
    return envelope(False, "Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unexpected error on %s %s", request.method, request.url.path, exc_info=exc)
    return envelope(False, "Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InboxError, inbox_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(psycopg.Error, store_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
