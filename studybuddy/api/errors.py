"""Exception handlers for the Study Buddy REST API.

Every error body has the shape ``{"error": <message>, ...}``. Details
(stack traces, upstream replies, validation internals) go to the log and
never to the client. Rate-limit rejections are expected traffic, not
faults, and get their own 429 contract.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from studybuddy.api.rate_limit import RateLimitExceeded

RATE_LIMITED_CODE = "RATE_LIMITED"


def _error(
    status_code: int, message: str, headers: dict[str, str] | None = None, **extra: Any
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message, **extra},
        headers=headers,
    )


def _field_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    """Flatten pydantic errors to field/message/type, dropping the 'body' prefix."""
    fields = []
    for err in exc.errors():
        location = [str(part) for part in err.get("loc", ()) if part != "body"]
        fields.append(
            {
                "field": ".".join(location),
                "message": err.get("msg", "Invalid value"),
                "type": err.get("type", "value_error"),
            }
        )
    return fields


def register_error_handlers(app: FastAPI) -> None:
    """Attach the handlers to ``app``."""

    @app.exception_handler(RateLimitExceeded)
    async def rate_limited(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        decision = exc.decision
        return _error(
            429,
            decision.message,
            headers=decision.headers(),
            code=RATE_LIMITED_CODE,
            retryAfter=decision.retry_after,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail), headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = _field_errors(exc)
        logger.warning("Invalid request to {} {}: {}", request.method, request.url.path, fields)
        return _error(422, "Validation error", errors=fields)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.opt(exception=exc).error(
            "Unhandled {} on {} {}", type(exc).__name__, request.method, request.url.path
        )
        return _error(500, "Internal server error")
