"""HTTP middleware for the Study Buddy REST API.

From the outside in, every request passes through:
  BodySizeLimitMiddleware    -> 413 for declared bodies over the limit
  RequestLogMiddleware       -> request id, one log line per request
  RateLimitHeadersMiddleware -> X-RateLimit-* headers for guarded routes
  SecurityHeadersMiddleware  -> nosniff / DENY / no-store, X-Request-ID
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse

from studybuddy.api.rate_limit import RateLimitDecision, default_key_func

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
}


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Turn away requests whose Content-Length is over ``max_bytes``.

    Only the declared length is checked; chunked bodies fall through to
    uvicorn's own limits.
    """

    def __init__(self, app, max_bytes: int) -> None:
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self.max_bytes:
            logger.warning(
                "Rejected {} {}: body of {} bytes over the {} byte limit",
                request.method,
                request.url.path,
                declared,
                self.max_bytes,
            )
            return JSONResponse(
                status_code=413,
                content={"error": f"Request body too large (max {self.max_bytes} bytes)"},
            )
        return await call_next(request)


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Tag the request with an id and log its outcome once it completes.

    The caller is logged the same way the rate limiters key it
    (``user:<id>`` or ``ip:<addr>``), so log lines line up with quota keys.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
        started = time.perf_counter()

        response = await call_next(request)

        elapsed_ms = (time.perf_counter() - started) * 1000
        level = "WARNING" if response.status_code >= 400 else "INFO"
        logger.log(
            level,
            "{} {} -> {} in {:.0f}ms caller={} request_id={}",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            default_key_func(request),
            request.state.request_id,
        )
        return response


class RateLimitHeadersMiddleware(BaseHTTPMiddleware):
    """Copy the decision that RateLimitGuard left on request.state onto the response.

    Dependencies can't add headers to a Response object the handler returns
    itself (the SSE stream is one), so the headers are written here.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        decision: RateLimitDecision | None = getattr(request.state, "rate_limit", None)
        if decision is not None:
            response.headers.update(decision.headers())
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add hardening headers and echo the request id.

    Cache-Control is only filled in when the handler didn't set its own.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        response.headers.setdefault("Cache-Control", "no-store")

        request_id = getattr(request.state, "request_id", None)
        if request_id:
            response.headers["X-Request-ID"] = request_id
        return response
