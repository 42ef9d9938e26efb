"""Health check endpoint.

GET /health — unauthenticated, for load balancer probes
"""

from __future__ import annotations

import time

from fastapi import APIRouter, Request

from studybuddy import __version__

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_probe(request: Request) -> dict:
    """Unauthenticated health check with version and uptime."""
    start_time: float | None = getattr(request.app.state, "start_time", None)
    body: dict = {"status": "ok", "version": __version__}
    if start_time is not None:
        body["uptime_seconds"] = round(time.time() - start_time, 1)
    return body
