"""FastAPI application factory for the Study Buddy REST API.

create_api_app() builds a fully wired FastAPI instance with:
  - Lifespan that opens the database, the chat-completion provider and the
    two rate limiters (chat and schedule parsing), and starts/stops the
    limiters' background sweeps
  - Middleware (body size limit, request log, rate-limit headers, security
    headers, optional CORS)
  - Sanitized error handlers, including the 429 rate-limit contract
  - All route modules mounted

The app stores shared state (config, storage factory, provider, limiters)
on app.state so that FastAPI dependency injection can retrieve them in
route handlers.
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from sqlalchemy.orm import Session, sessionmaker

from studybuddy import __version__
from studybuddy.api.errors import register_error_handlers
from studybuddy.api.middleware import (
    BodySizeLimitMiddleware,
    RateLimitHeadersMiddleware,
    RequestLogMiddleware,
    SecurityHeadersMiddleware,
)
from studybuddy.api.rate_limit import FixedWindowRateLimiter
from studybuddy.api.routers import chat, courses, health, profile, shared, tasks
from studybuddy.config.schema import RateLimitRule, StudyBuddyConfig
from studybuddy.providers import create_provider
from studybuddy.providers.types import ChatProvider
from studybuddy.storage.db import create_session_factory


def build_rate_limiter(
    name: str, rule: RateLimitRule, sweep_interval: float
) -> FixedWindowRateLimiter:
    """Build one limiter from its config rule."""
    return FixedWindowRateLimiter(
        max_requests=rule.max_requests,
        window_seconds=rule.window_seconds,
        message=rule.message,
        sweep_interval=sweep_interval,
        name=name,
    )


def create_api_app(
    config: StudyBuddyConfig,
    config_path: Path | None = None,
    *,
    provider: ChatProvider | None = None,
    session_factory: sessionmaker[Session] | None = None,
) -> FastAPI:
    """Build a fully wired FastAPI application.

    ``provider`` and ``session_factory`` default to the configured ones;
    tests pass fakes. The returned app is ready to be passed to uvicorn.run().
    """
    api_config = config.gateway.api

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        limits = config.rate_limits
        chat_limiter = build_rate_limiter("chat", limits.chat, limits.sweep_interval_seconds)
        parse_limiter = build_rate_limiter("parse", limits.parse, limits.sweep_interval_seconds)
        chat_provider = provider or create_provider(config)

        app.state.config = config
        app.state.config_path = config_path
        app.state.auth_tokens = {
            user_id: token.get_secret_value() for user_id, token in api_config.auth_tokens.items()
        }
        app.state.session_factory = session_factory or create_session_factory(config.database.url)
        app.state.provider = chat_provider
        app.state.chat_rate_limiter = chat_limiter
        app.state.parse_rate_limiter = parse_limiter
        app.state.start_time = time.time()

        await chat_limiter.start()
        await parse_limiter.start()

        if not app.state.auth_tokens:
            logger.warning("No API users configured: every authenticated route will return 401")
        logger.info("API server started on {}:{}", config.gateway.host, config.gateway.port)

        try:
            yield
        finally:
            await chat_limiter.stop()
            await parse_limiter.stop()
            await chat_provider.close()
            logger.info("API server shutting down")

    app = FastAPI(
        title="Study Buddy API",
        version=__version__,
        description="AI study assistant, class schedule, tasks and calendar backend",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )

    # Last added runs outermost; CORS wraps everything, 413s and 429s included
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RateLimitHeadersMiddleware)
    app.add_middleware(RequestLogMiddleware)
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=api_config.max_request_body_bytes)
    if api_config.cors_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=api_config.cors_allowed_origins,
            allow_methods=["GET", "POST", "PATCH", "DELETE"],
            allow_headers=["Authorization", "Content-Type"],
            expose_headers=[
                "X-RateLimit-Limit",
                "X-RateLimit-Remaining",
                "X-RateLimit-Reset",
                "Retry-After",
            ],
        )

    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(profile.router)
    app.include_router(courses.router)
    app.include_router(tasks.router)
    app.include_router(chat.router)
    app.include_router(shared.router)

    return app
