"""In-memory fixed-window rate limiter for the Study Buddy REST API.

Two instances are used in practice:
  - chat limiter (15 messages/minute) in front of the study-chat relay
  - parse limiter (5 parses/minute) in front of schedule-text parsing

Each key (authenticated user, or client IP when anonymous) gets a counter
that resets entirely when its window closes. Counters live in process
memory only; a restart forgets them and nothing is shared across workers.
A periodic sweep task drops expired counters so idle keys don't pile up.
"""

from __future__ import annotations

import asyncio
import contextlib
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

from loguru import logger

DEFAULT_MESSAGE = "Too many requests. Please wait before trying again."
DEFAULT_SWEEP_INTERVAL = 5 * 60
UNKNOWN_CLIENT_KEY = "ip:unknown"


@dataclass(slots=True)
class CounterEntry:
    """Request counter for one key over its current window."""

    key: str
    count: int
    reset_at: float


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    """Outcome of a single rate-limit check.

    reset_at is a UNIX timestamp in seconds. retry_after is whole seconds,
    rounded up, and is only non-zero for rejected requests.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: int = 0
    message: str = ""

    def headers(self) -> dict[str, str]:
        """Quota headers to attach to the HTTP response."""
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(math.ceil(self.reset_at)),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after)
        return headers


def default_key_func(request: Any) -> str:
    """Key requests by authenticated user, falling back to client IP.

    Callers with neither identity share the ``ip:unknown`` counter.
    """
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return f"user:{user_id}"

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
        if ip:
            return f"ip:{ip}"

    if request.client and request.client.host:
        return f"ip:{request.client.host}"
    return UNKNOWN_CLIENT_KEY


class FixedWindowRateLimiter:
    """Fixed-window counter rate limiter keyed by arbitrary string.

    The first request for a key opens a window of ``window_seconds``.
    Every request inside the window increments the counter, rejected
    ones included; once the counter passes ``max_requests`` the rest of
    the window is rejected. A request arriving after the window closed
    starts a fresh window with the counter at 1.

    All reads and writes of the counter map happen under one lock, so the
    limiter is safe to share between the event loop and worker threads.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float = 60,
        *,
        key_func: Callable[[Any], str] = default_key_func,
        message: str = DEFAULT_MESSAGE,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        clock: Callable[[], float] = time.time,
        name: str = "default",
    ) -> None:
        if max_requests < 0:
            raise ValueError(f"max_requests must be >= 0, got {max_requests}")
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be > 0, got {window_seconds}")
        if sweep_interval <= 0:
            raise ValueError(f"sweep_interval must be > 0, got {sweep_interval}")

        self.name = name
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.message = message
        self.sweep_interval = sweep_interval
        self._key_func = key_func
        self._clock = clock
        self._entries: dict[str, CounterEntry] = {}
        self._lock = threading.Lock()
        self._sweep_task: asyncio.Task[None] | None = None

    def check(self, key: str) -> RateLimitDecision:
        """Record one request for ``key`` and decide whether to admit it."""
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)

            if entry is None or entry.reset_at < now:
                entry = CounterEntry(key=key, count=1, reset_at=now + self.window_seconds)
                self._entries[key] = entry
            else:
                entry.count += 1

            count = entry.count
            reset_at = entry.reset_at

        if count <= self.max_requests:
            return RateLimitDecision(
                allowed=True,
                limit=self.max_requests,
                remaining=max(0, self.max_requests - count),
                reset_at=reset_at,
            )

        return RateLimitDecision(
            allowed=False,
            limit=self.max_requests,
            remaining=0,
            reset_at=reset_at,
            # round() drops float noise so a whole-second window doesn't ceil up
            retry_after=max(0, math.ceil(round(reset_at - now, 6))),
            message=self.message,
        )

    def check_request(self, request: Any) -> RateLimitDecision:
        """Extract the request's key and run :meth:`check` on it."""
        return self.check(self._key_func(request))

    def sweep(self) -> int:
        """Remove keys whose window has closed. Returns number of keys removed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.reset_at < now]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def reset(self) -> None:
        """Forget every counter."""
        with self._lock:
            self._entries.clear()

    def get_entry(self, key: str) -> CounterEntry | None:
        """Return a snapshot of the counter stored for ``key``, if any."""
        with self._lock:
            entry = self._entries.get(key)
            return replace(entry) if entry is not None else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def is_sweeping(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def start(self) -> None:
        """Launch the periodic sweep on the running event loop."""
        if self.is_sweeping:
            return
        self._sweep_task = asyncio.create_task(
            self._sweep_loop(),
            name=f"ratelimit-sweep-{self.name}",
        )
        logger.debug(
            "Rate limiter '{}' sweep started (every {}s)", self.name, self.sweep_interval
        )

    async def stop(self) -> None:
        """Cancel the sweep task and wait for it to finish."""
        task = self._sweep_task
        self._sweep_task = None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.debug("Rate limiter '{}' sweep stopped", self.name)

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            removed = self.sweep()
            if removed:
                logger.debug(
                    "Rate limiter '{}' swept {} expired key(s), {} remaining",
                    self.name,
                    removed,
                    len(self),
                )


class RateLimitExceeded(Exception):
    """Raised by the HTTP layer when a limiter rejects a request."""

    def __init__(self, decision: RateLimitDecision) -> None:
        self.decision = decision
        super().__init__(decision.message or DEFAULT_MESSAGE)
