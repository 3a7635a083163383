# Overview: Fixed-window request limiter for the /api routes.

"""
In-process rate limiting keyed by client address.

Counts reset at the end of each window. State lives in memory, so limits
apply per worker process.
"""

from __future__ import annotations

import threading
import time

from flask import current_app, request
from werkzeug.exceptions import TooManyRequests


class FixedWindowRateLimiter:
    def __init__(self, max_requests: int, window_seconds: float, clock=time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: dict[str, tuple[float, int]] = {}
        self._last_sweep = clock()

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._windows)

    def hit(self, key: str) -> bool:
        """Record one request for key; False once the window's budget is spent."""
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._evict_expired(now)
            started, count = self._windows.get(key, (now, 0))
            if now - started >= self.window_seconds:
                started, count = now, 0
            count += 1
            self._windows[key] = (started, count)
            return count <= self.max_requests

    def _evict_expired(self, now: float) -> None:
        # Caller holds the lock
        expired = [k for k, (started, _) in self._windows.items() if now - started >= self.window_seconds]
        for key in expired:
            del self._windows[key]
        self._last_sweep = now

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


def init_rate_limiter(app) -> FixedWindowRateLimiter:
    limiter = FixedWindowRateLimiter(
        max_requests=app.config["RATE_LIMIT_MAX_REQUESTS"],
        window_seconds=app.config["RATE_LIMIT_WINDOW_MS"] / 1000.0,
    )
    app.extensions["rate_limiter"] = limiter

    @app.before_request
    def enforce_rate_limit():
        if not current_app.config.get("RATE_LIMIT_ENABLED", True):
            return None
        if not request.path.startswith("/api/"):
            return None
        if not limiter.hit(request.remote_addr or "unknown"):
            current_app.logger.warning("Rate limit exceeded for %s", request.remote_addr)
            raise TooManyRequests()
        return None

    return limiter
