"""
Postboard Backend - Login Rate Limiting Middleware
==================================================

What:  Per-IP sliding window limit on login attempts.
How:   Keeps the timestamps of recent POST /api/login requests per client IP.
       Once `login_rate_limit_attempts` fall inside the last
       `login_rate_limit_window` seconds, further attempts get 429 with a
       Retry-After header until the oldest one leaves the window.

Every attempt counts, successful or not. Other routes are never limited.

The counters live in process memory, so each worker process limits on its own.
"""

import logging
import time
from collections import defaultdict
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from postboard.config import settings
from postboard.exceptions import RateLimitExceededError
from postboard.middleware.logging import client_address
from postboard.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

LIMITED_ROUTES: FrozenSet[Tuple[str, str]] = frozenset({("POST", "/api/login")})


class LoginRateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window limiter for the login route.

    `max_attempts` and `window_seconds` default to the settings values.
    `clock` must be monotonic.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_attempts: Optional[int] = None,
        window_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(app)
        self.max_attempts = max_attempts or settings.login_rate_limit_attempts
        self.window_seconds = window_seconds or settings.login_rate_limit_window
        self.clock = clock
        self._attempts: Dict[str, List[float]] = defaultdict(list)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if (request.method, request.url.path.rstrip("/")) not in LIMITED_ROUTES:
            return await call_next(request)

        client_ip = client_address(request)
        now = self.clock()
        window_start = now - self.window_seconds

        attempts = [ts for ts in self._attempts[client_ip] if ts > window_start]

        if len(attempts) >= self.max_attempts:
            self._attempts[client_ip] = attempts
            retry_after = int(attempts[0] + self.window_seconds - now) + 1
            logger.warning(
                "Login rate limit exceeded for IP %s: %d attempts in %ds window",
                client_ip,
                len(attempts),
                self.window_seconds,
            )
            exc = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(retry_after)},
            )

        attempts.append(now)
        self._attempts[client_ip] = attempts
        self._forget_idle_clients(window_start)

        return await call_next(request)

    def _forget_idle_clients(self, window_start: float) -> None:
        idle = [
            ip for ip, timestamps in self._attempts.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for ip in idle:
            del self._attempts[ip]
