"""Failed-login throttling using a sliding window counter.

Only requests to the credential endpoints are watched, and only those
that come back ``401`` count against the client.  Once a client IP has
too many failures inside the window, further attempts get ``429`` until
the oldest failure ages out.  Designed for single-process deployments.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Final

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

_THROTTLED_PATHS: Final[frozenset[str]] = frozenset({
    "/api/v1/auth/login",
    "/api/v1/auth/admin-login",
    "/api/v1/auth/otp/verify",
})


class LoginThrottleMiddleware(BaseHTTPMiddleware):
    """Sliding-window limit on failed credential attempts per client IP.

    Parameters
    ----------
    app:
        The ASGI application.
    max_failures_per_minute:
        Failed attempts allowed per IP per 60-second window.  ``0``
        disables throttling.
    """

    def __init__(self, app: object, max_failures_per_minute: int = 20) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._max_failures = max_failures_per_minute
        self._window_seconds: float = 60.0
        self._failures: dict[str, deque[float]] = {}
        self._lock = asyncio.Lock()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self._max_failures <= 0 or request.url.path not in _THROTTLED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = time.monotonic()

        async with self._lock:
            window = self._failures.get(client_ip)
            if window is not None:
                window_start = now - self._window_seconds
                while window and window[0] < window_start:
                    window.popleft()
                if not window:
                    del self._failures[client_ip]
                elif len(window) >= self._max_failures:
                    retry_after = max(1, int(self._window_seconds - (now - window[0])) + 1)
                    logger.warning(
                        "rate_limit.login_throttled",
                        client_ip=client_ip,
                        path=request.url.path,
                        failures=len(window),
                    )
                    return JSONResponse(
                        status_code=429,
                        content={
                            "error": "too_many_attempts",
                            "message": "Too many failed attempts. Please try again later.",
                            "details": {"retry_after_seconds": retry_after},
                        },
                        headers={"Retry-After": str(retry_after)},
                    )

        response = await call_next(request)

        if _is_failed_attempt(request.url.path, response.status_code):
            async with self._lock:
                self._failures.setdefault(client_ip, deque()).append(time.monotonic())
        return response


def _is_failed_attempt(path: str, status_code: int) -> bool:
    # A wrong OTP is reported as 422, a wrong password as 401.
    if path.endswith("/otp/verify"):
        return status_code == 422
    return status_code == 401
