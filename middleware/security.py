"""
HTTP hardening for the board exams API: per-client request throttling,
response security headers, CORS and trusted-host setup.
"""
import time
from collections import defaultdict, deque
from typing import Deque, Dict, List, Optional, Tuple

from fastapi import status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.logger import logger

MINUTE = 60
HOUR = 3600


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Sliding-window throttle keyed by client IP.

    Each client keeps one deque of request timestamps covering the last hour;
    the minute window is counted from the tail of the same deque.
    """

    def __init__(self, app, requests_per_minute: int = 60, requests_per_hour: int = 1000):
        super().__init__(app)
        self.limits: Tuple[Tuple[int, int], ...] = (
            (MINUTE, requests_per_minute),
            (HOUR, requests_per_hour),
        )
        self.history: Dict[str, Deque[float]] = defaultdict(deque)
        self.sweep_every = 300
        self.last_sweep = time.monotonic()

    async def dispatch(self, request, call_next):
        client = request.client.host if request.client else "unknown"
        now = time.monotonic()

        if now - self.last_sweep > self.sweep_every:
            self._sweep(now)

        if not self.allow(client, now):
            logger.warning(f"Rate limit exceeded for {client} on {request.method} {request.url.path}")
            # Exceptions raised here bypass the app's handlers, so answer directly
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"error": "Rate limit exceeded. Please try again later.", "code": "RateLimited"}
            )

        return await call_next(request)

    def allow(self, client: str, now: float) -> bool:
        """Record the request and report whether every window still has room."""
        stamps = self.history[client]
        while stamps and now - stamps[0] >= HOUR:
            stamps.popleft()

        for window, limit in self.limits:
            if self._count_since(stamps, now - window) >= limit:
                return False

        stamps.append(now)
        return True

    @staticmethod
    def _count_since(stamps: Deque[float], cutoff: float) -> int:
        count = 0
        for stamp in reversed(stamps):
            if stamp <= cutoff:
                break
            count += 1
        return count

    def _sweep(self, now: float) -> None:
        """Forget clients idle for longer than the widest window."""
        idle = [client for client, stamps in self.history.items()
                if not stamps or now - stamps[-1] >= HOUR]
        for client in idle:
            del self.history[client]
        self.last_sweep = now


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Stamp defensive headers on every response; API payloads are never cached."""

    HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Cache-Control": "no-store",
    }

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        for name, value in self.HEADERS.items():
            response.headers[name] = value
        return response


def setup_cors(
    app,
    allowed_origins: List[str],
    allowed_methods: Optional[List[str]] = None,
    allow_credentials: bool = True
):
    """
    Register CORS for the frontend origins.

    Args:
        app: FastAPI application
        allowed_origins: Origins permitted to call the API
        allowed_methods: HTTP methods (defaults to the verbs the routers use)
        allow_credentials: Whether browsers may send the session cookie cross-origin
    """
    if allowed_methods is None:
        allowed_methods = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=allow_credentials,
        allow_methods=allowed_methods,
        allow_headers=["*"],
    )


def setup_trusted_hosts(app, allowed_hosts: List[str]):
    """Reject requests whose Host header is not listed (production only)."""
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=allowed_hosts)
