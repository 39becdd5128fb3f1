"""
Authentication middleware that flags unauthenticated calls to protected paths.
This middleware provides an early check, but actual validation is done by FastAPI dependencies.
"""
from starlette.middleware.base import BaseHTTPMiddleware
from typing import List

from core.logger import logger

# Paths (and path prefixes) that never need a bearer token
PUBLIC_ROUTES: List[str] = [
    "/",
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
    "/api/auth/register",
    "/api/auth/login",
]

# Reference data readable without a token (GET only)
PUBLIC_READ_ROUTES: List[str] = [
    "/api/schools",
    "/api/subjects",
]


class AuthRequiredMiddleware(BaseHTTPMiddleware):
    """
    Log requests to protected routes that arrive without credentials.

    Rejection itself is left to the route dependencies so that every route
    answers with the same error envelope.
    """

    def __init__(self, app, public_routes: List[str] = None, public_read_routes: List[str] = None):
        super().__init__(app)
        self.public_routes = public_routes or PUBLIC_ROUTES
        self.public_read_routes = public_read_routes or PUBLIC_READ_ROUTES

    def is_public(self, method: str, path: str) -> bool:
        if path in self.public_routes:
            return True
        if any(route != "/" and path.startswith(route + "/") for route in self.public_routes):
            return True
        return method == "GET" and path in self.public_read_routes

    async def dispatch(self, request, call_next):
        path = request.url.path

        if request.method == "OPTIONS" or self.is_public(request.method, path):
            return await call_next(request)

        if not request.headers.get("authorization"):
            logger.warning(
                f"Request without authentication headers: {request.method} {path} "
                f"from {request.client.host if request.client else 'unknown'}"
            )

        return await call_next(request)
