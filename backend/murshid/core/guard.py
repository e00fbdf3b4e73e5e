# murshid/core/guard.py
"""
Route guard.

Every request whose path is not on the public allowlist must carry a valid
session token. The token may come from (in order of preference):
  1) ``Authorization: Bearer <token>``
  2) the ``token`` cookie
  3) the ``token`` query parameter (OAuth callback hand-off)

The resolved user is attached to ``request.state.user`` for the route
dependencies in ``murshid.api.v1.deps``.
"""
import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from murshid.core.errors import AppError, error_response
from murshid.services import session_service

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
TOKEN_COOKIE = "token"

# Prefix match against the request path
PUBLIC_PATH_PREFIXES = (
    f"{API_PREFIX}/auth/signup",
    f"{API_PREFIX}/auth/login",
    f"{API_PREFIX}/auth/logout",
    f"{API_PREFIX}/auth/send-otp",
    f"{API_PREFIX}/auth/verify-otp",
    f"{API_PREFIX}/auth/setup-password",
    f"{API_PREFIX}/auth/check-email",
    f"{API_PREFIX}/auth/forgot-password",
    f"{API_PREFIX}/auth/reset-password/",
    f"{API_PREFIX}/auth/google",
    f"{API_PREFIX}/health",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/static/",
    "/favicon.ico",
)


def is_public_path(path: str) -> bool:
    return path == "/" or path.startswith(PUBLIC_PATH_PREFIXES)


def extract_token(request: Request) -> str | None:
    authorization = request.headers.get("authorization")
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
        if token:
            return token
    return request.cookies.get(TOKEN_COOKIE) or request.query_params.get("token") or None


class RouteGuardMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method == "OPTIONS" or is_public_path(request.url.path):
            return await call_next(request)
        try:
            request.state.user = await session_service.protect(extract_token(request))
        except AppError as exc:
            logger.debug("[guard] %s %s rejected: %s", request.method, request.url.path, exc.code)
            return error_response(exc)
        return await call_next(request)
