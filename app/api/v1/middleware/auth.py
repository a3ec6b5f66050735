"""JWT Authentication Middleware for FastAPI.

Verifies the access token (Bearer header or access-token cookie), attaches
the principal to ``request.state.user`` and applies the coarse admin gate:
any path under ``{api_prefix}/admin`` requires an admin role.
"""

import jwt
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.auth import authenticate_token
from app.core.config import settings
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Paths that don't require authentication
EXCLUDED_PATHS = {
    "/",
    "/docs",
    "/docs/",
    "/redoc",
    "/openapi.json",
}

PUBLIC_PREFIXES = (
    "/health",
    "/docs/",
    f"{settings.api_v1_prefix}/tracking",
)

ADMIN_PREFIX = f"{settings.api_v1_prefix}/admin"


def is_public_path(path: str) -> bool:
    return path in EXCLUDED_PATHS or path.startswith(PUBLIC_PREFIXES)


def _unauthorized(detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": detail},
        headers={"WWW-Authenticate": "Bearer"},
    )


class JWTAuthenticationMiddleware(BaseHTTPMiddleware):
    """Middleware for JWT authentication and admin route gating."""

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS" or is_public_path(request.url.path):
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        token = None

        if auth_header:
            if not auth_header.startswith("Bearer "):
                LOGGER.warning(f"Invalid Authorization header format for {request.url.path}")
                return _unauthorized("Invalid authentication scheme. Use Bearer token.")
            token = auth_header.split(" ", 1)[1]
        else:
            token = request.cookies.get(settings.auth.access_cookie_name)

        if not token:
            LOGGER.warning(f"Missing authentication for {request.url.path}")
            return _unauthorized("Authentication required")

        try:
            user = await authenticate_token(token)
        except jwt.InvalidTokenError as e:
            LOGGER.warning(f"Invalid token for {request.url.path}: {e}")
            return _unauthorized("Invalid authentication token")

        if request.url.path.startswith(ADMIN_PREFIX) and not user.has_any_role(*settings.auth.admin_roles):
            LOGGER.warning(
                f"Admin route denied for user {user.id}",
                extra={"path": request.url.path, "roles": user.roles},
            )
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content={"detail": "Administrator role required"},
            )

        request.state.user = user
        return await call_next(request)
