"""Authentication dependencies for FastAPI routes.

Tokens are read from the ``Authorization: Bearer`` header first and the
access-token cookie second. When the authentication middleware already
resolved the principal it is reused from ``request.state.user``.
"""

from typing import Optional
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings
from app.core.jwt import jwt_verifier
from app.schemas.auth import CurrentUser
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

security = HTTPBearer(auto_error=False)


def extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials] = None) -> Optional[str]:
    """Return the raw access token from the header or the access cookie."""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.auth.access_cookie_name)


async def authenticate_token(token: str) -> CurrentUser:
    """Verify a token and build the principal.

    Raises:
        jwt.InvalidTokenError: If the token does not verify
    """
    claims = await jwt_verifier.verify_token(token)
    return CurrentUser.from_claims(claims)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """Get the current authenticated user.

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    cached = getattr(request.state, "user", None)
    if isinstance(cached, CurrentUser):
        return cached

    token = extract_token(request, credentials)
    if not token:
        LOGGER.warning("No authorization credentials provided")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user = await authenticate_token(token)
    except jwt.InvalidTokenError as e:
        LOGGER.warning(f"Invalid token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    request.state.user = user
    LOGGER.debug(f"Authenticated user: {user.id} (tenant {user.tenant_id})")
    return user


async def get_tenant_id(user: CurrentUser = Depends(get_current_user)) -> UUID:
    """Tenant id of the authenticated principal."""
    return user.tenant_id


def require_role(required_role: str):
    """Create a dependency that requires a specific user role.

    Example:
        dispatcher_only = require_role("DISPATCHER")

        @router.post("/loads/{load_id}/dispatch")
        async def dispatch(user: CurrentUser = Depends(dispatcher_only)):
            ...
    """
    return require_any_role(required_role)


def require_any_role(*required_roles: str):
    """Create a dependency that requires any of the specified roles.

    Roles are matched case-insensitively against both the ``role`` and
    ``roles`` claims.
    """
    async def role_checker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not user.has_any_role(*required_roles):
            LOGGER.warning(
                f"Access denied for user {user.id}: roles {user.roles} not in {required_roles}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required roles: {', '.join(required_roles)}",
            )
        return user

    return role_checker


require_admin = require_any_role(*settings.auth.admin_roles)
require_dispatcher = require_any_role("DISPATCHER", "OPERATIONS_MANAGER", *settings.auth.admin_roles)
require_accounting = require_any_role("ACCOUNTING", "ACCOUNTING_MANAGER", *settings.auth.admin_roles)
