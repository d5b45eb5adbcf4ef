"""
Identity dependencies for protecting endpoints
Reference: https://fastapi.tiangolo.com/tutorial/dependencies/
"""
import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from marketplace.api.v1.schemas.identity import SessionIdentity
from marketplace.core.config import settings
from marketplace.models.user import UserRole
from marketplace.services.auth import IdentityService

logger = logging.getLogger(__name__)

# auto_error=False: a missing header falls back to the session cookie
# Reference: https://fastapi.tiangolo.com/reference/security/#fastapi.security.HTTPBearer
security = HTTPBearer(auto_error=False)


@lru_cache()
def get_identity_service() -> IdentityService:
    """
    Get a singleton IdentityService instance.

    Reusing one instance keeps the JWKS cache at application level rather
    than request level.
    """
    return IdentityService()


def extract_session_token(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials] = None
) -> Optional[str]:
    """Bearer token if present, otherwise the session cookie."""
    if credentials and credentials.credentials:
        return credentials.credentials
    authorization = request.headers.get("Authorization", "")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


async def get_optional_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[SessionIdentity]:
    """
    Dependency returning the caller's identity, or None for anonymous visitors.
    """
    token = extract_session_token(request, credentials)
    return await get_identity_service().decode_session_token(token)


async def get_current_identity(
    identity: Optional[SessionIdentity] = Depends(get_optional_identity),
) -> SessionIdentity:
    """
    Dependency to get the current authenticated identity.

    Usage:
        @router.get("/protected")
        async def protected_route(identity = Depends(get_current_identity)):
            return {"user_id": identity.id}

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


def require_roles(*roles: UserRole):
    """
    Dependency factory restricting an endpoint to the given roles.

    Raises:
        HTTPException: 401 if unauthenticated, 403 if the role is not allowed
    """
    allowed = {UserRole(role) for role in roles}

    async def _require_roles(
        identity: SessionIdentity = Depends(get_current_identity),
    ) -> SessionIdentity:
        if identity.role not in allowed:
            logger.warning(
                f"User {identity.id} with role {identity.role} denied; requires one of "
                f"{sorted(role.value for role in allowed)}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden",
            )
        return identity

    return _require_roles
