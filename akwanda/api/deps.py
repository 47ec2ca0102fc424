"""API dependencies for authentication and common operations."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from akwanda.core.exceptions import AuthenticationError, Unauthorized
from akwanda.core.security import Actor, actor_from_claims, verify_token
from akwanda.database import get_db  # noqa: F401

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Actor:
    """Resolve the caller from the bearer token."""
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    payload = verify_token(credentials.credentials, token_type="access")
    return actor_from_claims(payload)


async def get_current_admin(
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
    """Get current caller and verify they are an admin."""
    if not actor.is_admin:
        raise Unauthorized("Admin access required")
    return actor

