"""Bearer-token verification and the resolved caller identity.

Tokens are issued by the identity service; this engine only verifies them
and trusts the claims they carry.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from akwanda.config import settings
from akwanda.core.exceptions import AuthenticationError

ROLES = ("guest", "host", "admin", "worker")


@dataclass(frozen=True)
class Actor:
    """Caller resolved from a credential."""

    user_id: UUID
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(UTC) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str, token_type: str = "access") -> dict[str, Any]:
    """Verify and decode a JWT token."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        if payload.get("type") != token_type:
            raise AuthenticationError("Invalid token type")
        return payload
    except JWTError as e:
        raise AuthenticationError(f"Token validation failed: {str(e)}")


def actor_from_claims(payload: dict[str, Any]) -> Actor:
    """Build an Actor from verified token claims."""
    try:
        user_id = UUID(str(payload["sub"]))
    except (KeyError, ValueError):
        raise AuthenticationError("Invalid token payload")

    role = payload.get("role", "guest")
    if role not in ROLES:
        raise AuthenticationError(f"Unknown role '{role}'")

    return Actor(user_id=user_id, role=role)
