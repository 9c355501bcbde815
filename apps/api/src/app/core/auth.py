"""
Authentication and Authorization Module

Provides authentication dependencies for FastAPI endpoints.
Bearer JWTs are validated with the helpers in security.py and turned into an
Actor (id + role) that the service layer uses for ownership and role checks.

SECURITY NOTE:
- Development mode test tokens are ONLY accepted when PYTHON_ENV=development
- The cron endpoint is authenticated with a shared secret, not a user token
"""

import logging
import os
import secrets
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings
from app.core.security import decode_token

logger = logging.getLogger(__name__)

ROLE_APPLICANT = "applicant"
ROLE_ADMIN = "admin"
ROLE_SYSTEM = "system"

# Security scheme for OpenAPI documentation
security = HTTPBearer(
    auto_error=True,
    description="JWT Bearer token for authentication",
)


@dataclass(frozen=True)
class Actor:
    """
    Authenticated identity performing an operation.

    Attributes:
        id: User's unique identifier
        role: `applicant` or `admin`
        email: Email claim, when present
    """

    id: UUID
    role: str
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def __str__(self) -> str:
        return f"Actor(id={self.id}, role={self.role})"


def _is_dev_mode_safe() -> bool:
    """
    Check if development test tokens may be accepted.

    Requires PYTHON_ENV=development in settings and in the raw environment.
    """
    env_var = os.getenv("PYTHON_ENV", "").lower()

    is_safe = (
        settings.is_development
        and not settings.is_production
        and env_var not in ("production", "staging")
    )

    if is_safe:
        logger.warning(
            "SECURITY: Development auth mode is ENABLED. This MUST NOT be used in production!"
        )

    return is_safe


_DEVELOPMENT_MODE = _is_dev_mode_safe()

_DEV_ACTORS = {
    "dev-admin-token": Actor(
        id=UUID("00000000-0000-0000-0000-000000000001"),
        role=ROLE_ADMIN,
        email="admin@permits.dev",
    ),
    "dev-applicant-token": Actor(
        id=UUID("00000000-0000-0000-0000-000000000002"),
        role=ROLE_APPLICANT,
        email="applicant@permits.dev",
    ),
}


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def actor_from_token(token: str) -> Actor:
    """
    Validate a bearer token and build the Actor.

    Raises:
        HTTPException 401: If the token is invalid, expired or has bad claims
    """
    if _DEVELOPMENT_MODE and token in _DEV_ACTORS:
        logger.debug("Development mode: Using test token")
        return _DEV_ACTORS[token]

    payload = decode_token(token)

    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise _unauthorized("INVALID_TOKEN", "Invalid or expired authentication token.")

    if payload.get("type", "access") != "access":
        logger.warning(f"Invalid token type: {payload.get('type')}")
        raise _unauthorized("INVALID_TOKEN_TYPE", "This endpoint requires an access token.")

    role = payload.get("role", "")
    if role not in (ROLE_APPLICANT, ROLE_ADMIN):
        logger.warning(f"Token carries unknown role '{role}'")
        raise _unauthorized("INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims.")

    try:
        return Actor(id=UUID(payload["sub"]), role=role, email=payload.get("email"))
    except (ValueError, KeyError) as e:
        logger.warning(f"Invalid token claims: {e}")
        raise _unauthorized(
            "INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims."
        ) from e


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Actor:
    """FastAPI dependency returning the authenticated actor (any role)."""
    actor = actor_from_token(credentials.credentials)
    logger.debug(f"Authenticated {actor}")
    return actor


async def get_current_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    """
    FastAPI dependency that requires the admin role.

    Raises:
        HTTPException 403: If the actor is not an admin
    """
    if not actor.is_admin:
        logger.warning(f"Access denied: {actor} attempted an admin endpoint")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "ADMIN_ACCESS_REQUIRED",
                "message": "Admin access is required for this endpoint.",
            },
        )
    return actor


async def verify_cron_secret(authorization: str | None = Header(default=None)) -> None:
    """
    Authenticate scheduler calls with `Authorization: Bearer <CRON_SECRET>`.

    Raises:
        HTTPException 401: If the secret is not configured or does not match
    """
    expected = settings.cron_secret
    if not expected or not authorization:
        raise _unauthorized("INVALID_CRON_SECRET", "Cron secret is missing or invalid.")

    if not secrets.compare_digest(authorization, f"Bearer {expected}"):
        logger.warning("Cron endpoint called with an invalid secret")
        raise _unauthorized("INVALID_CRON_SECRET", "Cron secret is missing or invalid.")


__all__ = [
    "Actor",
    "ROLE_ADMIN",
    "ROLE_APPLICANT",
    "ROLE_SYSTEM",
    "actor_from_token",
    "get_current_actor",
    "get_current_admin",
    "verify_cron_secret",
]
