"""
Authentication and Authorization Module

Provides authentication dependencies for FastAPI endpoints. Tokens are
issued by the identity provider; this module validates them with
decode_token from security.py and exposes the authenticated principal.

SECURITY NOTE:
- Development mode test tokens are ONLY accepted when PYTHON_ENV=development
- Production environments MUST set PYTHON_ENV=production to disable them
"""

import logging
import os
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings
from app.core.security import decode_token

logger = logging.getLogger(__name__)

ROLE_STUDENT = "student"
ROLE_ADMIN = "admin"
VALID_ROLES = {ROLE_STUDENT, ROLE_ADMIN}

# Security scheme for OpenAPI documentation
security = HTTPBearer(
    auto_error=True,
    description="JWT Bearer token for authentication",
)


@dataclass
class Principal:
    """
    The authenticated caller, populated from JWT claims.

    Attributes:
        id: User's unique identifier (UUID)
        email: User's email address
        role: "student" or "admin"
        name: User's display name (optional)
    """

    id: UUID
    email: str
    role: str
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def __str__(self) -> str:
        return f"Principal(id={self.id}, role={self.role})"


def _is_dev_mode_safe() -> bool:
    """
    Development tokens require PYTHON_ENV=development in both the settings
    and the raw environment, and never staging or production.
    """
    env_var = os.getenv("PYTHON_ENV", "development").lower()

    is_safe = (
        settings.is_development
        and not settings.is_production
        and env_var not in {"production", "staging"}
    )

    if is_safe:
        logger.warning(
            "SECURITY: Development auth mode is ENABLED. This MUST NOT be used in production!"
        )

    return is_safe


_DEVELOPMENT_MODE = _is_dev_mode_safe()

_DEV_PRINCIPALS = {
    "dev-student": Principal(
        id=UUID("00000000-0000-0000-0000-000000000002"),
        email="student@scholarhub.dev",
        role=ROLE_STUDENT,
        name="Development Student",
    ),
    "dev-admin": Principal(
        id=UUID("00000000-0000-0000-0000-000000000001"),
        email="admin@scholarhub.dev",
        role=ROLE_ADMIN,
        name="Development Admin",
    ),
}


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"success": False, "error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _validate_jwt_token(token: str) -> Principal:
    """
    Validate a JWT and build the principal from its claims.

    Raises:
        HTTPException 401: If the token is invalid, expired, of the wrong
            type, or carries invalid claims
    """
    if _DEVELOPMENT_MODE and token in _DEV_PRINCIPALS:
        logger.debug("Development mode: Using test token")
        return _DEV_PRINCIPALS[token]

    payload = decode_token(token)

    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise _unauthorized("INVALID_TOKEN", "Invalid or expired authentication token.")

    token_type = payload.get("type", "access")
    if token_type != "access":
        logger.warning(f"Invalid token type: {token_type}")
        raise _unauthorized("INVALID_TOKEN_TYPE", "This endpoint requires an access token.")

    try:
        user_id_str = payload.get("sub")
        if not user_id_str:
            raise ValueError("Missing 'sub' claim in token")

        role = payload.get("role", "")
        if role not in VALID_ROLES:
            raise ValueError(f"Unknown role '{role}'")

        return Principal(
            id=UUID(user_id_str),
            email=payload.get("email", ""),
            role=role,
            name=payload.get("name"),
        )
    except ValueError as e:
        logger.warning(f"Invalid token claims: {e}")
        raise _unauthorized(
            "INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims."
        ) from e


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Principal:
    """
    FastAPI dependency returning the authenticated principal (any role).

    Usage:
        @router.get("/applications/my")
        async def my_applications(user: Principal = Depends(get_current_user)):
            ...
    """
    user = await _validate_jwt_token(credentials.credentials)
    logger.debug(f"Authenticated {user}")
    return user


async def get_current_admin_user(
    user: Principal = Depends(get_current_user),
) -> Principal:
    """
    FastAPI dependency that only admits principals with the admin role.

    Raises:
        HTTPException 403: If the principal is not an admin
    """
    if not user.is_admin:
        logger.warning(f"Access denied: {user} attempted an admin endpoint")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "success": False,
                "error": "ADMIN_ACCESS_REQUIRED",
                "message": "Admin access is required for this endpoint.",
            },
        )

    return user


async def get_current_student_user(
    user: Principal = Depends(get_current_user),
) -> Principal:
    """
    FastAPI dependency that only admits principals with the student role.

    Applying for scholarships is a student action; admins review.

    Raises:
        HTTPException 403: If the principal is not a student
    """
    if user.role != ROLE_STUDENT:
        logger.warning(f"Access denied: {user} attempted a student endpoint")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "success": False,
                "error": "STUDENT_ACCESS_REQUIRED",
                "message": "Only students can use this endpoint.",
            },
        )

    return user


__all__ = [
    "Principal",
    "ROLE_ADMIN",
    "ROLE_STUDENT",
    "get_current_user",
    "get_current_admin_user",
    "get_current_student_user",
]
