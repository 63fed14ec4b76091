"""
Tubely Authentication Module

Bearer-token authentication with locally signed JWTs (python-jose).
Identity verification is all this service does: registration and
credential checks live elsewhere, tokens only need to carry the user id
in the ``sub`` claim.

Usage in routes:
    @router.get("/videos")
    async def list_videos(user_id: str = Depends(get_current_user_id)):
        ...
"""

import logging

from datetime import UTC, datetime, timedelta
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from tubely.config import Settings, get_settings


logger = logging.getLogger(__name__)


# =============================================================================
# Security Scheme
# =============================================================================

security = HTTPBearer(
    scheme_name="Bearer",
    description="JWT Bearer token signed with the service secret_key.",
    auto_error=True,
)


# =============================================================================
# Token Helpers
# =============================================================================


def create_local_jwt(user_id: str, settings: Settings, email: str | None = None) -> str:
    """
    Create a signed access token for ``user_id``.

    Token claims:
    - sub: User ID (subject)
    - email: Optional email address
    - exp: Expiration timestamp (jwt_expiration_hours from now)
    - iat: Issued at timestamp
    - type: "access"
    """
    now = datetime.now(UTC)
    expire = now + timedelta(hours=settings.jwt_expiration_hours)

    payload: dict[str, Any] = {
        "sub": user_id,
        "exp": expire,
        "iat": now,
        "type": "access",
    }
    if email:
        payload["email"] = email

    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)

    logger.info("Created access token for user: %s (expires: %s)", user_id, expire.isoformat())
    return token


def validate_local_jwt(token: str, settings: Settings) -> dict[str, Any]:
    """
    Verify signature and expiry of a locally issued token.

    Returns:
        dict: The decoded claims.

    Raises:
        JWTError: If the token is invalid, expired, or signature verification fails.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        logger.warning("Access token has expired")
        raise
    except JWTError as e:
        logger.warning("Access token validation failed: %s", str(e))
        raise

    logger.debug("Access token validated for subject: %s", payload.get("sub", "unknown"))
    return payload


# =============================================================================
# FastAPI Dependencies
# =============================================================================


async def authenticate_token(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """
    Validate the Bearer token from the Authorization header.

    Raises:
        HTTPException: With 401 status if token validation fails.
    """
    try:
        return validate_local_jwt(credentials.credentials, settings)
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


async def get_current_user_id(
    token_data: dict[str, Any] = Depends(authenticate_token),
) -> str:
    """
    Resolve the caller's user id from validated token claims.

    Raises:
        HTTPException: With 401 status if the token carries no subject.
    """
    user_id = token_data.get("sub")
    if not user_id:
        logger.warning("Token missing 'sub' claim")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing user identifier",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return str(user_id)


__all__ = [
    "security",
    "create_local_jwt",
    "validate_local_jwt",
    "authenticate_token",
    "get_current_user_id",
]
