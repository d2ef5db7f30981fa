"""JWT bearer authentication.

Tokens are issued elsewhere (the login flow lives outside this service);
this module verifies them and exposes the token subject as the owner id
that scopes every content query.  :func:`create_access_token` mints
tokens for tests and operator tooling.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from secondbrain.config import Settings, get_settings

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(
    data: dict,
    expires_delta: timedelta | None = None,
    *,
    settings: Settings | None = None,
) -> str:
    """Create a JWT access token.

    Args:
        data: Claims to encode in the token (must include ``sub``, the owner id).
        expires_delta: Custom expiration timedelta. Falls back to config default.
        settings: Optional settings override (useful for testing).

    Returns:
        Encoded JWT string.
    """
    if settings is None:
        settings = get_settings()

    to_encode = data.copy()
    expire = datetime.now(UTC) + (
        expires_delta
        if expires_delta is not None
        else timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire, "type": "access"})

    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(
    token: str,
    *,
    settings: Settings | None = None,
) -> dict:
    """Decode and verify a JWT token.

    Raises:
        JWTError: If the token is invalid, expired, or tampered with.
    """
    if settings is None:
        settings = get_settings()

    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])


async def get_current_owner(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),  # noqa: B008
) -> str:
    """FastAPI dependency returning the owner id (token ``sub``) of the caller."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None or credentials.scheme.lower() != "bearer":
        raise credentials_exception

    try:
        payload = verify_token(credentials.credentials)
    except JWTError:
        logger.info("Rejected bearer token")
        raise credentials_exception from None

    if payload.get("type") != "access":
        raise credentials_exception

    owner_id = payload.get("sub")
    if not isinstance(owner_id, str) or not owner_id:
        raise credentials_exception

    return owner_id
