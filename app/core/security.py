"""
Security Utilities

JWT bearer tokens for practice staff. These authorize issuing intake links;
the intake links themselves are signed separately (see ``intake_tokens``).
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from app.core.config import settings


def create_access_token(
    subject: str | Any,
    org_id: str,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT access token for a staff member.

    Args:
        subject: The subject of the token (typically user ID).
        org_id: Organization the staff member acts for.
        expires_delta: Optional custom expiration time.

    Returns:
        str: Encoded JWT token.
    """
    now = datetime.now(timezone.utc)
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "sub": str(subject),
        "org_id": org_id,
        "exp": expire,
        "iat": now,
    }

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )


def decode_access_token(token: str) -> dict | None:
    """
    Decode and validate a JWT access token.

    Args:
        token: JWT token string to decode.

    Returns:
        dict: Decoded token payload if valid, None otherwise.
    """
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
        )
    except JWTError:
        return None
