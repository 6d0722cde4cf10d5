"""
API Dependencies

Reusable dependencies for API routes: staff authentication and intake token
verification.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.cache import intake_denylist
from app.core.config import Settings, get_settings
from app.core.exceptions import (
    ConfigurationError,
    IntakeTokenError,
    InvalidSignatureError,
    MalformedTokenError,
    RevokedTokenError,
)
from app.core.intake_tokens import IntakeTokenPayload, decode_intake_token, token_fingerprint
from app.core.security import decode_access_token
from app.schemas.staff import StaffPrincipal


logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_staff(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> StaffPrincipal:
    """
    Dependency to get the authenticated staff member.

    The bearer JWT must carry both ``sub`` and ``org_id``; the organization
    claim scopes every link the caller can issue or revoke.

    Raises:
        HTTPException: 401 if authentication fails.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None:
        raise credentials_exception

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise credentials_exception

    user_id = payload.get("sub")
    org_id = payload.get("org_id")
    if not user_id or not org_id:
        logger.warning("Staff token without sub/org_id claims rejected")
        raise credentials_exception

    return StaffPrincipal(user_id=str(user_id), org_id=str(org_id))


def log_intake_token_error(error: IntakeTokenError) -> None:
    """
    Log a token failure at a severity matching its cause.

    Configuration faults are operational errors; tampering and scanning are
    expected noise and stay at low severity.
    """
    if isinstance(error, ConfigurationError):
        logger.error("INTAKE_FORM_SECRET is not configured")
    elif isinstance(error, (MalformedTokenError, InvalidSignatureError)):
        logger.debug("Intake token rejected: %s (%s)", error.reason, error)
    else:
        logger.info("Intake token rejected: %s", error.reason)


def intake_token_http_error(error: IntakeTokenError) -> HTTPException:
    """Log a token failure and map it to a generic HTTP error."""
    log_intake_token_error(error)
    return HTTPException(status_code=error.status_code, detail=error.public_detail)


def check_intake_token(token: str, settings: Settings) -> IntakeTokenPayload:
    """
    Verify an intake token against current settings and the denylist.

    Raises:
        IntakeTokenError: Any verification failure.
    """
    payload = decode_intake_token(
        token,
        settings.INTAKE_FORM_SECRET,
        leeway_ms=settings.INTAKE_TOKEN_LEEWAY_MS,
        previous_secrets=settings.previous_intake_secrets,
    )
    if intake_denylist.is_revoked(token):
        raise RevokedTokenError(f"token {token_fingerprint(token)[:12]} was revoked")
    return payload


async def require_intake_token(
    token: str,
    settings: Annotated[Settings, Depends(get_settings)],
) -> IntakeTokenPayload:
    """
    Dependency resolving the ``{token}`` path parameter to verified claims.

    Raises:
        HTTPException: 500 on missing secret, 401 for any invalid token.
    """
    try:
        return check_intake_token(token, settings)
    except IntakeTokenError as e:
        raise intake_token_http_error(e) from e
