"""
Intake Link Routes

Staff-facing endpoints to issue and revoke shareable intake links for their
own organization.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_current_staff, log_intake_token_error
from app.core.cache import intake_denylist
from app.core.config import Settings, get_settings
from app.core.exceptions import ConfigurationError, DenylistFullError, IntakeTokenError
from app.core.intake_tokens import (
    EXPIRING_LINK_TTL_MS,
    current_time_ms,
    decode_intake_token,
    expiring_intake_link,
    tablet_intake_link,
)
from app.schemas.intake import (
    IntakeLinkRequest,
    IntakeLinkResponse,
    RevokeIntakeLinkRequest,
    RevokeIntakeLinkResponse,
)
from app.schemas.staff import StaffPrincipal


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/intake-links", tags=["Intake Links"])


def _resolve_base_url(body: Optional[IntakeLinkRequest], settings: Settings) -> str:
    from_body = ((body.base_url if body else None) or "").rstrip("/")
    return from_body or settings.public_app_url


def _misconfigured(e: ConfigurationError) -> HTTPException:
    logger.error("Cannot issue intake link: INTAKE_FORM_SECRET is not configured")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=e.public_detail,
    )


@router.post(
    "/expiring",
    response_model=IntakeLinkResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue a 24-hour intake link",
)
async def create_expiring_link(
    staff: Annotated[StaffPrincipal, Depends(get_current_staff)],
    settings: Annotated[Settings, Depends(get_settings)],
    body: Optional[IntakeLinkRequest] = None,
) -> IntakeLinkResponse:
    """
    Issue an intake link for email/SMS sharing that expires after 24 hours.

    Raises:
        HTTPException: 401 without a valid staff token, 500 if the intake
            secret is not configured.
    """
    now_ms = current_time_ms()
    try:
        url = expiring_intake_link(
            staff.org_id,
            settings.INTAKE_FORM_SECRET,
            _resolve_base_url(body, settings),
            now_ms=now_ms,
        )
    except ConfigurationError as e:
        raise _misconfigured(e) from e

    logger.info("Generated expiring intake link for org=%s", staff.org_id)
    return IntakeLinkResponse(
        url=url,
        kind="expiring",
        expires_at=datetime.fromtimestamp((now_ms + EXPIRING_LINK_TTL_MS) / 1000, tz=timezone.utc),
    )


@router.post(
    "/tablet",
    response_model=IntakeLinkResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue a non-expiring tablet intake link",
)
async def create_tablet_link(
    staff: Annotated[StaffPrincipal, Depends(get_current_staff)],
    settings: Annotated[Settings, Depends(get_settings)],
    body: Optional[IntakeLinkRequest] = None,
) -> IntakeLinkResponse:
    """
    Issue a device-bound intake link for a front-desk tablet. It never
    expires; revoke it (or rotate the secret) to retire the device.
    """
    try:
        url = tablet_intake_link(
            staff.org_id,
            settings.INTAKE_FORM_SECRET,
            _resolve_base_url(body, settings),
        )
    except ConfigurationError as e:
        raise _misconfigured(e) from e

    logger.info("Generated tablet intake link for org=%s", staff.org_id)
    return IntakeLinkResponse(url=url, kind="tablet")


@router.post(
    "/revoke",
    response_model=RevokeIntakeLinkResponse,
    summary="Revoke an intake link before it expires",
)
async def revoke_link(
    body: RevokeIntakeLinkRequest,
    staff: Annotated[StaffPrincipal, Depends(get_current_staff)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> RevokeIntakeLinkResponse:
    """
    Add a link's token to the revocation denylist.

    Accepts either the bare token or the full link. Only links belonging to
    the caller's organization can be revoked.

    Raises:
        HTTPException: 400 for a token that is already unusable, 403 for a
            token of another organization, 500 if the secret is missing,
            503 if the denylist is full.
    """
    token = body.token.strip().rstrip("/").rsplit("/", 1)[-1]
    try:
        claims = decode_intake_token(
            token,
            settings.INTAKE_FORM_SECRET,
            leeway_ms=settings.INTAKE_TOKEN_LEEWAY_MS,
            previous_secrets=settings.previous_intake_secrets,
        )
    except ConfigurationError as e:
        raise _misconfigured(e) from e
    except IntakeTokenError as e:
        log_intake_token_error(e)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.public_detail,
        ) from e

    if claims.org_id != staff.org_id:
        logger.warning(
            "Staff user=%s of org=%s tried to revoke a link of org=%s",
            staff.user_id,
            staff.org_id,
            claims.org_id,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Link belongs to another organization",
        )

    try:
        fingerprint = intake_denylist.revoke(
            token, claims, leeway_ms=settings.INTAKE_TOKEN_LEEWAY_MS
        )
    except DenylistFullError as e:
        raise HTTPException(
            status_code=e.status_code,
            detail=e.public_detail,
        ) from e
    logger.info("Revoked %s intake link %s for org=%s", claims.type, fingerprint[:12], staff.org_id)
    return RevokeIntakeLinkResponse(fingerprint=fingerprint)
