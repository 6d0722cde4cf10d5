"""
Public Intake Endpoints

Unauthenticated endpoints reached through signed intake links. The token in
the path is the only credential; its ``orgId`` claim scopes the insert.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_intake_token
from app.core.database import get_db
from app.core.intake_tokens import IntakeTokenPayload
from app.middleware.rate_limit import intake_limiter, rate_limit
from app.schemas.intake import (
    IntakeProbeResponse,
    IntakeSubmission,
    IntakeSubmissionResponse,
)
from app.services import intake_service


router = APIRouter(prefix="/public/intake", tags=["Public Intake"])


@router.options(
    "/{token}",
    response_model=IntakeProbeResponse,
    summary="Check that an intake link is usable",
)
async def probe_intake_token(
    claims: Annotated[IntakeTokenPayload, Depends(require_intake_token)],
) -> IntakeProbeResponse:
    """
    Capability probe used by the intake pages before rendering the form.

    Returns:
        IntakeProbeResponse: ``{"ok": true}`` for a valid token.

    Raises:
        HTTPException: 401 for an invalid or expired token, 500 if the
            intake secret is not configured.
    """
    return IntakeProbeResponse()


@router.post(
    "/{token}",
    response_model=IntakeSubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit(intake_limiter))],
    summary="Submit patient intake data",
)
async def submit_intake(
    submission: IntakeSubmission,
    claims: Annotated[IntakeTokenPayload, Depends(require_intake_token)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> IntakeSubmissionResponse:
    """
    Create a patient from an intake form submission.

    **Flow:**
    1. Rate limit by client address (429)
    2. Verify the intake token (500 / 401)
    3. Validate the body (422); adults must include an ID number (400)
    4. Insert the patient under the token's organization

    Returns:
        IntakeSubmissionResponse: ``success`` flag and the new patient uid.
    """
    if submission.missing_adult_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="ID is required for adults",
        )

    patient = await intake_service.create_patient_from_intake(db, claims, submission)

    return IntakeSubmissionResponse(uid=str(patient.uid))
