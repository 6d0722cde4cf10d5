"""
Intake Service

Persists patients submitted through public intake links.
"""

import logging
import uuid
from datetime import date, datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.intake_tokens import IntakeTokenPayload
from app.models.patient import Patient
from app.schemas.intake import IntakeSubmission


logger = logging.getLogger(__name__)


async def create_patient_from_intake(
    db: AsyncSession,
    claims: IntakeTokenPayload,
    submission: IntakeSubmission,
) -> Patient:
    """
    Create a patient for the organization named by a verified intake token.

    The tenant scope comes from the token claims only, never from the
    submitted body. Minors are stored without an ID number.

    Args:
        db: Database session.
        claims: Verified intake token claims.
        submission: Validated intake form data.

    Returns:
        Patient: The new patient record.
    """
    now = datetime.now(timezone.utc)
    patient = Patient(
        uid=uuid.uuid4(),
        orgid=claims.org_id,
        name=submission.name,
        surname=submission.surname or None,
        id_number=None if submission.is_under_18 else (submission.id_number or None),
        date_of_birth=date.fromisoformat(submission.date_of_birth),
        title=submission.title or None,
        gender=submission.gender or None,
        cell_phone=submission.cell_phone or None,
        email=str(submission.email) if submission.email else None,
        address=submission.address or None,
        active=True,
        locked=False,
        date_created=now,
        last_edit=now,
    )

    db.add(patient)
    await db.commit()

    logger.info(
        "Intake saved for org=%s uid=%s via %s link",
        claims.org_id,
        patient.uid,
        claims.type,
    )
    return patient
