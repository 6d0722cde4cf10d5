"""
Intake Links Backend - Schemas Module

Pydantic models for request/response validation.
"""

from app.schemas.intake import (
    IntakeLinkRequest,
    IntakeLinkResponse,
    IntakeProbeResponse,
    IntakeSubmission,
    IntakeSubmissionResponse,
    RevokeIntakeLinkRequest,
    RevokeIntakeLinkResponse,
)
from app.schemas.staff import StaffPrincipal

__all__ = [
    # Intake
    "IntakeSubmission",
    "IntakeSubmissionResponse",
    "IntakeProbeResponse",
    # Links
    "IntakeLinkRequest",
    "IntakeLinkResponse",
    "RevokeIntakeLinkRequest",
    "RevokeIntakeLinkResponse",
    # Staff
    "StaffPrincipal",
]
