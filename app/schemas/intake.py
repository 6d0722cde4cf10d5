"""
Intake Schemas

Pydantic models for the public patient intake form and intake link issuance.
Field aliases match the camelCase JSON the intake pages post.
"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class IntakeSubmission(BaseModel):
    """Patient details submitted through an intake link."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    surname: Optional[str] = Field(None, max_length=255)
    date_of_birth: str = Field(
        ...,
        alias="dateOfBirth",
        pattern=r"^\d{4}-\d{2}-\d{2}$",
        description="YYYY-MM-DD",
    )
    is_under_18: bool = Field(..., alias="isUnder18")
    id_number: Optional[str] = Field(None, alias="id", max_length=64)
    title: Optional[str] = Field(None, max_length=32)
    gender: Optional[str] = Field(None, max_length=32)
    cell_phone: Optional[str] = Field(None, alias="cellPhone", max_length=32)
    email: Optional[EmailStr] = None
    address: Optional[str] = None

    @field_validator("date_of_birth")
    @classmethod
    def date_of_birth_is_calendar_date(cls, value: str) -> str:
        date.fromisoformat(value)
        return value

    @property
    def missing_adult_id(self) -> bool:
        """Adults must provide an ID number; minors never need one."""
        return not self.is_under_18 and not (self.id_number or "").strip()


class IntakeSubmissionResponse(BaseModel):
    """Response after a successful intake submission."""

    success: bool = True
    uid: str


class IntakeProbeResponse(BaseModel):
    """Capability probe answer for a valid intake token."""

    ok: bool = True


class IntakeLinkRequest(BaseModel):
    """Optional overrides when issuing an intake link."""

    base_url: Optional[str] = Field(
        None,
        max_length=2048,
        description="Public app origin; defaults to PUBLIC_APP_URL",
    )


class IntakeLinkResponse(BaseModel):
    """A freshly issued intake link."""

    url: str
    kind: Literal["expiring", "tablet"]
    expires_at: Optional[datetime] = None


class RevokeIntakeLinkRequest(BaseModel):
    """Token (or full link) to revoke."""

    token: str = Field(..., min_length=1, max_length=4096)


class RevokeIntakeLinkResponse(BaseModel):
    revoked: bool = True
    fingerprint: str
