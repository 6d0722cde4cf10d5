"""
Staff Schemas

Identity of an authenticated practice staff member.
"""

from pydantic import BaseModel


class StaffPrincipal(BaseModel):
    """Claims extracted from a staff bearer token."""

    user_id: str
    org_id: str
