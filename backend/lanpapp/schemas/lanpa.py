"""Lanpa Schemas — lanpa, membership and invitation request bodies.

Invariants:
    - LanpaCreate.name: 1-100 chars, stripped, non-empty
    - LanpaUpdate never carries status (status moves only through StatusChange)
    - LanpaUpdate: name and is_historical are never null
    - Invite link: expires_in_hours in [1, 168], max_uses in [1, 100]
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from lanpapp.core.domain_types import LanpaStatus, MemberStatus


class LanpaCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    scheduled_date: datetime | None = None
    is_historical: bool = False

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty or whitespace")
        return v


class LanpaUpdate(BaseModel):
    """Partial update — only fields present in the body are applied.

    description and scheduled_date may be cleared with null; name and
    is_historical may be omitted but never set to null.
    """
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    scheduled_date: datetime | None = None
    is_historical: bool | None = None

    @field_validator("name", "is_historical")
    @classmethod
    def reject_null(cls, v, info: ValidationInfo):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("name cannot be empty or whitespace")
        return v


class StatusChange(BaseModel):
    status: LanpaStatus


class InviteUsers(BaseModel):
    user_ids: list[UUID] = Field(min_length=1)


class MemberStatusUpdate(BaseModel):
    status: MemberStatus


class InviteLinkCreate(BaseModel):
    expires_in_hours: float = Field(24, ge=1, le=168)
    max_uses: int | None = Field(None, ge=1, le=100)
