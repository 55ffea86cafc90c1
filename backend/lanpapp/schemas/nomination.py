"""Nomination Schemas — creation and voting bodies.

Invariants:
    - voting_hours in [1, 168]; omitted means Settings.default_voting_hours
    - reason: 1-500 chars
"""

from uuid import UUID

from pydantic import BaseModel, Field

from lanpapp.core.enforce_nominations import MAX_VOTING_HOURS, MIN_VOTING_HOURS


class NominationCreate(BaseModel):
    lanpa_id: UUID
    punishment_id: UUID
    nominated_user_id: UUID
    reason: str = Field(min_length=1, max_length=500)
    voting_hours: float | None = Field(None, ge=MIN_VOTING_HOURS, le=MAX_VOTING_HOURS)


class NominationVote(BaseModel):
    """True votes guilty, False innocent."""
    vote: bool
