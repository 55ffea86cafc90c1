"""Punishment Schemas — catalog entries; point_impact in [0, 100] is subtracted from the adjusted ranking score."""

from pydantic import BaseModel, Field

from lanpapp.core.domain_types import PunishmentSeverity


class PunishmentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    severity: PunishmentSeverity
    point_impact: int = Field(0, ge=0, le=100)
