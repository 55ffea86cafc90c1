"""Rating Schemas — member ratings and the optional lanpa rating, scores 1-5."""

from uuid import UUID

from pydantic import BaseModel, Field


class MemberRating(BaseModel):
    to_user_id: UUID
    score: int = Field(ge=1, le=5)
    comment: str | None = Field(None, max_length=500)


class EventRating(BaseModel):
    score: int = Field(ge=1, le=5)
    comment: str | None = Field(None, max_length=500)


class RateRequest(BaseModel):
    ratings: list[MemberRating] = Field(default_factory=list)
    lanpa_rating: EventRating | None = None
