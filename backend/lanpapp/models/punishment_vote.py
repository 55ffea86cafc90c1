"""PunishmentVote ORM — guilty (True) / innocent (False) vote on a nomination.

Invariants:
    - UNIQUE(nomination_id, user_id): re-voting overwrites via upsert
    - nominee never holds a vote on their own nomination
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from lanpapp.db.base import Base


class PunishmentVote(Base):
    """One vote per (nomination, user)."""
    __tablename__ = "punishment_votes"
    __table_args__ = (
        UniqueConstraint(
            "nomination_id", "user_id", name="uq_punishment_votes_nomination_user",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    nomination_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("punishment_nominations.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    vote: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "nomination_id": str(self.nomination_id),
            "user_id": str(self.user_id),
            "vote": self.vote,
        }
