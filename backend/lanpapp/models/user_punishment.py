"""UserPunishment ORM — durable record of an approved nomination.

Invariants:
    - Created only by nomination finalization with outcome approved
    - Append-only: never updated, never deleted by the application
    - lanpa_id / nomination_id survive as SET NULL if the referenced rows go away
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from lanpapp.db.base import Base


class UserPunishment(Base):
    """Applied punishment."""
    __tablename__ = "user_punishments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    punishment_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("punishments.id", ondelete="CASCADE"),
        nullable=False,
    )
    lanpa_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("lanpas.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    nomination_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("punishment_nominations.id", ondelete="SET NULL"),
        nullable=True,
    )
    applied_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    punishment: Mapped["Punishment"] = relationship("Punishment", lazy="selectin")

    def to_dict(self) -> dict:
        punishment = self.loaded("punishment")
        return {
            "id": str(self.id),
            "user_id": str(self.user_id),
            "punishment_id": str(self.punishment_id),
            "lanpa_id": str(self.lanpa_id) if self.lanpa_id else None,
            "nomination_id": str(self.nomination_id) if self.nomination_id else None,
            "applied_at": self.applied_at.isoformat(),
            "notes": self.notes,
            "punishment": punishment.to_dict() if punishment else None,
        }
