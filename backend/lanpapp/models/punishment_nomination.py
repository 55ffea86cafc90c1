"""PunishmentNomination ORM — a pending/approved/rejected vote on punishing a member.

Invariants:
    - nominator and nominee are both members of the lanpa when it is created
    - at most one pending nomination per (lanpa_id, punishment_id, nominated_user_id)
    - status leaves pending exactly once, via a conditional UPDATE
    - voting_ends_at set at creation, never moved

Design Decisions:
    - The single-pending rule is checked in the shell rather than with a partial
      unique index: partial indexes are PostgreSQL-only
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from lanpapp.core.domain_types import NominationStatus
from lanpapp.db.base import Base


class PunishmentNomination(Base):
    """Punishment nomination with its voting deadline."""
    __tablename__ = "punishment_nominations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    lanpa_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("lanpas.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    punishment_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("punishments.id", ondelete="CASCADE"),
        nullable=False,
    )
    nominated_user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    nominated_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=NominationStatus.PENDING.value, index=True,
    )
    voting_ends_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    punishment: Mapped["Punishment"] = relationship("Punishment", lazy="selectin")
    votes: Mapped[list["PunishmentVote"]] = relationship(
        "PunishmentVote", cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        punishment = self.loaded("punishment")
        return {
            "id": str(self.id),
            "lanpa_id": str(self.lanpa_id),
            "punishment_id": str(self.punishment_id),
            "nominated_user_id": str(self.nominated_user_id),
            "nominated_by": str(self.nominated_by),
            "reason": self.reason,
            "status": self.status,
            "voting_ends_at": self.voting_ends_at.isoformat(),
            "created_at": self.created_at.isoformat(),
            "punishment": punishment.to_dict() if punishment else None,
        }
