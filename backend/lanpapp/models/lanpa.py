"""Lanpa ORM — persists the aggregate root of a lan party.

Invariants:
    - status transitions follow core.enforce_lanpa.LANPA_TRANSITIONS only
    - selected_game_id set only at in_progress or later, only to a suggested game
    - actual_date stamped when the lanpa enters in_progress
    - cascade delete for members, invitations, suggestions, votes, ratings, nominations

Design Decisions:
    - status as String(20) holding LanpaStatus values: portable across PostgreSQL and SQLite
    - members loaded selectin: detail and membership reads need them together
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from lanpapp.core.domain_types import LanpaStatus
from lanpapp.db.base import Base


class Lanpa(Base):
    """Lanpa aggregate root — owns members, suggestions, votes and nominations."""
    __tablename__ = "lanpas"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    admin_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LanpaStatus.DRAFT.value, index=True,
    )
    scheduled_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    actual_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    is_historical: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    selected_game_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("games.id", ondelete="SET NULL"), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    members: Mapped[list["LanpaMember"]] = relationship(
        "LanpaMember", back_populates="lanpa",
        cascade="all, delete-orphan", lazy="selectin",
    )
    invitations: Mapped[list["LanpaInvitation"]] = relationship(
        "LanpaInvitation", cascade="all, delete-orphan",
    )
    suggestions: Mapped[list["GameSuggestion"]] = relationship(
        "GameSuggestion", cascade="all, delete-orphan",
    )
    votes: Mapped[list["GameVote"]] = relationship(
        "GameVote", cascade="all, delete-orphan",
    )
    ratings: Mapped[list["Rating"]] = relationship(
        "Rating", cascade="all, delete-orphan",
    )
    lanpa_ratings: Mapped[list["LanpaRating"]] = relationship(
        "LanpaRating", cascade="all, delete-orphan",
    )
    nominations: Mapped[list["PunishmentNomination"]] = relationship(
        "PunishmentNomination", cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "description": self.description,
            "admin_id": str(self.admin_id),
            "status": self.status,
            "scheduled_date": (
                self.scheduled_date.isoformat() if self.scheduled_date else None
            ),
            "actual_date": self.actual_date.isoformat() if self.actual_date else None,
            "is_historical": self.is_historical,
            "selected_game_id": (
                str(self.selected_game_id) if self.selected_game_id else None
            ),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
