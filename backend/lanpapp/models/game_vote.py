"""GameVote ORM — a member's single current game vote in a lanpa.

Invariants:
    - UNIQUE(lanpa_id, user_id): re-voting overwrites game_id via upsert
    - game_id always references a suggestion of the same lanpa
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from lanpapp.db.base import Base


class GameVote(Base):
    """One vote per (lanpa, user)."""
    __tablename__ = "game_votes"
    __table_args__ = (
        UniqueConstraint("lanpa_id", "user_id", name="uq_game_votes_lanpa_user"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    lanpa_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("lanpas.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    game_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("games.id", ondelete="CASCADE"), nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "lanpa_id": str(self.lanpa_id),
            "game_id": str(self.game_id),
            "user_id": str(self.user_id),
        }
