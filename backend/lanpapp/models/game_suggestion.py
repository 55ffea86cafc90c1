"""GameSuggestion ORM — a game put up for the vote of one lanpa.

Invariants:
    - UNIQUE(lanpa_id, game_id)
    - inserted only while the lanpa is voting_games
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from lanpapp.db.base import Base


class GameSuggestion(Base):
    """Suggested game for a lanpa."""
    __tablename__ = "game_suggestions"
    __table_args__ = (
        UniqueConstraint("lanpa_id", "game_id", name="uq_game_suggestions_lanpa_game"),
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
    suggested_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    game: Mapped["Game"] = relationship("Game", lazy="selectin")

    def to_dict(self) -> dict:
        game = self.loaded("game")
        return {
            "id": str(self.id),
            "lanpa_id": str(self.lanpa_id),
            "game_id": str(self.game_id),
            "suggested_by": str(self.suggested_by),
            "game": game.to_dict() if game else None,
        }
