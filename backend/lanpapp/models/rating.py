"""Rating ORMs — post-event ratings between users and of the lanpa itself.

Invariants:
    - score in 1..5
    - Rating: UNIQUE(lanpa_id, from_user_id, to_user_id), from != to
    - LanpaRating: UNIQUE(lanpa_id, user_id)

Design Decisions:
    - Both in one file: they are written together by the same endpoint
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    String, Text, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from lanpapp.db.base import Base


class Rating(Base):
    """User-to-user rating within a lanpa."""
    __tablename__ = "ratings"
    __table_args__ = (
        UniqueConstraint(
            "lanpa_id", "from_user_id", "to_user_id", name="uq_ratings_lanpa_from_to",
        ),
        CheckConstraint("score >= 1 AND score <= 5", name="ck_ratings_score"),
        CheckConstraint("from_user_id != to_user_id", name="ck_ratings_not_self"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    lanpa_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("lanpas.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    from_user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    to_user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    rating_type: Mapped[str] = mapped_column(String(20), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )


class LanpaRating(Base):
    """A member's rating of the lanpa event."""
    __tablename__ = "lanpa_ratings"
    __table_args__ = (
        UniqueConstraint("lanpa_id", "user_id", name="uq_lanpa_ratings_lanpa_user"),
        CheckConstraint("score >= 1 AND score <= 5", name="ck_lanpa_ratings_score"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    lanpa_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("lanpas.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
