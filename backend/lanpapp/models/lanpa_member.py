"""LanpaMember ORM — one membership row per (lanpa, user).

Invariants:
    - UNIQUE(lanpa_id, user_id)
    - status in MemberStatus; invited -> confirmed/declined, confirmed -> attended,
      never back to invited

Design Decisions:
    - user loaded selectin: member lists always show the profile summary
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from lanpapp.core.domain_types import MemberStatus
from lanpapp.db.base import Base


class LanpaMember(Base):
    """Membership of a user in a lanpa."""
    __tablename__ = "lanpa_members"
    __table_args__ = (
        UniqueConstraint("lanpa_id", "user_id", name="uq_lanpa_members_lanpa_user"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    lanpa_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("lanpas.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MemberStatus.INVITED.value,
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    lanpa: Mapped["Lanpa"] = relationship("Lanpa", back_populates="members")
    user: Mapped["User"] = relationship("User", lazy="selectin")

    def to_dict(self) -> dict:
        user = self.loaded("user")
        return {
            "id": str(self.id),
            "lanpa_id": str(self.lanpa_id),
            "user_id": str(self.user_id),
            "status": self.status,
            "joined_at": self.joined_at.isoformat(),
            "user": user.summary() if user else None,
        }
