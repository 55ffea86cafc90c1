"""Ratings — post-event ratings between members and of the lanpa itself.

Invariants:
    - Only members rate (Forbidden), only completed lanpas (BadRequest)
    - Nobody rates themselves; rated users must be members of the lanpa
    - One rating per (lanpa, from, to) and one lanpa rating per (lanpa, user):
      resubmitting overwrites
    - rating_type derived from who is the admin, never taken from the client
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from lanpapp.core.domain_types import LanpaStatus
from lanpapp.core.enforce_lanpa import check_ratings_open, rating_announcement, rating_type_for
from lanpapp.core.errors import BadRequestError, ErrorContext
from lanpapp.core.membership import is_admin
from lanpapp.core.repository_protocols import MembershipGuard, NotificationFanout
from lanpapp.models.lanpa import Lanpa
from lanpapp.models.rating import LanpaRating, Rating
from lanpapp.services.lookups import announce_to, get_or_404, utcnow
from lanpapp.services.membership_guard import require_member
from lanpapp.services.upsert import upsert

logger = logging.getLogger(__name__)


class RatingService:

    def __init__(self, db: AsyncSession, guard: MembershipGuard, fanout: NotificationFanout):
        self.db = db
        self.guard = guard
        self.fanout = fanout

    async def rate(
        self,
        lanpa_id: UUID,
        user_id: UUID,
        ratings: list[dict],
        lanpa_rating: dict | None = None,
    ) -> dict:
        """Submit member ratings ({to_user_id, score, comment}) and an optional lanpa rating."""
        await require_member(self.guard, lanpa_id, user_id, "Only members can rate")
        lanpa = await get_or_404(self.db, Lanpa, lanpa_id, "Lanpa")
        ctx = ErrorContext(lanpa_id=str(lanpa_id), user_id=str(user_id))
        check_ratings_open(LanpaStatus(lanpa.status), ctx)

        for entry in ratings:
            to_user_id = entry["to_user_id"]
            if to_user_id == user_id:
                raise BadRequestError("You cannot rate yourself", "SELF_RATING", context=ctx)
            if not await self.guard.is_member(lanpa_id, to_user_id):
                raise BadRequestError(
                    "Rated user is not a member of this lanpa", "RATED_NOT_MEMBER",
                    context=ctx,
                )

        now = utcnow()
        rater_is_admin = is_admin(lanpa.admin_id, user_id)
        for entry in ratings:
            rating_type = rating_type_for(
                rater_is_admin, is_admin(lanpa.admin_id, entry["to_user_id"]),
            )
            await upsert(
                self.db, Rating,
                {
                    "lanpa_id": lanpa_id,
                    "from_user_id": user_id,
                    "to_user_id": entry["to_user_id"],
                    "rating_type": rating_type.value,
                    "score": entry["score"],
                    "comment": entry.get("comment"),
                    "created_at": now,
                },
                conflict_columns=("lanpa_id", "from_user_id", "to_user_id"),
                update_columns=("rating_type", "score", "comment", "created_at"),
            )
        if lanpa_rating is not None:
            await upsert(
                self.db, LanpaRating,
                {
                    "lanpa_id": lanpa_id,
                    "user_id": user_id,
                    "score": lanpa_rating["score"],
                    "comment": lanpa_rating.get("comment"),
                    "created_at": now,
                },
                conflict_columns=("lanpa_id", "user_id"),
                update_columns=("score", "comment", "created_at"),
            )
        await self.db.commit()
        logger.info(
            f"Ratings submitted: {len(ratings)} member ratings",
            extra={"lanpa_id": lanpa_id, "user_id": user_id},
        )

        for entry in ratings:
            await announce_to(
                self.fanout, entry["to_user_id"],
                rating_announcement(entry["score"]).payload({"lanpa_id": str(lanpa_id)}),
            )
        return {"ratings": len(ratings), "lanpa_rating": lanpa_rating is not None}
