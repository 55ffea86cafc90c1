"""Stats — read-only aggregates: global, personal, per-lanpa, per-user and leaderboards.

Invariants:
    - Nothing here writes; every method is a set of SELECTs over committed rows
    - "Played" means a completed lanpa with a selected game
    - Attendance counts lanpa_members rows with status attended
    - Hosting counts completed lanpas the user administered (personal stats
      count lanpas created in any status)
    - Admin ratings are member_to_admin rows; member ratings are
      admin_to_member and member_to_member rows
    - Lanpa punishment history is members only; everything else needs
      authentication only

Design Decisions:
    - Aggregation pulls (key, value) rows and folds them in core.rankings:
      the same code runs on PostgreSQL and on SQLite in tests
    - User and game details attached in one IN query per read
"""

import logging
from collections import defaultdict
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lanpapp.core.domain_types import LanpaStatus, MemberStatus, RatingType
from lanpapp.core.rankings import (
    UserActivity, average, best_rated, build_rankings, round1, top_counts,
)
from lanpapp.core.repository_protocols import MembershipGuard
from lanpapp.models.game import Game
from lanpapp.models.lanpa import Lanpa
from lanpapp.models.lanpa_member import LanpaMember
from lanpapp.models.punishment import Punishment
from lanpapp.models.rating import LanpaRating, Rating
from lanpapp.models.user import User
from lanpapp.models.user_punishment import UserPunishment
from lanpapp.services.lookups import get_or_404
from lanpapp.services.membership_guard import require_member

logger = logging.getLogger(__name__)

TOP_LIMIT = 5
_COMPLETED = LanpaStatus.COMPLETED.value
_ATTENDED = MemberStatus.ATTENDED.value
_ADMIN_RATING = (RatingType.MEMBER_TO_ADMIN.value,)
_MEMBER_RATINGS = (RatingType.ADMIN_TO_MEMBER.value, RatingType.MEMBER_TO_MEMBER.value)


class StatsService:

    def __init__(self, db: AsyncSession, guard: MembershipGuard | None = None):
        self.db = db
        self.guard = guard

    # --- Global ----------------------------------------------------------------

    async def global_stats(self) -> dict:
        completed = (await self.db.execute(
            select(Lanpa.admin_id, Lanpa.selected_game_id).where(Lanpa.status == _COMPLETED),
        )).all()
        played = [game_id for _, game_id in completed if game_id is not None]

        attended = await self._scalars(
            select(LanpaMember.user_id)
            .join(Lanpa, Lanpa.id == LanpaMember.lanpa_id)
            .where(LanpaMember.status == _ATTENDED, Lanpa.status == _COMPLETED),
        )
        admin_scores: dict[UUID, list[int]] = defaultdict(list)
        for user_id, score in (await self.db.execute(
            select(Rating.to_user_id, Rating.score).where(Rating.rating_type.in_(_ADMIN_RATING)),
        )).all():
            admin_scores[user_id].append(score)

        shame = await self._punishment_totals()
        shame_top = sorted(shame.items(), key=lambda kv: kv[1][0], reverse=True)[:TOP_LIMIT]

        top_admin = top_counts((admin_id for admin_id, _ in completed), 1)
        top_member = top_counts(attended, 1)
        best_admin = best_rated(admin_scores)
        top_games = top_counts(played, TOP_LIMIT)

        users = await self._user_summaries(
            [uid for uid, _ in top_admin + top_member]
            + ([best_admin[0]] if best_admin else [])
            + [uid for uid, _ in shame_top],
        )
        games = await self._games([gid for gid, _ in top_games])

        return {
            "total_lanpas": await self._count(select(func.count(Lanpa.id))),
            "total_users": await self._count(select(func.count(User.id))),
            "total_games_played": len(played),
            "most_frequent_admin": (
                {"user": users.get(top_admin[0][0]), "lanpas_hosted": top_admin[0][1]}
                if top_admin else None
            ),
            "most_attended_member": (
                {"user": users.get(top_member[0][0]), "lanpas_attended": top_member[0][1]}
                if top_member else None
            ),
            "best_rated_admin": (
                {"user": users.get(best_admin[0]), "average_rating": round1(best_admin[1])}
                if best_admin else None
            ),
            "most_played_games": [
                {**games[gid], "times_played": times}
                for gid, times in top_games if gid in games
            ],
            "hall_of_shame": [
                {
                    "user": users.get(uid),
                    "total_punishments": count,
                    "total_point_impact": impact,
                }
                for uid, (count, impact) in shame_top
            ],
        }

    # --- Personal / per user ---------------------------------------------------

    async def personal_stats(self, user_id: UUID) -> dict:
        created = await self._count(
            select(func.count(Lanpa.id)).where(Lanpa.admin_id == user_id),
        )
        attended = await self._attended_count(user_id)
        attended_games = await self._attended_game_ids(user_id)
        hosted_games = await self._scalars(
            select(Lanpa.selected_game_id).where(
                Lanpa.admin_id == user_id,
                Lanpa.status == _COMPLETED,
                Lanpa.selected_game_id.is_not(None),
            ),
        )
        received = await self._scalars(select(Rating.score).where(Rating.to_user_id == user_id))
        punishments = await self._count(
            select(func.count(UserPunishment.id)).where(UserPunishment.user_id == user_id),
        )
        return {
            "lanpas_created": created,
            "lanpas_attended": attended,
            "games_played": len(set(attended_games) | set(hosted_games)),
            "average_rating": round1(average(received)),
            "total_punishments": punishments,
            "has_activity": created > 0 or attended > 0,
        }

    async def user_stats(self, user_id: UUID) -> dict:
        user = await get_or_404(self.db, User, user_id, "User")
        favorites = top_counts(await self._attended_game_ids(user_id), TOP_LIMIT)
        games = await self._games([gid for gid, _ in favorites])
        history = await self.user_punishments(user_id)
        return {
            "user": {**user.summary(), "created_at": user.created_at.isoformat()},
            "lanpas_hosted": await self._count(
                select(func.count(Lanpa.id)).where(
                    Lanpa.admin_id == user_id, Lanpa.status == _COMPLETED,
                ),
            ),
            "lanpas_attended": await self._attended_count(user_id),
            "average_rating_as_admin": await self._average_received(user_id, _ADMIN_RATING),
            "average_rating_as_member": await self._average_received(user_id, _MEMBER_RATINGS),
            "favorite_games": [
                {**games[gid], "times_played": times}
                for gid, times in favorites if gid in games
            ],
            "punishments": history["punishments"],
        }

    # --- Per lanpa -------------------------------------------------------------

    async def lanpa_stats(self, lanpa_id: UUID) -> dict:
        lanpa = await get_or_404(self.db, Lanpa, lanpa_id, "Lanpa")
        game = await self.db.get(Game, lanpa.selected_game_id) if lanpa.selected_game_id else None

        async def avg_rating(*rating_types: str) -> float | None:
            scores = await self._scalars(
                select(Rating.score).where(
                    Rating.lanpa_id == lanpa_id, Rating.rating_type.in_(rating_types),
                ),
            )
            return average(scores)

        return {
            "lanpa": lanpa.to_dict(),
            "attendance_count": await self._count(
                select(func.count(LanpaMember.id)).where(
                    LanpaMember.lanpa_id == lanpa_id, LanpaMember.status == _ATTENDED,
                ),
            ),
            "average_admin_rating": await avg_rating(*_ADMIN_RATING),
            "average_member_rating": await avg_rating(*_MEMBER_RATINGS),
            "average_lanpa_rating": average(await self._scalars(
                select(LanpaRating.score).where(LanpaRating.lanpa_id == lanpa_id),
            )),
            "games_played": [game.to_dict()] if game else [],
            "punishments_given": await self._count(
                select(func.count(UserPunishment.id)).where(UserPunishment.lanpa_id == lanpa_id),
            ),
        }

    # --- Leaderboards ----------------------------------------------------------

    async def rankings(self) -> dict:
        users = (await self.db.execute(select(User))).scalars().all()
        attended = dict((await self.db.execute(
            select(LanpaMember.user_id, func.count(LanpaMember.id))
            .where(LanpaMember.status == _ATTENDED)
            .group_by(LanpaMember.user_id),
        )).all())
        hosted = dict((await self.db.execute(
            select(Lanpa.admin_id, func.count(Lanpa.id))
            .where(Lanpa.status == _COMPLETED)
            .group_by(Lanpa.admin_id),
        )).all())
        received: dict[UUID, list[int]] = defaultdict(list)
        for user_id, score in (await self.db.execute(
            select(Rating.to_user_id, Rating.score),
        )).all():
            received[user_id].append(score)
        impacts = {uid: impact for uid, (_, impact) in (await self._punishment_totals()).items()}

        boards = build_rankings(
            UserActivity(
                user_id=user.id,
                lanpas=attended.get(user.id, 0) + hosted.get(user.id, 0),
                average_rating=average(received.get(user.id, [])),
                point_impact=impacts.get(user.id, 0),
            )
            for user in users
        )
        summaries = {user.id: user.summary() for user in users}
        return {
            name: [
                {**{k: v for k, v in row.items() if k != "user_id"},
                 "user": summaries[row["user_id"]]}
                for row in board
            ]
            for name, board in boards.items()
        }

    # --- Punishment history ----------------------------------------------------

    async def user_punishments(self, user_id: UUID, limit: int | None = None) -> dict:
        query = (
            select(UserPunishment)
            .where(UserPunishment.user_id == user_id)
            .order_by(UserPunishment.applied_at.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        rows = (await self.db.execute(query)).scalars().all()
        total = await self._count(
            select(func.coalesce(func.sum(Punishment.point_impact), 0))
            .join(UserPunishment, UserPunishment.punishment_id == Punishment.id)
            .where(UserPunishment.user_id == user_id),
        )
        return {
            "punishments": [row.to_dict() for row in rows],
            "total_point_impact": int(total),
        }

    async def lanpa_punishments(self, lanpa_id: UUID, user_id: UUID) -> dict:
        await require_member(
            self.guard, lanpa_id, user_id, "Only members can view lanpa punishments",
        )
        rows = (await self.db.execute(
            select(UserPunishment)
            .where(UserPunishment.lanpa_id == lanpa_id)
            .order_by(UserPunishment.applied_at.desc()),
        )).scalars().all()
        users = await self._user_summaries([row.user_id for row in rows])
        return {
            "lanpa_id": str(lanpa_id),
            "punishments": [{**row.to_dict(), "user": users.get(row.user_id)} for row in rows],
            "total_punishments": len(rows),
            "total_point_impact": sum(row.punishment.point_impact for row in rows),
        }

    # --- Helpers ---------------------------------------------------------------

    async def _count(self, stmt) -> int:
        return (await self.db.execute(stmt)).scalar_one() or 0

    async def _scalars(self, stmt) -> list:
        return list((await self.db.execute(stmt)).scalars().all())

    async def _attended_count(self, user_id: UUID) -> int:
        return await self._count(
            select(func.count(LanpaMember.id)).where(
                LanpaMember.user_id == user_id, LanpaMember.status == _ATTENDED,
            ),
        )

    async def _attended_game_ids(self, user_id: UUID) -> list[UUID]:
        return await self._scalars(
            select(Lanpa.selected_game_id)
            .join(LanpaMember, LanpaMember.lanpa_id == Lanpa.id)
            .where(
                LanpaMember.user_id == user_id,
                LanpaMember.status == _ATTENDED,
                Lanpa.selected_game_id.is_not(None),
            ),
        )

    async def _average_received(
        self, user_id: UUID, rating_types: tuple[str, ...],
    ) -> float | None:
        return average(await self._scalars(
            select(Rating.score).where(
                Rating.to_user_id == user_id, Rating.rating_type.in_(rating_types),
            ),
        ))

    async def _punishment_totals(self) -> dict[UUID, tuple[int, int]]:
        """user_id -> (applied punishments, summed point_impact)."""
        rows = (await self.db.execute(
            select(
                UserPunishment.user_id,
                func.count(UserPunishment.id),
                func.coalesce(func.sum(Punishment.point_impact), 0),
            )
            .join(Punishment, Punishment.id == UserPunishment.punishment_id)
            .group_by(UserPunishment.user_id),
        )).all()
        return {user_id: (count, int(impact)) for user_id, count, impact in rows}

    async def _user_summaries(self, user_ids: list[UUID]) -> dict[UUID, dict]:
        if not user_ids:
            return {}
        users = await self._scalars(select(User).where(User.id.in_(set(user_ids))))
        return {user.id: user.summary() for user in users}

    async def _games(self, game_ids: list[UUID]) -> dict[UUID, dict]:
        if not game_ids:
            return {}
        games = await self._scalars(select(Game).where(Game.id.in_(set(game_ids))))
        return {game.id: game.to_dict() for game in games}
