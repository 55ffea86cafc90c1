"""Nomination State Machine — create, vote on, finalize and read punishment nominations.

Invariants:
    - create: nominator must be a member (Forbidden), nominee must be a member
      (BadRequest), punishment must exist (NotFound), no identical pending
      nomination may exist (BadRequest)
    - cast_vote: member check, then self-vote check (both Forbidden), then the
      voting window; re-voting overwrites through an upsert
    - finalize: pending and past the deadline; the status flip is a conditional
      UPDATE on status = pending, so concurrent finalizers see exactly one winner
      and the UserPunishment row is written only by that winner, in the same commit
    - Notifications sent after commit, failures never reach the caller

Design Decisions:
    - clock injected so tests can move past voting_ends_at without sleeping
    - finalize has no membership requirement: an external scheduler calls it
"""

import logging
from collections.abc import Callable
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lanpapp.core.domain_types import NominationStatus
from lanpapp.core.enforce_nominations import (
    NominationOutcome, broadcast_announcement, broadcast_recipients,
    check_can_finalize, check_not_self_vote, check_voting_open,
    nominee_announcement, outcome_announcement, tally_nomination, voting_deadline,
)
from lanpapp.core.errors import (
    AlreadyFinalizedError, BadRequestError, ErrorContext, ForbiddenError,
)
from lanpapp.core.repository_protocols import MembershipGuard, NotificationFanout
from lanpapp.models.lanpa import Lanpa
from lanpapp.models.punishment import Punishment
from lanpapp.models.punishment_nomination import PunishmentNomination
from lanpapp.models.punishment_vote import PunishmentVote
from lanpapp.models.user_punishment import UserPunishment
from lanpapp.services.lookups import (
    active_member_ids, announce, announce_to, get_or_404, utcnow,
)
from lanpapp.services.membership_guard import require_member
from lanpapp.services.upsert import upsert

logger = logging.getLogger(__name__)


class NominationStateMachine:
    """pending -> approved | rejected, driven by member votes and a deadline."""

    def __init__(
        self,
        db: AsyncSession,
        guard: MembershipGuard,
        fanout: NotificationFanout,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.guard = guard
        self.fanout = fanout
        self.clock = clock

    # --- Create ----------------------------------------------------------------

    async def create(
        self,
        lanpa_id: UUID,
        punishment_id: UUID,
        nominated_user_id: UUID,
        nominator_id: UUID,
        reason: str,
        voting_hours: float,
    ) -> PunishmentNomination:
        await require_member(
            self.guard, lanpa_id, nominator_id, "Only lanpa members can nominate",
        )
        ctx = ErrorContext(lanpa_id=str(lanpa_id), user_id=str(nominator_id))
        if not await self.guard.is_member(lanpa_id, nominated_user_id):
            raise BadRequestError(
                "Nominated user is not a member of this lanpa", "NOMINEE_NOT_MEMBER",
                context=ctx,
            )
        punishment = await get_or_404(self.db, Punishment, punishment_id, "Punishment")
        if await self._pending_exists(lanpa_id, punishment_id, nominated_user_id):
            raise BadRequestError(
                "A pending nomination already exists for this user and punishment",
                "DUPLICATE_NOMINATION", context=ctx,
            )

        nomination = PunishmentNomination(
            lanpa_id=lanpa_id,
            punishment_id=punishment_id,
            nominated_user_id=nominated_user_id,
            nominated_by=nominator_id,
            reason=reason,
            status=NominationStatus.PENDING.value,
            voting_ends_at=voting_deadline(self.clock(), voting_hours),
        )
        self.db.add(nomination)
        await self.db.commit()
        await self.db.refresh(nomination, ["punishment"])
        logger.info(
            "Nomination created",
            extra={"lanpa_id": lanpa_id, "nomination_id": nomination.id},
        )

        lanpa = await self.db.get(Lanpa, lanpa_id)
        lanpa_name = lanpa.name if lanpa else ""
        data = {"nomination_id": str(nomination.id), "lanpa_id": str(lanpa_id)}
        await announce_to(
            self.fanout, nominated_user_id,
            nominee_announcement(punishment.name, lanpa_name).payload(data),
        )
        recipients = broadcast_recipients(
            await active_member_ids(self.db, lanpa_id),
            lanpa.admin_id if lanpa else None,
            nominated_user_id,
        )
        await announce(
            self.fanout, recipients, broadcast_announcement(lanpa_name).payload(data),
        )
        return nomination

    # --- Vote ------------------------------------------------------------------

    async def cast_vote(self, nomination_id: UUID, voter_id: UUID, vote: bool) -> dict:
        nomination = await get_or_404(
            self.db, PunishmentNomination, nomination_id, "Nomination",
        )
        ctx = ErrorContext(
            lanpa_id=str(nomination.lanpa_id),
            nomination_id=str(nomination_id),
            user_id=str(voter_id),
        )
        if not await self.guard.is_member(nomination.lanpa_id, voter_id):
            raise ForbiddenError("Only lanpa members can vote", ctx)
        check_not_self_vote(voter_id, nomination.nominated_user_id, ctx)
        check_voting_open(nomination.status, nomination.voting_ends_at, self.clock(), ctx)

        await upsert(
            self.db, PunishmentVote,
            {"nomination_id": nomination_id, "user_id": voter_id, "vote": vote,
             "created_at": self.clock()},
            conflict_columns=("nomination_id", "user_id"),
            update_columns=("vote", "created_at"),
        )
        await self.db.commit()
        return {
            "nomination_id": str(nomination_id),
            "user_id": str(voter_id),
            "vote": vote,
        }

    # --- Finalize --------------------------------------------------------------

    async def finalize(self, nomination_id: UUID, acting_user_id: UUID) -> dict:
        nomination = await get_or_404(
            self.db, PunishmentNomination, nomination_id, "Nomination",
        )
        ctx = ErrorContext(
            lanpa_id=str(nomination.lanpa_id),
            nomination_id=str(nomination_id),
            user_id=str(acting_user_id),
        )
        check_can_finalize(nomination.status, nomination.voting_ends_at, self.clock(), ctx)

        outcome = await self._tally(nomination_id)
        result = await self.db.execute(
            update(PunishmentNomination)
            .where(
                PunishmentNomination.id == nomination_id,
                PunishmentNomination.status == NominationStatus.PENDING.value,
            )
            .values(status=outcome.status.value)
            .execution_options(synchronize_session=False),
        )
        if result.rowcount != 1:
            await self.db.rollback()
            raise AlreadyFinalizedError(ctx)

        if outcome.approved:
            self.db.add(UserPunishment(
                user_id=nomination.nominated_user_id,
                punishment_id=nomination.punishment_id,
                lanpa_id=nomination.lanpa_id,
                nomination_id=nomination_id,
                notes=outcome.punishment_note,
            ))
        await self.db.commit()
        await self.db.refresh(nomination)
        logger.info(
            f"Nomination finalized: {outcome.status.value} "
            f"({outcome.votes_for}-{outcome.votes_against})",
            extra={"lanpa_id": nomination.lanpa_id, "nomination_id": nomination_id},
        )

        punishment = await self.db.get(Punishment, nomination.punishment_id)
        await announce_to(
            self.fanout, nomination.nominated_user_id,
            outcome_announcement(outcome, punishment.name if punishment else "").payload({
                "nomination_id": str(nomination_id),
                "lanpa_id": str(nomination.lanpa_id),
                "status": outcome.status.value,
            }),
        )
        return {
            "nomination_id": str(nomination_id),
            "status": outcome.status.value,
            "votes_for": outcome.votes_for,
            "votes_against": outcome.votes_against,
            "punishment_applied": outcome.approved,
        }

    # --- Reads -----------------------------------------------------------------

    async def get(self, nomination_id: UUID, user_id: UUID) -> dict:
        nomination = await get_or_404(
            self.db, PunishmentNomination, nomination_id, "Nomination",
        )
        if not await self.guard.is_member(nomination.lanpa_id, user_id):
            raise ForbiddenError(
                "You do not have access to this nomination",
                ErrorContext(nomination_id=str(nomination_id), user_id=str(user_id)),
            )
        outcome = await self._tally(nomination_id)
        return {
            **nomination.to_dict(),
            "votes_for": outcome.votes_for,
            "votes_against": outcome.votes_against,
            "total_votes": outcome.total_votes,
        }

    async def list_for_lanpa(
        self, lanpa_id: UUID, user_id: UUID, status: NominationStatus | None = None,
    ) -> list[dict]:
        await require_member(
            self.guard, lanpa_id, user_id, "Only lanpa members can view nominations",
        )
        query = select(PunishmentNomination).where(
            PunishmentNomination.lanpa_id == lanpa_id,
        )
        if status is not None:
            query = query.where(PunishmentNomination.status == NominationStatus(status).value)
        result = await self.db.execute(
            query.order_by(PunishmentNomination.created_at.desc()),
        )
        nominations = result.scalars().all()
        counts = await self._vote_counts([n.id for n in nominations])
        rows = []
        for n in nominations:
            votes_for, votes_against = counts.get(n.id, (0, 0))
            rows.append({
                **n.to_dict(),
                "votes_for": votes_for,
                "votes_against": votes_against,
                "total_votes": votes_for + votes_against,
            })
        return rows

    async def _tally(self, nomination_id: UUID) -> NominationOutcome:
        result = await self.db.execute(
            select(PunishmentVote.vote).where(PunishmentVote.nomination_id == nomination_id),
        )
        return tally_nomination(result.scalars().all())

    async def _vote_counts(self, nomination_ids: list[UUID]) -> dict[UUID, tuple[int, int]]:
        if not nomination_ids:
            return {}
        result = await self.db.execute(
            select(PunishmentVote.nomination_id, PunishmentVote.vote, func.count())
            .where(PunishmentVote.nomination_id.in_(nomination_ids))
            .group_by(PunishmentVote.nomination_id, PunishmentVote.vote),
        )
        counts: dict[UUID, list[int]] = {}
        for nomination_id, vote, count in result.all():
            pair = counts.setdefault(nomination_id, [0, 0])
            pair[0 if vote else 1] += count
        return {k: (v[0], v[1]) for k, v in counts.items()}

    async def _pending_exists(
        self, lanpa_id: UUID, punishment_id: UUID, nominated_user_id: UUID,
    ) -> bool:
        result = await self.db.execute(
            select(PunishmentNomination.id).where(
                PunishmentNomination.lanpa_id == lanpa_id,
                PunishmentNomination.punishment_id == punishment_id,
                PunishmentNomination.nominated_user_id == nominated_user_id,
                PunishmentNomination.status == NominationStatus.PENDING.value,
            ),
        )
        return result.first() is not None
