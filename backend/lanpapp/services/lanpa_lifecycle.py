"""Lanpa State Machine — admin-driven status transitions with vote freezing.

Invariants:
    - Order of checks: admin (Forbidden), existence (NotFound), table (BadRequest)
    - voting_active -> in_progress writes status and selected_game_id in ONE
      conditional UPDATE; no winner (no suggestions) leaves selected_game_id unset
    - Any transition into in_progress stamps actual_date
    - The UPDATE is conditioned on the status we validated against; losing the
      race raises ConcurrencyError and nothing is written
    - Notifications go out after commit and can never undo the transition

Design Decisions:
    - rng and clock injected: production uses the random module and wall clock,
      tests pass seeded / fixed ones
"""

import logging
import random
from collections.abc import Callable
from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lanpapp.core.domain_types import LanpaStatus
from lanpapp.core.enforce_lanpa import (
    resolves_game_vote, stamps_actual_date, transition_announcement, validate_transition,
)
from lanpapp.core.errors import ConcurrencyError, ErrorContext
from lanpapp.core.repository_protocols import MembershipGuard, NotificationFanout
from lanpapp.core.vote_tally import VoteResolution, resolve_game_vote
from lanpapp.models.game_suggestion import GameSuggestion
from lanpapp.models.game_vote import GameVote
from lanpapp.models.lanpa import Lanpa
from lanpapp.services.lookups import (
    active_member_ids, announce, get_or_404, utcnow,
)
from lanpapp.services.membership_guard import require_admin

logger = logging.getLogger(__name__)


async def load_vote_resolution(
    db: AsyncSession, lanpa_id: UUID, rng: random.Random | None = None,
) -> VoteResolution:
    """Load suggestions and votes for a lanpa and resolve the winner."""
    suggested = await db.execute(
        select(GameSuggestion.game_id)
        .where(GameSuggestion.lanpa_id == lanpa_id)
        .order_by(GameSuggestion.created_at),
    )
    voted = await db.execute(
        select(GameVote.game_id).where(GameVote.lanpa_id == lanpa_id),
    )
    return resolve_game_vote(
        list(suggested.scalars().all()), list(voted.scalars().all()), rng,
    )


class LanpaStateMachine:
    """Applies LANPA_TRANSITIONS to persisted lanpas."""

    def __init__(
        self,
        db: AsyncSession,
        guard: MembershipGuard,
        fanout: NotificationFanout,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.guard = guard
        self.fanout = fanout
        self.rng = rng
        self.clock = clock

    async def request_transition(
        self, lanpa_id: UUID, requested: LanpaStatus, acting_user_id: UUID,
    ) -> Lanpa:
        await require_admin(
            self.guard, lanpa_id, acting_user_id, "Only the admin can change lanpa status",
        )
        lanpa = await get_or_404(self.db, Lanpa, lanpa_id, "Lanpa")
        current = LanpaStatus(lanpa.status)
        requested = LanpaStatus(requested)
        ctx = ErrorContext(lanpa_id=str(lanpa_id), user_id=str(acting_user_id))
        validate_transition(current, requested, ctx)

        now = self.clock()
        values: dict = {"status": requested.value, "updated_at": now}
        if resolves_game_vote(current, requested):
            resolution = await load_vote_resolution(self.db, lanpa_id, self.rng)
            if resolution.winner is not None:
                values["selected_game_id"] = resolution.winner
            logger.info(
                f"Game vote resolved: winner={resolution.winner} "
                f"tiebreak={resolution.tiebreak}",
                extra={"lanpa_id": lanpa_id},
            )
        if stamps_actual_date(requested):
            values["actual_date"] = now

        result = await self.db.execute(
            update(Lanpa)
            .where(Lanpa.id == lanpa_id, Lanpa.status == current.value)
            .values(**values)
            .execution_options(synchronize_session=False),
        )
        if result.rowcount != 1:
            await self.db.rollback()
            raise ConcurrencyError(
                "Lanpa status changed concurrently, reload and retry", ctx,
            )
        await self.db.commit()
        await self.db.refresh(lanpa)

        logger.info(
            "Lanpa status changed",
            extra={
                "lanpa_id": lanpa_id,
                "from_status": current.value,
                "to_status": requested.value,
            },
        )
        await self._announce(lanpa, requested)
        return lanpa

    async def _announce(self, lanpa: Lanpa, requested: LanpaStatus) -> None:
        recipients = await active_member_ids(self.db, lanpa.id)
        announcement = transition_announcement(lanpa.name, requested)
        await announce(
            self.fanout, recipients, announcement.payload({"lanpa_id": str(lanpa.id)}),
        )
