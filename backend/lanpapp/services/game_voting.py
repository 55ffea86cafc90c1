"""Game Voting — suggestion, voting, manual selection and result reads for a lanpa.

Invariants:
    - Every operation starts with the membership check (Forbidden before NotFound)
    - Suggestions only while voting_games, votes only while voting_active,
      manual selection only while in_progress
    - One vote per (lanpa, user): re-voting overwrites through an upsert
    - A vote or a manual selection must name a game suggested for this lanpa
    - Duplicate suggestion surfaces as ConflictError, including the race where
      the unique constraint fires at flush time
"""

import logging
import random
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lanpapp.core.domain_types import LanpaStatus
from lanpapp.core.enforce_lanpa import (
    check_manual_selection_allowed, check_suggestions_open, check_voting_open,
)
from lanpapp.core.errors import BadRequestError, ConflictError, ErrorContext
from lanpapp.core.repository_protocols import MembershipGuard
from lanpapp.core.vote_tally import VoteResolution
from lanpapp.models.game import Game
from lanpapp.models.game_suggestion import GameSuggestion
from lanpapp.models.game_vote import GameVote
from lanpapp.models.lanpa import Lanpa
from lanpapp.services.lanpa_lifecycle import load_vote_resolution
from lanpapp.services.lookups import get_or_404, utcnow
from lanpapp.services.membership_guard import require_admin, require_member
from lanpapp.services.upsert import upsert

logger = logging.getLogger(__name__)


class GameVotingService:
    """Suggest / vote / select / results for one request."""

    def __init__(
        self, db: AsyncSession, guard: MembershipGuard, rng: random.Random | None = None,
    ):
        self.db = db
        self.guard = guard
        self.rng = rng

    # --- Suggestions -----------------------------------------------------------

    async def suggest(self, lanpa_id: UUID, game_id: UUID, user_id: UUID) -> GameSuggestion:
        await require_member(self.guard, lanpa_id, user_id, "Only members can suggest games")
        lanpa = await get_or_404(self.db, Lanpa, lanpa_id, "Lanpa")
        ctx = ErrorContext(lanpa_id=str(lanpa_id), user_id=str(user_id))
        check_suggestions_open(LanpaStatus(lanpa.status), ctx)
        await get_or_404(self.db, Game, game_id, "Game")

        if await self._suggestion_exists(lanpa_id, game_id):
            raise ConflictError(
                "This game has already been suggested", "DUPLICATE_SUGGESTION", ctx,
            )
        suggestion = GameSuggestion(lanpa_id=lanpa_id, game_id=game_id, suggested_by=user_id)
        self.db.add(suggestion)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(
                "This game has already been suggested", "DUPLICATE_SUGGESTION", ctx,
            )
        await self.db.refresh(suggestion, ["game"])
        return suggestion

    async def list_suggestions(self, lanpa_id: UUID, user_id: UUID) -> list[dict]:
        """Suggestions with their game and current vote count."""
        await require_member(
            self.guard, lanpa_id, user_id, "Only members can view lanpa games",
        )
        await get_or_404(self.db, Lanpa, lanpa_id, "Lanpa")
        resolution = await load_vote_resolution(self.db, lanpa_id, self.rng)
        votes = {r.game_id: r.votes for r in resolution.results}
        result = await self.db.execute(
            select(GameSuggestion)
            .where(GameSuggestion.lanpa_id == lanpa_id)
            .order_by(GameSuggestion.created_at),
        )
        return [
            {**s.to_dict(), "votes": votes.get(s.game_id, 0)}
            for s in result.scalars().all()
        ]

    # --- Votes -----------------------------------------------------------------

    async def vote(self, lanpa_id: UUID, game_id: UUID, user_id: UUID) -> dict:
        await require_member(self.guard, lanpa_id, user_id, "Only members can vote")
        lanpa = await get_or_404(self.db, Lanpa, lanpa_id, "Lanpa")
        ctx = ErrorContext(lanpa_id=str(lanpa_id), user_id=str(user_id))
        check_voting_open(LanpaStatus(lanpa.status), ctx)
        if not await self._suggestion_exists(lanpa_id, game_id):
            raise BadRequestError(
                "Game was not suggested for this lanpa", "GAME_NOT_SUGGESTED", context=ctx,
            )

        await upsert(
            self.db, GameVote,
            {"lanpa_id": lanpa_id, "user_id": user_id, "game_id": game_id,
             "created_at": utcnow()},
            conflict_columns=("lanpa_id", "user_id"),
            update_columns=("game_id", "created_at"),
        )
        await self.db.commit()
        return {"lanpa_id": str(lanpa_id), "user_id": str(user_id), "game_id": str(game_id)}

    # --- Selection -------------------------------------------------------------

    async def select_game_manually(
        self, lanpa_id: UUID, game_id: UUID, admin_user_id: UUID,
    ) -> Lanpa:
        """Admin override of selected_game_id while the lanpa is in progress."""
        await require_admin(
            self.guard, lanpa_id, admin_user_id, "Only the admin can select the game",
        )
        lanpa = await get_or_404(self.db, Lanpa, lanpa_id, "Lanpa")
        ctx = ErrorContext(lanpa_id=str(lanpa_id), user_id=str(admin_user_id))
        check_manual_selection_allowed(LanpaStatus(lanpa.status), ctx)
        if not await self._suggestion_exists(lanpa_id, game_id):
            raise BadRequestError(
                "Game was not suggested for this lanpa", "GAME_NOT_SUGGESTED", context=ctx,
            )
        lanpa.selected_game_id = game_id
        lanpa.updated_at = utcnow()
        await self.db.commit()
        logger.info("Game selected manually", extra={"lanpa_id": lanpa_id})
        return lanpa

    # --- Results ---------------------------------------------------------------

    async def results(self, lanpa_id: UUID, user_id: UUID) -> dict:
        """Vote results with game details.

        Once a game has been frozen into selected_game_id it is reported as the
        winner; before that the winner is resolved live, so a tie at the top is
        re-drawn on every read and two reads may name different winners.
        """
        await require_member(self.guard, lanpa_id, user_id, "Only members can view results")
        lanpa = await get_or_404(self.db, Lanpa, lanpa_id, "Lanpa")
        resolution = await load_vote_resolution(self.db, lanpa_id, self.rng)
        if lanpa.selected_game_id is not None:
            _mark_selected(resolution, lanpa.selected_game_id)

        games = await self._games_by_id([r.game_id for r in resolution.results])
        payload = resolution.to_dict()
        for row in payload["results"]:
            game = games.get(UUID(row["game_id"]))
            row["game"] = game.to_dict() if game else None
        winner = games.get(resolution.winner) if resolution.winner else None
        payload["winner"] = winner.to_dict() if winner else None
        return payload

    async def _suggestion_exists(self, lanpa_id: UUID, game_id: UUID) -> bool:
        result = await self.db.execute(
            select(GameSuggestion.id).where(
                GameSuggestion.lanpa_id == lanpa_id,
                GameSuggestion.game_id == game_id,
            ),
        )
        return result.scalar_one_or_none() is not None

    async def _games_by_id(self, game_ids: list[UUID]) -> dict[UUID, Game]:
        if not game_ids:
            return {}
        result = await self.db.execute(select(Game).where(Game.id.in_(game_ids)))
        return {g.id: g for g in result.scalars().all()}


def _mark_selected(resolution: VoteResolution, selected_game_id: UUID) -> None:
    if not any(r.game_id == selected_game_id for r in resolution.results):
        return
    top = resolution.results[0].votes
    for r in resolution.results:
        r.is_winner = r.game_id == selected_game_id
    resolution.winner = selected_game_id
    resolution.tiebreak = sum(1 for r in resolution.results if r.votes == top) > 1
