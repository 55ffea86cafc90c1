"""Lanpa Game Routes — suggestions, votes, manual selection and results."""

import logging
import random
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from lanpapp.api.dependencies import get_current_user, get_guard, get_rng
from lanpapp.core.repository_protocols import MembershipGuard
from lanpapp.infrastructure.database import get_db
from lanpapp.models.user import User
from lanpapp.schemas.game import GameChoice
from lanpapp.services.game_voting import GameVotingService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/lanpas", tags=["lanpa-games"])


@router.post("/{lanpa_id}/suggest-game", status_code=status.HTTP_201_CREATED)
async def suggest_game(
    lanpa_id: UUID,
    body: GameChoice,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
):
    suggestion = await GameVotingService(db, guard).suggest(lanpa_id, body.game_id, user.id)
    return {"data": suggestion.to_dict()}


@router.get("/{lanpa_id}/games")
async def list_games(
    lanpa_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
):
    return {"data": await GameVotingService(db, guard).list_suggestions(lanpa_id, user.id)}


@router.post("/{lanpa_id}/vote-game")
async def vote_game(
    lanpa_id: UUID,
    body: GameChoice,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
):
    return {"data": await GameVotingService(db, guard).vote(lanpa_id, body.game_id, user.id)}


@router.post("/{lanpa_id}/select-game")
async def select_game(
    lanpa_id: UUID,
    body: GameChoice,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
):
    """Admin override of the selected game while in progress."""
    lanpa = await GameVotingService(db, guard).select_game_manually(
        lanpa_id, body.game_id, user.id,
    )
    return {"data": lanpa.to_dict()}


@router.get("/{lanpa_id}/game-results")
async def game_results(
    lanpa_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
    rng: random.Random | None = Depends(get_rng),
):
    """Live tally; a tied top is re-drawn per request until the game is frozen."""
    service = GameVotingService(db, guard, rng=rng)
    return {"data": await service.results(lanpa_id, user.id)}
