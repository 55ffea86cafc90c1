"""Nomination Routes — create, vote on, finalize and read punishment nominations.

Invariants:
    - finalize requires authentication only: an external scheduler may call it
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from lanpapp.api.dependencies import get_current_user, get_fanout, get_guard
from lanpapp.config import get_settings
from lanpapp.core.domain_types import NominationStatus
from lanpapp.core.repository_protocols import MembershipGuard, NotificationFanout
from lanpapp.infrastructure.database import get_db
from lanpapp.models.user import User
from lanpapp.schemas.nomination import NominationCreate, NominationVote
from lanpapp.services.nomination_lifecycle import NominationStateMachine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/nominations", tags=["nominations"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_nomination(
    body: NominationCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
    fanout: NotificationFanout = Depends(get_fanout),
):
    machine = NominationStateMachine(db, guard, fanout)
    nomination = await machine.create(
        body.lanpa_id, body.punishment_id, body.nominated_user_id,
        user.id, body.reason,
        body.voting_hours or get_settings().default_voting_hours,
    )
    return {"data": nomination.to_dict()}


@router.get("/lanpa/{lanpa_id}")
async def list_lanpa_nominations(
    lanpa_id: UUID,
    status_filter: NominationStatus | None = Query(None, alias="status"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
    fanout: NotificationFanout = Depends(get_fanout),
):
    machine = NominationStateMachine(db, guard, fanout)
    return {"data": await machine.list_for_lanpa(lanpa_id, user.id, status_filter)}


@router.get("/{nomination_id}")
async def get_nomination(
    nomination_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
    fanout: NotificationFanout = Depends(get_fanout),
):
    machine = NominationStateMachine(db, guard, fanout)
    return {"data": await machine.get(nomination_id, user.id)}


@router.post("/{nomination_id}/vote")
async def vote_nomination(
    nomination_id: UUID,
    body: NominationVote,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
    fanout: NotificationFanout = Depends(get_fanout),
):
    machine = NominationStateMachine(db, guard, fanout)
    return {"data": await machine.cast_vote(nomination_id, user.id, body.vote)}


@router.post("/{nomination_id}/finalize")
async def finalize_nomination(
    nomination_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
    fanout: NotificationFanout = Depends(get_fanout),
):
    machine = NominationStateMachine(db, guard, fanout)
    return {"data": await machine.finalize(nomination_id, user.id)}
