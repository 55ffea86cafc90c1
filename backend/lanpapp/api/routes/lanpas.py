"""Lanpa Routes — CRUD, status transitions, post-event ratings and punishment history.

Invariants:
    - Status changes go through LanpaStateMachine only (PATCH /{id}/status)
    - Listing: page >= 1, limit in [1, 100], status filter is comma-separated
"""

import logging
import random
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from lanpapp.api.dependencies import get_current_user, get_fanout, get_guard, get_rng
from lanpapp.core.domain_types import LanpaStatus
from lanpapp.core.errors import BadRequestError
from lanpapp.core.repository_protocols import MembershipGuard, NotificationFanout
from lanpapp.infrastructure.database import get_db
from lanpapp.models.user import User
from lanpapp.schemas.lanpa import LanpaCreate, LanpaUpdate, StatusChange
from lanpapp.schemas.rating import RateRequest
from lanpapp.services.lanpa_lifecycle import LanpaStateMachine
from lanpapp.services.lanpa_management import LanpaManagementService
from lanpapp.services.ratings import RatingService
from lanpapp.services.stats import StatsService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/lanpas", tags=["lanpas"])


def _parse_statuses(raw: str | None) -> list[LanpaStatus] | None:
    if not raw:
        return None
    try:
        return [LanpaStatus(s.strip()) for s in raw.split(",") if s.strip()]
    except ValueError:
        raise BadRequestError(f"Invalid status filter: {raw}", "INVALID_STATUS")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_lanpa(
    body: LanpaCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
    fanout: NotificationFanout = Depends(get_fanout),
):
    service = LanpaManagementService(db, guard, fanout)
    lanpa = await service.create_lanpa(
        user.id, body.name, body.description, body.scheduled_date, body.is_historical,
    )
    return {"data": {**lanpa.to_dict(), "admin": user.summary()}}


@router.get("")
async def list_lanpas(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: str | None = Query(None, alias="status"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
    fanout: NotificationFanout = Depends(get_fanout),
):
    """Lanpas where the caller is admin or member, newest first."""
    service = LanpaManagementService(db, guard, fanout)
    return await service.list_lanpas(
        user.id, _parse_statuses(status_filter), page=page, limit=limit,
    )


@router.get("/{lanpa_id}")
async def get_lanpa(
    lanpa_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
    fanout: NotificationFanout = Depends(get_fanout),
):
    service = LanpaManagementService(db, guard, fanout)
    return {"data": await service.get_lanpa(lanpa_id, user.id)}


@router.patch("/{lanpa_id}")
async def update_lanpa(
    lanpa_id: UUID,
    body: LanpaUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
    fanout: NotificationFanout = Depends(get_fanout),
):
    service = LanpaManagementService(db, guard, fanout)
    lanpa = await service.update_lanpa(
        lanpa_id, user.id, body.model_dump(exclude_unset=True),
    )
    return {"data": lanpa.to_dict()}


@router.delete("/{lanpa_id}")
async def delete_lanpa(
    lanpa_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
    fanout: NotificationFanout = Depends(get_fanout),
):
    service = LanpaManagementService(db, guard, fanout)
    await service.delete_lanpa(lanpa_id, user.id)
    return {"message": "Lanpa deleted successfully"}


@router.patch("/{lanpa_id}/status")
async def change_status(
    lanpa_id: UUID,
    body: StatusChange,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
    fanout: NotificationFanout = Depends(get_fanout),
    rng: random.Random | None = Depends(get_rng),
):
    """Admin-only status transition; freezes the game vote on voting_active -> in_progress."""
    machine = LanpaStateMachine(db, guard, fanout, rng=rng)
    lanpa = await machine.request_transition(lanpa_id, body.status, user.id)
    return {"data": lanpa.to_dict()}


@router.post("/{lanpa_id}/rate")
async def rate(
    lanpa_id: UUID,
    body: RateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
    fanout: NotificationFanout = Depends(get_fanout),
):
    service = RatingService(db, guard, fanout)
    result = await service.rate(
        lanpa_id,
        user.id,
        [r.model_dump() for r in body.ratings],
        body.lanpa_rating.model_dump() if body.lanpa_rating else None,
    )
    return {"message": "Ratings submitted successfully", "data": result}


@router.get("/{lanpa_id}/punishments")
async def lanpa_punishments(
    lanpa_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
):
    """Punishments applied during the lanpa, members only."""
    return {"data": await StatsService(db, guard).lanpa_punishments(lanpa_id, user.id)}
