"""Stats Routes — global, personal, per-lanpa and per-user aggregates plus leaderboards."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lanpapp.api.dependencies import get_current_user
from lanpapp.infrastructure.database import get_db
from lanpapp.models.user import User
from lanpapp.services.stats import StatsService

router = APIRouter(prefix="/api/v1/stats", tags=["stats"])


@router.get("/global")
async def global_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return {"data": await StatsService(db).global_stats()}


@router.get("/personal")
async def personal_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return {"data": await StatsService(db).personal_stats(user.id)}


@router.get("/rankings")
async def rankings(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Clean and punishment-adjusted leaderboards."""
    return {"data": await StatsService(db).rankings()}


@router.get("/lanpas/{lanpa_id}")
async def lanpa_stats(
    lanpa_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return {"data": await StatsService(db).lanpa_stats(lanpa_id)}


@router.get("/users/{user_id}")
async def user_stats(
    user_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return {"data": await StatsService(db).user_stats(user_id)}
