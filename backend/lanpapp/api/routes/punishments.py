"""Punishment Catalog Routes — list, create and read punishments, and a user's applied ones."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lanpapp.api.dependencies import get_current_user
from lanpapp.core.domain_types import PunishmentSeverity
from lanpapp.infrastructure.database import get_db
from lanpapp.models.punishment import Punishment
from lanpapp.models.user import User
from lanpapp.schemas.punishment import PunishmentCreate
from lanpapp.services.lookups import get_or_404
from lanpapp.services.stats import StatsService

router = APIRouter(prefix="/api/v1/punishments", tags=["punishments"])


@router.get("")
async def list_punishments(
    severity: PunishmentSeverity | None = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    query = select(Punishment).order_by(Punishment.name)
    if severity:
        query = query.where(Punishment.severity == severity.value)
    result = await db.execute(query)
    return {"data": [p.to_dict() for p in result.scalars().all()]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_punishment(
    body: PunishmentCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    punishment = Punishment(
        name=body.name,
        description=body.description,
        severity=body.severity.value,
        point_impact=body.point_impact,
        created_by=user.id,
    )
    db.add(punishment)
    await db.commit()
    await db.refresh(punishment)
    return {"data": punishment.to_dict()}


@router.get("/users/{user_id}")
async def list_user_punishments(
    user_id: UUID,
    limit: int = Query(50, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Punishments applied to a user, most recent first, with their summed point impact."""
    return {"data": await StatsService(db).user_punishments(user_id, limit)}


@router.get("/{punishment_id}")
async def get_punishment(
    punishment_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    punishment = await get_or_404(db, Punishment, punishment_id, "Punishment")
    return {"data": punishment.to_dict()}
