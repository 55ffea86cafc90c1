"""Lanpa Member Routes — invite users, change member status, remove members."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from lanpapp.api.dependencies import get_current_user, get_fanout, get_guard
from lanpapp.core.repository_protocols import MembershipGuard, NotificationFanout
from lanpapp.infrastructure.database import get_db
from lanpapp.models.user import User
from lanpapp.schemas.lanpa import InviteUsers, MemberStatusUpdate
from lanpapp.services.lanpa_management import LanpaManagementService

router = APIRouter(prefix="/api/v1/lanpas", tags=["lanpa-members"])


@router.post("/{lanpa_id}/invite-users", status_code=status.HTTP_201_CREATED)
async def invite_users(
    lanpa_id: UUID,
    body: InviteUsers,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
    fanout: NotificationFanout = Depends(get_fanout),
):
    service = LanpaManagementService(db, guard, fanout)
    return {"data": await service.invite_users(lanpa_id, user.id, body.user_ids)}


@router.patch("/{lanpa_id}/members/{member_id}")
async def update_member_status(
    lanpa_id: UUID,
    member_id: UUID,
    body: MemberStatusUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
    fanout: NotificationFanout = Depends(get_fanout),
):
    service = LanpaManagementService(db, guard, fanout)
    member = await service.update_member_status(
        lanpa_id, member_id, user.id, body.status.value,
    )
    return {"data": member.to_dict()}


@router.delete("/{lanpa_id}/members/{member_id}")
async def remove_member(
    lanpa_id: UUID,
    member_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
    fanout: NotificationFanout = Depends(get_fanout),
):
    service = LanpaManagementService(db, guard, fanout)
    await service.remove_member(lanpa_id, member_id, user.id)
    return {"message": "Member removed successfully"}
