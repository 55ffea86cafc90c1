"""Invitation Link Routes — create a shareable link, join a lanpa with it."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from lanpapp.api.dependencies import get_current_user, get_fanout, get_guard
from lanpapp.config import get_settings
from lanpapp.core.repository_protocols import MembershipGuard, NotificationFanout
from lanpapp.infrastructure.database import get_db
from lanpapp.models.user import User
from lanpapp.schemas.lanpa import InviteLinkCreate
from lanpapp.services.lanpa_management import LanpaManagementService

router = APIRouter(prefix="/api/v1/lanpas", tags=["invitations"])


@router.post("/join/{token}")
async def join_lanpa(
    token: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
    fanout: NotificationFanout = Depends(get_fanout),
):
    service = LanpaManagementService(db, guard, fanout)
    lanpa = await service.join_with_token(token, user.id)
    return {"data": lanpa.to_dict()}


@router.post("/{lanpa_id}/invite-link", status_code=status.HTTP_201_CREATED)
async def create_invite_link(
    lanpa_id: UUID,
    body: InviteLinkCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    guard: MembershipGuard = Depends(get_guard),
    fanout: NotificationFanout = Depends(get_fanout),
):
    service = LanpaManagementService(db, guard, fanout)
    return {"data": await service.create_invite_link(
        lanpa_id, user.id, get_settings().frontend_url,
        expires_in_hours=body.expires_in_hours, max_uses=body.max_uses,
    )}
