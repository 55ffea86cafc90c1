"""Notification Routes — the caller's in-app notifications and read markers.

Invariants:
    - A user only ever sees or marks their own notifications (others' are NotFound)
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lanpapp.api.dependencies import get_current_user
from lanpapp.core.errors import ResourceNotFoundError
from lanpapp.infrastructure.database import get_db
from lanpapp.models.notification import Notification
from lanpapp.models.user import User

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = False,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    query = select(Notification).where(Notification.user_id == user.id)
    if unread_only:
        query = query.where(Notification.read.is_(False))
    result = await db.execute(
        query.order_by(Notification.created_at.desc())
        .limit(limit)
        .offset((page - 1) * limit),
    )
    unread = (await db.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user.id, Notification.read.is_(False)),
    )).scalar_one()
    return {
        "data": [n.to_dict() for n in result.scalars().all()],
        "unread_count": unread,
        "pagination": {"page": page, "limit": limit},
    }


@router.patch("/{notification_id}/read")
async def mark_read(
    notification_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    notification = await db.get(Notification, notification_id)
    if notification is None or notification.user_id != user.id:
        raise ResourceNotFoundError("Notification", str(notification_id))
    notification.read = True
    await db.commit()
    return {"data": notification.to_dict()}


@router.post("/read-all")
async def mark_all_read(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user.id, Notification.read.is_(False))
        .values(read=True)
        .execution_options(synchronize_session=False),
    )
    await db.commit()
    return {"message": "All notifications marked as read", "updated": result.rowcount}
