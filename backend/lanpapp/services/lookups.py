"""Shared lookups for the service layer."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lanpapp.core.domain_types import ACTIVE_MEMBER_STATUSES
from lanpapp.core.errors import ResourceNotFoundError
from lanpapp.core.repository_protocols import NotificationFanout
from lanpapp.models.lanpa_member import LanpaMember

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def get_or_404(db: AsyncSession, model: type, entity_id: UUID, resource_type: str):
    """Point lookup by primary key or raise ResourceNotFoundError."""
    entity = await db.get(model, entity_id)
    if entity is None:
        raise ResourceNotFoundError(resource_type, str(entity_id))
    return entity


async def active_member_ids(db: AsyncSession, lanpa_id: UUID) -> list[UUID]:
    """User ids of confirmed and attended members, in join order."""
    result = await db.execute(
        select(LanpaMember.user_id)
        .where(
            LanpaMember.lanpa_id == lanpa_id,
            LanpaMember.status.in_([s.value for s in ACTIVE_MEMBER_STATUSES]),
        )
        .order_by(LanpaMember.joined_at),
    )
    return list(result.scalars().all())


async def announce(
    fanout: NotificationFanout, user_ids: list[UUID], payload: dict,
) -> None:
    """notify_many that cannot fail the caller, whatever the fanout does."""
    try:
        await fanout.notify_many(user_ids, payload)
    except Exception as e:
        logger.error(
            f"Notification fanout failed: {e}",
            exc_info=True, extra={"error_code": payload.get("type")},
        )


async def announce_to(fanout: NotificationFanout, user_id: UUID, payload: dict) -> None:
    try:
        await fanout.notify(user_id, payload)
    except Exception as e:
        logger.error(
            f"Notification fanout failed: {e}",
            exc_info=True, extra={"user_id": user_id, "error_code": payload.get("type")},
        )
