"""DB-backed MembershipGuard — loads admin_id and the member row, applies core.membership.

Invariants:
    - Side-effect free: reads only
    - A missing lanpa yields False for both predicates (callers raise Forbidden
      or NotFound depending on their own ordering)
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lanpapp.core import membership
from lanpapp.core.errors import ErrorContext, ForbiddenError
from lanpapp.core.repository_protocols import MembershipGuard
from lanpapp.models.lanpa import Lanpa
from lanpapp.models.lanpa_member import LanpaMember


class DbMembershipGuard:
    """MembershipGuard over the lanpas and lanpa_members tables."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def is_admin(self, lanpa_id: UUID, user_id: UUID) -> bool:
        return membership.is_admin(await self._admin_id(lanpa_id), user_id)

    async def is_member(self, lanpa_id: UUID, user_id: UUID) -> bool:
        admin_id = await self._admin_id(lanpa_id)
        if admin_id is None:
            return False
        result = await self.db.execute(
            select(LanpaMember.status).where(
                LanpaMember.lanpa_id == lanpa_id,
                LanpaMember.user_id == user_id,
            ),
        )
        return membership.is_member(admin_id, user_id, result.scalar_one_or_none())

    async def _admin_id(self, lanpa_id: UUID) -> UUID | None:
        result = await self.db.execute(
            select(Lanpa.admin_id).where(Lanpa.id == lanpa_id),
        )
        return result.scalar_one_or_none()


def _ctx(lanpa_id: UUID, user_id: UUID) -> ErrorContext:
    return ErrorContext(lanpa_id=str(lanpa_id), user_id=str(user_id))


async def require_admin(
    guard: MembershipGuard, lanpa_id: UUID, user_id: UUID, message: str,
) -> None:
    if not await guard.is_admin(lanpa_id, user_id):
        raise ForbiddenError(message, _ctx(lanpa_id, user_id))


async def require_member(
    guard: MembershipGuard, lanpa_id: UUID, user_id: UUID, message: str,
) -> None:
    if not await guard.is_member(lanpa_id, user_id):
        raise ForbiddenError(message, _ctx(lanpa_id, user_id))
