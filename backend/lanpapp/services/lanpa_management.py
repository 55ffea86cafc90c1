"""Lanpa Management — lanpa CRUD, membership changes and invitation links.

Invariants:
    - Creator becomes admin AND a confirmed member, in the same commit
    - Detail and listing reads are gated by MembershipGuard (list shows invited too)
    - Status is never edited here: only LanpaStateMachine moves it
    - A lanpa referenced by an applied punishment is never deleted
    - Invitation uses only go up, and never past max_uses: the increment is a
      conditional UPDATE on uses < max_uses
    - Member status never goes back to invited (core.membership)

Design Decisions:
    - Invite tokens are 32 random bytes in hex, links built from settings.frontend_url
    - Inviting existing members is a no-op via INSERT ... ON CONFLICT DO NOTHING
"""

import logging
import secrets
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from lanpapp.core.domain_types import LanpaStatus, MemberStatus, NotificationType
from lanpapp.core.enforce_lanpa import Announcement
from lanpapp.core.enforce_nominations import ensure_utc
from lanpapp.core.errors import (
    BadRequestError, ConflictError, ErrorContext, ForbiddenError, ResourceNotFoundError,
)
from lanpapp.core.membership import check_member_status_change
from lanpapp.core.repository_protocols import MembershipGuard, NotificationFanout
from lanpapp.models.game import Game
from lanpapp.models.game_suggestion import GameSuggestion
from lanpapp.models.game_vote import GameVote
from lanpapp.models.lanpa import Lanpa
from lanpapp.models.lanpa_invitation import LanpaInvitation
from lanpapp.models.lanpa_member import LanpaMember
from lanpapp.models.user import User
from lanpapp.models.user_punishment import UserPunishment
from lanpapp.services.lookups import (
    active_member_ids, announce, get_or_404, utcnow,
)
from lanpapp.services.membership_guard import require_admin
from lanpapp.services.upsert import insert_ignore

logger = logging.getLogger(__name__)

# Member statuses that make a lanpa show up in the user's list
_LISTED_MEMBER_STATUSES = (
    MemberStatus.INVITED.value, MemberStatus.CONFIRMED.value, MemberStatus.ATTENDED.value,
)

_UPDATABLE_FIELDS = ("name", "description", "scheduled_date", "is_historical")
# NOT NULL columns: may be omitted from an update, never cleared
_REQUIRED_FIELDS = ("name", "is_historical")


class LanpaManagementService:
    """Everything about a lanpa that is not its status or its votes."""

    def __init__(
        self,
        db: AsyncSession,
        guard: MembershipGuard,
        fanout: NotificationFanout,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.guard = guard
        self.fanout = fanout
        self.clock = clock

    # --- Lanpa CRUD ------------------------------------------------------------

    async def create_lanpa(
        self,
        admin_id: UUID,
        name: str,
        description: str | None = None,
        scheduled_date: datetime | None = None,
        is_historical: bool = False,
    ) -> Lanpa:
        now = self.clock()
        lanpa = Lanpa(
            name=name,
            description=description,
            admin_id=admin_id,
            status=LanpaStatus.DRAFT.value,
            scheduled_date=scheduled_date,
            is_historical=is_historical,
            created_at=now,
            updated_at=now,
        )
        lanpa.members.append(
            LanpaMember(user_id=admin_id, status=MemberStatus.CONFIRMED.value, joined_at=now),
        )
        self.db.add(lanpa)
        await self.db.commit()
        await self.db.refresh(lanpa)
        logger.info("Lanpa created", extra={"lanpa_id": lanpa.id, "user_id": admin_id})
        return lanpa

    async def get_lanpa(self, lanpa_id: UUID, user_id: UUID) -> dict:
        lanpa = await get_or_404(self.db, Lanpa, lanpa_id, "Lanpa")
        if not await self.guard.is_member(lanpa_id, user_id):
            raise ForbiddenError(
                "You do not have access to this lanpa",
                ErrorContext(lanpa_id=str(lanpa_id), user_id=str(user_id)),
            )

        detail = lanpa.to_dict()
        admin = await self.db.get(User, lanpa.admin_id)
        detail["admin"] = admin.summary() if admin else None
        members = await self.db.execute(
            select(LanpaMember)
            .where(LanpaMember.lanpa_id == lanpa_id)
            .options(selectinload(LanpaMember.user))
            .order_by(LanpaMember.joined_at),
        )
        detail["members"] = [m.to_dict() for m in members.scalars().all()]
        selected = (
            await self.db.get(Game, lanpa.selected_game_id)
            if lanpa.selected_game_id else None
        )
        detail["selected_game"] = selected.to_dict() if selected else None

        status = LanpaStatus(lanpa.status)
        if status in (LanpaStatus.VOTING_GAMES, LanpaStatus.VOTING_ACTIVE):
            result = await self.db.execute(
                select(GameSuggestion)
                .where(GameSuggestion.lanpa_id == lanpa_id)
                .order_by(GameSuggestion.created_at),
            )
            detail["game_suggestions"] = [s.to_dict() for s in result.scalars().all()]
        if status == LanpaStatus.VOTING_ACTIVE:
            result = await self.db.execute(
                select(GameVote).where(GameVote.lanpa_id == lanpa_id),
            )
            detail["game_votes"] = [
                {"game_id": str(v.game_id), "user_id": str(v.user_id)}
                for v in result.scalars().all()
            ]
        return detail

    async def list_lanpas(
        self,
        user_id: UUID,
        statuses: list[LanpaStatus] | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        """Lanpas the user administers or is invited to / confirmed in, newest first."""
        member_of = select(LanpaMember.lanpa_id).where(
            LanpaMember.user_id == user_id,
            LanpaMember.status.in_(_LISTED_MEMBER_STATUSES),
        )
        condition = or_(Lanpa.admin_id == user_id, Lanpa.id.in_(member_of))
        query = select(Lanpa).where(condition)
        count_query = select(func.count()).select_from(Lanpa).where(condition)
        if statuses:
            values = [LanpaStatus(s).value for s in statuses]
            query = query.where(Lanpa.status.in_(values))
            count_query = count_query.where(Lanpa.status.in_(values))

        total = (await self.db.execute(count_query)).scalar_one()
        result = await self.db.execute(
            query.order_by(Lanpa.created_at.desc())
            .limit(limit)
            .offset((page - 1) * limit),
        )
        lanpas = result.scalars().all()
        return {
            "data": [
                {**lanpa.to_dict(), "member_count": len(lanpa.members)}
                for lanpa in lanpas
            ],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": -(-total // limit),
            },
        }

    async def update_lanpa(self, lanpa_id: UUID, user_id: UUID, changes: dict) -> Lanpa:
        await require_admin(
            self.guard, lanpa_id, user_id, "Only the admin can update this lanpa",
        )
        lanpa = await get_or_404(self.db, Lanpa, lanpa_id, "Lanpa")
        for field in _REQUIRED_FIELDS:
            if field in changes and changes[field] is None:
                raise BadRequestError(
                    f"{field} cannot be null", "INVALID_FIELD",
                    context=ErrorContext(lanpa_id=str(lanpa_id)),
                )
        for field in _UPDATABLE_FIELDS:
            if field in changes:
                setattr(lanpa, field, changes[field])
        lanpa.updated_at = self.clock()
        await self.db.commit()
        await self.db.refresh(lanpa)

        recipients = await active_member_ids(self.db, lanpa_id)
        await announce(
            self.fanout, recipients,
            Announcement(
                NotificationType.LANPA_UPDATED,
                "Lanpa Updated",
                f"{lanpa.name} has been updated",
            ).payload({"lanpa_id": str(lanpa_id)}),
        )
        return lanpa

    async def delete_lanpa(self, lanpa_id: UUID, user_id: UUID) -> None:
        await require_admin(
            self.guard, lanpa_id, user_id, "Only the admin can delete this lanpa",
        )
        lanpa = await get_or_404(self.db, Lanpa, lanpa_id, "Lanpa")
        applied = await self.db.execute(
            select(func.count())
            .select_from(UserPunishment)
            .where(UserPunishment.lanpa_id == lanpa_id),
        )
        if applied.scalar_one() > 0:
            raise ConflictError(
                "Lanpa has applied punishments and cannot be deleted",
                "LANPA_REFERENCED",
                ErrorContext(lanpa_id=str(lanpa_id), user_id=str(user_id)),
            )
        await self.db.delete(lanpa)
        await self.db.commit()
        logger.info("Lanpa deleted", extra={"lanpa_id": lanpa_id, "user_id": user_id})

    # --- Members ---------------------------------------------------------------

    async def invite_users(
        self, lanpa_id: UUID, admin_id: UUID, user_ids: list[UUID],
    ) -> list[dict]:
        await require_admin(self.guard, lanpa_id, admin_id, "Only the admin can invite users")
        lanpa = await get_or_404(self.db, Lanpa, lanpa_id, "Lanpa")
        existing = await self.db.execute(
            select(User.id).where(User.id.in_(list(dict.fromkeys(user_ids)))),
        )
        invitees = list(existing.scalars().all())
        now = self.clock()
        await insert_ignore(
            self.db, LanpaMember,
            [
                {"id": uuid.uuid4(), "lanpa_id": lanpa_id, "user_id": invitee,
                 "status": MemberStatus.INVITED.value, "joined_at": now}
                for invitee in invitees
            ],
            conflict_columns=("lanpa_id", "user_id"),
        )
        await self.db.commit()

        await announce(
            self.fanout, invitees,
            Announcement(
                NotificationType.LANPA_INVITATION,
                "Lanpa Invitation",
                f"You have been invited to join {lanpa.name}!",
            ).payload({"lanpa_id": str(lanpa_id)}),
        )
        result = await self.db.execute(
            select(LanpaMember).where(
                LanpaMember.lanpa_id == lanpa_id,
                LanpaMember.user_id.in_(invitees),
            ),
        )
        return [m.to_dict() for m in result.scalars().all()]

    async def update_member_status(
        self, lanpa_id: UUID, member_id: UUID, user_id: UUID, requested: str,
    ) -> LanpaMember:
        member = await self._get_member(lanpa_id, member_id)
        target = check_member_status_change(
            member.status,
            requested,
            acting_is_admin=await self.guard.is_admin(lanpa_id, user_id),
            acting_is_self=member.user_id == user_id,
        )
        member.status = target.value
        await self.db.commit()
        return member

    async def remove_member(self, lanpa_id: UUID, member_id: UUID, user_id: UUID) -> None:
        member = await self._get_member(lanpa_id, member_id)
        await require_admin(self.guard, lanpa_id, user_id, "Only the admin can remove members")
        if member.user_id == user_id:
            raise BadRequestError(
                "You cannot remove yourself from the lanpa", "CANNOT_REMOVE_SELF",
            )
        await self.db.delete(member)
        await self.db.commit()

    async def _get_member(self, lanpa_id: UUID, member_id: UUID) -> LanpaMember:
        result = await self.db.execute(
            select(LanpaMember).where(
                LanpaMember.id == member_id, LanpaMember.lanpa_id == lanpa_id,
            ),
        )
        member = result.scalar_one_or_none()
        if member is None:
            raise ResourceNotFoundError("Member", str(member_id))
        return member

    # --- Invitation links ------------------------------------------------------

    async def create_invite_link(
        self,
        lanpa_id: UUID,
        admin_id: UUID,
        frontend_url: str,
        expires_in_hours: float = 24,
        max_uses: int | None = None,
    ) -> dict:
        await require_admin(
            self.guard, lanpa_id, admin_id, "Only the admin can create invite links",
        )
        invitation = LanpaInvitation(
            lanpa_id=lanpa_id,
            token=secrets.token_hex(32),
            expires_at=self.clock() + timedelta(hours=expires_in_hours),
            max_uses=max_uses,
            uses=0,
        )
        self.db.add(invitation)
        await self.db.commit()
        return {
            "invitation": invitation.to_dict(),
            "link": f"{frontend_url.rstrip('/')}/lanpas/join/{invitation.token}",
        }

    async def join_with_token(self, token: str, user_id: UUID) -> Lanpa:
        result = await self.db.execute(
            select(LanpaInvitation).where(LanpaInvitation.token == token),
        )
        invitation = result.scalar_one_or_none()
        if invitation is None:
            raise ResourceNotFoundError("Invitation", "link")
        ctx = ErrorContext(lanpa_id=str(invitation.lanpa_id), user_id=str(user_id))
        if ensure_utc(invitation.expires_at) < ensure_utc(self.clock()):
            raise BadRequestError("Invitation link has expired", "INVITATION_EXPIRED", context=ctx)
        if invitation.max_uses is not None and invitation.uses >= invitation.max_uses:
            raise _exhausted(ctx)

        stmt = update(LanpaInvitation).where(LanpaInvitation.id == invitation.id)
        if invitation.max_uses is not None:
            stmt = stmt.where(LanpaInvitation.uses < LanpaInvitation.max_uses)
        claimed = await self.db.execute(
            stmt.values(uses=LanpaInvitation.uses + 1)
            .execution_options(synchronize_session=False),
        )
        if claimed.rowcount != 1:
            await self.db.rollback()
            raise _exhausted(ctx)

        existing = await self.db.execute(
            select(LanpaMember).where(
                LanpaMember.lanpa_id == invitation.lanpa_id,
                LanpaMember.user_id == user_id,
            ),
        )
        member = existing.scalar_one_or_none()
        if member is None:
            self.db.add(LanpaMember(
                lanpa_id=invitation.lanpa_id,
                user_id=user_id,
                status=MemberStatus.CONFIRMED.value,
                joined_at=self.clock(),
            ))
        elif member.status == MemberStatus.INVITED.value:
            member.status = MemberStatus.CONFIRMED.value
        await self.db.commit()

        lanpa = await get_or_404(self.db, Lanpa, invitation.lanpa_id, "Lanpa")
        await self.db.refresh(lanpa)
        logger.info("Joined via invite link", extra={"lanpa_id": lanpa.id, "user_id": user_id})
        return lanpa


def _exhausted(ctx: ErrorContext) -> BadRequestError:
    return BadRequestError(
        "Invitation link has reached maximum uses", "INVITATION_EXHAUSTED", context=ctx,
    )
