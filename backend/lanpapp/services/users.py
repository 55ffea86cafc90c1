"""User Profiles — the caller's own profile edits and user search.

Invariants:
    - Usernames stay unique: taking another user's name is a Conflict
    - Preference updates merge into the stored map; unspecified keys keep their value
    - Search needs at least 2 characters and returns at most SEARCH_LIMIT users
"""

import logging
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from lanpapp.core.errors import BadRequestError, ConflictError
from lanpapp.models.user import User
from lanpapp.services.lookups import get_or_404

logger = logging.getLogger(__name__)

SEARCH_MIN_LENGTH = 2
SEARCH_LIMIT = 20


def profile(user: User) -> dict:
    """Full profile of the user themselves."""
    return {
        **user.summary(),
        "locale": user.locale,
        "notification_preferences": user.notification_preferences or {},
        "created_at": user.created_at.isoformat(),
    }


class UserProfileService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def update_profile(self, user: User, changes: dict) -> User:
        """Apply a partial update; changes holds only the fields the client sent."""
        username = changes.get("username")
        if username and username != user.username:
            taken = await self.db.scalar(
                select(User.id).where(User.username == username, User.id != user.id),
            )
            if taken is not None:
                raise ConflictError("Username is already taken", "USERNAME_TAKEN")
            user.username = username

        for field in ("display_name", "locale"):
            if changes.get(field) is not None:
                setattr(user, field, changes[field])

        preferences = changes.get("notification_preferences")
        if preferences:
            # new dict so the JSON column registers the change
            user.notification_preferences = {
                **(user.notification_preferences or {}),
                **{k: v for k, v in preferences.items() if v is not None},
            }

        await self.db.commit()
        await self.db.refresh(user)
        logger.info(
            "Profile updated",
            extra={"user_id": user.id, "fields": ",".join(sorted(changes))},
        )
        return user

    async def search(self, query: str) -> list[User]:
        """Users whose username or display name contains query, case-insensitive."""
        term = query.strip()
        if len(term) < SEARCH_MIN_LENGTH:
            raise BadRequestError(
                f"Search query must be at least {SEARCH_MIN_LENGTH} characters",
                "SEARCH_TOO_SHORT",
            )
        pattern = f"%{term}%"
        result = await self.db.execute(
            select(User)
            .where(or_(User.username.ilike(pattern), User.display_name.ilike(pattern)))
            .order_by(User.username)
            .limit(SEARCH_LIMIT),
        )
        return list(result.scalars().all())

    async def get_user(self, user_id: UUID) -> User:
        return await get_or_404(self.db, User, user_id, "User")
