"""Request Dependencies — authentication and collaborator wiring for route handlers.

Invariants:
    - Every authenticated route resolves the principal through get_current_user
    - Missing bearer token, rejected token or missing profile row: UnauthorizedError
    - Notification delivery is always deferred to BackgroundTasks

Design Decisions:
    - Collaborators exposed as dependencies so tests swap them with
      app.dependency_overrides (fake identity, recording fanout)
    - get_rng returns None: the core falls back to the random module
"""

import random

from fastapi import BackgroundTasks, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

import lanpapp.infrastructure.database as db_module
import lanpapp.infrastructure.identity_client as identity_module
from lanpapp.core.errors import UnauthorizedError
from lanpapp.core.repository_protocols import IdentityProvider, NotificationFanout
from lanpapp.infrastructure.database import get_db
from lanpapp.infrastructure.notification_fanout import BackgroundFanout, DbNotificationFanout
from lanpapp.models.user import User
from lanpapp.services.membership_guard import DbMembershipGuard

_bearer = HTTPBearer(auto_error=False)


def _open_session():
    if not db_module.db_manager:
        raise RuntimeError("Database not initialized")
    return db_module.db_manager.session()


def get_identity_provider() -> IdentityProvider:
    if not identity_module.identity_client:
        raise RuntimeError("Identity client not initialized")
    return identity_module.identity_client


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    identity: IdentityProvider = Depends(get_identity_provider),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Verify the bearer token and load the principal's profile row."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("No token provided")
    user_id = await identity.verify(credentials.credentials)
    user = await db.get(User, user_id)
    if user is None:
        raise UnauthorizedError("User not found")
    return user


def get_fanout(background_tasks: BackgroundTasks) -> NotificationFanout:
    return BackgroundFanout(background_tasks, DbNotificationFanout(_open_session))


def get_rng() -> random.Random | None:
    return None


def get_guard(db: AsyncSession = Depends(get_db)) -> DbMembershipGuard:
    return DbMembershipGuard(db)
