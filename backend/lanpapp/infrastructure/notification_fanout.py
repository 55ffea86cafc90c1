"""Notification Fanout — in-app notification delivery that never fails its caller.

Invariants:
    - notify/notify_many NEVER raise: every failure is logged and swallowed
    - One failing recipient does not prevent delivery to the others
    - Each delivery uses its own session: a failed insert cannot touch the
      caller's transaction, which is already committed by the time we run
    - User opt-outs (notification_preferences) honoured before writing

Design Decisions:
    - DbNotificationFanout takes a session opener instead of a session: it runs
      after the request's session is gone (BackgroundTasks)
    - BackgroundFanout defers delivery until after the response, the same way
      background deletes run outside the request's session
"""

import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from uuid import UUID

from fastapi import BackgroundTasks
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lanpapp.core.notification_preferences import wants_in_app
from lanpapp.core.repository_protocols import NotificationFanout
from lanpapp.models.notification import Notification
from lanpapp.models.user import User

logger = logging.getLogger(__name__)

SessionOpener = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class DbNotificationFanout:
    """Persists notifications as rows in the notifications table."""

    def __init__(self, open_session: SessionOpener):
        self._open_session = open_session

    async def notify(self, user_id: UUID, payload: dict) -> None:
        try:
            async with self._open_session() as db:
                await self._write(db, user_id, payload)
                await db.commit()
        except Exception as e:
            logger.error(
                f"Notification delivery failed: {e}",
                extra={"user_id": user_id, "error_code": payload.get("type")},
            )

    async def notify_many(self, user_ids: list[UUID], payload: dict) -> None:
        for user_id in dict.fromkeys(user_ids):
            await self.notify(user_id, payload)

    async def _write(self, db: AsyncSession, user_id: UUID, payload: dict) -> None:
        result = await db.execute(
            select(User.notification_preferences).where(User.id == user_id),
        )
        preferences = result.scalar_one_or_none()
        if not wants_in_app(preferences, payload["type"]):
            return
        db.add(Notification(
            user_id=user_id,
            type=payload["type"],
            title=payload["title"],
            body=payload.get("body"),
            data=payload.get("data") or {},
            read=False,
        ))


class BackgroundFanout:
    """Schedules delivery on FastAPI BackgroundTasks, after the response is sent."""

    def __init__(self, background_tasks: BackgroundTasks, inner: NotificationFanout):
        self._tasks = background_tasks
        self._inner = inner

    async def notify(self, user_id: UUID, payload: dict) -> None:
        self._tasks.add_task(self._inner.notify, user_id, payload)

    async def notify_many(self, user_ids: list[UUID], payload: dict) -> None:
        if user_ids:
            self._tasks.add_task(self._inner.notify_many, list(user_ids), payload)
