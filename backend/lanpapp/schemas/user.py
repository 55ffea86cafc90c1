"""User Schemas — profile edits of the authenticated user.

Invariants:
    - username: 3-20 chars of letters, digits and underscore
    - Notification preference updates carry only the keys being changed
"""

from typing import Literal

from pydantic import BaseModel, Field


class NotificationPreferencesUpdate(BaseModel):
    in_app: bool | None = None
    push: bool | None = None
    email: bool | None = None
    lanpa_created: bool | None = None
    lanpa_updated: bool | None = None
    lanpa_invitation: bool | None = None
    game_voting: bool | None = None
    punishment_nomination: bool | None = None
    lanpa_reminder: bool | None = None


class UserUpdate(BaseModel):
    username: str | None = Field(None, pattern=r"^[A-Za-z0-9_]{3,20}$")
    display_name: str | None = Field(None, min_length=1, max_length=50)
    locale: Literal["en", "es"] | None = None
    notification_preferences: NotificationPreferencesUpdate | None = None
