"""Notification Preferences — which notification kinds a user has opted out of.

Invariants:
    - Missing preferences mean "everything on"
    - in_app=False silences every in-app notification
    - Kinds without a preference key (rating_received) are always delivered
"""

from lanpapp.core.domain_types import NotificationType


PREFERENCE_KEYS: dict[NotificationType, str] = {
    NotificationType.LANPA_CREATED: "lanpa_created",
    NotificationType.LANPA_UPDATED: "lanpa_updated",
    NotificationType.LANPA_INVITATION: "lanpa_invitation",
    NotificationType.GAME_VOTING_STARTED: "game_voting",
    NotificationType.GAME_VOTING_ENDED: "game_voting",
    NotificationType.PUNISHMENT_NOMINATION: "punishment_nomination",
    NotificationType.PUNISHMENT_VOTING_ENDED: "punishment_nomination",
    NotificationType.LANPA_REMINDER: "lanpa_reminder",
}


def wants_in_app(preferences: dict | None, notification_type: str) -> bool:
    prefs = preferences or {}
    if not prefs.get("in_app", True):
        return False
    try:
        key = PREFERENCE_KEYS.get(NotificationType(notification_type))
    except ValueError:
        return True
    if key is None:
        return True
    return bool(prefs.get(key, True))
