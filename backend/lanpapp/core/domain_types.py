"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - LanpaId, UserId, GameId wrap UUIDs in core signatures; the shell passes plain UUIDs
    - All valid states encoded as Enums — no raw string matching
    - Enum values match the DB column values exactly

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

LanpaId = NewType("LanpaId", UUID)
UserId = NewType("UserId", UUID)
GameId = NewType("GameId", UUID)


# ─── Enums ───────────────────────────────────────────────────────

class LanpaStatus(str, Enum):
    """Lanpa lifecycle states — maps to DB `status` column."""
    DRAFT = "draft"
    VOTING_GAMES = "voting_games"
    VOTING_ACTIVE = "voting_active"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class MemberStatus(str, Enum):
    """Membership states. Only CONFIRMED and ATTENDED grant member rights."""
    INVITED = "invited"
    CONFIRMED = "confirmed"
    DECLINED = "declined"
    ATTENDED = "attended"


class NominationStatus(str, Enum):
    """Punishment nomination states — PENDING is the only non-terminal one."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PunishmentSeverity(str, Enum):
    WARNING = "warning"
    PENALTY = "penalty"
    SUSPENSION = "suspension"


class RatingType(str, Enum):
    ADMIN_TO_MEMBER = "admin_to_member"
    MEMBER_TO_ADMIN = "member_to_admin"
    MEMBER_TO_MEMBER = "member_to_member"


class NotificationType(str, Enum):
    """Notification kinds emitted by lifecycle and voting operations."""
    LANPA_CREATED = "lanpa_created"
    LANPA_UPDATED = "lanpa_updated"
    LANPA_INVITATION = "lanpa_invitation"
    GAME_VOTING_STARTED = "game_voting_started"
    GAME_VOTING_ENDED = "game_voting_ended"
    PUNISHMENT_NOMINATION = "punishment_nomination"
    PUNISHMENT_VOTING_ENDED = "punishment_voting_ended"
    LANPA_REMINDER = "lanpa_reminder"
    RATING_RECEIVED = "rating_received"


# Statuses that count as membership for authorization
ACTIVE_MEMBER_STATUSES: frozenset[MemberStatus] = frozenset(
    {MemberStatus.CONFIRMED, MemberStatus.ATTENDED},
)
