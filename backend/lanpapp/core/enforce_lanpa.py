"""Lanpa Lifecycle Enforcement — transition table and per-status gates for lanpa operations.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - LANPA_TRANSITIONS is the single source of truth for legal status changes;
      no ordering heuristic over the enum is ever used
    - COMPLETED is terminal (empty destination set)
    - Only voting_active -> in_progress freezes the vote into selected_game_id
    - Any transition into in_progress stamps actual_date

Design Decisions:
    - Enum-keyed dict of frozensets: the finite-state table reads exactly like the
      lifecycle diagram and is exhaustively testable
    - Violations raise typed errors from core.errors: the HTTP shell maps them
      directly to 400 responses
    - Notification wording lives here next to the table so each destination
      status has exactly one announcement
"""

from dataclasses import dataclass

from lanpapp.core.domain_types import LanpaStatus, NotificationType, RatingType
from lanpapp.core.errors import (
    ErrorContext, IllegalTransitionError, PhaseClosedError,
)


LANPA_TRANSITIONS: dict[LanpaStatus, frozenset[LanpaStatus]] = {
    LanpaStatus.DRAFT: frozenset({LanpaStatus.VOTING_GAMES, LanpaStatus.IN_PROGRESS}),
    LanpaStatus.VOTING_GAMES: frozenset({LanpaStatus.VOTING_ACTIVE, LanpaStatus.DRAFT}),
    LanpaStatus.VOTING_ACTIVE: frozenset({LanpaStatus.IN_PROGRESS, LanpaStatus.VOTING_GAMES}),
    LanpaStatus.IN_PROGRESS: frozenset({LanpaStatus.COMPLETED}),
    LanpaStatus.COMPLETED: frozenset(),
}


# --- Transitions ---------------------------------------------------------------

def allowed_transitions(current: LanpaStatus) -> frozenset[LanpaStatus]:
    return LANPA_TRANSITIONS[LanpaStatus(current)]


def can_transition(current: LanpaStatus, requested: LanpaStatus) -> bool:
    return LanpaStatus(requested) in allowed_transitions(current)


def validate_transition(
    current: LanpaStatus,
    requested: LanpaStatus,
    context: ErrorContext | None = None,
) -> None:
    """Raise IllegalTransitionError unless requested is in the table for current."""
    if not can_transition(current, requested):
        raise IllegalTransitionError(
            LanpaStatus(current).value, LanpaStatus(requested).value, context,
        )


def resolves_game_vote(current: LanpaStatus, requested: LanpaStatus) -> bool:
    """True for the one transition that freezes the winning game."""
    return (
        LanpaStatus(current) == LanpaStatus.VOTING_ACTIVE
        and LanpaStatus(requested) == LanpaStatus.IN_PROGRESS
    )


def stamps_actual_date(requested: LanpaStatus) -> bool:
    return LanpaStatus(requested) == LanpaStatus.IN_PROGRESS


# --- Per-status gates ----------------------------------------------------------

def check_suggestions_open(status: LanpaStatus, context: ErrorContext | None = None) -> None:
    if LanpaStatus(status) != LanpaStatus.VOTING_GAMES:
        raise PhaseClosedError("Game suggestions are not open for this lanpa", context)


def check_voting_open(status: LanpaStatus, context: ErrorContext | None = None) -> None:
    if LanpaStatus(status) != LanpaStatus.VOTING_ACTIVE:
        raise PhaseClosedError("Voting is not open for this lanpa", context)


def check_manual_selection_allowed(
    status: LanpaStatus, context: ErrorContext | None = None,
) -> None:
    if LanpaStatus(status) != LanpaStatus.IN_PROGRESS:
        raise PhaseClosedError(
            "Game selection is only allowed when the lanpa is in progress", context,
        )


def check_ratings_open(status: LanpaStatus, context: ErrorContext | None = None) -> None:
    if LanpaStatus(status) != LanpaStatus.COMPLETED:
        raise PhaseClosedError("Ratings are only allowed for completed lanpas", context)


# --- Announcements -------------------------------------------------------------

@dataclass(frozen=True)
class Announcement:
    """Notification content, independent of delivery."""
    type: NotificationType
    title: str
    body: str

    def payload(self, data: dict) -> dict:
        return {
            "type": self.type.value,
            "title": self.title,
            "body": self.body,
            "data": data,
        }


def transition_announcement(lanpa_name: str, requested: LanpaStatus) -> Announcement:
    """Announcement sent to members when a lanpa reaches the requested status."""
    requested = LanpaStatus(requested)
    if requested == LanpaStatus.VOTING_GAMES:
        return Announcement(
            NotificationType.GAME_VOTING_STARTED,
            "Game Suggestions Open",
            f"Suggest games for {lanpa_name}!",
        )
    if requested == LanpaStatus.VOTING_ACTIVE:
        return Announcement(
            NotificationType.GAME_VOTING_STARTED,
            "Voting Started",
            f"Vote for your favorite game in {lanpa_name}!",
        )
    if requested == LanpaStatus.IN_PROGRESS:
        return Announcement(
            NotificationType.GAME_VOTING_ENDED,
            "Lanpa Started",
            f"{lanpa_name} is now in progress!",
        )
    return Announcement(
        NotificationType.LANPA_UPDATED,
        "Lanpa Updated",
        f"{lanpa_name} status changed to {requested.value}",
    )


# --- Ratings -------------------------------------------------------------------

def rating_type_for(rater_is_admin: bool, rated_is_admin: bool) -> RatingType:
    if rater_is_admin:
        return RatingType.ADMIN_TO_MEMBER
    if rated_is_admin:
        return RatingType.MEMBER_TO_ADMIN
    return RatingType.MEMBER_TO_MEMBER


def rating_announcement(score: int) -> Announcement:
    return Announcement(
        NotificationType.RATING_RECEIVED,
        "New Rating",
        f"You received a {score}-star rating!",
    )
