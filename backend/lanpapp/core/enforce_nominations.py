"""Nomination Enforcement — voting window, self-vote and majority rules for punishment nominations.

Invariants:
    - All functions are PURE: `now` is always passed in, never read from the clock
    - pending is the only state that accepts votes or finalization
    - Votes accepted iff now < voting_ends_at; finalize allowed iff now >= voting_ends_at
      (the two windows partition time, no instant allows both)
    - Nominee never votes on their own nomination
    - approved iff votes_for > votes_against (a tie, including 0-0, is rejected)
    - voting hours bounded to [1, 168]

Design Decisions:
    - Naive datetimes are treated as UTC: SQLite drops tzinfo on round-trip and the
      comparison must not depend on the backing store
    - Outcome computed from plain booleans so the shell can tally rows however it loads them
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from lanpapp.core.domain_types import NominationStatus, NotificationType, UserId
from lanpapp.core.enforce_lanpa import Announcement
from lanpapp.core.errors import (
    AlreadyFinalizedError, BadRequestError, ErrorContext, ForbiddenError,
    VotingClosedError, VotingNotEndedError,
)


MIN_VOTING_HOURS: int = 1
MAX_VOTING_HOURS: int = 168


def ensure_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def voting_deadline(now: datetime, voting_hours: float) -> datetime:
    """Deadline for a new nomination. Rejects hours outside [1, 168]."""
    if not MIN_VOTING_HOURS <= voting_hours <= MAX_VOTING_HOURS:
        raise BadRequestError(
            f"voting_hours must be between {MIN_VOTING_HOURS} and {MAX_VOTING_HOURS}",
            "INVALID_VOTING_HOURS",
        )
    return ensure_utc(now) + timedelta(hours=voting_hours)


# --- Voting ---------------------------------------------------------------------

def check_not_self_vote(
    voter_id: UserId, nominated_user_id: UserId, context: ErrorContext | None = None,
) -> None:
    if voter_id == nominated_user_id:
        raise ForbiddenError("You cannot vote on your own nomination", context)


def check_voting_open(
    status: str,
    voting_ends_at: datetime,
    now: datetime,
    context: ErrorContext | None = None,
) -> None:
    if NominationStatus(status) != NominationStatus.PENDING:
        raise VotingClosedError("Voting for this nomination has ended", context)
    if ensure_utc(now) >= ensure_utc(voting_ends_at):
        raise VotingClosedError("Voting period has expired", context)


# --- Finalization ---------------------------------------------------------------

def check_can_finalize(
    status: str,
    voting_ends_at: datetime,
    now: datetime,
    context: ErrorContext | None = None,
) -> None:
    if NominationStatus(status) != NominationStatus.PENDING:
        raise AlreadyFinalizedError(context)
    if ensure_utc(now) < ensure_utc(voting_ends_at):
        raise VotingNotEndedError(context)


@dataclass(frozen=True)
class NominationOutcome:
    votes_for: int
    votes_against: int

    @property
    def approved(self) -> bool:
        return self.votes_for > self.votes_against

    @property
    def status(self) -> NominationStatus:
        return NominationStatus.APPROVED if self.approved else NominationStatus.REJECTED

    @property
    def total_votes(self) -> int:
        return self.votes_for + self.votes_against

    @property
    def punishment_note(self) -> str:
        return f"Voted guilty by {self.votes_for} to {self.votes_against}"


def tally_nomination(votes: Iterable[bool]) -> NominationOutcome:
    """Binary guilty/innocent tally."""
    votes_for = 0
    votes_against = 0
    for vote in votes:
        if vote:
            votes_for += 1
        else:
            votes_against += 1
    return NominationOutcome(votes_for=votes_for, votes_against=votes_against)


# --- Announcements --------------------------------------------------------------

def broadcast_recipients(
    member_ids: Sequence[UserId], admin_id: UserId | None, nominated_user_id: UserId,
) -> list[UserId]:
    """Active members plus the admin, minus the nominee, no duplicates."""
    recipients = [m for m in dict.fromkeys(member_ids) if m != nominated_user_id]
    if admin_id and admin_id != nominated_user_id and admin_id not in recipients:
        recipients.append(admin_id)
    return recipients


def nominee_announcement(punishment_name: str, lanpa_name: str) -> Announcement:
    return Announcement(
        NotificationType.PUNISHMENT_NOMINATION,
        "Punishment Nomination",
        f'You have been nominated for "{punishment_name}" in {lanpa_name}',
    )


def broadcast_announcement(lanpa_name: str) -> Announcement:
    return Announcement(
        NotificationType.PUNISHMENT_NOMINATION,
        "New Punishment Vote",
        f"A punishment nomination is open for voting in {lanpa_name}",
    )


def outcome_announcement(outcome: NominationOutcome, punishment_name: str) -> Announcement:
    if outcome.approved:
        return Announcement(
            NotificationType.PUNISHMENT_VOTING_ENDED,
            "Punishment Applied",
            f'The community voted: you received the "{punishment_name}" punishment',
        )
    return Announcement(
        NotificationType.PUNISHMENT_VOTING_ENDED,
        "Punishment Rejected",
        "The community voted: you were found innocent",
    )
