"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Membership, notification delivery and identity accessed through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, tests pass plain recording fakes
    - Async in Protocol: boundary methods are async because implementations do IO,
      but core pure functions are never async themselves
    - NotificationFanout methods never raise: delivery is fire-and-forget from the
      caller's side, failures are the implementation's to log
"""

from typing import Protocol

from lanpapp.core.domain_types import LanpaId, UserId


class MembershipGuard(Protocol):
    """Authorization predicate shared by both state machines and all sub-resources."""
    async def is_admin(self, lanpa_id: LanpaId, user_id: UserId) -> bool: ...
    async def is_member(self, lanpa_id: LanpaId, user_id: UserId) -> bool: ...


class NotificationFanout(Protocol):
    """Announces state changes. Payload: {type, title, body, data}."""
    async def notify(self, user_id: UserId, payload: dict) -> None: ...
    async def notify_many(self, user_ids: list[UserId], payload: dict) -> None: ...


class IdentityProvider(Protocol):
    """Verifies a bearer credential and returns the principal's durable user id."""
    async def verify(self, token: str) -> UserId: ...
