"""Membership Predicates — the single authorization rule shared by every lanpa sub-resource.

Invariants:
    - admin iff user_id == lanpa.admin_id
    - member iff admin OR member row status in {confirmed, attended}
    - invited and declined rows grant nothing
    - member status never returns to invited

Design Decisions:
    - Pure predicates over already-loaded values: the shell does the lookups,
      so the rule itself is testable without a database
"""

from lanpapp.core.domain_types import ACTIVE_MEMBER_STATUSES, MemberStatus, UserId
from lanpapp.core.errors import BadRequestError, ForbiddenError


# Member-status updates accepted from the members endpoint
SETTABLE_MEMBER_STATUSES: frozenset[MemberStatus] = frozenset(
    {MemberStatus.CONFIRMED, MemberStatus.DECLINED, MemberStatus.ATTENDED},
)


def is_admin(admin_id: UserId | None, user_id: UserId) -> bool:
    return admin_id is not None and admin_id == user_id


def is_member(
    admin_id: UserId | None, user_id: UserId, member_status: str | None,
) -> bool:
    """Admin, or a member row whose status grants rights."""
    if is_admin(admin_id, user_id):
        return True
    if member_status is None:
        return False
    return MemberStatus(member_status) in ACTIVE_MEMBER_STATUSES


def check_member_status_change(
    current: str, requested: str, acting_is_admin: bool, acting_is_self: bool,
) -> MemberStatus:
    """Validate a member status change and return the target status.

    Only the member themself or the admin may change it; nobody goes back to
    invited; attended is recorded only for someone who had confirmed.
    """
    if not acting_is_admin and not acting_is_self:
        raise ForbiddenError("You cannot update this member status")
    try:
        target = MemberStatus(requested)
    except ValueError:
        raise BadRequestError("Invalid status", "INVALID_STATUS")
    if target not in SETTABLE_MEMBER_STATUSES:
        raise BadRequestError("Invalid status", "INVALID_STATUS")
    if (
        target == MemberStatus.ATTENDED
        and MemberStatus(current) not in ACTIVE_MEMBER_STATUSES
    ):
        raise BadRequestError(
            "Only confirmed members can be marked as attended", "INVALID_STATUS",
        )
    return target
