"""Lanpa Management — CRUD, invitations, join links, member changes, delete guard.

Invariants:
    - Creator is admin and a confirmed member
    - Join links honour expiry and max_uses, also against a stale uses count
    - Updates never null out name or is_historical
    - Lanpas referenced by an applied punishment cannot be deleted
    - Only admins invite and remove; nobody removes themself

Design Decisions:
    - Ids captured as plain UUIDs before any call that may roll the shared
      session back (rolled-back instances expire)
"""

from uuid import uuid4

import pytest
from sqlalchemy import select

from lanpapp.core.domain_types import LanpaStatus, MemberStatus, NotificationType
from lanpapp.core.errors import (
    BadRequestError, ConflictError, ForbiddenError, ResourceNotFoundError,
)
from lanpapp.models.lanpa import Lanpa
from lanpapp.models.lanpa_invitation import LanpaInvitation
from lanpapp.models.lanpa_member import LanpaMember
from lanpapp.models.user_punishment import UserPunishment
from lanpapp.services.lanpa_management import LanpaManagementService
from lanpapp.services.membership_guard import DbMembershipGuard
from tests.services.fakes import auth


FRONTEND = "https://lanpapp.test"


@pytest.fixture
def service(test_db, guard, fanout, clock):
    return LanpaManagementService(test_db, guard, fanout, clock=clock)


async def _member_status(test_db, lanpa_id, user_id) -> str | None:
    test_db.expire_all()
    result = await test_db.execute(
        select(LanpaMember.status).where(
            LanpaMember.lanpa_id == lanpa_id, LanpaMember.user_id == user_id,
        ),
    )
    return result.scalar_one_or_none()


# ─── CRUD ───────────────────────────────────────────────────────

async def test_creator_is_admin_and_confirmed_member(service, test_db, make_user):
    admin = await make_user("admin")
    lanpa = await service.create_lanpa(admin.id, "Saturday LAN")
    assert lanpa.admin_id == admin.id
    assert lanpa.status == "draft"
    assert await _member_status(test_db, lanpa.id, admin.id) == "confirmed"


async def test_detail_requires_membership(service, make_user, make_lanpa):
    admin = await make_user("admin")
    invited = await make_user("ivan")
    lanpa = await make_lanpa(admin, members={invited: MemberStatus.INVITED})
    with pytest.raises(ForbiddenError):
        await service.get_lanpa(lanpa.id, invited.id)


async def test_detail_includes_members_and_admin(service, make_user, make_lanpa):
    admin = await make_user("admin")
    alice = await make_user("alice")
    lanpa = await make_lanpa(admin, members={alice: MemberStatus.CONFIRMED})
    detail = await service.get_lanpa(lanpa.id, alice.id)
    assert detail["admin"]["username"] == "admin"
    assert {m["user"]["username"] for m in detail["members"]} == {"admin", "alice"}
    assert "game_suggestions" not in detail


async def test_update_announces_to_members(service, fanout, make_user, make_lanpa):
    admin = await make_user("admin")
    alice = await make_user("alice")
    lanpa = await make_lanpa(admin, members={alice: MemberStatus.CONFIRMED})
    updated = await service.update_lanpa(lanpa.id, admin.id, {"name": "Renamed LAN"})
    assert updated.name == "Renamed LAN"
    assert set(fanout.recipients(NotificationType.LANPA_UPDATED.value)) == {
        admin.id, alice.id,
    }


async def test_update_rejects_null_for_required_fields(service, test_db, make_user, make_lanpa):
    admin = await make_user("admin")
    lanpa = await make_lanpa(admin, name="Keep Me")
    lanpa_id, admin_id = lanpa.id, admin.id
    for field in ("name", "is_historical"):
        with pytest.raises(BadRequestError) as exc:
            await service.update_lanpa(lanpa_id, admin_id, {field: None})
        assert exc.value.code == "INVALID_FIELD"

    test_db.expire_all()
    stored = await test_db.get(Lanpa, lanpa_id)
    assert stored.name == "Keep Me"


async def test_update_clears_optional_fields(service, make_user, make_lanpa):
    admin = await make_user("admin")
    lanpa = await make_lanpa(admin)
    updated = await service.update_lanpa(
        lanpa.id, admin.id, {"description": None, "scheduled_date": None},
    )
    assert updated.description is None


async def test_member_cannot_update(service, make_user, make_lanpa):
    admin = await make_user("admin")
    alice = await make_user("alice")
    lanpa = await make_lanpa(admin, members={alice: MemberStatus.CONFIRMED})
    with pytest.raises(ForbiddenError):
        await service.update_lanpa(lanpa.id, alice.id, {"name": "Mine now"})


async def test_delete_refused_when_punishment_applied(
    service, test_db, make_user, make_lanpa, make_punishment,
):
    admin = await make_user("admin")
    alice = await make_user("alice")
    lanpa = await make_lanpa(admin, LanpaStatus.COMPLETED, {alice: MemberStatus.ATTENDED})
    punishment = await make_punishment()
    test_db.add(UserPunishment(
        user_id=alice.id, punishment_id=punishment.id, lanpa_id=lanpa.id,
    ))
    await test_db.commit()

    with pytest.raises(ConflictError) as exc:
        await service.delete_lanpa(lanpa.id, admin.id)
    assert exc.value.code == "LANPA_REFERENCED"


async def test_delete_removes_lanpa(service, test_db, make_user, make_lanpa):
    admin = await make_user("admin")
    lanpa = await make_lanpa(admin)
    lanpa_id = lanpa.id
    await service.delete_lanpa(lanpa_id, admin.id)
    assert await test_db.get(Lanpa, lanpa_id) is None


# ─── Invitations ────────────────────────────────────────────────

async def test_invite_skips_existing_members_and_unknown_users(
    service, fanout, make_user, make_lanpa,
):
    admin = await make_user("admin")
    alice = await make_user("alice")
    bob = await make_user("bob")
    lanpa = await make_lanpa(admin, members={alice: MemberStatus.CONFIRMED})

    rows = await service.invite_users(lanpa.id, admin.id, [alice.id, bob.id, uuid4()])
    by_user = {r["user_id"]: r["status"] for r in rows}
    assert by_user == {str(alice.id): "confirmed", str(bob.id): "invited"}
    assert set(fanout.recipients(NotificationType.LANPA_INVITATION.value)) == {
        alice.id, bob.id,
    }


async def test_invited_member_confirms_then_attends(service, test_db, make_user, make_lanpa):
    admin = await make_user("admin")
    bob = await make_user("bob")
    lanpa = await make_lanpa(admin, members={bob: MemberStatus.INVITED})
    member = (await test_db.execute(
        select(LanpaMember).where(LanpaMember.user_id == bob.id),
    )).scalar_one()

    await service.update_member_status(lanpa.id, member.id, bob.id, "confirmed")
    await service.update_member_status(lanpa.id, member.id, admin.id, "attended")
    assert await _member_status(test_db, lanpa.id, bob.id) == "attended"


async def test_admin_cannot_remove_self(service, test_db, make_user, make_lanpa):
    admin = await make_user("admin")
    lanpa = await make_lanpa(admin)
    own = (await test_db.execute(
        select(LanpaMember).where(LanpaMember.user_id == admin.id),
    )).scalar_one()
    with pytest.raises(BadRequestError) as exc:
        await service.remove_member(lanpa.id, own.id, admin.id)
    assert exc.value.code == "CANNOT_REMOVE_SELF"


# ─── Join links ─────────────────────────────────────────────────

async def test_join_link_confirms_new_member(service, test_db, make_user, make_lanpa):
    admin = await make_user("admin")
    zoe = await make_user("zoe")
    lanpa = await make_lanpa(admin)
    link = await service.create_invite_link(lanpa.id, admin.id, FRONTEND)
    token = link["invitation"]["token"]
    assert link["link"] == f"{FRONTEND}/lanpas/join/{token}"

    await service.join_with_token(token, zoe.id)
    assert await _member_status(test_db, lanpa.id, zoe.id) == "confirmed"


async def test_join_link_upgrades_invited_member(service, test_db, make_user, make_lanpa):
    admin = await make_user("admin")
    ivan = await make_user("ivan")
    lanpa = await make_lanpa(admin, members={ivan: MemberStatus.INVITED})
    link = await service.create_invite_link(lanpa.id, admin.id, FRONTEND)

    await service.join_with_token(link["invitation"]["token"], ivan.id)
    assert await _member_status(test_db, lanpa.id, ivan.id) == "confirmed"


async def test_join_link_max_uses(service, make_user, make_lanpa):
    admin = await make_user("admin")
    first = await make_user("first")
    second = await make_user("second")
    second_id = second.id
    lanpa = await make_lanpa(admin)
    link = await service.create_invite_link(lanpa.id, admin.id, FRONTEND, max_uses=1)
    token = link["invitation"]["token"]

    await service.join_with_token(token, first.id)
    with pytest.raises(BadRequestError) as exc:
        await service.join_with_token(token, second_id)
    assert exc.value.code == "INVITATION_EXHAUSTED"


async def test_stale_join_loses_last_use(
    service, test_session_factory, guard, fanout, clock, make_user, make_lanpa,
):
    admin = await make_user("admin")
    first = await make_user("first")
    second = await make_user("second")
    first_id, second_id = first.id, second.id
    lanpa = await make_lanpa(admin)
    link = await service.create_invite_link(lanpa.id, admin.id, FRONTEND, max_uses=1)
    token = link["invitation"]["token"]

    async with test_session_factory() as other_db:
        rival = LanpaManagementService(
            other_db, DbMembershipGuard(other_db), fanout, clock=clock,
        )
        await rival.join_with_token(token, first_id)

    # stale uses=0 copy passes the pre-check; the uses < max_uses UPDATE refuses
    with pytest.raises(BadRequestError) as exc:
        await service.join_with_token(token, second_id)
    assert exc.value.code == "INVITATION_EXHAUSTED"

    result = await service.db.execute(
        select(LanpaInvitation.uses).where(LanpaInvitation.token == token),
    )
    assert result.scalar_one() == 1


async def test_join_link_expired(service, clock, make_user, make_lanpa):
    admin = await make_user("admin")
    zoe = await make_user("zoe")
    lanpa = await make_lanpa(admin)
    link = await service.create_invite_link(
        lanpa.id, admin.id, FRONTEND, expires_in_hours=1,
    )
    clock.advance(hours=2)
    with pytest.raises(BadRequestError) as exc:
        await service.join_with_token(link["invitation"]["token"], zoe.id)
    assert exc.value.code == "INVITATION_EXPIRED"


async def test_unknown_token_is_not_found(service, make_user):
    zoe = await make_user("zoe")
    with pytest.raises(ResourceNotFoundError):
        await service.join_with_token("no-such-token", zoe.id)


async def test_only_admin_creates_links(service, make_user, make_lanpa):
    admin = await make_user("admin")
    alice = await make_user("alice")
    lanpa = await make_lanpa(admin, members={alice: MemberStatus.CONFIRMED})
    with pytest.raises(ForbiddenError):
        await service.create_invite_link(lanpa.id, alice.id, FRONTEND)


# ─── Routes ─────────────────────────────────────────────────────

async def test_create_and_list_routes(client, make_user):
    admin = await make_user("admin")
    res = await client.post(
        "/api/v1/lanpas", json={"name": "  Friday LAN  "}, headers=auth(admin),
    )
    assert res.status_code == 201
    assert res.json()["data"]["name"] == "Friday LAN"

    res = await client.get("/api/v1/lanpas?status=draft,voting_games", headers=auth(admin))
    assert res.status_code == 200
    body = res.json()
    assert body["pagination"]["total"] == 1
    assert body["data"][0]["member_count"] == 1


async def test_list_rejects_unknown_status_filter(client, make_user):
    admin = await make_user("admin")
    res = await client.get("/api/v1/lanpas?status=partying", headers=auth(admin))
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_STATUS"


async def test_detail_route_for_non_member_is_403(client, make_user, make_lanpa):
    admin = await make_user("admin")
    stranger = await make_user("stranger")
    lanpa = await make_lanpa(admin)
    res = await client.get(f"/api/v1/lanpas/{lanpa.id}", headers=auth(stranger))
    assert res.status_code == 403


async def test_update_route_rejects_null_name(client, make_user, make_lanpa):
    admin = await make_user("admin")
    lanpa = await make_lanpa(admin)
    for body in ({"name": None}, {"is_historical": None}, {"name": "   "}):
        res = await client.patch(f"/api/v1/lanpas/{lanpa.id}", json=body, headers=auth(admin))
        assert res.status_code == 400
        assert res.json()["error"]["code"] == "VALIDATION_ERROR"

    res = await client.patch(
        f"/api/v1/lanpas/{lanpa.id}", json={"description": None}, headers=auth(admin),
    )
    assert res.status_code == 200
