"""Lanpa State Machine — transitions, vote freezing and announcements.

Invariants:
    - voting_active -> in_progress freezes the winner into selected_game_id
    - Non-admins are Forbidden before the lanpa is even looked up
    - Illegal transitions leave the row untouched
    - A transition computed from a stale status loses to the committed one
    - A failing fanout never undoes a committed transition

Design Decisions:
    - Services driven directly against the test DB; the route is covered once
      at the end through the HTTP client
"""

from uuid import uuid4

import pytest
from sqlalchemy import select

from lanpapp.core.domain_types import LanpaStatus, MemberStatus, NotificationType
from lanpapp.core.errors import ConcurrencyError, ForbiddenError, IllegalTransitionError
from lanpapp.models.lanpa import Lanpa
from lanpapp.services.lanpa_lifecycle import LanpaStateMachine
from lanpapp.services.membership_guard import DbMembershipGuard
from tests.services.fakes import FailingFanout, auth


@pytest.fixture
async def crew(make_user):
    admin = await make_user("admin")
    alice = await make_user("alice")
    bob = await make_user("bob")
    carol = await make_user("carol")
    return admin, alice, bob, carol


async def _reload(test_db, lanpa_id) -> Lanpa:
    test_db.expire_all()
    result = await test_db.execute(select(Lanpa).where(Lanpa.id == lanpa_id))
    return result.scalar_one()


# ─── Vote freezing ──────────────────────────────────────────────

async def test_start_freezes_winning_game(
    test_db, guard, fanout, clock, rng, crew, make_lanpa, make_game, suggest_and_vote,
):
    admin, alice, bob, carol = crew
    lanpa = await make_lanpa(admin, LanpaStatus.VOTING_ACTIVE, {
        alice: MemberStatus.CONFIRMED,
        bob: MemberStatus.CONFIRMED,
        carol: MemberStatus.CONFIRMED,
    })
    aoe = await make_game("Age of Empires II")
    cs = await make_game("Counter-Strike")
    await suggest_and_vote(lanpa, alice, {aoe: [admin, alice, bob], cs: [carol]})

    machine = LanpaStateMachine(test_db, guard, fanout, rng=rng, clock=clock)
    await machine.request_transition(lanpa.id, LanpaStatus.IN_PROGRESS, admin.id)

    stored = await _reload(test_db, lanpa.id)
    assert stored.status == "in_progress"
    assert stored.selected_game_id == aoe.id
    assert stored.actual_date is not None


async def test_start_without_suggestions_leaves_game_unset(
    test_db, guard, fanout, clock, crew, make_lanpa,
):
    admin, *_ = crew
    lanpa = await make_lanpa(admin, LanpaStatus.VOTING_ACTIVE)

    machine = LanpaStateMachine(test_db, guard, fanout, clock=clock)
    await machine.request_transition(lanpa.id, LanpaStatus.IN_PROGRESS, admin.id)

    stored = await _reload(test_db, lanpa.id)
    assert stored.status == "in_progress"
    assert stored.selected_game_id is None


async def test_tied_vote_selects_one_of_the_tied_games(
    test_db, guard, fanout, clock, rng, crew, make_lanpa, make_game, suggest_and_vote,
):
    admin, alice, bob, carol = crew
    lanpa = await make_lanpa(admin, LanpaStatus.VOTING_ACTIVE, {
        alice: MemberStatus.CONFIRMED, bob: MemberStatus.CONFIRMED,
    })
    a = await make_game("A")
    b = await make_game("B")
    c = await make_game("C")
    await suggest_and_vote(lanpa, admin, {a: [admin, alice], b: [bob, carol], c: []})

    machine = LanpaStateMachine(test_db, guard, fanout, rng=rng, clock=clock)
    await machine.request_transition(lanpa.id, LanpaStatus.IN_PROGRESS, admin.id)

    stored = await _reload(test_db, lanpa.id)
    assert stored.selected_game_id in {a.id, b.id}


async def test_draft_straight_to_in_progress_stamps_date(
    test_db, guard, fanout, clock, crew, make_lanpa,
):
    admin, *_ = crew
    lanpa = await make_lanpa(admin, LanpaStatus.DRAFT)

    machine = LanpaStateMachine(test_db, guard, fanout, clock=clock)
    await machine.request_transition(lanpa.id, LanpaStatus.IN_PROGRESS, admin.id)

    stored = await _reload(test_db, lanpa.id)
    assert stored.actual_date is not None
    assert stored.selected_game_id is None


# ─── Rejections ─────────────────────────────────────────────────

async def test_member_cannot_change_status(
    test_db, guard, fanout, crew, make_lanpa,
):
    admin, alice, *_ = crew
    lanpa = await make_lanpa(admin, LanpaStatus.DRAFT, {alice: MemberStatus.CONFIRMED})

    machine = LanpaStateMachine(test_db, guard, fanout)
    with pytest.raises(ForbiddenError):
        await machine.request_transition(lanpa.id, LanpaStatus.VOTING_GAMES, alice.id)
    assert (await _reload(test_db, lanpa.id)).status == "draft"


async def test_unknown_lanpa_is_forbidden_before_not_found(test_db, guard, fanout, crew):
    admin, *_ = crew
    machine = LanpaStateMachine(test_db, guard, fanout)
    with pytest.raises(ForbiddenError):
        await machine.request_transition(uuid4(), LanpaStatus.VOTING_GAMES, admin.id)


async def test_illegal_transition_leaves_row_untouched(
    test_db, guard, fanout, crew, make_lanpa,
):
    admin, *_ = crew
    lanpa = await make_lanpa(admin, LanpaStatus.DRAFT)

    machine = LanpaStateMachine(test_db, guard, fanout)
    with pytest.raises(IllegalTransitionError):
        await machine.request_transition(lanpa.id, LanpaStatus.COMPLETED, admin.id)
    assert (await _reload(test_db, lanpa.id)).status == "draft"
    assert fanout.sent == []


async def test_completed_is_terminal(test_db, guard, fanout, crew, make_lanpa):
    admin, *_ = crew
    lanpa = await make_lanpa(admin, LanpaStatus.COMPLETED)

    machine = LanpaStateMachine(test_db, guard, fanout)
    for target in LanpaStatus:
        with pytest.raises(IllegalTransitionError):
            await machine.request_transition(lanpa.id, target, admin.id)


async def test_stale_transition_loses_to_committed_one(
    test_db, test_session_factory, guard, fanout, crew, make_lanpa,
):
    admin, *_ = crew
    admin_id = admin.id
    lanpa = await make_lanpa(admin, LanpaStatus.DRAFT)
    lanpa_id = lanpa.id

    async with test_session_factory() as other_db:
        rival = LanpaStateMachine(other_db, DbMembershipGuard(other_db), fanout)
        await rival.request_transition(lanpa_id, LanpaStatus.VOTING_GAMES, admin_id)

    # stale draft copy: draft -> in_progress passes the table, the UPDATE refuses
    assert lanpa.status == "draft"
    machine = LanpaStateMachine(test_db, guard, fanout)
    with pytest.raises(ConcurrencyError):
        await machine.request_transition(lanpa_id, LanpaStatus.IN_PROGRESS, admin_id)

    stored = await _reload(test_db, lanpa_id)
    assert stored.status == "voting_games"
    assert stored.actual_date is None


# ─── Announcements ──────────────────────────────────────────────

async def test_active_members_are_notified(
    test_db, guard, fanout, crew, make_lanpa,
):
    admin, alice, bob, carol = crew
    lanpa = await make_lanpa(admin, LanpaStatus.DRAFT, {
        alice: MemberStatus.CONFIRMED,
        bob: MemberStatus.INVITED,
        carol: MemberStatus.DECLINED,
    })

    machine = LanpaStateMachine(test_db, guard, fanout)
    await machine.request_transition(lanpa.id, LanpaStatus.VOTING_GAMES, admin.id)

    recipients = fanout.recipients(NotificationType.GAME_VOTING_STARTED.value)
    assert set(recipients) == {admin.id, alice.id}
    assert fanout.sent[0][1]["data"] == {"lanpa_id": str(lanpa.id)}


async def test_failing_fanout_does_not_undo_transition(
    test_db, guard, crew, make_lanpa,
):
    admin, *_ = crew
    lanpa = await make_lanpa(admin, LanpaStatus.DRAFT)

    machine = LanpaStateMachine(test_db, guard, FailingFanout())
    result = await machine.request_transition(lanpa.id, LanpaStatus.VOTING_GAMES, admin.id)

    assert result.status == "voting_games"
    assert (await _reload(test_db, lanpa.id)).status == "voting_games"


# ─── Route ──────────────────────────────────────────────────────

async def test_status_route_returns_updated_lanpa(client, crew, make_lanpa):
    admin, *_ = crew
    lanpa = await make_lanpa(admin, LanpaStatus.DRAFT)

    res = await client.patch(
        f"/api/v1/lanpas/{lanpa.id}/status",
        json={"status": "voting_games"}, headers=auth(admin),
    )
    assert res.status_code == 200
    assert res.json()["data"]["status"] == "voting_games"


async def test_status_route_illegal_transition_is_400(client, crew, make_lanpa):
    admin, *_ = crew
    lanpa = await make_lanpa(admin, LanpaStatus.DRAFT)

    res = await client.patch(
        f"/api/v1/lanpas/{lanpa.id}/status",
        json={"status": "completed"}, headers=auth(admin),
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "ILLEGAL_TRANSITION"
