"""Stats — global, personal, per-lanpa and per-user aggregates, leaderboards, punishment history.

Scenario (seeded once per test):
    - admin hosts two completed lanpas, both played Age of Empires II
    - alice attended both and created a draft of her own; bob attended the first
    - bob was punished (30 points) during the first lanpa
    - otto has no activity at all
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from lanpapp.core.domain_types import LanpaStatus, MemberStatus
from lanpapp.core.errors import ForbiddenError, ResourceNotFoundError
from lanpapp.models.rating import LanpaRating, Rating
from lanpapp.models.user_punishment import UserPunishment
from lanpapp.services.stats import StatsService
from tests.services.fakes import auth


@pytest.fixture
async def league(test_db, make_user, make_lanpa, make_game, make_punishment):
    admin = await make_user("admin")
    alice = await make_user("alice")
    bob = await make_user("bob")
    otto = await make_user("otto")
    aoe = await make_game()
    await make_game("Counter-Strike", "shooter")

    first = await make_lanpa(admin, LanpaStatus.COMPLETED, {
        alice: MemberStatus.ATTENDED, bob: MemberStatus.ATTENDED,
    }, name="First LAN")
    second = await make_lanpa(admin, LanpaStatus.COMPLETED, {
        alice: MemberStatus.ATTENDED,
    }, name="Second LAN")
    await make_lanpa(alice, name="Alice's draft")
    first.selected_game_id = aoe.id
    second.selected_game_id = aoe.id

    test_db.add_all([
        Rating(lanpa_id=first.id, from_user_id=alice.id, to_user_id=admin.id,
               rating_type="member_to_admin", score=5),
        Rating(lanpa_id=first.id, from_user_id=bob.id, to_user_id=admin.id,
               rating_type="member_to_admin", score=4),
        Rating(lanpa_id=first.id, from_user_id=admin.id, to_user_id=alice.id,
               rating_type="admin_to_member", score=4),
        Rating(lanpa_id=first.id, from_user_id=bob.id, to_user_id=alice.id,
               rating_type="member_to_member", score=2),
        Rating(lanpa_id=second.id, from_user_id=alice.id, to_user_id=admin.id,
               rating_type="member_to_admin", score=3),
        LanpaRating(lanpa_id=first.id, user_id=alice.id, score=4),
        LanpaRating(lanpa_id=first.id, user_id=bob.id, score=5),
    ])
    pizza = await make_punishment(point_impact=30)
    test_db.add(UserPunishment(
        user_id=bob.id, punishment_id=pizza.id, lanpa_id=first.id,
        applied_at=datetime(2026, 5, 2, tzinfo=timezone.utc),
    ))
    await test_db.commit()
    return {
        "admin": admin, "alice": alice, "bob": bob, "otto": otto,
        "aoe": aoe, "first": first, "second": second,
    }


# ─── Global ─────────────────────────────────────────────────────

async def test_global_stats(test_db, league):
    stats = await StatsService(test_db).global_stats()
    admin, alice, bob = league["admin"], league["alice"], league["bob"]

    assert stats["total_lanpas"] == 3
    assert stats["total_users"] == 4
    assert stats["total_games_played"] == 2
    assert stats["most_frequent_admin"] == {"user": admin.summary(), "lanpas_hosted": 2}
    assert stats["most_attended_member"] == {"user": alice.summary(), "lanpas_attended": 2}
    assert stats["best_rated_admin"] == {"user": admin.summary(), "average_rating": 4.0}
    assert [(g["name"], g["times_played"]) for g in stats["most_played_games"]] == [
        ("Age of Empires II", 2),
    ]
    assert stats["hall_of_shame"] == [
        {"user": bob.summary(), "total_punishments": 1, "total_point_impact": 30},
    ]


async def test_global_stats_on_empty_database(test_db):
    stats = await StatsService(test_db).global_stats()
    assert stats["total_lanpas"] == 0
    assert stats["most_frequent_admin"] is None
    assert stats["best_rated_admin"] is None
    assert stats["most_played_games"] == []
    assert stats["hall_of_shame"] == []


# ─── Personal / per user ────────────────────────────────────────

async def test_personal_stats(test_db, league):
    service = StatsService(test_db)
    alice = await service.personal_stats(league["alice"].id)
    assert alice == {
        "lanpas_created": 1,
        "lanpas_attended": 2,
        "games_played": 1,
        "average_rating": 3.0,
        "total_punishments": 0,
        "has_activity": True,
    }

    otto = await service.personal_stats(league["otto"].id)
    assert otto["average_rating"] is None
    assert otto["has_activity"] is False


async def test_user_stats(test_db, league):
    service = StatsService(test_db)
    alice = await service.user_stats(league["alice"].id)
    assert alice["user"]["username"] == "alice"
    assert alice["lanpas_hosted"] == 0
    assert alice["lanpas_attended"] == 2
    assert alice["average_rating_as_admin"] is None
    assert alice["average_rating_as_member"] == 3.0
    assert [(g["name"], g["times_played"]) for g in alice["favorite_games"]] == [
        ("Age of Empires II", 2),
    ]
    assert alice["punishments"] == []

    admin = await service.user_stats(league["admin"].id)
    assert admin["lanpas_hosted"] == 2
    assert admin["average_rating_as_admin"] == 4.0

    bob = await service.user_stats(league["bob"].id)
    assert [p["punishment"]["point_impact"] for p in bob["punishments"]] == [30]


async def test_user_stats_unknown_user(test_db):
    with pytest.raises(ResourceNotFoundError):
        await StatsService(test_db).user_stats(uuid4())


# ─── Per lanpa ──────────────────────────────────────────────────

async def test_lanpa_stats(test_db, league):
    stats = await StatsService(test_db).lanpa_stats(league["first"].id)
    assert stats["lanpa"]["name"] == "First LAN"
    assert stats["attendance_count"] == 2
    assert stats["average_admin_rating"] == 4.5
    assert stats["average_member_rating"] == 3.0
    assert stats["average_lanpa_rating"] == 4.5
    assert [g["id"] for g in stats["games_played"]] == [str(league["aoe"].id)]
    assert stats["punishments_given"] == 1


async def test_lanpa_stats_without_game_or_ratings(test_db, make_user, make_lanpa):
    lanpa = await make_lanpa(await make_user("admin"))
    stats = await StatsService(test_db).lanpa_stats(lanpa.id)
    assert stats["games_played"] == []
    assert stats["average_lanpa_rating"] is None
    assert stats["attendance_count"] == 0


# ─── Leaderboards ───────────────────────────────────────────────

async def test_rankings(test_db, league):
    boards = await StatsService(test_db).rankings()
    clean = [(r["rank"], r["user"]["username"], r["score"]) for r in boards["clean_ranking"]]
    adjusted = [(r["user"]["username"], r["score"]) for r in boards["adjusted_ranking"]]

    assert clean == [(1, "admin", 100.0), (2, "alice", 80.0), (3, "bob", 70.0)]
    assert adjusted == [("admin", 100.0), ("alice", 80.0), ("bob", 40.0)]
    assert boards["clean_ranking"][2]["average_rating"] is None


# ─── Punishment history ─────────────────────────────────────────

async def test_user_punishments_total(test_db, league):
    history = await StatsService(test_db).user_punishments(league["bob"].id)
    assert len(history["punishments"]) == 1
    assert history["total_point_impact"] == 30


async def test_lanpa_punishments_members_only(test_db, guard, league):
    service = StatsService(test_db, guard)
    history = await service.lanpa_punishments(league["first"].id, league["alice"].id)
    assert history["total_punishments"] == 1
    assert history["total_point_impact"] == 30
    assert history["punishments"][0]["user"]["username"] == "bob"

    with pytest.raises(ForbiddenError):
        await service.lanpa_punishments(league["first"].id, league["otto"].id)


# ─── Routes ─────────────────────────────────────────────────────

async def test_stats_routes(client, league):
    alice = league["alice"]
    for path in ("/global", "/personal", "/rankings",
                 f"/lanpas/{league['first'].id}", f"/users/{league['bob'].id}"):
        res = await client.get(f"/api/v1/stats{path}", headers=auth(alice))
        assert res.status_code == 200, path

    res = await client.get("/api/v1/stats/personal", headers=auth(alice))
    assert res.json()["data"]["lanpas_attended"] == 2

    res = await client.get(f"/api/v1/stats/lanpas/{uuid4()}", headers=auth(alice))
    assert res.status_code == 404


async def test_punishment_history_routes(client, league):
    bob, otto, first = league["bob"], league["otto"], league["first"]
    res = await client.get(f"/api/v1/punishments/users/{bob.id}", headers=auth(otto))
    assert res.json()["data"]["total_point_impact"] == 30

    res = await client.get(f"/api/v1/lanpas/{first.id}/punishments", headers=auth(bob))
    assert res.status_code == 200
    assert res.json()["data"]["total_punishments"] == 1

    res = await client.get(f"/api/v1/lanpas/{first.id}/punishments", headers=auth(otto))
    assert res.status_code == 403
