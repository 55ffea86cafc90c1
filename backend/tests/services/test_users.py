"""User profiles — own profile edits, search and public profiles."""

from uuid import uuid4

import pytest

from lanpapp.core.errors import BadRequestError, ConflictError
from lanpapp.services.users import UserProfileService
from tests.services.fakes import auth


# ─── Profile service ────────────────────────────────────────────

async def test_update_profile_merges_preferences(test_db, make_user):
    alice = await make_user("alice", preferences={"push": False, "game_voting": False})
    updated = await UserProfileService(test_db).update_profile(alice, {
        "display_name": "Alice L.",
        "locale": "en",
        "notification_preferences": {"game_voting": True, "email": None},
    })
    assert updated.display_name == "Alice L."
    assert updated.locale == "en"
    assert updated.notification_preferences == {"push": False, "game_voting": True}


async def test_taken_username_is_conflict(test_db, make_user):
    alice = await make_user("alice")
    await make_user("bob")
    with pytest.raises(ConflictError) as exc:
        await UserProfileService(test_db).update_profile(alice, {"username": "bob"})
    assert exc.value.code == "USERNAME_TAKEN"


async def test_keeping_own_username_is_allowed(test_db, make_user):
    alice = await make_user("alice")
    updated = await UserProfileService(test_db).update_profile(alice, {"username": "alice"})
    assert updated.username == "alice"


async def test_search_matches_username_and_display_name(test_db, make_user):
    await make_user("alice")
    await make_user("alicia")
    await make_user("bob")
    service = UserProfileService(test_db)
    assert [u.username for u in await service.search("ALI")] == ["alice", "alicia"]
    assert [u.username for u in await service.search(" Bo ")] == ["bob"]


async def test_search_needs_two_characters(test_db):
    with pytest.raises(BadRequestError) as exc:
        await UserProfileService(test_db).search(" a ")
    assert exc.value.code == "SEARCH_TOO_SHORT"


# ─── Routes ─────────────────────────────────────────────────────

async def test_me_roundtrip(client, make_user):
    alice = await make_user("alice")
    res = await client.get("/api/v1/users/me", headers=auth(alice))
    assert res.status_code == 200
    assert res.json()["data"]["username"] == "alice"

    res = await client.patch(
        "/api/v1/users/me",
        json={"username": "alice_2", "notification_preferences": {"push": False}},
        headers=auth(alice),
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["username"] == "alice_2"
    assert data["notification_preferences"] == {"push": False}


async def test_me_rejects_bad_input(client, make_user):
    alice = await make_user("alice")
    await make_user("bob")
    for body in ({"username": "a!"}, {"locale": "fr"}, {"display_name": ""}):
        res = await client.patch("/api/v1/users/me", json=body, headers=auth(alice))
        assert res.status_code == 400, body
        assert res.json()["error"]["code"] == "VALIDATION_ERROR"

    res = await client.patch("/api/v1/users/me", json={"username": "bob"}, headers=auth(alice))
    assert res.status_code == 409


async def test_search_and_profile_routes(client, make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    res = await client.get("/api/v1/users/search?q=bo", headers=auth(alice))
    assert [u["id"] for u in res.json()["data"]] == [str(bob.id)]

    res = await client.get("/api/v1/users/search?q=b", headers=auth(alice))
    assert res.status_code == 400

    res = await client.get(f"/api/v1/users/{bob.id}", headers=auth(alice))
    assert res.status_code == 200
    assert "notification_preferences" not in res.json()["data"]

    res = await client.get(f"/api/v1/users/{uuid4()}", headers=auth(alice))
    assert res.status_code == 404
