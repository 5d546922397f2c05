"""Room API: creation, validation, visibility, ownership and closing."""

import pytest

from conftest import create_room, new_session, register
from simplequiz.config import settings
from simplequiz.events.store import EventStore
from simplequiz.events.types import ROOM_CREATED, ROOMS_CLAIMED


def _auth(token):
    return {"Authorization": token}


# ═══════════════════════════════════════════════════════════
# Create + detail
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_room_returns_location(client, db_session):
    token = await new_session(client)
    r = await client.post(
        "/room",
        json={"room_name": "Friday quiz", "explanation": "Pub rules", "password": "1234"},
        headers=_auth(token),
    )
    assert r.status_code == 201
    room_id = r.json()["room_id"]
    assert len(room_id) == 32
    assert r.headers["Location"].endswith(f"/room?room_id={room_id}")
    assert r.json()["uri"] == r.headers["Location"]
    assert await EventStore(db_session).count(ROOM_CREATED) == 1


@pytest.mark.asyncio
async def test_create_room_requires_session(client):
    r = await client.post("/room", json={"room_name": "Friday quiz"})
    assert r.status_code == 400
    assert r.json()["kind"] == "invalid_token"


@pytest.mark.asyncio
@pytest.mark.parametrize("fields", [
    {"room_name": "ab"},
    {"room_name": "x" * 31},
    {"room_name": None},
    {"room_name": "Quiz", "room_icon": "../../etc/passwd" + "a" * 20},
    {"room_name": "Quiz", "room_icon": "icon_with_underscore_0123456789ab.png"},
    {"room_name": "Quiz", "room_icon": "short.png"},
    {"room_name": "Quiz", "explanation": "e" * 101},
    {"room_name": "Quiz", "password": "12a4"},
    {"room_name": "Quiz", "password": "12345"},
])
async def test_create_room_validation(client, fields):
    token = await new_session(client)
    r = await client.post("/room", json=fields, headers=_auth(token))
    assert r.status_code == 400
    assert r.json()["kind"] == "validation_error"


@pytest.mark.asyncio
async def test_room_detail(client, mailer):
    token = await register(client, mailer)
    icon = "0123456789abcdef0123456789abcdef.png"
    room_id = await create_room(client, token, room_icon=icon, password="0000")

    r = await client.get(f"/room/{room_id}", headers=_auth(token))
    assert r.status_code == 200
    data = r.json()
    assert data["room_name"] == "Friday quiz"
    assert data["room_icon"] == icon
    assert data["has_password"] is True
    assert "password" not in data
    assert data["owner_name"] == "Alice"
    assert data["is_owner"] is True

    r = await client.get(f"/room/{room_id}")
    assert r.status_code == 200
    assert r.json()["is_owner"] is False


@pytest.mark.asyncio
async def test_room_detail_unknown_and_malformed(client):
    r = await client.get(f"/room/{'0' * 32}")
    assert r.status_code == 404
    assert r.json()["kind"] == "not_found"

    r = await client.get("/room/not-a-room")
    assert r.status_code == 400


# ═══════════════════════════════════════════════════════════
# Visibility
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_private_room_hidden_from_others(client):
    s1 = await new_session(client)
    s2 = await new_session(client)
    room_id = await create_room(client, s1, is_public=False)

    assert (await client.get(f"/room/{room_id}", headers=_auth(s1))).status_code == 200

    r = await client.get(f"/room/{room_id}", headers=_auth(s2))
    assert r.status_code == 403
    assert r.json()["kind"] == "forbidden"
    assert (await client.get(f"/room/{room_id}")).status_code == 403


@pytest.mark.asyncio
async def test_listing_shows_public_and_own_private_rooms(client):
    s1 = await new_session(client)
    s2 = await new_session(client)
    public_id = await create_room(client, s1, name="Public one")
    private_id = await create_room(client, s1, name="Private one", is_public=False)

    r = await client.get("/room/list", headers=_auth(s1))
    assert r.status_code == 200
    assert {room["room_id"] for room in r.json()} == {public_id, private_id}

    r = await client.get("/room/list", headers=_auth(s2))
    assert [room["room_id"] for room in r.json()] == [public_id]

    r = await client.get("/room/list")
    assert [room["room_id"] for room in r.json()] == [public_id]


@pytest.mark.asyncio
async def test_listing_pagination(client):
    token = await new_session(client)
    ids = [await create_room(client, token, name=f"Room {i}") for i in range(5)]

    r = await client.get("/room/list", params={"since": 0, "per_page": 2})
    first = [room["room_id"] for room in r.json()]
    r = await client.get("/room/list", params={"since": 2, "per_page": 10})
    rest = [room["room_id"] for room in r.json()]

    assert len(first) == 2
    assert len(rest) == 3
    assert set(first + rest) == set(ids)


@pytest.mark.asyncio
@pytest.mark.parametrize("params", [
    {"per_page": 31},
    {"per_page": -1},
    {"since": -1},
    {"since": "abc"},
])
async def test_listing_rejects_bad_paging(client, params):
    r = await client.get("/room/list", params=params)
    assert r.status_code == 400
    assert r.json()["kind"] == "validation_error"


# ═══════════════════════════════════════════════════════════
# Update + close
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_owner_can_update(client):
    token = await new_session(client)
    room_id = await create_room(client, token)

    r = await client.put(
        f"/room/{room_id}",
        json={"room_name": "Saturday quiz", "is_public": False},
        headers=_auth(token),
    )
    assert r.status_code == 200
    assert r.json() == {}

    data = (await client.get(f"/room/{room_id}", headers=_auth(token))).json()
    assert data["room_name"] == "Saturday quiz"
    assert data["is_public"] is False


@pytest.mark.asyncio
async def test_public_room_not_writable_by_others(client):
    s1 = await new_session(client)
    s2 = await new_session(client)
    room_id = await create_room(client, s1)

    r = await client.put(
        f"/room/{room_id}", json={"room_name": "Hijacked"}, headers=_auth(s2)
    )
    assert r.status_code == 403
    r = await client.post(f"/room/{room_id}/close", headers=_auth(s2))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_update_validates_before_ownership(client):
    s1 = await new_session(client)
    s2 = await new_session(client)
    room_id = await create_room(client, s1)

    r = await client.put(f"/room/{room_id}", json={"room_name": "x"}, headers=_auth(s2))
    assert r.status_code == 400
    assert r.json()["kind"] == "validation_error"


@pytest.mark.asyncio
async def test_update_unknown_room(client):
    token = await new_session(client)
    r = await client.put(
        f"/room/{'f' * 32}", json={"room_name": "Anything"}, headers=_auth(token)
    )
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_close_room_is_terminal(client):
    token = await new_session(client)
    room_id = await create_room(client, token)

    r = await client.post(f"/room/{room_id}/close", headers=_auth(token))
    assert r.status_code == 200

    r = await client.get(f"/room/{room_id}", headers=_auth(token))
    assert r.status_code == 400
    assert r.json()["kind"] == "closed_room"

    r = await client.put(
        f"/room/{room_id}", json={"room_name": "Reopened?"}, headers=_auth(token)
    )
    assert r.status_code == 400
    assert r.json()["kind"] == "closed_room"

    r = await client.post(f"/room/{room_id}/close", headers=_auth(token))
    assert r.status_code == 400
    assert r.json()["kind"] == "closed_room"

    r = await client.get("/room/list", headers=_auth(token))
    assert r.json() == []


# ═══════════════════════════════════════════════════════════
# Ownership after binding
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_anonymous_rooms_claimed_on_signup(client, mailer, db_session):
    token = await new_session(client)
    room_id = await create_room(client, token, is_public=False)

    await register(client, mailer, token=token)

    r = await client.put(
        f"/room/{room_id}", json={"room_name": "Still mine"}, headers=_auth(token)
    )
    assert r.status_code == 200
    assert await EventStore(db_session).count(ROOMS_CLAIMED) == 1

    # A different session of the same user sees it too.
    other = await new_session(client)
    await client.post(
        "/auth/signin",
        json={"identifier": "alice", "password": "correct-horse"},
        headers=_auth(other),
    )
    r = await client.get(f"/room/{room_id}", headers=_auth(other))
    assert r.status_code == 200
    assert r.json()["is_owner"] is True


@pytest.mark.asyncio
async def test_anonymous_rooms_not_claimed_when_disabled(client, mailer, monkeypatch):
    monkeypatch.setattr(settings, "claim_anonymous_rooms", False)
    token = await new_session(client)
    room_id = await create_room(client, token)

    await register(client, mailer, token=token)

    r = await client.put(
        f"/room/{room_id}", json={"room_name": "Still mine?"}, headers=_auth(token)
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_rooms_claimed_on_signin(client, mailer):
    await register(client, mailer)
    token = await new_session(client)
    room_id = await create_room(client, token, is_public=False)

    r = await client.post(
        "/auth/signin",
        json={"identifier": "alice@example.com", "password": "correct-horse"},
        headers=_auth(token),
    )
    assert r.status_code == 200

    r = await client.get("/room/list", headers=_auth(token))
    assert [room["room_id"] for room in r.json()] == [room_id]


@pytest.mark.asyncio
async def test_user_room_survives_sign_out(client, mailer):
    token = await register(client, mailer)
    room_id = await create_room(client, token, is_public=False)
    await client.delete("/auth/signout", headers=_auth(token))

    fresh = await new_session(client)
    r = await client.get(f"/room/{room_id}", headers=_auth(fresh))
    assert r.status_code == 403

    await client.post(
        "/auth/signin",
        json={"identifier": "alice", "password": "correct-horse"},
        headers=_auth(fresh),
    )
    r = await client.get(f"/room/{room_id}", headers=_auth(fresh))
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_listing_includes_owner_profile(client, mailer):
    token = await register(client, mailer)
    owned = await create_room(client, token, name="Alice's quiz")
    anon = await new_session(client)
    anonymous = await create_room(client, anon, name="Nobody's quiz")

    r = await client.get("/room/list")
    rooms = {room["room_id"]: room for room in r.json()}

    assert rooms[owned]["owner_name"] == "Alice"
    assert rooms[owned]["created_at"]
    assert rooms[anonymous]["owner_name"] is None
    assert rooms[anonymous]["owner_icon"] is None
    assert "password" not in rooms[owned]
