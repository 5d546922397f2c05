"""Sign-in: credential checks, session binding and legacy hash upgrade."""

import pytest

from conftest import new_session, register
from simplequiz.auth.password import legacy_digest
from simplequiz.db.models import User
from simplequiz.events.store import EventStore
from simplequiz.events.types import PASSWORD_REHASHED, USER_SIGNED_IN


async def _signin(client, token, identifier, password="correct-horse"):
    return await client.post(
        "/auth/signin",
        json={"identifier": identifier, "password": password},
        headers={"Authorization": token},
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("identifier", ["alice", "alice@example.com"])
async def test_signin_by_user_id_or_mail(client, mailer, identifier):
    await register(client, mailer)
    token = await new_session(client)

    r = await _signin(client, token, identifier)
    assert r.status_code == 200
    assert r.json() == {}

    r = await client.get("/auth/is_signin", headers={"Authorization": token})
    assert r.json() == {"is_login": True, "user_id": "alice"}


@pytest.mark.asyncio
async def test_wrong_password_is_unauthorized(client, mailer):
    await register(client, mailer)
    token = await new_session(client)

    r = await _signin(client, token, "alice", "wrong-horse")
    assert r.status_code == 401
    assert r.json()["kind"] == "unauthorized"

    r = await client.get("/auth/is_signin", headers={"Authorization": token})
    assert r.json()["is_login"] is False


@pytest.mark.asyncio
async def test_unknown_user_is_unauthorized(client):
    token = await new_session(client)
    r = await _signin(client, token, "nobody")
    assert r.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize("identifier,password", [
    ("al", "correct-horse"),           # neither a mail nor a plausible user ID
    ("alice", "short"),                # password too short
    ("alice", "has a space"),          # password charset
    (None, "correct-horse"),
    ("alice", None),
])
async def test_signin_validation(client, identifier, password):
    token = await new_session(client)
    r = await _signin(client, token, identifier, password)
    assert r.status_code == 400
    assert r.json()["kind"] == "validation_error"


@pytest.mark.asyncio
async def test_signin_requires_session(client, mailer):
    await register(client, mailer)
    r = await client.post("/auth/signin", json={
        "identifier": "alice", "password": "correct-horse",
    })
    assert r.status_code == 400
    assert r.json()["kind"] == "invalid_token"


@pytest.mark.asyncio
async def test_legacy_hash_verifies_and_is_upgraded(client, db_session):
    db_session.add(User(
        user_id="carol",
        mail="carol@example.com",
        password_hash=legacy_digest("old-school-pw"),
        user_name="Carol",
    ))
    await db_session.commit()
    token = await new_session(client)

    r = await _signin(client, token, "carol", "old-school-pw")
    assert r.status_code == 200

    user = await db_session.get(User, "carol", populate_existing=True)
    assert user.password_hash.startswith("$2")
    assert await EventStore(db_session).count(PASSWORD_REHASHED) == 1

    # The upgraded hash keeps working.
    token2 = await new_session(client)
    r = await _signin(client, token2, "carol@example.com", "old-school-pw")
    assert r.status_code == 200
    assert await EventStore(db_session).count(PASSWORD_REHASHED) == 1
    assert await EventStore(db_session).count(USER_SIGNED_IN) == 2


@pytest.mark.asyncio
async def test_signin_accepts_uid_field(client, mailer):
    await register(client, mailer)
    token = await new_session(client)

    r = await client.post(
        "/auth/signin",
        json={"uid": "alice", "password": "correct-horse"},
        headers={"Authorization": token},
    )
    assert r.status_code == 200, r.text

    r = await client.get("/auth/is_signin", headers={"Authorization": token})
    assert r.json() == {"is_login": True, "user_id": "alice"}


@pytest.mark.asyncio
async def test_signin_with_dotted_user_id(client, mailer):
    await register(client, mailer, user_id="john.doe")
    token = await new_session(client)

    r = await _signin(client, token, "john.doe")
    assert r.status_code == 200, r.text

    r = await client.get("/auth/is_signin", headers={"Authorization": token})
    assert r.json()["user_id"] == "john.doe"
