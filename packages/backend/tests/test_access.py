"""Ownership decisions as pure functions of (room, identity)."""

import pytest

from simplequiz.auth.access import Access, check_read, check_write, owner_matches
from simplequiz.auth.identity import Identity
from simplequiz.db.models import Room, RoomOwner

S1 = "1" * 32
S2 = "2" * 32


def _room(*, user_id=None, session_id=S1, is_public=True, is_valid=True) -> Room:
    room = Room(
        room_id="r" * 32,
        room_name="Quiz",
        is_public=is_public,
        is_valid=is_valid,
        owning_user=user_id,
        owning_session=session_id,
    )
    room.owner = RoomOwner(user_id=user_id, session_id=session_id)
    return room


# ═══════════════════════════════════════════════════════════
# Owner match
# ═══════════════════════════════════════════════════════════


def test_anonymous_owner_matches_its_session_only():
    owner = RoomOwner(user_id=None, session_id=S1)
    assert owner_matches(owner, Identity.anonymous(S1))
    assert not owner_matches(owner, Identity.anonymous(S2))
    assert not owner_matches(owner, Identity.unauthenticated())


def test_registered_identity_never_matches_anonymous_owner():
    """Even when it still carries the session that created the room."""
    owner = RoomOwner(user_id=None, session_id=S1)
    assert not owner_matches(owner, Identity.registered("alice", S1))


def test_user_owner_matches_that_user_only():
    owner = RoomOwner(user_id="alice", session_id=S1)
    assert owner_matches(owner, Identity.registered("alice", S2))
    assert not owner_matches(owner, Identity.registered("bob", S1))
    assert not owner_matches(owner, Identity.anonymous(S1))


# ═══════════════════════════════════════════════════════════
# Read / write
# ═══════════════════════════════════════════════════════════


def test_missing_room_is_not_found():
    assert check_read(None, Identity.anonymous(S1)) is Access.NOT_FOUND
    assert check_write(None, Identity.anonymous(S1)) is Access.NOT_FOUND


def test_closed_room_read_is_closed():
    room = _room(is_valid=False)
    assert check_read(room, Identity.anonymous(S1)) is Access.CLOSED


def test_public_room_readable_by_everyone_writable_by_owner():
    room = _room(is_public=True)
    for identity in (
        Identity.anonymous(S1),
        Identity.anonymous(S2),
        Identity.registered("bob", S2),
        Identity.unauthenticated(),
    ):
        assert check_read(room, identity) is Access.ALLOW
    assert check_write(room, Identity.anonymous(S1)) is Access.ALLOW
    assert check_write(room, Identity.anonymous(S2)) is Access.FORBIDDEN
    assert check_write(room, Identity.unauthenticated()) is Access.FORBIDDEN


@pytest.mark.parametrize("identity,expected", [
    (Identity.registered("alice", S2), Access.ALLOW),
    (Identity.registered("bob", S1), Access.FORBIDDEN),
    (Identity.anonymous(S1), Access.FORBIDDEN),
    (Identity.unauthenticated(), Access.FORBIDDEN),
])
def test_private_user_room(identity, expected):
    room = _room(user_id="alice", is_public=False)
    assert check_read(room, identity) is expected
    assert check_write(room, identity) is expected
