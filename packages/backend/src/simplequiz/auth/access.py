"""Room ownership and visibility rules.

Decisions are pure functions of (room, identity) and return an Access
value; RoomService turns anything but ALLOW into the matching error. The
listing rule is the same comparison expressed as a SQL predicate.

Owner match:
- the owner record has a user → only Registered(that user) matches
- otherwise → only the identity whose session is the owning session

A room owned by a user is therefore not reachable through the session
that created it, and a registered identity never matches an anonymous
room by session alone. Rooms created anonymously become the user's only
when they are claimed at bind time (RoomService.claim_for_user).
"""

import enum
from typing import Optional

from sqlalchemy import and_, false, or_

from simplequiz.auth.identity import Identity, IdentityKind
from simplequiz.db.models import Room, RoomOwner


class Access(str, enum.Enum):
    ALLOW = "allow"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CLOSED = "closed_room"


def owner_matches(owner: Optional[RoomOwner], identity: Identity) -> bool:
    if owner is None:
        return False
    if owner.user_id is not None:
        return (
            identity.kind is IdentityKind.registered
            and identity.user_id == owner.user_id
        )
    return (
        identity.kind is IdentityKind.anonymous
        and identity.session_id == owner.session_id
    )


def check_read(room: Optional[Room], identity: Identity) -> Access:
    if room is None:
        return Access.NOT_FOUND
    if not room.is_valid:
        return Access.CLOSED
    if room.is_public:
        return Access.ALLOW
    if owner_matches(room.owner, identity):
        return Access.ALLOW
    return Access.FORBIDDEN


def check_write(room: Optional[Room], identity: Identity) -> Access:
    """Visibility never grants write access; only the owner pair does."""
    if room is None:
        return Access.NOT_FOUND
    if owner_matches(room.owner, identity):
        return Access.ALLOW
    return Access.FORBIDDEN


def visible_to(identity: Identity):
    """WHERE clause for listings: open AND (public OR owned by identity).

    Expects the query to join RoomOwner.
    """
    if identity.kind is IdentityKind.registered:
        owned = RoomOwner.user_id == identity.user_id
    elif identity.kind is IdentityKind.anonymous:
        owned = and_(
            RoomOwner.user_id.is_(None),
            RoomOwner.session_id == identity.session_id,
        )
    else:
        owned = false()
    return and_(Room.is_valid.is_(True), or_(Room.is_public.is_(True), owned))
