"""Room service: create, read, list, update and close quiz rooms.

Every read and write goes through auth/access.py with the caller's
Identity passed in explicitly. Field validation runs before any lookup
or mutation.
"""

import re
import secrets
from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from simplequiz.auth.access import Access, check_read, check_write, visible_to
from simplequiz.auth.identity import Identity
from simplequiz.config import settings
from simplequiz.db.models import Room, RoomOwner
from simplequiz.errors import (
    ClosedRoomError,
    ForbiddenError,
    InvalidTokenError,
    NotFoundError,
    ValidationError,
)
from simplequiz.events.store import EventStore, room_stream
from simplequiz.events.types import ROOM_CLOSED, ROOM_CREATED, ROOM_UPDATED, ROOMS_CLAIMED

logger = structlog.get_logger()

ROOM_ID_RE = re.compile(r"^[a-zA-Z0-9]+$")
ICON_RE = re.compile(r"^[a-zA-Z0-9.]+$")
DIGITS_RE = re.compile(r"^[0-9]+$")


@dataclass
class RoomFields:
    """Client-editable room attributes."""

    room_name: Optional[str]
    room_icon: Optional[str] = None
    explanation: Optional[str] = None
    password: Optional[str] = None
    is_public: bool = True


def validate_room_id(room_id: str) -> None:
    if ROOM_ID_RE.fullmatch(room_id) is None:
        raise ValidationError("The room ID contains invalid characters.")
    if len(room_id) != 32:
        raise ValidationError("The room ID must be 32 characters long.")


def validate_room_fields(fields: RoomFields) -> None:
    name = fields.room_name or ""
    if not 3 <= len(name) <= 30:
        raise ValidationError("The room name must be 3 to 30 characters long.")

    icon = fields.room_icon
    if icon is not None:
        if ".." in icon:
            raise ValidationError("The icon file name must not contain '..'.")
        if ICON_RE.fullmatch(icon) is None:
            raise ValidationError("The icon file name contains invalid characters.")
        if not 32 <= len(icon) <= 38:
            raise ValidationError("The icon file name has an invalid length.")

    if fields.explanation is not None and len(fields.explanation) > 100:
        raise ValidationError("The explanation must be at most 100 characters.")

    password = fields.password
    if password is not None:
        if DIGITS_RE.fullmatch(password) is None:
            raise ValidationError("The room password may only contain digits.")
        if len(password) != 4:
            raise ValidationError("The room password must be 4 digits.")


def room_uri(room_id: str) -> str:
    return f"{settings.public_base_url.rstrip('/')}/room?room_id={room_id}"


def _enforce(access: Access) -> None:
    if access is Access.NOT_FOUND:
        raise NotFoundError("The room does not exist.")
    if access is Access.CLOSED:
        raise ClosedRoomError("The room has already been closed.")
    if access is Access.FORBIDDEN:
        raise ForbiddenError()


class RoomService:
    """Ownership-gated room operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.events = EventStore(db)

    async def get_room(self, room_id: str) -> Optional[Room]:
        return await self.db.scalar(
            select(Room)
            .where(Room.room_id == room_id)
            .execution_options(populate_existing=True)
        )

    # ─── Create ───────────────────────────────────────────

    async def create(self, identity: Identity, fields: RoomFields) -> Room:
        """Create a room owned by the caller's user, or by its session."""
        validate_room_fields(fields)
        if not identity.has_session:
            raise InvalidTokenError("The session token is invalid.")

        owning_user = identity.user_id if identity.is_registered else None
        room = Room(
            room_id=secrets.token_hex(16),
            room_name=fields.room_name,
            room_icon=fields.room_icon,
            explanation=fields.explanation,
            password=fields.password,
            is_public=fields.is_public,
            is_valid=True,
            owning_user=owning_user,
            owning_session=identity.session_id,
        )
        room.owner = RoomOwner(user_id=owning_user, session_id=identity.session_id)
        self.db.add(room)
        await self.db.flush()

        await self.events.append(
            stream_id=room_stream(room.room_id),
            event_type=ROOM_CREATED,
            data={
                "owner_kind": identity.kind.value,
                "user_id": owning_user,
                "is_public": fields.is_public,
            },
        )
        await self.db.commit()
        logger.info(
            "room.created",
            room_id=room.room_id,
            owner_kind=identity.kind.value,
            is_public=fields.is_public,
        )
        return room

    # ─── Read ─────────────────────────────────────────────

    async def detail(self, room_id: str, identity: Identity) -> Room:
        validate_room_id(room_id)
        room = await self.get_room(room_id)
        _enforce(check_read(room, identity))
        return room

    async def list_rooms(
        self, identity: Identity, since: int = 0, per_page: int = 30
    ) -> list[Room]:
        """Open rooms the caller may see, most recently updated first."""
        if since < 0 or per_page < 0:
            raise ValidationError("since and per_page must not be negative.")
        if per_page > settings.room_page_size_max:
            raise ValidationError(
                f"At most {settings.room_page_size_max} rooms can be fetched at once."
            )
        result = await self.db.execute(
            select(Room)
            .join(RoomOwner, RoomOwner.room_id == Room.room_id)
            .where(visible_to(identity))
            .order_by(Room.updated_at.desc(), Room.room_id)
            .offset(since)
            .limit(per_page)
        )
        return list(result.scalars().all())

    # ─── Write ────────────────────────────────────────────

    async def update(self, room_id: str, identity: Identity, fields: RoomFields) -> Room:
        validate_room_id(room_id)
        validate_room_fields(fields)
        room = await self.get_room(room_id)
        _enforce(check_write(room, identity))
        if not room.is_valid:
            raise ClosedRoomError("The room has already been closed.")

        room.room_name = fields.room_name
        room.room_icon = fields.room_icon
        room.explanation = fields.explanation
        room.password = fields.password
        room.is_public = fields.is_public

        await self.events.append(
            stream_id=room_stream(room_id),
            event_type=ROOM_UPDATED,
            data={"is_public": fields.is_public},
        )
        await self.db.commit()
        logger.info("room.updated", room_id=room_id)
        return room

    async def close(self, room_id: str, identity: Identity) -> Room:
        """Open → Closed. There is no way back."""
        validate_room_id(room_id)
        room = await self.get_room(room_id)
        _enforce(check_write(room, identity))
        if not room.is_valid:
            raise ClosedRoomError("The room has already been closed.")

        room.is_valid = False
        await self.events.append(
            stream_id=room_stream(room_id),
            event_type=ROOM_CLOSED,
            data={},
        )
        await self.db.commit()
        logger.info("room.closed", room_id=room_id)
        return room

    # ─── Ownership migration ─────────────────────────────

    async def claim_for_user(self, session_id: str, user_id: str) -> int:
        """Hand the session's anonymous rooms to user_id. Does not commit.

        Called when a session binds to a user (signup, sign-in) so rooms
        made before registering stay editable afterwards. Returns the
        number of rooms claimed.
        """
        result = await self.db.execute(
            select(Room)
            .join(RoomOwner, RoomOwner.room_id == Room.room_id)
            .where(RoomOwner.session_id == session_id, RoomOwner.user_id.is_(None))
            .execution_options(populate_existing=True)
        )
        rooms = list(result.scalars().all())
        for room in rooms:
            room.owning_user = user_id
            room.owner.user_id = user_id
            await self.events.append(
                stream_id=room_stream(room.room_id),
                event_type=ROOMS_CLAIMED,
                data={"user_id": user_id},
            )
        await self.db.flush()
        return len(rooms)
