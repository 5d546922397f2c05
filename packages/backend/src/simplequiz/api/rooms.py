"""Room API routes.

Reads take an optional identity (anonymous visitors see public rooms);
writes need an existing session. Every decision is made by RoomService
through auth/access.py.
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from simplequiz.auth.access import owner_matches
from simplequiz.auth.dependencies import get_identity, require_session
from simplequiz.auth.identity import Identity
from simplequiz.db.engine import get_db
from simplequiz.db.models import Room
from simplequiz.schemas.room import RoomCreated, RoomDetail, RoomSummary, RoomWrite
from simplequiz.services.room_service import RoomFields, RoomService, room_uri

router = APIRouter(prefix="/room")


def _svc(db: AsyncSession = Depends(get_db)) -> RoomService:
    return RoomService(db)


def _fields(body: RoomWrite) -> RoomFields:
    return RoomFields(
        room_name=body.room_name,
        room_icon=body.room_icon,
        explanation=body.explanation,
        password=body.password,
        is_public=body.is_public,
    )


def _summary(room: Room) -> RoomSummary:
    owner = room.owner_user
    return RoomSummary(
        room_id=room.room_id,
        room_name=room.room_name,
        room_icon=room.room_icon,
        explanation=room.explanation,
        is_public=room.is_public,
        has_password=room.password is not None,
        created_at=room.created_at,
        updated_at=room.updated_at,
        owner_name=owner.user_name if owner else None,
        owner_icon=owner.user_icon if owner else None,
    )


def _detail(room: Room, identity: Identity) -> RoomDetail:
    return RoomDetail(
        **_summary(room).model_dump(),
        is_owner=owner_matches(room.owner, identity),
    )


# Declared before /{room_id} so "list" is not taken for a room ID.
@router.get("/list", response_model=list[RoomSummary])
async def list_rooms(
    since: int = 0,
    per_page: int = 30,
    identity: Identity = Depends(get_identity),
    svc: RoomService = Depends(_svc),
):
    """Open rooms visible to the caller, newest update first."""
    rooms = await svc.list_rooms(identity, since=since, per_page=per_page)
    return [_summary(r) for r in rooms]


@router.post("", response_model=RoomCreated, status_code=201)
async def create_room(
    body: RoomWrite,
    response: Response,
    identity: Identity = Depends(require_session),
    svc: RoomService = Depends(_svc),
):
    room = await svc.create(identity, _fields(body))
    uri = room_uri(room.room_id)
    response.headers["Location"] = uri
    return RoomCreated(room_id=room.room_id, uri=uri)


@router.get("/{room_id}", response_model=RoomDetail)
async def get_room(
    room_id: str,
    identity: Identity = Depends(get_identity),
    svc: RoomService = Depends(_svc),
):
    room = await svc.detail(room_id, identity)
    return _detail(room, identity)


@router.put("/{room_id}")
async def update_room(
    room_id: str,
    body: RoomWrite,
    identity: Identity = Depends(require_session),
    svc: RoomService = Depends(_svc),
):
    await svc.update(room_id, identity, _fields(body))
    return {}


@router.post("/{room_id}/close")
async def close_room(
    room_id: str,
    identity: Identity = Depends(require_session),
    svc: RoomService = Depends(_svc),
):
    """Close a room for good. Closed rooms disappear from listings."""
    await svc.close(room_id, identity)
    return {}
