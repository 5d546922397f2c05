"""Pydantic schemas for rooms."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class RoomWrite(BaseModel):
    """Body of POST /room and PUT /room/{room_id}."""

    room_name: Optional[str] = None
    room_icon: Optional[str] = None
    explanation: Optional[str] = None
    password: Optional[str] = None
    is_public: bool = True


class RoomCreated(BaseModel):
    room_id: str
    uri: str


class RoomSummary(BaseModel):
    """A listed room with its owner's public profile. The room password is never returned."""

    room_id: str
    room_name: str
    room_icon: Optional[str] = None
    explanation: Optional[str] = None
    is_public: bool
    has_password: bool
    created_at: datetime
    updated_at: datetime
    owner_name: Optional[str] = None
    owner_icon: Optional[str] = None


class RoomDetail(RoomSummary):
    is_owner: bool
