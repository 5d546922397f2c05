"""Event store: append-only audit log.

Every identity or room state change also INSERTs an event describing it.
Appends join the caller's transaction: an event is only visible if the
change it describes was committed with it.

Streams are named "<kind>:<key>": "user:alice", "room:<room_id>". Session
streams use the token prefix only, so the audit log never holds a usable
bearer credential.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from simplequiz.db.models import Event
from simplequiz.log import token_prefix


def user_stream(user_id: str) -> str:
    return f"user:{user_id}"


def room_stream(room_id: str) -> str:
    return f"room:{room_id}"


def session_stream(session_id: str) -> str:
    return f"session:{token_prefix(session_id)}"


class EventStore:
    """Append-only event store backed by the relational database."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def append(
        self,
        stream_id: str,
        event_type: str,
        data: dict,
        metadata: dict | None = None,
    ) -> Event:
        """Stage an event in the current transaction. The caller commits."""
        event = Event(
            stream_id=stream_id,
            type=event_type,
            data=data,
            meta=metadata or {},
        )
        self.db.add(event)
        await self.db.flush()
        return event

    async def read_stream(self, stream_id: str, limit: int = 100) -> list[Event]:
        result = await self.db.execute(
            select(Event)
            .where(Event.stream_id == stream_id)
            .order_by(Event.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count(self, event_type: str) -> int:
        """Number of stored events of one type."""
        result = await self.db.execute(
            select(func.count(Event.id)).where(Event.type == event_type)
        )
        return result.scalar_one()
