"""Session store: opaque bearer tokens and their optional user binding.

Tokens are 128 random bits, hex-encoded. A session row with no user_id
is a valid anonymous principal; a token with no row at all is not a
session. bind() only stages the change so it can share a transaction
with whatever caused it (signup confirmation, sign-in).
"""

import secrets
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from simplequiz.config import settings
from simplequiz.db.models import Session
from simplequiz.events.store import EventStore, session_stream
from simplequiz.events.types import (
    SESSION_BOUND,
    SESSION_INVALIDATED,
    SESSION_ISSUED,
)
from simplequiz.log import token_prefix

logger = structlog.get_logger()


def new_token() -> str:
    return secrets.token_hex(settings.session_token_bytes)


class SessionStore:
    """Issue, resolve, bind and invalidate sessions."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.events = EventStore(db)

    async def issue(self) -> Session:
        """Persist a new unbound session and commit."""
        session = Session(session_id=new_token())
        self.db.add(session)
        await self.db.flush()
        await self.events.append(
            stream_id=session_stream(session.session_id),
            event_type=SESSION_ISSUED,
            data={},
        )
        await self.db.commit()
        logger.info("auth.session_issued", session=token_prefix(session.session_id))
        return session

    async def resolve(self, token: str) -> Optional[Session]:
        """Return the session row, or None if the token matches nothing."""
        return await self.db.get(Session, token, populate_existing=True)

    async def bind(self, token: str, user_id: str) -> None:
        """Attach a user to an existing session. Does not commit.

        Raises LookupError if the session is gone, so the caller's
        transaction is rolled back instead of committing half a binding.
        """
        session = await self.resolve(token)
        if session is None:
            raise LookupError("session vanished while binding")
        session.user_id = user_id
        await self.db.flush()
        await self.events.append(
            stream_id=session_stream(token),
            event_type=SESSION_BOUND,
            data={"user_id": user_id},
        )

    async def invalidate(self, token: str) -> None:
        """Delete the session. Unknown tokens are a no-op."""
        session = await self.resolve(token)
        if session is not None:
            await self.db.delete(session)
            await self.events.append(
                stream_id=session_stream(token),
                event_type=SESSION_INVALIDATED,
                data={},
            )
            await self.db.commit()
        logger.info(
            "auth.session_invalidated",
            session=token_prefix(token),
            existed=session is not None,
        )
