"""Sign-in: verify credentials and bind the caller's session to the user."""

from typing import Optional

import structlog
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from simplequiz.auth.password import hash_password, needs_upgrade, verify_password
from simplequiz.auth.validators import check_password, check_sign_in_identifier, require
from simplequiz.config import settings
from simplequiz.db.models import User
from simplequiz.errors import InvalidTokenError, UnauthorizedError
from simplequiz.events.store import EventStore, user_stream
from simplequiz.events.types import PASSWORD_REHASHED, USER_SIGNED_IN
from simplequiz.log import token_prefix
from simplequiz.services.room_service import RoomService
from simplequiz.services.session_store import SessionStore

logger = structlog.get_logger()


class SignInService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.events = EventStore(db)
        self.sessions = SessionStore(db)

    async def check_sign_in(
        self,
        identifier: Optional[str],
        password: Optional[str],
        session_id: str,
    ) -> str:
        """Return the user ID whose user_id or mail is identifier.

        The identifier is tried against both columns. It can match one
        account by user_id and another by mail; the first whose password
        verifies wins.
        """
        identifier = require(identifier, "Please specify a mail address or user ID.")
        password = require(password, "Please specify a password.")
        check_sign_in_identifier(identifier)
        check_password(password)

        if await self.sessions.resolve(session_id) is None:
            raise InvalidTokenError("The session token is invalid.")

        result = await self.db.execute(
            select(User)
            .where(or_(User.user_id == identifier, User.mail == identifier))
            .execution_options(populate_existing=True)
        )
        user = next(
            (u for u in result.scalars() if verify_password(password, u.password_hash)),
            None,
        )
        if user is None:
            logger.info("auth.signin_failed", session=token_prefix(session_id))
            raise UnauthorizedError("The mail address, user ID or password is incorrect.")

        try:
            if needs_upgrade(user.password_hash):
                user.password_hash = hash_password(password)
                await self.events.append(
                    stream_id=user_stream(user.user_id),
                    event_type=PASSWORD_REHASHED,
                    data={"scheme": "bcrypt"},
                )

            await self.sessions.bind(session_id, user.user_id)
            claimed = 0
            if settings.claim_anonymous_rooms:
                claimed = await RoomService(self.db).claim_for_user(session_id, user.user_id)

            await self.events.append(
                stream_id=user_stream(user.user_id),
                event_type=USER_SIGNED_IN,
                data={"session": token_prefix(session_id), "rooms_claimed": claimed},
            )
            await self.db.commit()
        except LookupError as e:
            await self.db.rollback()
            raise InvalidTokenError("The session token is invalid.") from e
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "auth.signed_in",
            user_id=user.user_id,
            session=token_prefix(session_id),
            rooms_claimed=claimed,
        )
        return user.user_id
