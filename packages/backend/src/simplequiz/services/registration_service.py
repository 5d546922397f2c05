"""Registration service: two-phase signup.

Phase 1 (start / pre-signup): validate the form, check that the user ID
and mail are free, enforce a cool-down per mail, stage a pre-user row
with a fresh confirmation token and mail the link.

Phase 2 (confirm / signup): trade a live token for a real account. The
user insert, the pre-user delete and the session binding commit together
or not at all; a token works once.

State per mail: NotStarted → Pending → Confirmed | ExpiredOrConsumed.

The cool-down is enforced by the database, not by a read-then-write in
Python: the pre-user row is locked (SELECT … FOR UPDATE) while its
timestamp is checked and refreshed, and two first-time submissions for
the same mail collide on the primary key.
"""

import secrets
from datetime import datetime, timedelta
from typing import Optional

import structlog
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from simplequiz.auth.password import hash_password
from simplequiz.auth.validators import (
    check_mail,
    check_password,
    check_user_id_charset,
    check_user_id_length,
    require,
)
from simplequiz.config import settings
from simplequiz.db.models import PendingRegistration, User, as_utc, utcnow
from simplequiz.errors import (
    DeliveryError,
    DuplicateError,
    InvalidTokenError,
    TooSoonError,
)
from simplequiz.events.store import EventStore, user_stream
from simplequiz.events.types import (
    REGISTRATION_MAIL_FAILED,
    REGISTRATION_STARTED,
    USER_REGISTERED,
)
from simplequiz.log import token_prefix
from simplequiz.notify import MailDeliveryFailed, Mailer, MailMessage
from simplequiz.services.room_service import RoomService
from simplequiz.services.session_store import SessionStore

logger = structlog.get_logger()

USER_ID_TAKEN = "The user ID is already in use."
MAIL_TAKEN = "The mail address is already registered."
INVALID_CONFIRMATION = "The confirmation token is invalid or has expired."


def confirmation_link(token: str) -> str:
    return f"{settings.public_base_url.rstrip('/')}/register?token={token}"


def confirmation_mail(to: str, token: str) -> MailMessage:
    # The copy promises the short link lifetime; lookups enforce
    # confirmation_token_ttl_minutes. Both values are configured separately.
    return MailMessage(
        to=to,
        subject="[simple-quiz] Complete your registration",
        body=(
            "Follow the link below to complete your registration.\n"
            f"The link is valid for {settings.confirmation_link_ttl_minutes} minutes.\n"
            "\n"
            f"{confirmation_link(token)}\n"
        ),
    )


class RegistrationService:
    """Pre-signup, confirmation and user-ID availability."""

    def __init__(self, db: AsyncSession, mailer: Optional[Mailer] = None):
        self.db = db
        self.mailer = mailer
        self.events = EventStore(db)
        self.sessions = SessionStore(db)

    # ─── Phase 1: pre-signup ──────────────────────────────

    async def start(
        self,
        *,
        mail: Optional[str],
        user_id: Optional[str],
        password: Optional[str],
        user_name: Optional[str],
        comment: Optional[str] = None,
        user_icon: Optional[str] = None,
    ) -> str:
        """Stage a registration and mail its confirmation link.

        Returns the confirmation token. The pre-user row is committed
        before the mail goes out and stays if delivery fails.
        """
        if self.mailer is None:
            raise RuntimeError("RegistrationService.start needs a mailer")

        # Order matters: the first failing rule is the one reported.
        user_id = require(user_id, "Please specify a user ID.")
        mail = require(mail, "Please specify a mail address.")
        user_name = require(user_name, "Please specify a user name.")
        password = require(password, "Please specify a password.")
        check_user_id_length(user_id)
        check_password(password)
        check_mail(mail)

        await self._check_available(user_id=user_id, mail=mail)

        now = utcnow()
        token = secrets.token_hex(16)
        try:
            pending = await self._lock_pending(mail)
            if pending is not None and as_utc(pending.updated_at) > self._cooldown_cutoff(now):
                raise TooSoonError(
                    f"Please wait at least {settings.pre_signup_cooldown_seconds} "
                    "seconds before trying again."
                )
            if pending is None:
                pending = PendingRegistration(mail=mail)
                self.db.add(pending)

            pending.user_id = user_id
            pending.password_hash = hash_password(password)
            pending.user_name = user_name
            pending.comment = comment
            pending.user_icon = user_icon
            pending.token = token
            pending.updated_at = now

            await self.events.append(
                stream_id=user_stream(user_id),
                event_type=REGISTRATION_STARTED,
                data={"mail": mail},
            )
            await self.db.commit()
        except IntegrityError:
            # Lost a race: same mail inserted concurrently, or the user ID
            # was reserved by another pending mail in the meantime.
            await self.db.rollback()
            raise await self._conflict_after_race(user_id)
        except TooSoonError:
            await self.db.rollback()
            raise

        logger.info(
            "registration.started",
            user_id=user_id,
            token=token_prefix(token),
        )
        await self._send_confirmation(mail=mail, user_id=user_id, token=token)
        return token

    async def _check_available(self, *, user_id: str, mail: str) -> None:
        result = await self.db.execute(
            select(User.user_id, User.mail).where(
                or_(User.user_id == user_id, User.mail == mail)
            )
        )
        row = result.first()
        if row is not None:
            if row.user_id == user_id:
                raise DuplicateError(USER_ID_TAKEN)
            raise DuplicateError(MAIL_TAKEN)

        # Any pending row holding the ID reserves it, whatever its mail.
        reserved = await self.db.scalar(
            select(PendingRegistration.mail).where(PendingRegistration.user_id == user_id)
        )
        if reserved is not None:
            raise DuplicateError(USER_ID_TAKEN)

    async def _lock_pending(self, mail: str) -> Optional[PendingRegistration]:
        return await self.db.scalar(
            select(PendingRegistration)
            .where(PendingRegistration.mail == mail)
            .with_for_update()
            .execution_options(populate_existing=True)
        )

    def _cooldown_cutoff(self, now: datetime) -> datetime:
        return now - timedelta(seconds=settings.pre_signup_cooldown_seconds)

    async def _conflict_after_race(self, user_id: str) -> Exception:
        reserved = await self.db.scalar(
            select(PendingRegistration.mail).where(PendingRegistration.user_id == user_id)
        )
        if reserved is not None:
            return DuplicateError(USER_ID_TAKEN)
        return TooSoonError(
            f"Please wait at least {settings.pre_signup_cooldown_seconds} "
            "seconds before trying again."
        )

    async def _send_confirmation(self, *, mail: str, user_id: str, token: str) -> None:
        try:
            await self.mailer.send(confirmation_mail(mail, token))
        except MailDeliveryFailed as e:
            logger.warning(
                "registration.mail_failed",
                user_id=user_id,
                mailer=self.mailer.name,
                error=str(e),
            )
            await self.events.append(
                stream_id=user_stream(user_id),
                event_type=REGISTRATION_MAIL_FAILED,
                data={"mailer": self.mailer.name},
            )
            await self.db.commit()
            raise DeliveryError() from e

    # ─── Phase 2: confirmation ────────────────────────────

    async def confirm(self, token: Optional[str], session_id: str) -> str:
        """Turn a live confirmation token into a user bound to session_id.

        Returns the new user ID. All writes share one transaction.
        """
        pending = await self._live_pending(token)
        if pending is None:
            raise InvalidTokenError(INVALID_CONFIRMATION)
        if await self.sessions.resolve(session_id) is None:
            raise InvalidTokenError("The session token is invalid.")

        user_id = pending.user_id
        try:
            user = User(
                user_id=pending.user_id,
                mail=pending.mail,
                password_hash=pending.password_hash,
                user_name=pending.user_name,
                comment=pending.comment,
                user_icon=pending.user_icon,
            )
            self.db.add(user)
            await self.db.delete(pending)
            # The user row must exist before the session can reference it.
            await self.db.flush()

            await self.sessions.bind(session_id, user_id)
            claimed = 0
            if settings.claim_anonymous_rooms:
                claimed = await RoomService(self.db).claim_for_user(session_id, user_id)

            await self.events.append(
                stream_id=user_stream(user_id),
                event_type=USER_REGISTERED,
                data={"mail": user.mail, "rooms_claimed": claimed},
            )
            await self.db.commit()
        except (IntegrityError, StaleDataError) as e:
            # A concurrent confirm consumed the token (or took the ID) first.
            await self.db.rollback()
            logger.info("registration.confirm_lost_race", user_id=user_id, error=type(e).__name__)
            raise InvalidTokenError(INVALID_CONFIRMATION) from e
        except LookupError as e:
            # Signed out between the check above and the bind.
            await self.db.rollback()
            raise InvalidTokenError("The session token is invalid.") from e
        except Exception:
            await self.db.rollback()
            raise

        logger.info("registration.confirmed", user_id=user_id, rooms_claimed=claimed)
        return user_id

    async def lookup_mail(self, token: Optional[str]) -> str:
        """Mail address of a live pre-user, for the confirmation page."""
        pending = await self._live_pending(token)
        if pending is None:
            raise InvalidTokenError(INVALID_CONFIRMATION)
        return pending.mail

    async def _live_pending(self, token: Optional[str]) -> Optional[PendingRegistration]:
        """The pre-user for token, if it was refreshed within the TTL."""
        if not token:
            return None
        cutoff = utcnow() - timedelta(minutes=settings.confirmation_token_ttl_minutes)
        return await self.db.scalar(
            select(PendingRegistration)
            .where(
                PendingRegistration.token == token,
                PendingRegistration.updated_at > cutoff,
            )
            .execution_options(populate_existing=True)
        )

    # ─── Availability ─────────────────────────────────────

    async def can_use(self, user_id: Optional[str]) -> bool:
        """True if user_id is neither registered nor reserved by a pre-user."""
        user_id = require(user_id, "Please specify a user ID.")
        check_user_id_charset(user_id)
        check_user_id_length(user_id)

        registered = await self.db.scalar(
            select(User.user_id).where(User.user_id == user_id)
        )
        if registered is not None:
            return False
        reserved = await self.db.scalar(
            select(PendingRegistration.user_id).where(
                PendingRegistration.user_id == user_id
            )
        )
        return reserved is None
