"""SQLAlchemy ORM models: single source of truth for the database schema.

Declarative SQLAlchemy 2.0 mapping (Mapped[] + mapped_column). Identifiers
are the 32-char hex strings the API hands out, so primary keys are plain
strings rather than native UUIDs; the schema stays portable between
Postgres (deployment) and SQLite (tests).

Timestamps that drive expiry or throttling (pre_users.updated_at) are set
from Python, not the database clock, so the comparison cut-offs computed in
the services use the same clock that wrote the row.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps (SQLite drops the offset on read)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ══════════════════════════════════════════════════════════════
# Identity: users, pending registrations, sessions
# ══════════════════════════════════════════════════════════════


class User(Base):
    """A registered account. Only ever created by confirming a pre-user."""

    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(String(16), primary_key=True)
    mail: Mapped[str] = mapped_column(String(254), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    user_name: Mapped[str] = mapped_column(Text, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_icon: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )


class PendingRegistration(Base):
    """A staged signup waiting for its mail link to be followed.

    Keyed by mail: a second pre-signup for the same address refreshes this
    row instead of adding one, which is also what serializes the cool-down
    check (see RegistrationService.start). user_id is unique so a pending
    row reserves the id until it is confirmed or replaced.
    """

    __tablename__ = "pre_users"

    mail: Mapped[str] = mapped_column(String(254), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    user_name: Mapped[str] = mapped_column(Text, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_icon: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class Session(Base):
    """An opaque bearer session. user_id is NULL while anonymous."""

    __tablename__ = "sessions"

    session_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[Optional[str]] = mapped_column(
        String(16), ForeignKey("users.user_id"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )


# ══════════════════════════════════════════════════════════════
# Rooms
# ══════════════════════════════════════════════════════════════


class Room(Base):
    """A quiz room.

    owning_session is always recorded; owning_user takes precedence when
    set. is_valid=False means the room was closed, which is terminal.
    """

    __tablename__ = "rooms"
    __table_args__ = (
        Index("ix_rooms_valid_updated", "is_valid", "updated_at"),
    )

    room_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    room_name: Mapped[str] = mapped_column(String(30), nullable=False)
    room_icon: Mapped[Optional[str]] = mapped_column(String(38), nullable=True)
    explanation: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    password: Mapped[Optional[str]] = mapped_column(String(4), nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_valid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # No FK on owning_session: sessions are deleted on sign-out, ownership is not.
    owning_user: Mapped[Optional[str]] = mapped_column(
        String(16), ForeignKey("users.user_id"), nullable=True
    )
    owning_session: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # Relationships
    owner: Mapped["RoomOwner"] = relationship(back_populates="room", lazy="joined")
    owner_user: Mapped[Optional["User"]] = relationship(lazy="joined")


class RoomOwner(Base):
    """The creator's identity pair. Access control reads this record."""

    __tablename__ = "room_owners"

    room_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("rooms.room_id"), primary_key=True
    )
    user_id: Mapped[Optional[str]] = mapped_column(
        String(16), ForeignKey("users.user_id"), nullable=True, index=True
    )
    session_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    room: Mapped["Room"] = relationship(back_populates="owner")


# ══════════════════════════════════════════════════════════════
# Audit log
# ══════════════════════════════════════════════════════════════


class Event(Base):
    """Append-only audit record of identity and room state changes.

    data never holds passwords, hashes or full tokens.
    """

    __tablename__ = "events"
    __table_args__ = (
        Index("ix_events_stream", "stream_id", "id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    stream_id: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    meta: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
