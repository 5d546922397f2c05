"""Initial schema: users, pre_users, sessions, rooms, room_owners, events

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-19 10:12:44.512301
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7d2b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ─── Identity ────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(16), primary_key=True),
        sa.Column("mail", sa.String(254), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("user_name", sa.Text(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("user_icon", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        "pre_users",
        sa.Column("mail", sa.String(254), primary_key=True),
        sa.Column("user_id", sa.String(16), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("user_name", sa.Text(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("user_icon", sa.Text(), nullable=True),
        sa.Column("token", sa.String(64), nullable=False, unique=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "sessions",
        sa.Column("session_id", sa.String(64), primary_key=True),
        sa.Column("user_id", sa.String(16), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_sessions_user_id", "sessions", ["user_id"])

    # ─── Rooms ───────────────────────────────────────────
    op.create_table(
        "rooms",
        sa.Column("room_id", sa.String(32), primary_key=True),
        sa.Column("room_name", sa.String(30), nullable=False),
        sa.Column("room_icon", sa.String(38), nullable=True),
        sa.Column("explanation", sa.String(100), nullable=True),
        sa.Column("password", sa.String(4), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False),
        sa.Column("is_valid", sa.Boolean(), nullable=False),
        sa.Column("owning_user", sa.String(16), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("owning_session", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_rooms_valid_updated", "rooms", ["is_valid", "updated_at"])
    op.create_table(
        "room_owners",
        sa.Column("room_id", sa.String(32), sa.ForeignKey("rooms.room_id"), primary_key=True),
        sa.Column("user_id", sa.String(16), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("session_id", sa.String(64), nullable=False),
    )
    op.create_index("ix_room_owners_user_id", "room_owners", ["user_id"])
    op.create_index("ix_room_owners_session_id", "room_owners", ["session_id"])

    # ─── Audit log ───────────────────────────────────────
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("stream_id", sa.String(100), nullable=False),
        sa.Column("type", sa.String(100), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("meta", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_events_stream", "events", ["stream_id", "id"])
    op.create_index("ix_events_type", "events", ["type"])


def downgrade() -> None:
    op.drop_index("ix_events_type", table_name="events")
    op.drop_index("ix_events_stream", table_name="events")
    op.drop_table("events")
    op.drop_index("ix_room_owners_session_id", table_name="room_owners")
    op.drop_index("ix_room_owners_user_id", table_name="room_owners")
    op.drop_table("room_owners")
    op.drop_index("ix_rooms_valid_updated", table_name="rooms")
    op.drop_table("rooms")
    op.drop_index("ix_sessions_user_id", table_name="sessions")
    op.drop_table("sessions")
    op.drop_table("pre_users")
    op.drop_table("users")
