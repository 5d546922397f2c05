"""Event type constants.

Centralizing event types as constants prevents typos and makes it easy
to discover everything the audit log can contain.
"""

# ─── Sessions ─────────────────────────────────────────────

SESSION_ISSUED = "session.issued"
SESSION_BOUND = "session.bound"
SESSION_INVALIDATED = "session.invalidated"

# ─── Registration + sign-in ──────────────────────────────

REGISTRATION_STARTED = "registration.started"
REGISTRATION_MAIL_FAILED = "registration.mail_failed"
USER_REGISTERED = "user.registered"
USER_SIGNED_IN = "user.signed_in"
PASSWORD_REHASHED = "user.password_rehashed"

# ─── Rooms ────────────────────────────────────────────────

ROOM_CREATED = "room.created"
ROOM_UPDATED = "room.updated"
ROOM_CLOSED = "room.closed"
ROOMS_CLAIMED = "room.claimed"
