"""simple-quiz: quiz rooms with anonymous sessions and mail-confirmed accounts.

The backend issues opaque session tokens, turns them into registered
accounts through a two-phase signup, and gates room reads and writes on
whoever owns the room: a user, or the bare session that created it.
"""

__version__ = "0.1.0"
