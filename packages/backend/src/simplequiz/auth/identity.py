"""The acting identity behind a request.

A session token resolves to exactly one of three kinds:

- registered: the session is bound to a user account
- anonymous: the session exists but is not bound; the token itself is
  the principal
- unauthenticated: no token, or a token that matches no session

Authorization code branches on ``kind``. A registered identity still
remembers the session it came from, but that session is not an authority
for rooms once a user is involved (see auth/access.py).
"""

import enum
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from simplequiz.services.session_store import SessionStore


class IdentityKind(str, enum.Enum):
    registered = "registered"
    anonymous = "anonymous"
    unauthenticated = "unauthenticated"


@dataclass(frozen=True)
class Identity:
    kind: IdentityKind
    user_id: Optional[str] = None
    session_id: Optional[str] = None

    @classmethod
    def registered(cls, user_id: str, session_id: str) -> "Identity":
        return cls(IdentityKind.registered, user_id=user_id, session_id=session_id)

    @classmethod
    def anonymous(cls, session_id: str) -> "Identity":
        return cls(IdentityKind.anonymous, session_id=session_id)

    @classmethod
    def unauthenticated(cls) -> "Identity":
        return cls(IdentityKind.unauthenticated)

    @property
    def is_registered(self) -> bool:
        return self.kind is IdentityKind.registered

    @property
    def is_anonymous(self) -> bool:
        return self.kind is IdentityKind.anonymous

    @property
    def has_session(self) -> bool:
        return self.kind is not IdentityKind.unauthenticated


async def resolve_identity(db: AsyncSession, token: Optional[str]) -> Identity:
    """Map a session token to Registered, Anonymous or Unauthenticated."""
    if not token:
        return Identity.unauthenticated()
    session = await SessionStore(db).resolve(token)
    if session is None:
        return Identity.unauthenticated()
    if session.user_id is not None:
        return Identity.registered(session.user_id, session.session_id)
    return Identity.anonymous(session.session_id)
