"""FastAPI auth dependencies.

The session token travels as the raw value of the Authorization header
(no scheme). Two flavours:

- get_identity: optional. No header → Unauthenticated; a token that matches
  no session also resolves to Unauthenticated.
- require_session: mandatory. The token must name an existing session,
  bound or not.

A header that is present but not shaped like a session token is always
rejected with InvalidTokenError.
"""

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from simplequiz.auth.identity import Identity, resolve_identity
from simplequiz.auth.validators import is_session_token
from simplequiz.db.engine import get_db
from simplequiz.errors import InvalidTokenError


async def get_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """The raw session token, or None when the header is absent."""
    if authorization is None or authorization == "":
        return None
    if not is_session_token(authorization):
        raise InvalidTokenError("The session token format is invalid.")
    return authorization


async def get_identity(
    token: Optional[str] = Depends(get_token),
    db: AsyncSession = Depends(get_db),
) -> Identity:
    return await resolve_identity(db, token)


async def require_session(
    identity: Identity = Depends(get_identity),
) -> Identity:
    """Identity of an existing session (anonymous or registered)."""
    if not identity.has_session:
        raise InvalidTokenError("The session token is invalid.")
    return identity
