"""Auth API: sessions, two-phase signup, sign-in and sign-out.

- GET    /auth/session_id  → issue an anonymous session token
- GET    /auth/is_signin   → is the caller's session bound to a user?
- POST   /auth/pre_signup  → stage a registration and mail the link
- POST   /auth/signup      → confirm the link, bind the caller's session
- POST   /auth/signin      → verify credentials, bind the caller's session
- DELETE /auth/signout     → drop the caller's session
- GET    /auth/caniuse     → is a user ID still free?
- GET    /auth/mail        → mail address behind a live confirmation token

Services raise SimpleQuizError subclasses; the handlers in main.py turn
them into responses, so routes stay free of status-code logic.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from simplequiz.auth.dependencies import get_token, require_session
from simplequiz.auth.identity import Identity
from simplequiz.db.engine import get_db
from simplequiz.notify import Mailer, get_mailer
from simplequiz.schemas.auth import (
    CanIUse,
    PendingMail,
    PreSignupRequest,
    SessionIssued,
    SignInRequest,
    SignInStatus,
    SignupRequest,
)
from simplequiz.services.registration_service import RegistrationService
from simplequiz.services.session_store import SessionStore
from simplequiz.services.signin_service import SignInService

router = APIRouter(prefix="/auth")


# ─── Sessions ────────────────────────────────────────────


@router.get("/session_id", response_model=SessionIssued)
async def new_session(db: AsyncSession = Depends(get_db)):
    session = await SessionStore(db).issue()
    return SessionIssued(token=session.session_id)


@router.get("/is_signin", response_model=SignInStatus)
async def is_signin(identity: Identity = Depends(require_session)):
    return SignInStatus(is_login=identity.is_registered, user_id=identity.user_id)


@router.delete("/signout")
async def signout(
    token: Optional[str] = Depends(get_token),
    db: AsyncSession = Depends(get_db),
):
    """Invalidate the caller's session. Unknown or missing tokens are a no-op."""
    if token is not None:
        await SessionStore(db).invalidate(token)
    return {}


# ─── Registration ───────────────────────────────────────


@router.post("/pre_signup")
async def pre_signup(
    body: PreSignupRequest,
    db: AsyncSession = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    await RegistrationService(db, mailer).start(
        mail=body.mail,
        user_id=body.user_id,
        password=body.password,
        user_name=body.user_name,
        comment=body.comment,
        user_icon=body.user_icon,
    )
    return {}


@router.post("/signup")
async def signup(
    body: SignupRequest,
    identity: Identity = Depends(require_session),
    db: AsyncSession = Depends(get_db),
):
    await RegistrationService(db).confirm(body.token, identity.session_id)
    return {}


@router.get("/caniuse", response_model=CanIUse)
async def caniuse(user_id: Optional[str] = None, db: AsyncSession = Depends(get_db)):
    return CanIUse(caniuse=await RegistrationService(db).can_use(user_id))


@router.get("/mail", response_model=PendingMail)
async def pending_mail(token: Optional[str] = None, db: AsyncSession = Depends(get_db)):
    """Mail address of a pending registration, for the confirmation page."""
    return PendingMail(mail=await RegistrationService(db).lookup_mail(token))


# ─── Sign-in ────────────────────────────────────────────


@router.post("/signin")
async def signin(
    body: SignInRequest,
    identity: Identity = Depends(require_session),
    db: AsyncSession = Depends(get_db),
):
    await SignInService(db).check_sign_in(body.identifier, body.password, identity.session_id)
    return {}
