"""Pydantic schemas for sessions, registration and sign-in.

Request fields are optional on purpose: presence and format are checked by
the services, in a fixed order, so the client always gets the first rule
that failed rather than a list of pydantic errors.
"""

from typing import Optional

from pydantic import AliasChoices, BaseModel, Field


# ─── Session ──────────────────────────────────────────────


class SessionIssued(BaseModel):
    token: str


class SignInStatus(BaseModel):
    is_login: bool
    user_id: Optional[str] = None


# ─── Registration ────────────────────────────────────────


class PreSignupRequest(BaseModel):
    mail: Optional[str] = None
    user_id: Optional[str] = None
    password: Optional[str] = None
    user_name: Optional[str] = None
    comment: Optional[str] = None
    user_icon: Optional[str] = None


class SignupRequest(BaseModel):
    token: Optional[str] = None


class CanIUse(BaseModel):
    caniuse: bool


class PendingMail(BaseModel):
    mail: str


# ─── Sign-in ─────────────────────────────────────────────


class SignInRequest(BaseModel):
    """identifier is a mail address or a user ID; older clients send it as uid."""

    identifier: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("identifier", "uid")
    )
    password: Optional[str] = None
