"""Input format rules shared by pre-signup, sign-in and caniuse.

Each check raises ValidationError with the message the client shows; the
callers decide the order in which rules are applied.
"""

import re

from simplequiz.errors import ValidationError

USER_ID_MIN = 3
USER_ID_MAX = 16
PASSWORD_MIN = 8
PASSWORD_MAX = 32
MAIL_MAX = 254
SESSION_TOKEN_LENGTH = 32

# Printable ASCII from "!" to "~": letters, digits and symbols, no whitespace.
PASSWORD_RE = re.compile(r"^[!-~]+$")
MAIL_RE = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)
USER_ID_CHARSET_RE = re.compile(r"^[a-zA-Z0-9_-]+$")
HEX_TOKEN_RE = re.compile(r"^[0-9a-f]+$")


def is_mail(value: str) -> bool:
    return MAIL_RE.fullmatch(value) is not None


def is_session_token(value: str | None) -> bool:
    """Session tokens are 32 lowercase hex chars (128 bits)."""
    return (
        value is not None
        and len(value) == SESSION_TOKEN_LENGTH
        and HEX_TOKEN_RE.fullmatch(value) is not None
    )


def validate_password(password: str) -> bool:
    """Charset and length rules for passwords."""
    return (
        PASSWORD_RE.fullmatch(password) is not None
        and PASSWORD_MIN <= len(password) <= PASSWORD_MAX
    )


def require(value: str | None, message: str) -> str:
    if value is None or value == "":
        raise ValidationError(message)
    return value


def check_user_id_length(user_id: str) -> None:
    if not USER_ID_MIN <= len(user_id) <= USER_ID_MAX:
        raise ValidationError("The user ID must be 3 to 16 characters long.")


def check_user_id_charset(user_id: str) -> None:
    if USER_ID_CHARSET_RE.fullmatch(user_id) is None:
        raise ValidationError(
            "The user ID may only contain letters, digits, '_' and '-'."
        )


def check_password(password: str) -> None:
    if PASSWORD_RE.fullmatch(password) is None:
        raise ValidationError(
            "The password may only contain ASCII letters, digits and symbols "
            "without whitespace."
        )
    if not PASSWORD_MIN <= len(password) <= PASSWORD_MAX:
        raise ValidationError("The password must be 8 to 32 characters long.")


def check_mail(mail: str) -> None:
    if not is_mail(mail):
        raise ValidationError("The mail address format is invalid.")
    if len(mail) > MAIL_MAX:
        raise ValidationError("The mail address must be at most 254 characters.")


def check_sign_in_identifier(identifier: str) -> None:
    """A mail address, or something that could be a user ID."""
    if not is_mail(identifier) and not USER_ID_MIN <= len(identifier) <= USER_ID_MAX:
        raise ValidationError("The mail address or user ID format is invalid.")
