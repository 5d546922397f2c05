"""Domain errors.

Services raise these; the app factory maps them to responses in one place
(see main.py). Each class carries its taxonomy kind and HTTP status so the
mapping cannot drift per route. Messages are user-facing: never put raw
exception text or internal identifiers in them.
"""


class SimpleQuizError(Exception):
    """Base for every error that maps to a deliberate client response."""

    kind = "internal_error"
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(SimpleQuizError):
    """Malformed or out-of-range input. Checked before any mutation."""

    kind = "validation_error"
    status_code = 400
    default_message = "Invalid request"


class ConflictError(SimpleQuizError):
    kind = "conflict"
    status_code = 400
    default_message = "Conflicting request"


class DuplicateError(ConflictError):
    """user_id or mail already taken."""


class TooSoonError(ConflictError):
    """Pre-signup re-submitted inside the cool-down window."""


class InvalidTokenError(SimpleQuizError):
    """Expired, consumed or unknown session/confirmation token."""

    kind = "invalid_token"
    status_code = 400
    default_message = "The token is invalid"


class ClosedRoomError(SimpleQuizError):
    kind = "closed_room"
    status_code = 400
    default_message = "The room has already been closed"


class UnauthorizedError(SimpleQuizError):
    """Credential mismatch."""

    kind = "unauthorized"
    status_code = 401
    default_message = "Invalid credentials"


class ForbiddenError(SimpleQuizError):
    kind = "forbidden"
    status_code = 403
    default_message = "You do not have permission to access this room"


class NotFoundError(SimpleQuizError):
    kind = "not_found"
    status_code = 404
    default_message = "Not found"


class DependencyFailure(SimpleQuizError):
    kind = "dependency_failure"
    status_code = 500
    default_message = "A downstream service failed"


class DeliveryError(DependencyFailure):
    """The notification collaborator could not send a mail."""

    default_message = "Failed to send the confirmation mail"
