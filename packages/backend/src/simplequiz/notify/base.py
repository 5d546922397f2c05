"""Mailer base: pluggable interface for outbound mail.

The registration flow only knows this interface. Which transport is used
(SMTP, log-only, a capturing stub in tests) is decided by get_mailer().
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class MailMessage:
    """One outbound plain-text mail."""

    to: str
    subject: str
    body: str


class MailDeliveryFailed(Exception):
    """Raised by a mailer when the message could not be handed off."""


class Mailer(ABC):
    """Abstract base for mail transports."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short backend name for logs ("smtp", "log")."""

    @abstractmethod
    async def send(self, message: MailMessage) -> None:
        """Deliver the message or raise MailDeliveryFailed.

        Implementations own their timeout; callers never wait indefinitely.
        """
