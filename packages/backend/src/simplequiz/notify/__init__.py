"""Outbound notifications (confirmation mails).

    mailer = get_mailer()
    await mailer.send(MailMessage(to=..., subject=..., body=...))

With SIMPLEQUIZ_SMTP_HOST unset the log-only mailer is used, which is
what development and the test suite run against.
"""

from functools import lru_cache

from simplequiz.config import settings
from simplequiz.notify.base import MailDeliveryFailed, Mailer, MailMessage
from simplequiz.notify.smtp import LogMailer, SmtpMailer

__all__ = [
    "LogMailer",
    "MailDeliveryFailed",
    "MailMessage",
    "Mailer",
    "SmtpMailer",
    "get_mailer",
]


@lru_cache
def get_mailer() -> Mailer:
    """FastAPI dependency: the configured mail transport."""
    if not settings.smtp_host:
        return LogMailer()
    return SmtpMailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        sender=settings.mail_from,
        user=settings.smtp_user,
        password=settings.smtp_password,
        use_tls=settings.smtp_use_tls,
        timeout=settings.smtp_timeout_seconds,
    )
