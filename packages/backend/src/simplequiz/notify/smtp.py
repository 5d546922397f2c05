"""SMTP and log-only mailers."""

import asyncio
import smtplib
from email.message import EmailMessage

import structlog

from simplequiz.notify.base import MailDeliveryFailed, Mailer, MailMessage

logger = structlog.get_logger()


class SmtpMailer(Mailer):
    """Sends through an SMTP relay.

    smtplib is blocking, so the exchange runs in a worker thread with the
    configured socket timeout.
    """

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        user: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.user = user
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "smtp"

    async def send(self, message: MailMessage) -> None:
        try:
            await asyncio.to_thread(self._send_sync, message)
        except (smtplib.SMTPException, OSError) as e:
            raise MailDeliveryFailed(f"{type(e).__name__}: {e}") from e

    def _send_sync(self, message: MailMessage) -> None:
        mail = EmailMessage()
        mail["From"] = self.sender
        mail["To"] = message.to
        mail["Subject"] = message.subject
        mail.set_content(message.body)

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.user:
                smtp.login(self.user, self.password)
            smtp.send_message(mail)


class LogMailer(Mailer):
    """Development mailer: writes the mail to the log instead of sending it."""

    @property
    def name(self) -> str:
        return "log"

    async def send(self, message: MailMessage) -> None:
        logger.info(
            "mail.logged",
            to=message.to,
            subject=message.subject,
            body=message.body,
        )
