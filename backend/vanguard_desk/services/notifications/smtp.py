import logging
import smtplib
from email.mime.text import MIMEText

from vanguard_desk.core.config import settings
from vanguard_desk.services.notifications.base import BaseNotifier

logger = logging.getLogger(__name__)


class SMTPNotifier(BaseNotifier):
    """Plain SMTP with STARTTLS, authenticated as the configured mailbox."""

    def __init__(self) -> None:
        self._host = settings.smtp_host
        self._port = settings.smtp_port
        self._user = settings.smtp_user
        self._password = settings.smtp_pass
        self._sender = settings.mail_from or settings.smtp_user

    @property
    def is_configured(self) -> bool:
        return bool(self._host and self._user)

    def send(self, to: str, subject: str, html: str) -> None:
        message = MIMEText(html, "html", "utf-8")
        message["From"] = self._sender
        message["To"] = to
        message["Subject"] = subject

        with smtplib.SMTP(self._host, self._port, timeout=15) as server:
            server.starttls()
            if self._password:
                server.login(self._user, self._password)
            server.sendmail(self._sender, [to], message.as_string())
        logger.debug(f"Sent '{subject}' to {to}")
