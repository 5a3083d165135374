# src/notifications/email_dispatcher.py

"""SMTP dispatcher: one message, many recipients."""

import logging
import smtplib
import ssl
from collections.abc import Sequence
from email.message import EmailMessage

from src.config.settings import Settings
from src.notifications.templates import RenderedMessage
from src.services.errors import DispatchError

logger = logging.getLogger("price_tracker.email")


class EmailDispatcher:
    """Deliver rendered messages over SMTP.

    Recipients go in ``Bcc`` so subscribers of the same product never
    see each other's addresses.  STARTTLS is used on port 587, implicit
    TLS on any other port.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
        sender: str | None = None,
        use_tls: bool | None = None,
        enabled: bool | None = None,
    ) -> None:
        self.host = host or Settings.SMTP_HOST
        self.port = port or Settings.SMTP_PORT
        self.username = username or Settings.SMTP_USERNAME
        self.password = password or Settings.SMTP_PASSWORD
        self.sender = sender or Settings.EMAIL_FROM or self.username
        self.use_tls = (
            Settings.SMTP_USE_TLS if use_tls is None else use_tls
        )
        self.enabled = (
            Settings.EMAIL_ENABLED if enabled is None else enabled
        )

    def build(
        self,
        message: RenderedMessage,
        recipients: Sequence[str],
    ) -> EmailMessage:
        """Build the MIME message for *recipients*."""
        msg = EmailMessage()
        msg["Subject"] = message.subject
        msg["From"] = self.sender
        msg["To"] = self.sender
        msg["Bcc"] = ", ".join(recipients)
        msg.set_content(message.body)
        return msg

    def send(
        self,
        message: RenderedMessage,
        recipients: Sequence[str],
    ) -> None:
        """Send *message* to every address; raise ``DispatchError``."""
        if not recipients:
            return
        if not self.enabled:
            logger.info(
                "Email disabled; skipped '%s' to %d recipient(s)",
                message.subject,
                len(recipients),
            )
            return
        if not (self.host and self.username and self.password and self.sender):
            msg = (
                "Email config incomplete; set SMTP_HOST, SMTP_USERNAME, "
                "SMTP_PASSWORD and EMAIL_FROM"
            )
            raise DispatchError(msg)

        mime = self.build(message, recipients)
        context = ssl.create_default_context()
        try:
            if self.use_tls and self.port == 587:
                with smtplib.SMTP(
                    self.host, self.port, timeout=Settings.SMTP_TIMEOUT,
                ) as smtp:
                    smtp.ehlo()
                    smtp.starttls(context=context)
                    smtp.login(self.username, self.password)
                    smtp.send_message(mime)
            else:
                with smtplib.SMTP_SSL(
                    self.host,
                    self.port,
                    context=context,
                    timeout=Settings.SMTP_TIMEOUT,
                ) as smtp:
                    smtp.login(self.username, self.password)
                    smtp.send_message(mime)
        except (smtplib.SMTPException, OSError) as exc:
            raise DispatchError(
                f"SMTP delivery of '{message.subject}' failed: {exc}"
            ) from exc

        logger.info(
            "Email '%s' sent to %d recipient(s)",
            message.subject,
            len(recipients),
        )
