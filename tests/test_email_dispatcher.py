# tests/test_email_dispatcher.py

"""Tests for the SMTP email dispatcher."""

import smtplib
import unittest
from unittest.mock import MagicMock, patch

from src.notifications.email_dispatcher import EmailDispatcher
from src.notifications.templates import RenderedMessage
from src.services.errors import DispatchError

SMTP_PATH = "src.notifications.email_dispatcher.smtplib.SMTP"
SMTP_SSL_PATH = "src.notifications.email_dispatcher.smtplib.SMTP_SSL"

MESSAGE = RenderedMessage(subject="Price drop: Acme", body="Cheaper now.")
RECIPIENTS = ["alice@example.com", "bob@example.com"]


def _dispatcher(**overrides: object) -> EmailDispatcher:
    """A fully configured dispatcher on the STARTTLS port."""
    kwargs: dict[str, object] = {
        "host": "smtp.example.com",
        "port": 587,
        "username": "alerts@example.com",
        "password": "secret",
        "sender": "alerts@example.com",
        "use_tls": True,
        "enabled": True,
    }
    kwargs.update(overrides)
    return EmailDispatcher(**kwargs)  # type: ignore[arg-type]


class TestEmailDispatcher(unittest.TestCase):
    """EmailDispatcher.send() transport selection and errors."""

    @patch(SMTP_PATH)
    def test_starttls_send(self, mock_smtp_cls: MagicMock) -> None:
        """Port 587 uses STARTTLS, logs in and sends one message."""
        _dispatcher().send(MESSAGE, RECIPIENTS)

        mock_smtp_cls.assert_called_once()
        smtp = mock_smtp_cls.return_value.__enter__.return_value
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("alerts@example.com", "secret")
        smtp.send_message.assert_called_once()

    @patch(SMTP_SSL_PATH)
    @patch(SMTP_PATH)
    def test_ssl_send(
        self, mock_smtp_cls: MagicMock, mock_ssl_cls: MagicMock,
    ) -> None:
        """Other ports use implicit TLS."""
        _dispatcher(port=465).send(MESSAGE, RECIPIENTS)

        mock_smtp_cls.assert_not_called()
        smtp = mock_ssl_cls.return_value.__enter__.return_value
        smtp.send_message.assert_called_once()

    @patch(SMTP_PATH)
    def test_smtp_failure_raises(self, mock_smtp_cls: MagicMock) -> None:
        """SMTP errors surface as DispatchError."""
        smtp = mock_smtp_cls.return_value.__enter__.return_value
        smtp.login.side_effect = smtplib.SMTPAuthenticationError(
            535, b"bad credentials"
        )
        with self.assertRaises(DispatchError):
            _dispatcher().send(MESSAGE, RECIPIENTS)

    @patch(SMTP_PATH)
    def test_connection_failure_raises(
        self, mock_smtp_cls: MagicMock,
    ) -> None:
        """Socket errors surface as DispatchError."""
        mock_smtp_cls.side_effect = ConnectionRefusedError("refused")
        with self.assertRaises(DispatchError):
            _dispatcher().send(MESSAGE, RECIPIENTS)

    @patch(SMTP_PATH)
    def test_disabled_sends_nothing(self, mock_smtp_cls: MagicMock) -> None:
        """With email disabled nothing is sent and nothing raises."""
        _dispatcher(enabled=False).send(MESSAGE, RECIPIENTS)
        mock_smtp_cls.assert_not_called()

    @patch(SMTP_PATH)
    def test_no_recipients_is_noop(self, mock_smtp_cls: MagicMock) -> None:
        """An empty recipient list sends nothing."""
        _dispatcher().send(MESSAGE, [])
        mock_smtp_cls.assert_not_called()

    def test_incomplete_config_raises(self) -> None:
        """Missing credentials raise DispatchError."""
        dispatcher = _dispatcher()
        dispatcher.password = ""
        with self.assertRaises(DispatchError):
            dispatcher.send(MESSAGE, RECIPIENTS)


class TestBuild(unittest.TestCase):
    """MIME message construction."""

    def test_recipients_in_bcc(self) -> None:
        """Subscribers are hidden from each other in Bcc."""
        mime = _dispatcher().build(MESSAGE, RECIPIENTS)
        self.assertEqual(mime["Bcc"], "alice@example.com, bob@example.com")
        self.assertEqual(mime["To"], "alerts@example.com")
        self.assertEqual(mime["Subject"], "Price drop: Acme")
        self.assertIn("Cheaper now.", mime.get_content())


if __name__ == "__main__":
    unittest.main()
