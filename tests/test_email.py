import smtplib
from unittest.mock import patch

import pytest

from app.config import settings
from app.services.email_service import EmailService


@pytest.fixture
def smtp_configured(monkeypatch):
    monkeypatch.setattr(settings, "SENDER_EMAIL", "news@example.com")
    monkeypatch.setattr(settings, "SENDER_PASSWORD", "app-password")


async def test_unconfigured_smtp_is_not_reported_as_sent():
    with patch.object(EmailService, "_send_blocking") as send:
        assert await EmailService.send_email("a@example.com", "Hi", "<p>Hi</p>") is False
    send.assert_not_called()


async def test_send_email_hands_message_to_smtp(smtp_configured):
    with patch.object(EmailService, "_send_blocking") as send:
        assert await EmailService.send_email("a@example.com", "Hi", "<p>Hi</p>") is True
    send.assert_called_once_with("a@example.com", "Hi", "<p>Hi</p>", settings.SITE_NAME)


async def test_smtp_failure_returns_false(smtp_configured):
    with patch.object(
        EmailService, "_send_blocking", side_effect=smtplib.SMTPAuthenticationError(535, b"no")
    ):
        assert await EmailService.send_email("a@example.com", "Hi", "<p>Hi</p>") is False
