"""Email transport selection and failure reporting."""
from __future__ import annotations

from types import SimpleNamespace

import pytest

from app.config import get_settings
from app.services import email_service
from app.services.collaborators import OutboundEmail
from app.services.errors import DeliveryFailure


@pytest.fixture
def configure(monkeypatch):
    def _configure(**overrides) -> None:
        settings = get_settings().model_copy(update=overrides)
        monkeypatch.setattr(email_service, "get_settings", lambda: settings)

    return _configure


@pytest.fixture
def mailgun(configure, monkeypatch) -> list[dict]:
    configure(
        email_host=None,
        mailgun_api_key="key-live-123",
        mailgun_domain="mg.example.com",
        email_from_address="hub@example.com",
    )
    monkeypatch.setenv("MAILGUN_API_KEY", "key-live-123")
    calls: list[dict] = []

    def _post(url, **kwargs):
        calls.append({"url": url, **kwargs})
        return SimpleNamespace(status_code=200, text="ok")

    monkeypatch.setattr(email_service.requests, "post", _post)
    return calls


def test_unconfigured_transport_skips_delivery(configure) -> None:
    configure(email_host=None, mailgun_api_key=None, mailgun_domain=None, email_from_address=None)

    assert email_service.email_delivery_configured() is False
    assert email_service.send_email("client@example.com", "Subject", "<p>Body</p>") is False


def test_incomplete_payload_is_rejected() -> None:
    with pytest.raises(DeliveryFailure):
        email_service.send_email("", "Subject", "<p>Body</p>")


def test_mailgun_receives_html_payload(mailgun) -> None:
    sender = email_service.TransportEmailSender()

    assert sender.send(OutboundEmail(to="client@example.com", subject="Hi - Business Hub", html="<p>Hi</p>")) is True

    [call] = mailgun
    assert call["url"] == "https://api.mailgun.net/v3/mg.example.com/messages"
    assert call["auth"] == ("api", "key-live-123")
    assert call["data"]["html"] == "<p>Hi</p>"
    assert call["data"]["from"] == "hub@example.com"


def test_mailgun_error_status_raises(configure, monkeypatch) -> None:
    configure(
        email_host=None,
        mailgun_api_key="key-live-123",
        mailgun_domain="mg.example.com",
        email_from_address="hub@example.com",
    )
    monkeypatch.setenv("MAILGUN_API_KEY", "key-live-123")
    monkeypatch.setattr(
        email_service.requests,
        "post",
        lambda url, **kwargs: SimpleNamespace(status_code=502, text="bad gateway"),
    )

    with pytest.raises(DeliveryFailure):
        email_service.send_email("client@example.com", "Subject", "<p>Body</p>")
