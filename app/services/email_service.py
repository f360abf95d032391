"""SMTP / Mailgun transport for notification emails."""
from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Callable

import requests

from ..config import Settings, get_settings
from ..security.secrets import MissingSecretError, is_placeholder, require_secret
from .collaborators import OutboundEmail
from .errors import DeliveryFailure

logger = logging.getLogger(__name__)

MAILGUN_ENDPOINT = "https://api.mailgun.net/v3/{domain}/messages"
TRANSPORT_TIMEOUT = 20

Transport = Callable[[Settings, OutboundEmail], None]


def _secret(name: str) -> str:
    try:
        return require_secret(name)
    except MissingSecretError as exc:
        raise DeliveryFailure(str(exc)) from exc


def _smtp(settings: Settings, email: OutboundEmail) -> None:
    message = EmailMessage()
    message["Subject"] = email.subject
    message["From"] = str(settings.email_from_address)
    message["To"] = email.to
    message.set_content("This message requires an HTML capable email client.")
    message.add_alternative(email.html, subtype="html")

    username = (settings.email_username or "").strip()
    try:
        with smtplib.SMTP(settings.email_host, settings.email_port, timeout=TRANSPORT_TIMEOUT) as client:
            if settings.email_use_tls:
                client.starttls()
            if username:
                client.login(username, _secret("EMAIL_PASSWORD"))
            client.send_message(message)
    except (smtplib.SMTPException, OSError) as exc:  # pragma: no cover - network interactions
        raise DeliveryFailure(f"SMTP delivery to {email.to} failed: {exc}") from exc


def _mailgun(settings: Settings, email: OutboundEmail) -> None:
    try:
        response = requests.post(
            MAILGUN_ENDPOINT.format(domain=settings.mailgun_domain),
            auth=("api", _secret("MAILGUN_API_KEY")),
            data={
                "from": str(settings.email_from_address),
                "to": email.to,
                "subject": email.subject,
                "html": email.html,
            },
            timeout=TRANSPORT_TIMEOUT,
        )
    except requests.RequestException as exc:  # pragma: no cover - network interactions
        raise DeliveryFailure(f"Mailgun request for {email.to} failed: {exc}") from exc

    if response.status_code >= 400:
        logger.error("Mailgun answered %s: %s", response.status_code, response.text)
        raise DeliveryFailure(f"Mailgun delivery failed with status {response.status_code}")


def _transports(settings: Settings) -> list[tuple[str, Transport]]:
    """Configured transports in the order they are tried."""

    if not settings.email_from_address:
        return []
    transports: list[tuple[str, Transport]] = []
    if settings.email_host:
        transports.append(("smtp", _smtp))
    api_key = settings.mailgun_api_key
    if settings.mailgun_domain and api_key and not is_placeholder(api_key):
        transports.append(("mailgun", _mailgun))
    return transports


def email_delivery_configured() -> bool:
    return bool(_transports(get_settings()))


def send_email(to_address: str, subject: str, html: str) -> bool:
    """Deliver an HTML email with the first transport that accepts it.

    SMTP is tried before Mailgun. Returns ``False`` when nothing is configured;
    raises ``DeliveryFailure`` for an incomplete payload or when every
    configured transport fails.
    """

    if not (to_address and subject and html):
        raise DeliveryFailure("Email payload is incomplete")

    settings = get_settings()
    transports = _transports(settings)
    if not transports:
        logger.warning("No email transport configured; not mailing %s", to_address)
        return False

    email = OutboundEmail(to=to_address, subject=subject, html=html)
    failure: DeliveryFailure | None = None
    for name, deliver in transports:
        try:
            deliver(settings, email)
        except DeliveryFailure as exc:
            logger.warning("%s transport failed: %s", name, exc)
            failure = exc
            continue
        logger.info("Mailed %s via %s", to_address, name)
        return True

    assert failure is not None
    raise failure


class TransportEmailSender:
    """Default :class:`EmailSender` backed by the configured transports."""

    def send(self, email: OutboundEmail) -> bool:
        return send_email(email.to, email.subject, email.html)


__all__ = ["TransportEmailSender", "email_delivery_configured", "send_email"]
