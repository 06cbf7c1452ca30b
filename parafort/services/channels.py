# parafort/services/channels.py
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

import requests
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Content, Email, Mail, To

from parafort.core.config import Settings
from parafort.core.exceptions import DeliveryFailure

log = logging.getLogger("parafort.channels")

TELNYX_MESSAGES_URL = "https://api.telnyx.com/v2/messages"


@dataclass(frozen=True)
class DeliveryResult:
    delivered: bool
    error: Optional[str] = None
    provider: str = ""


class SendChannel(ABC):
    """External delivery channel: send(recipient, subject, body, html=None) -> DeliveryResult."""

    name = "channel"

    @abstractmethod
    def send(self, recipient: Optional[str], subject: str, body: str, html: Optional[str] = None) -> DeliveryResult:
        raise NotImplementedError


class LogOnlyChannel(SendChannel):
    """
    Stand-in used when a channel has no credentials configured. The message is
    written to the log and reported as delivered so the pipeline keeps moving.
    """

    def __init__(self, name: str, reason: str = "not configured"):
        self.name = name
        self.reason = reason

    def send(self, recipient: Optional[str], subject: str, body: str, html: Optional[str] = None) -> DeliveryResult:
        log.info(
            "log-only %s delivery (%s) to=%s subject=%r",
            self.name, self.reason, recipient or "-", subject,
        )
        return DeliveryResult(delivered=True, provider="log")


class DashboardChannel(SendChannel):
    """Dashboard reminders are read straight from the database; nothing to push."""

    name = "dashboard"

    def send(self, recipient: Optional[str], subject: str, body: str, html: Optional[str] = None) -> DeliveryResult:
        return DeliveryResult(delivered=True, provider="dashboard")


class SendGridEmailChannel(SendChannel):
    name = "email"

    def __init__(self, api_key: str, from_email: str, from_name: str = "", client: Optional[SendGridAPIClient] = None):
        self.from_email = from_email
        self.from_name = from_name
        self.client = client or SendGridAPIClient(api_key)

    def send(self, recipient: Optional[str], subject: str, body: str, html: Optional[str] = None) -> DeliveryResult:
        if not recipient:
            return DeliveryResult(delivered=False, error="no recipient email", provider="sendgrid")

        msg = Mail(from_email=Email(self.from_email, self.from_name or None), to_emails=To(recipient), subject=subject)
        msg.add_content(Content("text/plain", body))
        if html:
            msg.add_content(Content("text/html", html))
        try:
            response = self.client.send(msg)
        except Exception as exc:  # sendgrid raises python_http_client errors
            raise DeliveryFailure(f"SendGrid error: {exc}") from exc

        status = int(getattr(response, "status_code", 0) or 0)
        if status not in (200, 202):
            return DeliveryResult(delivered=False, error=f"SendGrid returned status {status}", provider="sendgrid")
        return DeliveryResult(delivered=True, provider="sendgrid")


class TelnyxSmsChannel(SendChannel):
    name = "sms"

    def __init__(
        self,
        api_key: str,
        from_number: str,
        messaging_profile_id: Optional[str] = None,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ):
        self.api_key = api_key
        self.from_number = from_number
        self.messaging_profile_id = messaging_profile_id
        self.session = session or requests.Session()
        self.timeout = timeout

    def send(self, recipient: Optional[str], subject: str, body: str, html: Optional[str] = None) -> DeliveryResult:
        if not recipient:
            return DeliveryResult(delivered=False, error="no recipient phone", provider="telnyx")

        payload = {"from": self.from_number, "to": recipient, "text": body}
        if self.messaging_profile_id:
            payload["messaging_profile_id"] = self.messaging_profile_id
        try:
            resp = self.session.post(
                TELNYX_MESSAGES_URL,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise DeliveryFailure(f"Telnyx request failed: {exc}") from exc

        if not resp.ok:
            return DeliveryResult(
                delivered=False,
                error=f"SMS sending failed: {resp.status_code} {resp.reason}",
                provider="telnyx",
            )
        return DeliveryResult(delivered=True, provider="telnyx")


def build_channels(settings: Settings, names: Optional[Iterable[str]] = None) -> Dict[str, SendChannel]:
    """
    Channel registry for the dispatcher. Missing credentials never raise:
    the channel degrades to log-only and a warning is logged once here.
    """
    wanted = set(names or settings.notify_channels) | {"dashboard"}
    channels: Dict[str, SendChannel] = {"dashboard": DashboardChannel()}

    if "email" in wanted:
        if settings.sendgrid_api_key:
            channels["email"] = SendGridEmailChannel(
                settings.sendgrid_api_key, settings.mail_from, settings.mail_from_name
            )
        else:
            log.warning("SENDGRID_API_KEY not set; email reminders will be logged only")
            channels["email"] = LogOnlyChannel("email", "SENDGRID_API_KEY missing")

    if "sms" in wanted:
        if settings.telnyx_api_key and settings.telnyx_phone_number:
            channels["sms"] = TelnyxSmsChannel(
                settings.telnyx_api_key,
                settings.telnyx_phone_number,
                settings.telnyx_messaging_profile_id,
            )
        else:
            log.warning("TELNYX_API_KEY/TELNYX_PHONE_NUMBER not set; SMS reminders will be logged only")
            channels["sms"] = LogOnlyChannel("sms", "Telnyx credentials missing")

    return channels
