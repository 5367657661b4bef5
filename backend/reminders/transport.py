"""
Outbound messaging for reminders.

Two transports share one interface: send(destination, body) returns a
SendReceipt or raises TransportError.
- ResendTransport: email via the Resend API
- WhatsAppTransport: WhatsApp via Twilio's Messages API
"""

from typing import Any, Protocol

import requests
import resend

from config.settings import ReminderSettings
from models import SendReceipt
from shared.errors import TransportError

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"


class Transport(Protocol):
    def send(
        self,
        destination: str,
        body: str,
        subject: str | None = None,
        html: str | None = None,
    ) -> SendReceipt: ...


class ResendTransport:
    """Send reminders as email through Resend."""

    def __init__(self, api_key: str, from_email: str, sender_name: str = "Birthday Reminders"):
        resend.api_key = api_key
        self.from_address = f"{sender_name} <{from_email}>"

    def send(
        self,
        destination: str,
        body: str,
        subject: str | None = None,
        html: str | None = None,
    ) -> SendReceipt:
        params: dict[str, Any] = {
            "from": self.from_address,
            "to": destination,
            "subject": subject or "Birthday reminder",
            "text": body,
        }
        if html:
            params["html"] = html

        try:
            response = resend.Emails.send(params)
        except Exception as e:
            code = getattr(e, "code", None) or "RESEND_ERROR"
            raise TransportError(str(code), str(e)) from e

        email_id = response.get("id") if response else None
        if not email_id:
            raise TransportError("NO_RECEIPT", "Resend accepted the request but returned no id")

        return SendReceipt(receipt_id=email_id, status="sent")


class WhatsAppTransport:
    """Send reminders over WhatsApp through the Twilio REST API."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = _whatsapp_address(from_number)
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def messages_url(self) -> str:
        return f"{TWILIO_API_BASE}/Accounts/{self.account_sid}/Messages.json"

    def send(
        self,
        destination: str,
        body: str,
        subject: str | None = None,
        html: str | None = None,
    ) -> SendReceipt:
        # WhatsApp has no subject line; the subject is already part of the body
        try:
            response = self.session.post(
                self.messages_url,
                data={
                    "From": self.from_number,
                    "To": _whatsapp_address(destination),
                    "Body": body,
                },
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransportError("NETWORK_ERROR", str(e)) from e

        if not response.ok:
            raise TransportError(*_twilio_error(response))

        data = response.json()
        return SendReceipt(receipt_id=data["sid"], status=data.get("status", "queued"))

    def account_status(self) -> str:
        """Fetch the Twilio account status ('active', 'suspended'...), verifying the credentials."""
        try:
            response = self.session.get(
                f"{TWILIO_API_BASE}/Accounts/{self.account_sid}.json",
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransportError("NETWORK_ERROR", str(e)) from e

        if not response.ok:
            raise TransportError(*_twilio_error(response))

        return response.json().get("status", "unknown")


def _whatsapp_address(number: str) -> str:
    number = number.strip()
    return number if number.startswith("whatsapp:") else f"whatsapp:{number}"


def _twilio_error(response: requests.Response) -> tuple[str, str]:
    """Extract (code, message) from a Twilio error response."""
    try:
        payload = response.json()
    except ValueError:
        return str(response.status_code), response.text[:200] or response.reason

    code = payload.get("code") or response.status_code
    message = payload.get("message") or response.reason or "Unknown Twilio error"
    return str(code), message


def build_transport(settings: ReminderSettings) -> Transport:
    """Create the transport selected in settings."""
    if settings.transport == "whatsapp":
        return WhatsAppTransport(
            account_sid=settings.twilio_account_sid or "",
            auth_token=settings.twilio_auth_token or "",
            from_number=settings.twilio_from_number or "",
            timeout=settings.request_timeout_seconds,
        )

    return ResendTransport(api_key=settings.resend_api_key or "", from_email=settings.from_email)
