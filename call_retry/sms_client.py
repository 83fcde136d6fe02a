"""
SMS client (Twilio).

Used as the fallback channel once automatic call retries are exhausted.
"""

from typing import Any, Optional

from twilio.rest import Client

from call_retry.config import config
from call_retry.logging_config import get_logger

logger = get_logger(__name__)


class SMSNotConfiguredError(RuntimeError):
    """Raised when sending without Twilio SMS credentials."""


FALLBACK_TEMPLATE = """Hi {first_name},

We tried calling you {attempts} times about your consultation with {company_name}.

Book your appointment: {booking_link}
Call us: {company_phone}

- {company_name} Team"""


class SMSClient:
    """Thin wrapper around the Twilio messages API."""

    def __init__(self, client: Optional[Any] = None, from_number: Optional[str] = None):
        self.from_number = from_number or config.TWILIO_PHONE_NUMBER
        self.client = client
        if self.client is None and config.has_sms_config():
            self.client = Client(config.TWILIO_ACCOUNT_SID, config.TWILIO_AUTH_TOKEN)

    def is_configured(self) -> bool:
        return self.client is not None and bool(self.from_number)

    def send_sms(self, to: str, body: str) -> dict:
        """Send a single SMS. Raises on Twilio errors."""
        if not self.is_configured():
            logger.error("sms_client_not_configured", to=to)
            raise SMSNotConfiguredError("SMS client not configured")

        message = self.client.messages.create(body=body, from_=self.from_number, to=to)
        logger.info("sms_sent", to=to, sid=message.sid)
        return {
            "success": True,
            "sid": message.sid,
            "to": to,
            "status": message.status,
        }

    def send_fallback_sms(self, to: str, first_name: str = "there", attempts: int = 3) -> dict:
        """Tell the contact we could not reach them and how to book instead."""
        body = FALLBACK_TEMPLATE.format(
            first_name=first_name or "there",
            attempts=attempts,
            company_name=config.COMPANY_NAME,
            booking_link=config.BOOKING_LINK,
            company_phone=config.COMPANY_PHONE,
        )
        return self.send_sms(to, body)
