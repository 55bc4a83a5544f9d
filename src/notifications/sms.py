from __future__ import annotations

import re

import httpx
from loguru import logger

from src.config import get_settings

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
SEND_MESSAGE_TIMEOUT = 10  # seconds

# E.164-ish: optional +, 7 to 15 digits
_PHONE_PATTERN = re.compile(r"^\+?\d{7,15}$")


def normalize_phone(phone: str) -> str:
    return re.sub(r"[\s\-().]", "", phone or "")


def is_valid_phone(phone: str) -> bool:
    return bool(_PHONE_PATTERN.match(normalize_phone(phone)))


class SmsSender:
    """Send SMS through the Twilio REST API."""

    def __init__(self):
        settings = get_settings()
        self.account_sid = settings.twilio_account_sid
        self.auth_token = settings.twilio_auth_token
        self.from_number = settings.twilio_from_number

    @classmethod
    def is_configured(cls) -> bool:
        settings = get_settings()
        return bool(
            settings.sms_enabled
            and settings.twilio_account_sid
            and settings.twilio_auth_token
            and settings.twilio_from_number
        )

    def send_sms(self, phone: str, message: str) -> bool:
        """Send one SMS.

        Returns:
            True if sent successfully, False otherwise.
        """
        url = f"{TWILIO_API_BASE}/Accounts/{self.account_sid}/Messages.json"
        data = {
            "To": normalize_phone(phone),
            "From": self.from_number,
            "Body": message,
        }

        try:
            with httpx.Client(
                timeout=SEND_MESSAGE_TIMEOUT, auth=(self.account_sid, self.auth_token)
            ) as client:
                response = client.post(url, data=data)
                response.raise_for_status()

            logger.info(f"SMS sent to {data['To']}")
            return True
        except httpx.HTTPStatusError as e:
            logger.error(f"SMS API error: {e.response.status_code} - {e.response.text}")
            return False
        except httpx.RequestError as e:
            logger.error(f"SMS request failed: {e}")
            return False
