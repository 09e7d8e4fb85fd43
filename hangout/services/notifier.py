# Outbound SMS (Twilio) and email (Resend) over plain HTTP.
# Both are no-ops when their credentials are not configured.

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
from loguru import logger

from hangout.core import config

TWILIO_MESSAGES_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"
RESEND_EMAILS_URL = "https://api.resend.com/emails"


class NotificationError(Exception):
    pass


class Notifier:
    def __init__(
        self,
        twilio_sid: Optional[str] = None,
        twilio_token: Optional[str] = None,
        sms_from: Optional[str] = None,
        resend_api_key: Optional[str] = None,
        email_from: Optional[str] = None,
        timeout: float = 15,
    ):
        self.twilio_sid = twilio_sid
        self.twilio_token = twilio_token
        self.sms_from = sms_from
        self.resend_api_key = resend_api_key
        self.email_from = email_from
        self.timeout = timeout

    @classmethod
    def from_config(cls) -> "Notifier":
        return cls(
            twilio_sid=config.TWILIO_ACCOUNT_SID,
            twilio_token=config.TWILIO_AUTH_TOKEN,
            sms_from=config.SMS_FROM_NUMBER,
            resend_api_key=config.RESEND_API_KEY,
            email_from=config.EMAIL_FROM,
        )

    @property
    def sms_enabled(self) -> bool:
        return bool(self.twilio_sid and self.twilio_token and self.sms_from)

    @property
    def email_enabled(self) -> bool:
        return bool(self.resend_api_key)

    # ---------------------------
    # SMS
    # ---------------------------

    def send_sms(self, phone_number: str, body: str) -> bool:
        if not self.sms_enabled:
            logger.debug("SMS not configured, skipping")
            return False

        resp = httpx.post(
            TWILIO_MESSAGES_URL.format(sid=self.twilio_sid),
            data={"To": phone_number, "From": self.sms_from, "Body": body},
            auth=(self.twilio_sid, self.twilio_token),
            timeout=self.timeout,
        )
        if resp.status_code >= 400:
            raise NotificationError(f"SMS send failed: HTTP {resp.status_code} {resp.text[:200]}")

        logger.info(f"SMS sent | to=...{phone_number[-4:]}")
        return True

    # ---------------------------
    # Email
    # ---------------------------

    def send_email(self, to: str, subject: str, html: str) -> bool:
        if not self.email_enabled:
            logger.debug("Email not configured, skipping")
            return False

        payload: Dict[str, Any] = {
            "from": self.email_from,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        resp = httpx.post(
            RESEND_EMAILS_URL,
            json=payload,
            headers={"Authorization": f"Bearer {self.resend_api_key}"},
            timeout=self.timeout,
        )
        if resp.status_code >= 400:
            raise NotificationError(f"Email send failed: HTTP {resp.status_code} {resp.text[:200]}")

        logger.info(f"Email sent | subject={subject!r}")
        return True


def checkin_sms_text(checked_in_name: str, gathering_name: str) -> str:
    return f"{checked_in_name} just checked in at {gathering_name}! Open the app to connect."


def feedback_email(
    gathering_name: str,
    gathering_address: Optional[str],
    feedback_url: str,
    ttl_days: int = 7,
) -> Dict[str, str]:
    location = gathering_address or "N/A"
    return {
        "subject": f"How was your night at {gathering_name}?",
        "html": (
            f"<h1>How was {gathering_name}?</h1>"
            f"<p>You recently checked out of <strong>{gathering_name}</strong> ({location}).</p>"
            f"<p>Tell us how it went, it takes less than a minute:</p>"
            f'<p><a href="{feedback_url}">Leave feedback</a></p>'
            f"<p>This link expires in {ttl_days} days.</p>"
        ),
    }
