"""
Resend email sender adapter - Implements CodeSender protocol over the Resend HTTP API.
"""

import logging
from typing import Any

import httpx

from src.domain.exceptions import DeliveryFailed

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"

_SUBJECT = "Your ArmoredMart Verification Code"

_HTML_TEMPLATE = """\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h1 style="color: #D97706; margin: 0;">ArmoredMart</h1>
  <p style="color: #666666; font-size: 14px;">B2B Defense Vehicle Parts Marketplace</p>
  <h2>Hello {name},</h2>
  <p>Your verification code is:</p>
  <div style="border: 2px solid #D97706; border-radius: 8px; padding: 20px; text-align: center;">
    <span style="font-size: 32px; font-weight: bold; letter-spacing: 8px;">{code}</span>
  </div>
  <p style="color: #999999; font-size: 14px;">
    This code expires in {minutes} minutes. If you didn't request this code, please ignore this email.
  </p>
</div>
"""


class ResendEmailSender:
    """
    Sends verification codes through Resend.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        api_key: str,
        from_email: str,
        ttl_minutes: int = 10,
        client: httpx.Client | None = None,
    ) -> None:
        self.api_key = api_key
        self.from_email = from_email
        self.ttl_minutes = ttl_minutes
        self._client = client or httpx.Client(timeout=10.0)

    def send_verification_code(self, address: str, code: str, name: str | None = None) -> None:
        """
        Raises:
            DeliveryFailed: If Resend rejects the message or is unreachable
        """
        payload: dict[str, Any] = {
            "from": self.from_email,
            "to": [address],
            "subject": _SUBJECT,
            "html": _HTML_TEMPLATE.format(
                name=name or "there", code=code, minutes=self.ttl_minutes
            ),
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            r = self._client.post(RESEND_API_URL, json=payload, headers=headers)
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            body = getattr(e.response, "text", None) or ""
            if body:
                logger.warning("Resend error %s: %s", e.response.status_code, body[:500])
            raise DeliveryFailed() from e
        except httpx.RequestError as e:
            logger.warning("Resend unavailable: %s", e)
            raise DeliveryFailed() from e

        logger.info("Verification email sent to %s", address)
