"""
Twilio SMS sender adapter - Implements CodeSender protocol over the Twilio Messages API.
"""

import logging

import httpx

from src.domain.exceptions import DeliveryFailed

logger = logging.getLogger(__name__)


class TwilioSmsSender:
    """Sends phone verification codes as plain SMS messages."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        client: httpx.Client | None = None,
    ) -> None:
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.url = f"https://api.twilio.com/2010-04-01/Accounts/{account_sid}/Messages.json"
        self._client = client or httpx.Client(timeout=10.0)

    def send_verification_code(self, address: str, code: str, name: str | None = None) -> None:
        """
        Raises:
            DeliveryFailed: If Twilio rejects the message or is unreachable
        """
        data = {
            "To": address,
            "From": self.from_number,
            "Body": f"Your ArmoredMart verification code is {code}",
        }
        try:
            r = self._client.post(self.url, data=data, auth=(self.account_sid, self.auth_token))
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            body = getattr(e.response, "text", None) or ""
            if body:
                logger.warning("Twilio error %s: %s", e.response.status_code, body[:500])
            raise DeliveryFailed() from e
        except httpx.RequestError as e:
            logger.warning("Twilio unavailable: %s", e)
            raise DeliveryFailed() from e

        logger.info("Verification SMS sent")
