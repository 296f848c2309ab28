"""
Thin HTTP wrapper over the OTP endpoints.

Responses are returned as plain dicts with the server's camelCase keys.
Transport failures become NetworkError, error responses ServerError
(RateLimited for 429), carrying the server's message verbatim.
"""

import logging
from typing import Any

import httpx

from .errors import NetworkError, RateLimited, ServerError

logger = logging.getLogger(__name__)


class OtpApiClient:
    def __init__(self, http: httpx.Client, prefix: str = "/v1/auth") -> None:
        self._http = http
        self.prefix = prefix.rstrip("/")

    def register_start(
        self,
        name: str,
        email: str,
        username: str | None,
        user_type: str = "vendor",
        password: str | None = None,
    ) -> dict[str, Any]:
        payload = {"name": name, "email": email, "username": username, "userType": user_type}
        if password is not None:
            payload["password"] = password
        return self._post("/otp/register/start", payload)

    def register_status(self, user_id: str, email: str) -> dict[str, Any]:
        return self._post("/otp/register/status", {"userId": user_id, "email": email})

    def verify_email(self, user_id: str, email: str, code: str) -> dict[str, Any]:
        return self._post("/otp/verify-email", {"userId": user_id, "email": email, "code": code})

    def resend_email(self, user_id: str, email: str) -> dict[str, Any]:
        return self._post("/otp/resend-email", {"userId": user_id, "email": email})

    def set_phone(self, user_id: str, phone: str, country_code: str) -> dict[str, Any]:
        return self._post(
            "/otp/set-phone", {"userId": user_id, "phone": phone, "countryCode": country_code}
        )

    def verify_phone(self, user_id: str, phone: str, code: str) -> dict[str, Any]:
        return self._post("/otp/verify-phone", {"userId": user_id, "phone": phone, "code": code})

    def resend_phone(self, user_id: str) -> dict[str, Any]:
        return self._post("/otp/resend-phone", {"userId": user_id})

    def login_start(self, email: str) -> dict[str, Any]:
        return self._post("/otp/login/start", {"email": email})

    def login_verify(self, email: str, code: str) -> dict[str, Any]:
        return self._post("/otp/login/verify", {"email": email, "code": code})

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            r = self._http.post(self.prefix + path, json=payload)
        except httpx.TransportError as e:
            logger.warning("Request to %s failed: %s", path, e)
            raise NetworkError("Network error, please check your connection and try again") from e

        try:
            data = r.json()
        except ValueError:
            data = {}

        if r.status_code == 429:
            retry_after = int(r.headers.get("Retry-After", "0") or 0)
            raise RateLimited(retry_after, data.get("error"))
        if r.status_code >= 400:
            error = data.get("error") if isinstance(data, dict) else None
            raise ServerError(error or "Request failed", r.status_code)
        return data
