"""
Integration tests for the registration and login flows.

Drives the full application over HTTP with in-memory storage, a
controllable clock and recording senders. Debug mode is on, so issued
codes are read from the debugOtp field.
"""

import logging

import pytest
from fastapi.testclient import TestClient

from tests.fakes import FakeClock, RecordingSender

pytestmark = pytest.mark.integration

VENDOR = {"name": "Jane Doe", "email": "jane@co.com", "username": "janed"}
BUYER = {
    "name": "Bob Buyer",
    "email": "bob@co.com",
    "userType": "customer",
    "password": "hunter2hunter2",
}


def post(client: TestClient, path: str, payload: dict):
    return client.post(f"/v1/auth{path}", json=payload)


def start(client: TestClient, payload: dict = VENDOR) -> dict:
    response = post(client, "/otp/register/start", payload)
    assert response.status_code == 200, response.text
    return response.json()


def verify_email(client: TestClient, started: dict, code: str | None = None):
    return post(
        client,
        "/otp/verify-email",
        {"userId": started["userId"], "email": started["email"], "code": code or started["debugOtp"]},
    )


def set_phone(client: TestClient, user_id: str, phone: str = "501234567", country_code: str = "+971") -> dict:
    response = post(client, "/otp/set-phone", {"userId": user_id, "phone": phone, "countryCode": country_code})
    assert response.status_code == 200, response.text
    return response.json()


def wrong_code(code: str) -> str:
    return "000000" if code != "000000" else "111111"


class TestVendorRegistration:
    def test_full_registration(self, client: TestClient, email_sender: RecordingSender, sms_sender: RecordingSender) -> None:
        """Details, email code, phone, phone code, then credentials."""
        started = start(client)
        assert started["status"] == "fresh"
        assert started["debugOtp"] == email_sender.last_code("jane@co.com")

        response = verify_email(client, started)
        assert response.status_code == 200
        assert response.json() == {"ok": True, "complete": False}

        phone = set_phone(client, started["userId"])
        assert phone["phone"] == "+971501234567"
        assert phone["debugOtp"] == sms_sender.last_code("+971501234567")

        response = post(
            client,
            "/otp/verify-phone",
            {"userId": started["userId"], "phone": phone["phone"], "code": phone["debugOtp"]},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["user"]["id"] == started["userId"]
        assert body["user"]["userType"] == "vendor"
        assert body["accessToken"]
        assert body["refreshToken"]
        assert body["expiresIn"] == 900

    def test_registering_again_after_completion(self, client: TestClient) -> None:
        started = start(client)
        verify_email(client, started)
        phone = set_phone(client, started["userId"])
        post(client, "/otp/verify-phone", {"userId": started["userId"], "phone": phone["phone"], "code": phone["debugOtp"]})

        response = post(client, "/otp/register/start", VENDOR)

        assert response.status_code == 409
        assert response.json() == {"error": "Email already registered"}

    def test_email_normalized(self, client: TestClient, email_sender: RecordingSender) -> None:
        started = start(client, {**VENDOR, "email": "Jane@CO.com"})

        assert started["email"] == "jane@co.com"
        assert email_sender.sent[-1][0] == "jane@co.com"


class TestBuyerRegistration:
    def test_completes_after_email(self, client: TestClient, sms_sender: RecordingSender) -> None:
        started = start(client, BUYER)

        response = verify_email(client, started)

        assert response.status_code == 200
        body = response.json()
        assert body["complete"] is True
        assert body["user"]["userType"] == "customer"
        assert body["accessToken"]
        assert sms_sender.sent == []

    def test_password_login_after_registration(self, client: TestClient) -> None:
        verify_email(client, start(client, BUYER))

        response = post(client, "/login", {"email": "bob@co.com", "password": "hunter2hunter2"})

        assert response.status_code == 200
        assert response.json()["user"]["email"] == "bob@co.com"

    def test_password_login_wrong_password(self, client: TestClient) -> None:
        verify_email(client, start(client, BUYER))

        response = post(client, "/login", {"email": "bob@co.com", "password": "wrong-password"})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid email or password"}


class TestResumption:
    def test_unverified_email_gets_new_code(self, client: TestClient, clock: FakeClock) -> None:
        first = start(client)
        clock.advance(60)

        second = start(client)

        assert second["status"] == "resume"
        assert second["resuming"] is True
        assert second["userId"] == first["userId"]
        if first["debugOtp"] != second["debugOtp"]:
            assert verify_email(client, first).status_code == 401
        assert verify_email(client, second).status_code == 200

    def test_verified_email_continues_to_phone(self, client: TestClient, email_sender: RecordingSender) -> None:
        started = start(client)
        verify_email(client, started)
        sent_before = len(email_sender.sent)

        resumed = start(client)

        assert resumed["continueToPhone"] is True
        assert resumed["completedSteps"] == ["email"]
        assert "debugOtp" not in resumed
        assert len(email_sender.sent) == sent_before

        phone = set_phone(client, resumed["userId"])
        response = post(
            client,
            "/otp/verify-phone",
            {"userId": resumed["userId"], "phone": phone["phone"], "code": phone["debugOtp"]},
        )
        assert response.status_code == 200

    def test_status_reports_progress(self, client: TestClient) -> None:
        started = start(client)
        verify_email(client, started)
        set_phone(client, started["userId"])

        response = post(client, "/otp/register/status", {"userId": started["userId"], "email": "jane@co.com"})

        assert response.status_code == 200
        body = response.json()
        assert body["completedSteps"] == ["email"]
        assert body["phone"] == "+971501234567"

    def test_status_unknown(self, client: TestClient) -> None:
        response = post(client, "/otp/register/status", {"userId": "missing", "email": "jane@co.com"})

        assert response.status_code == 404


class TestCodeFailures:
    def test_wrong_code(self, client: TestClient) -> None:
        started = start(client)

        response = verify_email(client, started, wrong_code(started["debugOtp"]))

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid verification code"}

    def test_expired_code(self, client: TestClient, clock: FakeClock) -> None:
        started = start(client)
        clock.advance(601)

        response = verify_email(client, started)

        assert response.status_code == 401
        assert response.json() == {"error": "Verification code has expired"}

    def test_code_single_use(self, client: TestClient) -> None:
        started = start(client)
        assert verify_email(client, started).status_code == 200

        response = verify_email(client, started)

        assert response.status_code == 401

    def test_phone_before_email(self, client: TestClient) -> None:
        started = start(client)

        response = post(client, "/otp/set-phone", {"userId": started["userId"], "phone": "501234567", "countryCode": "+971"})

        assert response.status_code == 409

    def test_malformed_phone(self, client: TestClient) -> None:
        started = start(client)
        verify_email(client, started)

        response = post(client, "/otp/set-phone", {"userId": started["userId"], "phone": "12ab", "countryCode": "+971"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid phone number"}


class TestCooldown:
    def test_resend_within_cooldown(self, client: TestClient, clock: FakeClock) -> None:
        started = start(client)
        clock.advance(20)

        response = post(client, "/otp/resend-email", {"userId": started["userId"], "email": "jane@co.com"})

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "40"

    def test_resend_after_cooldown(self, client: TestClient, clock: FakeClock) -> None:
        started = start(client)
        clock.advance(60)

        response = post(client, "/otp/resend-email", {"userId": started["userId"], "email": "jane@co.com"})

        assert response.status_code == 200
        new_code = response.json()["debugOtp"]
        assert verify_email(client, started, new_code).status_code == 200

    def test_resend_phone_within_cooldown(self, client: TestClient) -> None:
        started = start(client)
        verify_email(client, started)
        set_phone(client, started["userId"])

        response = post(client, "/otp/resend-phone", {"userId": started["userId"]})

        assert response.status_code == 429


class TestOtpLogin:
    def test_login_with_code(self, client: TestClient, clock: FakeClock) -> None:
        verify_email(client, start(client, BUYER))
        clock.advance(60)

        started = post(client, "/otp/login/start", {"email": "bob@co.com"}).json()
        response = post(client, "/otp/login/verify", {"email": "bob@co.com", "code": started["debugOtp"]})

        assert response.status_code == 200
        assert response.json()["user"]["email"] == "bob@co.com"

    def test_vendor_without_verified_phone_cannot_log_in(
        self, client: TestClient, clock: FakeClock, email_sender: RecordingSender
    ) -> None:
        verify_email(client, start(client))
        clock.advance(61)
        sent_before = len(email_sender.sent)

        started = post(client, "/otp/login/start", {"email": "jane@co.com"})

        assert started.json() == {"ok": True}
        assert len(email_sender.sent) == sent_before
        response = post(client, "/otp/login/verify", {"email": "jane@co.com", "code": "123456"})
        assert response.status_code == 401
        assert "accessToken" not in response.json()

    def test_unknown_email_same_response(self, client: TestClient, email_sender: RecordingSender) -> None:
        response = post(client, "/otp/login/start", {"email": "ghost@co.com"})

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert email_sender.sent == []


class TestHealthAndLogging:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_codes_not_logged_by_domain(self, client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
        """Only the console sender adapters may log a plaintext code."""
        with caplog.at_level(logging.INFO, logger="src.domain"):
            started = start(client)

        domain_records = [r for r in caplog.records if r.name.startswith("src.domain")]
        assert domain_records
        assert all(started["debugOtp"] not in r.getMessage() for r in domain_records)
