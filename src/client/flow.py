"""
Client-side registration flow.

State machine
=============

    START -> DETAILS_COLLECTED -> EMAIL_CODE_ISSUED -> EMAIL_VERIFIED
          -> PHONE_COLLECTED -> PHONE_CODE_ISSUED -> PHONE_VERIFIED -> COMPLETE

Buyers skip the phone states: EMAIL_CODE_ISSUED -> COMPLETE.

Every action validates its input locally first, then performs at most one
request. Errors are caught here and surfaced as a single Notice; the state
never advances on error and nothing is retried automatically.

On load() the locally persisted RegistrationSession only identifies the
registration. Routing is decided from the server's progress answer, so a
stale local copy of email_verified/phone_verified cannot skip a step.
"""

import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .api import OtpApiClient
from .countdown import ResendCountdown
from .errors import FlowError, RateLimited, ServerError, ValidationError
from .session_store import RegistrationSession, RegistrationSessionStore

logger = logging.getLogger(__name__)

_CODE = re.compile(r"^\d{6}$")
_DIGITS = re.compile(r"^\+?[\d\s\-()]{4,20}$")


class FlowState(str, Enum):
    START = "start"
    DETAILS_COLLECTED = "details_collected"
    EMAIL_CODE_ISSUED = "email_code_issued"
    EMAIL_VERIFIED = "email_verified"
    PHONE_COLLECTED = "phone_collected"
    PHONE_CODE_ISSUED = "phone_code_issued"
    PHONE_VERIFIED = "phone_verified"
    COMPLETE = "complete"


# Page each state renders
_STEP_FOR_STATE = {
    FlowState.START: "details",
    FlowState.DETAILS_COLLECTED: "details",
    FlowState.EMAIL_CODE_ISSUED: "email",
    FlowState.EMAIL_VERIFIED: "phone",
    FlowState.PHONE_COLLECTED: "phone",
    FlowState.PHONE_CODE_ISSUED: "verify-phone",
    FlowState.PHONE_VERIFIED: "verify-phone",
    FlowState.COMPLETE: "done",
}


@dataclass(frozen=True)
class Notice:
    level: str  # "error" or "info"
    message: str
    retryable: bool = True

    @classmethod
    def from_error(cls, error: FlowError) -> "Notice":
        return cls(level="error", message=error.message, retryable=error.retryable)


@dataclass(frozen=True)
class AuthTokens:
    """Issued credentials. expires_at is tracked to know when to refresh."""

    access_token: str
    refresh_token: str
    expires_in: int
    expires_at: float
    user: dict[str, Any]

    @classmethod
    def from_response(cls, data: dict[str, Any], now: float) -> "AuthTokens":
        expires_in = int(data.get("expiresIn") or 0)
        return cls(
            access_token=data["accessToken"],
            refresh_token=data["refreshToken"],
            expires_in=expires_in,
            expires_at=now + expires_in,
            user=data["user"],
        )


class RegistrationFlow:
    def __init__(
        self,
        api: OtpApiClient,
        store: RegistrationSessionStore,
        cooldown_seconds: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.api = api
        self.store = store
        self.clock = clock
        self.state = FlowState.START
        self.session: RegistrationSession | None = None
        self.notice: Notice | None = None
        self.debug_code: str | None = None
        self.tokens: AuthTokens | None = None
        self.email_countdown = ResendCountdown(cooldown_seconds, clock)
        self.phone_countdown = ResendCountdown(cooldown_seconds, clock)

    @property
    def step(self) -> str:
        return _STEP_FOR_STATE[self.state]

    def load(self) -> bool:
        """Resume from the persisted session, routing by server-reported progress."""
        self.notice = None
        stored = self.store.load()
        if stored is None:
            self.state = FlowState.START
            return True
        self.session = stored
        return self._run(self._reconcile)

    def submit_details(
        self,
        name: str,
        email: str,
        username: str | None = None,
        user_type: str = "vendor",
        password: str | None = None,
    ) -> bool:
        def action() -> None:
            self._require(FlowState.START, FlowState.DETAILS_COLLECTED, FlowState.EMAIL_CODE_ISSUED)
            clean_name = (name or "").strip()
            clean_email = (email or "").strip()
            clean_username = (username or "").strip() or None
            if not clean_name:
                raise ValidationError("Name is required")
            if "@" not in clean_email:
                raise ValidationError("A valid email is required")
            if user_type == "vendor" and clean_username is None:
                raise ValidationError("Username is required")
            if user_type == "customer" and (password is None or len(password) < 8):
                raise ValidationError("Password must be at least 8 characters")
            self.state = FlowState.DETAILS_COLLECTED

            data = self.api.register_start(clean_name, clean_email, clean_username, user_type, password)
            completed = set(data.get("completedSteps") or [])
            self.session = RegistrationSession(
                user_id=data["userId"],
                email=data.get("email") or clean_email,
                name=data.get("name") or clean_name,
                username=data.get("username") or clean_username,
                user_type=user_type,
                phone=data.get("phone"),
                email_verified="email" in completed,
                phone_verified="phone" in completed,
            )
            self.store.save(self.session)

            if data.get("continueToPhone"):
                self.state = FlowState.EMAIL_VERIFIED
                self.notice = Notice("info", "Your email is verified. Please add your phone number.")
                return

            self.email_countdown.start()
            self._show_code(data, "A verification code has been sent to your email.")
            self.state = FlowState.EMAIL_CODE_ISSUED

        return self._run(action)

    def verify_email(self, code: str) -> bool:
        def action() -> None:
            self._require(FlowState.EMAIL_CODE_ISSUED)
            submitted = self._check_code(code)
            data = self.api.verify_email(self.session.user_id, self.session.email, submitted)
            self.session.email_verified = True
            self.store.save(self.session)
            if data.get("complete"):
                self._complete(data)
                return
            self.state = FlowState.EMAIL_VERIFIED
            self.notice = Notice("info", "Your email has been verified.")

        return self._run(action)

    def resend_email(self) -> bool:
        def action() -> None:
            self._require(FlowState.EMAIL_CODE_ISSUED)
            self._check_countdown(self.email_countdown)
            try:
                data = self.api.resend_email(self.session.user_id, self.session.email)
            except RateLimited as e:
                self.email_countdown.start(e.retry_after)
                raise
            self.email_countdown.start()
            self._show_code(data, "A new verification code has been sent to your email.")

        return self._run(action)

    def submit_phone(self, number: str, country_code: str) -> bool:
        def action() -> None:
            self._require(FlowState.EMAIL_VERIFIED, FlowState.PHONE_COLLECTED, FlowState.PHONE_CODE_ISSUED)
            clean_number = (number or "").strip()
            clean_cc = (country_code or "").strip()
            if not clean_cc or not _DIGITS.match(clean_number):
                raise ValidationError("Enter a valid phone number")
            self.state = FlowState.PHONE_COLLECTED

            data = self.api.set_phone(self.session.user_id, clean_number, clean_cc)
            self.session.phone = data["phone"]
            self.session.phone_verified = False
            self.store.save(self.session)

            self.phone_countdown.start()
            self._show_code(data, "A verification code has been sent to your phone.")
            self.state = FlowState.PHONE_CODE_ISSUED

        return self._run(action)

    def verify_phone(self, code: str) -> bool:
        def action() -> None:
            self._require(FlowState.PHONE_CODE_ISSUED)
            submitted = self._check_code(code)
            data = self.api.verify_phone(self.session.user_id, self.session.phone, submitted)
            self.state = FlowState.PHONE_VERIFIED
            self._complete(data)

        return self._run(action)

    def resend_phone(self) -> bool:
        def action() -> None:
            self._require(FlowState.PHONE_CODE_ISSUED)
            self._check_countdown(self.phone_countdown)
            try:
                data = self.api.resend_phone(self.session.user_id)
            except RateLimited as e:
                self.phone_countdown.start(e.retry_after)
                raise
            self.phone_countdown.start()
            self._show_code(data, "A new verification code has been sent to your phone.")

        return self._run(action)

    def _reconcile(self) -> None:
        try:
            data = self.api.register_status(self.session.user_id, self.session.email)
        except ServerError as e:
            if e.status_code != 404:
                raise
            logger.info("Stored registration unknown to server, starting over")
            self.store.clear()
            self.session = None
            self.state = FlowState.START
            self.notice = Notice("info", "Your registration has expired. Please start again.")
            return

        completed = set(data.get("completedSteps") or [])
        self.session.email_verified = "email" in completed
        self.session.phone_verified = "phone" in completed
        self.session.phone = data.get("phone")
        self.store.save(self.session)

        fully_verified = self.session.email_verified and (
            self.session.user_type == "customer" or self.session.phone_verified
        )
        if fully_verified:
            self.store.clear()
            self.session = None
            self.state = FlowState.COMPLETE
            self.notice = Notice("info", "Registration already complete. Please log in.")
        elif not self.session.email_verified:
            self.state = FlowState.EMAIL_CODE_ISSUED
        elif self.session.phone:
            self.state = FlowState.PHONE_CODE_ISSUED
        else:
            self.state = FlowState.EMAIL_VERIFIED

    def _complete(self, data: dict[str, Any]) -> None:
        self.tokens = AuthTokens.from_response(data, self.clock())
        # The pending registration is cleared only once credentials exist
        self.store.clear()
        self.session = None
        self.state = FlowState.COMPLETE
        self.notice = Notice("info", "Registration complete.")

    def _show_code(self, data: dict[str, Any], message: str) -> None:
        self.debug_code = data.get("debugOtp")
        if self.debug_code:
            self.notice = Notice("info", f"Development mode - your verification code is: {self.debug_code}")
        else:
            self.notice = Notice("info", message)

    def _require(self, *states: FlowState) -> None:
        if self.state not in states:
            raise ValidationError(f"Action not available at step '{self.step}'")
        if self.state != FlowState.START and self.session is None:
            raise ValidationError("No registration in progress")

    def _check_code(self, code: str) -> str:
        submitted = (code or "").strip()
        if not _CODE.match(submitted):
            raise ValidationError("Enter the 6-digit code")
        return submitted

    def _check_countdown(self, countdown: ResendCountdown) -> None:
        remaining = countdown.remaining()
        if remaining:
            raise RateLimited(remaining)

    def _run(self, action: Callable[[], None]) -> bool:
        # A failed action leaves the flow at the state it started from
        previous = self.state
        self.notice = None
        try:
            action()
        except FlowError as e:
            self.state = previous
            self.notice = Notice.from_error(e)
            logger.info("Registration step failed at %s: %s", self.state.value, e.message)
            return False
        return True


class OtpLoginFlow:
    """Single-step email code login: email -> code -> done."""

    def __init__(self, api: OtpApiClient, clock: Callable[[], float] = time.monotonic) -> None:
        self.api = api
        self.clock = clock
        self.email: str | None = None
        self.step = "email"
        self.notice: Notice | None = None
        self.debug_code: str | None = None
        self.tokens: AuthTokens | None = None

    def start(self, email: str) -> bool:
        self.notice = None
        clean = (email or "").strip()
        try:
            if "@" not in clean:
                raise ValidationError("A valid email is required")
            data = self.api.login_start(clean)
        except FlowError as e:
            self.notice = Notice.from_error(e)
            return False
        self.email = clean
        self.step = "code"
        self.debug_code = data.get("debugOtp")
        self.notice = Notice("info", "If an account exists, a login code has been sent.")
        return True

    def verify(self, code: str) -> bool:
        self.notice = None
        submitted = (code or "").strip()
        try:
            if self.step != "code":
                raise ValidationError("Request a login code first")
            if not _CODE.match(submitted):
                raise ValidationError("Enter the 6-digit code")
            data = self.api.login_verify(self.email, submitted)
        except FlowError as e:
            self.notice = Notice.from_error(e)
            return False
        self.tokens = AuthTokens.from_response(data, self.clock())
        self.step = "done"
        return True
