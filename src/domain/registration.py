"""
Registration domain service - multi-step identity verification.

This module contains the core business logic for registration,
driving the step sequence and deciding whether to resume an
in-flight registration or start fresh.

Registration Steps
==================

Vendors:
    details -> email code -> email verified -> phone -> phone code -> phone verified -> session

Buyers (customer):
    details (+ password) -> email code -> email verified -> session

Resumption
==========

start() is idempotent per email while the registration is incomplete:
- Unknown email:                       create user, issue email code ("fresh")
- Email not yet verified:              refresh details, re-issue email code ("resume")
- Email verified, phone pending:       no code issued, continue to phone ("resume")
- All required steps verified:         EmailAlreadyRegistered

The server is the sole authority on email_verified/phone_verified. Only a
successful channel verify() flips either flag.
"""

import logging
import re
import uuid
from dataclasses import dataclass

import bcrypt

from .channel import VerificationChannel
from .exceptions import (
    EmailAlreadyRegistered,
    InvalidInput,
    StepOutOfOrder,
    UserNotFound,
    UsernameTaken,
)
from .models import (
    AuthSession,
    IssueResult,
    RegistrationProgress,
    StartResult,
    User,
    VerifyEmailResult,
)
from .ports import Purpose, Step, UserRepository, UserType
from .session import SessionIssuer

logger = logging.getLogger(__name__)

_COUNTRY_CODE = re.compile(r"^\+?\d{1,4}$")
_LOCAL_NUMBER = re.compile(r"^\d{4,14}$")
_PHONE_SEPARATORS = re.compile(r"[\s\-().]")


def normalize_email(email: str) -> str:
    """
    Normalize email address for consistent storage and lookup.

    Applies: strip whitespace + lowercase
    """
    return email.strip().lower()


def canonical_phone(phone: str, country_code: str) -> str:
    """
    Concatenate country code and local number into +<digits> form.

    Spaces, dashes, dots and parentheses are dropped. A local number that
    already starts with the country code is accepted as is.

    Raises:
        InvalidInput: If either part is not numeric or out of range
    """
    cc = _PHONE_SEPARATORS.sub("", country_code or "")
    number = _PHONE_SEPARATORS.sub("", phone or "")
    if not _COUNTRY_CODE.match(cc):
        raise InvalidInput("Invalid country code")
    cc = cc.lstrip("+")

    if number.startswith("+"):
        if not number[1:].startswith(cc):
            raise InvalidInput("Phone number does not match country code")
        number = number[1 + len(cc):]
    number = number.lstrip("0")

    if not _LOCAL_NUMBER.match(number):
        raise InvalidInput("Invalid phone number")
    return f"+{cc}{number}"


def canonical_country_code(country_code: str) -> str:
    return _PHONE_SEPARATORS.sub("", country_code or "").lstrip("+")


def normalize_phone(phone: str) -> str:
    """Strip separators from an already-international number."""
    return _PHONE_SEPARATORS.sub("", phone or "")


@dataclass
class RegistrationService:
    """
    Domain service for multi-step registration.

    Orchestrates field validation, resumption, per-channel code issuance
    and verification, and the final session issuance.
    """

    users: UserRepository
    email_channel: VerificationChannel
    phone_channel: VerificationChannel
    session_issuer: SessionIssuer
    bcrypt_cost: int = 10

    def start(
        self,
        name: str,
        email: str,
        username: str | None = None,
        user_type: UserType = UserType.VENDOR,
        password: str | None = None,
    ) -> StartResult:
        """
        Start or resume a registration.

        Raises:
            InvalidInput: If a required field is empty
            EmailAlreadyRegistered: If the email belongs to a completed registration
            UsernameTaken: If the username belongs to another account
            RateLimited: If an email code was issued less than a cooldown ago
        """
        name = (name or "").strip()
        normalized_email = normalize_email(email or "")
        username = (username or "").strip() or None
        self._validate_details(name, normalized_email, username, user_type, password)

        existing = self.users.get_by_email(normalized_email)
        if existing is not None and existing.is_fully_verified:
            raise EmailAlreadyRegistered()

        if username is not None:
            holder = self.users.get_by_username(username)
            if holder is not None and (existing is None or holder.id != existing.id):
                raise UsernameTaken()

        if existing is None or not existing.email_verified:
            # Checked before any write so a refused issue leaves the stored row untouched
            self.email_channel.ensure_can_issue(normalized_email)

        password_hash = self._hash_password(password) if password else None

        if existing is None:
            user = self.users.create(
                User(
                    id=str(uuid.uuid4()),
                    name=name,
                    email=normalized_email,
                    username=username,
                    user_type=user_type,
                    password_hash=password_hash,
                )
            )
            logger.info("Registration started for user %s", user.id)
            issue = self._issue_email_code(user)
            return StartResult(progress=RegistrationProgress(user=user, status="fresh"), issue=issue)

        if existing.email_verified:
            # Email steps are done; the client goes straight to the phone step
            logger.info("Registration resumed at phone step for user %s", existing.id)
            return StartResult(progress=self._progress(existing))

        # Details may still be edited while the email is unverified
        self.users.update_details(existing.id, name, username, password_hash or existing.password_hash)
        user = self.users.get(existing.id)
        logger.info("Registration resumed at email step for user %s", user.id)
        issue = self._issue_email_code(user)
        return StartResult(progress=self._progress(user), issue=issue)

    def status(self, user_id: str, email: str) -> RegistrationProgress:
        """
        Read-only, server-authoritative progress of a registration.

        Raises:
            UserNotFound: If the user_id/email pair matches no registration
        """
        user = self._get_user(user_id, email)
        return self._progress(user)

    def verify_email(self, user_id: str, email: str, code: str) -> VerifyEmailResult:
        """
        Verify the email code of a registration.

        Buyers complete their registration here and receive a session.

        Raises:
            UserNotFound: If the user_id/email pair matches no registration
            InvalidCode, CodeExpired: If the code does not verify
        """
        user = self._get_user(user_id, email)
        self.email_channel.verify(user.email, Purpose.REGISTRATION, code)
        user = self.users.mark_verified(user.id, Step.EMAIL)

        if user.is_fully_verified:
            return VerifyEmailResult(user=user, session=self.session_issuer.issue(user))
        return VerifyEmailResult(user=user)

    def resend_email(self, user_id: str, email: str) -> IssueResult:
        """
        Raises:
            UserNotFound: If the user_id/email pair matches no registration
            StepOutOfOrder: If the email is already verified
            RateLimited: If the cooldown has not elapsed
        """
        user = self._get_user(user_id, email)
        if user.email_verified:
            raise StepOutOfOrder("Email already verified")
        return self._issue_email_code(user)

    def set_phone(self, user_id: str, phone: str, country_code: str) -> tuple[str, IssueResult]:
        """
        Attach a phone number and issue a phone code.

        Returns:
            Tuple of (canonical phone number, issue result)

        Raises:
            UserNotFound: If the user does not exist
            StepOutOfOrder: If the email is not verified yet
            EmailAlreadyRegistered: If the registration is already complete
            InvalidInput: If the phone number is malformed
        """
        user = self._get_user(user_id)
        if not user.email_verified:
            raise StepOutOfOrder("Email must be verified first")
        if user.is_fully_verified:
            raise EmailAlreadyRegistered()

        canonical = canonical_phone(phone, country_code)
        self.phone_channel.ensure_can_issue(canonical)
        self.users.set_phone(user.id, canonical, "+" + canonical_country_code(country_code))
        issue = self.phone_channel.issue(canonical, Purpose.VERIFY_PHONE, user_id=user.id, name=user.name)
        return canonical, issue

    def verify_phone(self, user_id: str, phone: str, code: str) -> AuthSession:
        """
        Verify the phone code and complete the registration.

        Raises:
            UserNotFound: If the user does not exist
            StepOutOfOrder: If no phone was set or the phone does not match
            InvalidCode, CodeExpired: If the code does not verify
        """
        user = self._get_user(user_id)
        if not user.email_verified or user.phone is None:
            raise StepOutOfOrder("Phone number not set")
        if normalize_phone(phone) != user.phone:
            raise StepOutOfOrder("Phone number does not match registration")

        self.phone_channel.verify(user.phone, Purpose.VERIFY_PHONE, code)
        user = self.users.mark_verified(user.id, Step.PHONE)
        logger.info("Registration complete for user %s", user.id)
        return self.session_issuer.issue(user)

    def resend_phone(self, user_id: str) -> IssueResult:
        """
        Raises:
            UserNotFound: If the user does not exist
            StepOutOfOrder: If no phone was set or it is already verified
            RateLimited: If the cooldown has not elapsed
        """
        user = self._get_user(user_id)
        if user.phone is None:
            raise StepOutOfOrder("Phone number not set")
        if user.phone_verified:
            raise StepOutOfOrder("Phone already verified")
        return self.phone_channel.issue(user.phone, Purpose.VERIFY_PHONE, user_id=user.id, name=user.name)

    def _issue_email_code(self, user: User) -> IssueResult:
        return self.email_channel.issue(user.email, Purpose.REGISTRATION, user_id=user.id, name=user.name)

    def _get_user(self, user_id: str, email: str | None = None) -> User:
        user = self.users.get(user_id) if user_id else None
        if user is None:
            raise UserNotFound()
        if email is not None and user.email != normalize_email(email):
            raise UserNotFound()
        return user

    def _progress(self, user: User) -> RegistrationProgress:
        return RegistrationProgress(user=user, status="resume", completed_steps=user.completed_steps)

    def _validate_details(
        self,
        name: str,
        email: str,
        username: str | None,
        user_type: UserType,
        password: str | None,
    ) -> None:
        if not name:
            raise InvalidInput("Name is required")
        if not email or "@" not in email:
            raise InvalidInput("A valid email is required")
        if user_type == UserType.VENDOR and username is None:
            raise InvalidInput("Username is required")
        if user_type == UserType.CUSTOMER and not password:
            raise InvalidInput("Password is required")

    def _hash_password(self, password: str) -> str:
        """Hash password using bcrypt with the configured cost factor."""
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self.bcrypt_cost)).decode()

