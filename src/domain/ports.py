"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .models import User


class Channel(str, Enum):
    """Delivery medium a code is issued through."""

    EMAIL = "email"
    PHONE = "phone"


class Purpose(str, Enum):
    """What an issued code may be redeemed for."""

    REGISTRATION = "registration"
    LOGIN = "login"
    VERIFY_PHONE = "verify_phone"


class Step(str, Enum):
    """Verification steps of a registration."""

    EMAIL = "email"
    PHONE = "phone"


class UserType(str, Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"


class VerifyResult(Enum):
    """
    Result of a code consumption attempt.

    Used by consume_code() to indicate success or specific failure.
    """

    SUCCESS = "success"
    INVALID_CODE = "invalid_code"
    EXPIRED = "expired"
    NOT_FOUND = "not_found"


class UserRepository(Protocol):
    """Port interface for identity records."""

    def create(self, user: User) -> User:
        """
        Insert a new user.

        Returns:
            The stored user (with created_at populated)

        Raises:
            EmailAlreadyRegistered: If the email is already stored
        """
        ...

    def get(self, user_id: str) -> User | None:
        ...

    def get_by_email(self, email: str) -> User | None:
        ...

    def get_by_username(self, username: str) -> User | None:
        ...

    def update_details(
        self, user_id: str, name: str, username: str | None, password_hash: str | None
    ) -> None:
        """Replace identity details of a registration whose email is unverified."""
        ...

    def set_phone(self, user_id: str, phone: str, country_code: str) -> None:
        """Store a new phone number and reset phone_verified."""
        ...

    def mark_verified(self, user_id: str, step: Step) -> User:
        """Flip email_verified or phone_verified to true and return the updated user."""
        ...


class CodeRepository(Protocol):
    """Port interface for verification code persistence."""

    def store_code(
        self,
        address: str,
        channel: Channel,
        purpose: Purpose,
        code: str,
        issued_at: datetime,
        expires_at: datetime,
        user_id: str | None = None,
    ) -> None:
        """
        Store a freshly issued code.

        Atomically invalidates every unconsumed code for (address, channel)
        so at most one active code exists per pair.
        """
        ...

    def consume_code(
        self, address: str, channel: Channel, purpose: Purpose, code: str, now: datetime
    ) -> VerifyResult:
        """
        Verify and consume the active code for (address, channel).

        Return values by scenario:
        - SUCCESS: Code matches, is unexpired and now consumed
        - NOT_FOUND: No unconsumed code for the pair and purpose
        - EXPIRED: The unconsumed code is past expires_at
        - INVALID_CODE: Code mismatch (attempt_count incremented)
        """
        ...

    def delete_expired(self, before: datetime) -> int:
        """Delete codes that expired before the given instant, returning the count."""
        ...


class IssuanceLog(Protocol):
    """Port interface for the last-issuance timestamps behind the cooldown."""

    def last_issued_at(self, address: str, channel: Channel) -> datetime | None:
        ...

    def record_issuance(self, address: str, channel: Channel, at: datetime) -> None:
        ...


class CodeSender(Protocol):
    """Port interface for code delivery (email or SMS)."""

    def send_verification_code(self, address: str, code: str, name: str | None = None) -> None:
        """
        Deliver a verification code.

        Args:
            address: Normalized email address or canonical phone number
            code: 6-digit verification code
            name: Recipient display name, when known

        Raises:
            DeliveryFailed: If the provider rejected the message
        """
        ...
