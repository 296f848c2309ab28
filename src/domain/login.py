"""
Login domain services - OTP login and buyer password login.

Both paths fail closed: an unknown or unverified email behaves exactly
like a known one from the caller's point of view.

Security Design - Timing Oracle Prevention:
------------------------------------------
PasswordLoginService always runs bcrypt.checkpw(), comparing against a
pre-computed dummy hash when the account does not exist or has no
password, so response time does not reveal account existence.
"""

import logging
from dataclasses import dataclass

import bcrypt

from .channel import VerificationChannel
from .exceptions import InvalidCode, InvalidCredentials
from .models import AuthSession, IssueResult
from .ports import Purpose, UserRepository
from .registration import normalize_email
from .session import SessionIssuer

logger = logging.getLogger(__name__)

# Pre-computed bcrypt hash for timing oracle prevention.
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10)).decode()


@dataclass
class LoginService:
    """Single-step email OTP login for accounts that completed registration."""

    users: UserRepository
    email_channel: VerificationChannel
    session_issuer: SessionIssuer

    def start(self, email: str) -> IssueResult:
        """
        Issue a login code when the email belongs to a fully verified account.

        Unknown and partially registered emails get the same response with no code.

        Raises:
            RateLimited: If a code was issued to the address less than a cooldown ago
        """
        normalized_email = normalize_email(email)
        user = self.users.get_by_email(normalized_email)
        if user is None or not user.is_fully_verified:
            logger.info("Login code requested for unknown or unverified email")
            return IssueResult(issued=True)
        return self.email_channel.issue(normalized_email, Purpose.LOGIN, user_id=user.id, name=user.name)

    def verify(self, email: str, code: str) -> AuthSession:
        """
        Raises:
            InvalidCode, CodeExpired: If the code does not verify
        """
        normalized_email = normalize_email(email)
        self.email_channel.verify(normalized_email, Purpose.LOGIN, code)

        user = self.users.get_by_email(normalized_email)
        if user is None or not user.is_fully_verified:
            # Only reachable if the account changed after the code was issued
            raise InvalidCode()
        return self.session_issuer.issue(user)


@dataclass
class PasswordLoginService:
    """Password login for buyers who registered with a password."""

    users: UserRepository
    session_issuer: SessionIssuer

    def login(self, email: str, password: str) -> AuthSession:
        """
        Raises:
            InvalidCredentials: For any mismatch, unknown account, or incomplete registration
        """
        user = self.users.get_by_email(normalize_email(email))
        stored_hash = user.password_hash if user is not None and user.password_hash else _DUMMY_BCRYPT_HASH

        # Always run bcrypt for constant-time behavior
        password_valid = bcrypt.checkpw(password.encode(), stored_hash.encode())

        if user is None or user.password_hash is None or not password_valid:
            raise InvalidCredentials()
        if not user.is_fully_verified:
            raise InvalidCredentials()
        return self.session_issuer.issue(user)
