"""
Domain records - plain dataclasses exchanged between the domain and its ports.
"""

from dataclasses import dataclass, field
from datetime import datetime

from .ports import Step, UserType


@dataclass
class User:
    """Server-side identity record, the authority on verification flags."""

    id: str
    name: str
    email: str
    user_type: UserType = UserType.VENDOR
    username: str | None = None
    phone: str | None = None
    country_code: str | None = None
    password_hash: str | None = None
    email_verified: bool = False
    phone_verified: bool = False
    created_at: datetime | None = None

    @property
    def completed_steps(self) -> frozenset[Step]:
        steps = set()
        if self.email_verified:
            steps.add(Step.EMAIL)
        if self.phone_verified:
            steps.add(Step.PHONE)
        return frozenset(steps)

    @property
    def required_steps(self) -> frozenset[Step]:
        """Buyers finish after email, vendors also verify a phone."""
        if self.user_type == UserType.CUSTOMER:
            return frozenset({Step.EMAIL})
        return frozenset({Step.EMAIL, Step.PHONE})

    @property
    def is_fully_verified(self) -> bool:
        return self.required_steps <= self.completed_steps


@dataclass(frozen=True)
class IssueResult:
    """Outcome of issuing a code. debug_code is set only in debug mode."""

    issued: bool = True
    debug_code: str | None = None


@dataclass(frozen=True)
class AuthSession:
    access_token: str
    refresh_token: str
    expires_in: int
    user: User


@dataclass(frozen=True)
class RegistrationProgress:
    """
    Tagged progress of a registration.

    status is "fresh" when no step has completed yet and "resume" when
    the registration already existed on the server.
    """

    user: User
    status: str
    completed_steps: frozenset[Step] = field(default_factory=frozenset)

    @property
    def continue_to_phone(self) -> bool:
        return Step.EMAIL in self.completed_steps and Step.PHONE not in self.completed_steps


@dataclass(frozen=True)
class StartResult:
    progress: RegistrationProgress
    issue: IssueResult | None = None

    @property
    def resuming(self) -> bool:
        return self.progress.status == "resume"


@dataclass(frozen=True)
class VerifyEmailResult:
    """complete is True when email was the last required step (buyers)."""

    user: User
    session: AuthSession | None = None

    @property
    def complete(self) -> bool:
        return self.session is not None
