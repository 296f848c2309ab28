"""
Adversarial tests for timing oracle attack prevention.

Verifies that password login takes statistically similar time whether
the account exists or not, preventing attackers from inferring account
existence through timing analysis.

Security rationale:
- An unknown email that skipped bcrypt would answer far faster than a
  wrong password
- Our defense: run bcrypt for ALL code paths, against a pre-computed
  dummy hash when there is no stored one
"""

import statistics
import time

import bcrypt
import pytest

from src.adapters.repository.memory import InMemoryUserRepository
from src.domain.exceptions import InvalidCredentials
from src.domain.login import PasswordLoginService
from src.domain.models import User
from src.domain.ports import UserType
from src.domain.session import SessionIssuer

pytestmark = pytest.mark.adversarial


@pytest.fixture
def service(users: InMemoryUserRepository, session_issuer: SessionIssuer) -> PasswordLoginService:
    # Production cost so both paths hash with the same work factor as the dummy hash
    password_hash = bcrypt.hashpw(b"hunter2hunter2", bcrypt.gensalt(10)).decode()
    users.create(
        User(
            id="u1",
            name="Bob",
            email="bob@co.com",
            user_type=UserType.CUSTOMER,
            password_hash=password_hash,
            email_verified=True,
        )
    )
    return PasswordLoginService(users=users, session_issuer=session_issuer)


class TestTimingAttacks:
    """Verify constant-time behavior of password login."""

    # Number of measurements per scenario
    ITERATIONS = 10

    # Maximum allowed difference in mean times
    MAX_VARIANCE_RATIO = 0.30

    def measure(self, service: PasswordLoginService, email: str, password: str) -> list[float]:
        times = []
        for _ in range(self.ITERATIONS):
            start = time.perf_counter()
            with pytest.raises(InvalidCredentials):
                service.login(email, password)
            times.append(time.perf_counter() - start)
        return times

    def test_unknown_email_vs_wrong_password(self, service: PasswordLoginService) -> None:
        unknown = self.measure(service, "ghost@co.com", "wrong-password")
        wrong = self.measure(service, "bob@co.com", "wrong-password")

        mean_unknown = statistics.mean(unknown)
        mean_wrong = statistics.mean(wrong)
        ratio = abs(mean_unknown - mean_wrong) / max(mean_unknown, mean_wrong)

        assert ratio < self.MAX_VARIANCE_RATIO, (
            f"Timing difference too large: {ratio:.1%} "
            f"(unknown={mean_unknown:.4f}s, wrong password={mean_wrong:.4f}s)"
        )
