"""
Shared fixtures for adversarial tests.

Provides common test infrastructure for race condition, brute force and
timing tests, all running against the in-memory adapters.
"""

import pytest

from src.domain.models import User
from src.domain.registration import RegistrationService
from tests.fakes import RecordingSender


@pytest.fixture
def vendor_at_phone_step(
    registration_service: RegistrationService, email_sender: RecordingSender
) -> User:
    """A vendor with a verified email and a phone code outstanding."""
    user = registration_service.start(name="Jane", email="jane@co.com", username="janed").progress.user
    registration_service.verify_email(user.id, "jane@co.com", email_sender.last_code("jane@co.com"))
    registration_service.set_phone(user.id, "501234567", "+971")
    return user
