"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock for expiry and cooldown tests
- In-memory repositories and wired domain services
- A test application and client running with in-memory storage
"""

from collections.abc import Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.adapters.repository.memory import (
    InMemoryCodeRepository,
    InMemoryIssuanceLog,
    InMemoryUserRepository,
)
from src.api.dependencies import Infrastructure
from src.api.main import create_app
from src.config.settings import Settings
from src.domain.channel import VerificationChannel
from src.domain.login import LoginService, PasswordLoginService
from src.domain.ports import Channel
from src.domain.registration import RegistrationService
from src.domain.session import SessionIssuer
from tests.fakes import FakeClock, RecordingSender, make_channel

TEST_JWT_SECRET = "test-secret"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def users() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def codes() -> InMemoryCodeRepository:
    return InMemoryCodeRepository()


@pytest.fixture
def issuances() -> InMemoryIssuanceLog:
    return InMemoryIssuanceLog()


@pytest.fixture
def email_sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def sms_sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def email_channel(codes, issuances, email_sender, clock) -> VerificationChannel:
    return make_channel(Channel.EMAIL, codes, issuances, email_sender, clock)


@pytest.fixture
def phone_channel(codes, issuances, sms_sender, clock) -> VerificationChannel:
    return make_channel(Channel.PHONE, codes, issuances, sms_sender, clock)


@pytest.fixture
def session_issuer(clock) -> SessionIssuer:
    return SessionIssuer(secret=TEST_JWT_SECRET, clock=clock)


@pytest.fixture
def registration_service(
    users, email_channel, phone_channel, session_issuer
) -> RegistrationService:
    return RegistrationService(
        users=users,
        email_channel=email_channel,
        phone_channel=phone_channel,
        session_issuer=session_issuer,
        bcrypt_cost=4,
    )


@pytest.fixture
def login_service(users, email_channel, session_issuer) -> LoginService:
    return LoginService(users=users, email_channel=email_channel, session_issuer=session_issuer)


@pytest.fixture
def password_login_service(users, session_issuer) -> PasswordLoginService:
    return PasswordLoginService(users=users, session_issuer=session_issuer)


@pytest.fixture
def settings() -> Settings:
    """Debug-mode settings so issued codes come back in responses."""
    return Settings(
        storage_backend="memory",
        debug_mode=True,
        jwt_secret=TEST_JWT_SECRET,
        bcrypt_cost=4,
        email_backend="console",
        sms_backend="console",
    )


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture
def client(
    app: FastAPI, users, codes, issuances, email_sender, sms_sender, clock
) -> Generator[TestClient, None, None]:
    """Test client whose app shares the fixtures' repositories, senders and clock."""
    with TestClient(app) as test_client:
        app.state.infrastructure = Infrastructure(
            users=users,
            codes=codes,
            issuances=issuances,
            email_sender=email_sender,
            sms_sender=sms_sender,
            clock=clock,
        )
        yield test_client
