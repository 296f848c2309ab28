"""
Unit tests for the in-memory repository adapters.

These adapters back development mode and most of the test suite, so
their semantics must match the PostgreSQL adapters.
"""

from datetime import timedelta

import pytest

from src.adapters.repository.memory import (
    InMemoryCodeRepository,
    InMemoryIssuanceLog,
    InMemoryUserRepository,
)
from src.domain.clock import utc_now
from src.domain.exceptions import EmailAlreadyRegistered, UserNotFound
from src.domain.models import User
from src.domain.ports import Channel, Purpose, Step, VerifyResult


def store(codes: InMemoryCodeRepository, code: str = "123456", purpose: Purpose = Purpose.REGISTRATION, ttl: int = 600):
    now = utc_now()
    codes.store_code(
        address="jane@co.com",
        channel=Channel.EMAIL,
        purpose=purpose,
        code=code,
        issued_at=now,
        expires_at=now + timedelta(seconds=ttl),
    )
    return now


class TestUserRepository:
    def test_create_and_get(self, users: InMemoryUserRepository) -> None:
        users.create(User(id="u1", name="Jane", email="jane@co.com", username="janed"))

        user = users.get("u1")

        assert user.email == "jane@co.com"
        assert user.created_at is not None
        assert users.get_by_email("jane@co.com").id == "u1"
        assert users.get_by_username("JANED").id == "u1"

    def test_duplicate_email_rejected(self, users: InMemoryUserRepository) -> None:
        users.create(User(id="u1", name="Jane", email="jane@co.com"))

        with pytest.raises(EmailAlreadyRegistered):
            users.create(User(id="u2", name="Other", email="jane@co.com"))

    def test_returned_users_are_copies(self, users: InMemoryUserRepository) -> None:
        users.create(User(id="u1", name="Jane", email="jane@co.com"))

        users.get("u1").email_verified = True

        assert users.get("u1").email_verified is False

    def test_mark_verified(self, users: InMemoryUserRepository) -> None:
        users.create(User(id="u1", name="Jane", email="jane@co.com"))

        user = users.mark_verified("u1", Step.EMAIL)

        assert user.email_verified is True
        assert user.phone_verified is False

    def test_set_phone_resets_phone_verification(self, users: InMemoryUserRepository) -> None:
        users.create(User(id="u1", name="Jane", email="jane@co.com"))
        users.set_phone("u1", "+971501234567", "+971")
        users.mark_verified("u1", Step.PHONE)

        users.set_phone("u1", "+971507654321", "+971")

        assert users.get("u1").phone_verified is False

    def test_update_unknown_user(self, users: InMemoryUserRepository) -> None:
        with pytest.raises(UserNotFound):
            users.update_details("missing", "Jane", None, None)


class TestCodeRepository:
    def test_consume_matching_code(self, codes: InMemoryCodeRepository) -> None:
        now = store(codes)

        result = codes.consume_code("jane@co.com", Channel.EMAIL, Purpose.REGISTRATION, "123456", now)

        assert result == VerifyResult.SUCCESS

    def test_consumed_code_not_found(self, codes: InMemoryCodeRepository) -> None:
        now = store(codes)
        codes.consume_code("jane@co.com", Channel.EMAIL, Purpose.REGISTRATION, "123456", now)

        result = codes.consume_code("jane@co.com", Channel.EMAIL, Purpose.REGISTRATION, "123456", now)

        assert result == VerifyResult.NOT_FOUND

    def test_mismatch_counts_attempts(self, codes: InMemoryCodeRepository) -> None:
        now = store(codes)

        for _ in range(3):
            result = codes.consume_code("jane@co.com", Channel.EMAIL, Purpose.REGISTRATION, "000000", now)
            assert result == VerifyResult.INVALID_CODE

        assert codes._codes[0].attempt_count == 3
        assert codes.consume_code("jane@co.com", Channel.EMAIL, Purpose.REGISTRATION, "123456", now) == VerifyResult.SUCCESS

    def test_expired_at_boundary(self, codes: InMemoryCodeRepository) -> None:
        now = store(codes)

        result = codes.consume_code(
            "jane@co.com", Channel.EMAIL, Purpose.REGISTRATION, "123456", now + timedelta(seconds=600)
        )

        assert result == VerifyResult.EXPIRED

    def test_purpose_mismatch_not_found(self, codes: InMemoryCodeRepository) -> None:
        now = store(codes, purpose=Purpose.LOGIN)

        result = codes.consume_code("jane@co.com", Channel.EMAIL, Purpose.REGISTRATION, "123456", now)

        assert result == VerifyResult.NOT_FOUND

    def test_store_replaces_active_code(self, codes: InMemoryCodeRepository) -> None:
        store(codes, code="111111")
        now = store(codes, code="222222")

        assert codes.consume_code("jane@co.com", Channel.EMAIL, Purpose.REGISTRATION, "111111", now) == VerifyResult.INVALID_CODE
        assert codes.consume_code("jane@co.com", Channel.EMAIL, Purpose.REGISTRATION, "222222", now) == VerifyResult.SUCCESS

    def test_delete_expired(self, codes: InMemoryCodeRepository) -> None:
        now = store(codes, ttl=10)

        assert codes.delete_expired(now) == 0
        assert codes.delete_expired(now + timedelta(seconds=10)) == 1


class TestIssuanceLog:
    def test_records_latest_issuance(self, issuances: InMemoryIssuanceLog) -> None:
        now = utc_now()
        assert issuances.last_issued_at("jane@co.com", Channel.EMAIL) is None

        issuances.record_issuance("jane@co.com", Channel.EMAIL, now)
        issuances.record_issuance("jane@co.com", Channel.EMAIL, now + timedelta(seconds=5))

        assert issuances.last_issued_at("jane@co.com", Channel.EMAIL) == now + timedelta(seconds=5)
        assert issuances.last_issued_at("jane@co.com", Channel.PHONE) is None
