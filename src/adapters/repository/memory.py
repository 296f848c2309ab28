"""
In-memory repository adapters - Implement the domain persistence protocols.

Process-local storage used for development and tests. A single lock per
store makes every operation atomic, mirroring the row locks the
PostgreSQL adapter takes.
"""

import logging
import secrets
import threading
from dataclasses import dataclass, replace
from datetime import datetime

from src.domain.clock import utc_now
from src.domain.exceptions import EmailAlreadyRegistered, UserNotFound
from src.domain.models import User
from src.domain.ports import Channel, Purpose, Step, VerifyResult

logger = logging.getLogger(__name__)


class InMemoryUserRepository:
    """
    Implements UserRepository protocol with a dict keyed by user id.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Returned users are copies; callers never mutate stored state.
    """

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._lock = threading.Lock()

    def create(self, user: User) -> User:
        with self._lock:
            if any(u.email == user.email for u in self._users.values()):
                raise EmailAlreadyRegistered()
            stored = replace(user, created_at=user.created_at or utc_now())
            self._users[stored.id] = stored
            return replace(stored)

    def get(self, user_id: str) -> User | None:
        with self._lock:
            user = self._users.get(user_id)
            return replace(user) if user is not None else None

    def get_by_email(self, email: str) -> User | None:
        with self._lock:
            for user in self._users.values():
                if user.email == email:
                    return replace(user)
            return None

    def get_by_username(self, username: str) -> User | None:
        with self._lock:
            for user in self._users.values():
                if user.username is not None and user.username.lower() == username.lower():
                    return replace(user)
            return None

    def update_details(
        self, user_id: str, name: str, username: str | None, password_hash: str | None
    ) -> None:
        with self._lock:
            user = self._require(user_id)
            self._users[user_id] = replace(
                user, name=name, username=username, password_hash=password_hash
            )

    def set_phone(self, user_id: str, phone: str, country_code: str) -> None:
        with self._lock:
            user = self._require(user_id)
            self._users[user_id] = replace(
                user, phone=phone, country_code=country_code, phone_verified=False
            )

    def mark_verified(self, user_id: str, step: Step) -> User:
        with self._lock:
            user = self._require(user_id)
            if step == Step.EMAIL:
                user = replace(user, email_verified=True)
            else:
                user = replace(user, phone_verified=True)
            self._users[user_id] = user
            return replace(user)

    def _require(self, user_id: str) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise UserNotFound()
        return user


@dataclass
class _StoredCode:
    address: str
    channel: Channel
    purpose: Purpose
    code: str
    issued_at: datetime
    expires_at: datetime
    user_id: str | None = None
    consumed_at: datetime | None = None
    attempt_count: int = 0


class InMemoryCodeRepository:
    """Implements CodeRepository protocol with one active code per (address, channel)."""

    def __init__(self) -> None:
        self._codes: list[_StoredCode] = []
        self._lock = threading.Lock()

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
        with self._lock:
            # Issuing invalidates every unconsumed code for the pair
            self._codes = [
                c
                for c in self._codes
                if not (c.address == address and c.channel == channel and c.consumed_at is None)
            ]
            self._codes.append(
                _StoredCode(
                    address=address,
                    channel=channel,
                    purpose=purpose,
                    code=code,
                    issued_at=issued_at,
                    expires_at=expires_at,
                    user_id=user_id,
                )
            )

    def consume_code(
        self, address: str, channel: Channel, purpose: Purpose, code: str, now: datetime
    ) -> VerifyResult:
        with self._lock:
            stored = next(
                (
                    c
                    for c in self._codes
                    if c.address == address
                    and c.channel == channel
                    and c.purpose == purpose
                    and c.consumed_at is None
                ),
                None,
            )

            # Always compare to keep timing uniform
            code_valid = secrets.compare_digest(
                (stored.code if stored else "0" * len(code)).encode(), code.encode()
            )

            if stored is None:
                return VerifyResult.NOT_FOUND
            if now >= stored.expires_at:
                return VerifyResult.EXPIRED
            if not code_valid:
                stored.attempt_count += 1
                return VerifyResult.INVALID_CODE

            stored.consumed_at = now
            return VerifyResult.SUCCESS

    def delete_expired(self, before: datetime) -> int:
        with self._lock:
            kept = [c for c in self._codes if c.expires_at > before]
            removed = len(self._codes) - len(kept)
            self._codes = kept
            return removed


class InMemoryIssuanceLog:
    """Implements IssuanceLog protocol."""

    def __init__(self) -> None:
        self._issued: dict[tuple[str, Channel], datetime] = {}
        self._lock = threading.Lock()

    def last_issued_at(self, address: str, channel: Channel) -> datetime | None:
        with self._lock:
            return self._issued.get((address, channel))

    def record_issuance(self, address: str, channel: Channel, at: datetime) -> None:
        with self._lock:
            self._issued[(address, channel)] = at
