"""
Registration session persistence.

The pending registration is an explicit RegistrationSession object handed
to the flow. Where it is kept between page loads is a serialization detail
of RegistrationSessionStore: one namespaced key in a flat key-value
storage, so it never collides with unrelated entries (auth tokens,
wishlist, ...) kept in the same storage.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

PENDING_REGISTRATION_KEY = "armoredmart.registration.pending"


class KeyValueStorage(Protocol):
    """Flat string storage, the shape of a browser's localStorage."""

    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemoryStorage:
    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)


class JsonFileStorage:
    """KeyValueStorage backed by a single JSON object on disk."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            items = self._read()
            items[key] = value
            self._write(items)

    def remove(self, key: str) -> None:
        with self._lock:
            items = self._read()
            if items.pop(key, None) is not None:
                self._write(items)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable storage file %s", self.path)
            return {}

    def _write(self, items: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(items), encoding="utf-8")
        tmp.replace(self.path)


class RegistrationSession(BaseModel):
    """
    Client copy of an in-flight registration.

    email_verified and phone_verified are hints only; the flow re-reads
    them from the server before routing.
    """

    user_id: str
    email: str
    name: str
    username: str | None = None
    user_type: str = "vendor"
    phone: str | None = None
    email_verified: bool = False
    phone_verified: bool = False


class RegistrationSessionStore:
    def __init__(self, storage: KeyValueStorage, key: str = PENDING_REGISTRATION_KEY) -> None:
        self.storage = storage
        self.key = key

    def load(self) -> RegistrationSession | None:
        raw = self.storage.get(self.key)
        if raw is None:
            return None
        try:
            return RegistrationSession.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding malformed pending registration")
            self.storage.remove(self.key)
            return None

    def save(self, session: RegistrationSession) -> None:
        self.storage.set(self.key, session.model_dump_json())

    def clear(self) -> None:
        self.storage.remove(self.key)
