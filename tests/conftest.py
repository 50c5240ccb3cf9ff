"""Pytest configuration helpers."""

from __future__ import annotations

from typing import Iterator, Optional

import pytest

from cache_renewal.config import get_settings
from cache_renewal.connection import Connection, ConnectionManager
from cache_renewal.credentials import RedisCredentials
from cache_renewal.errors import StoreCommandError, StoreConnectionError
from cache_renewal.store import TTL_MISSING, TTL_NO_EXPIRY, KeyValueStore


class InMemoryStore(KeyValueStore):
    """In-memory store with explicit TTLs and failure injection."""

    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_on: dict[tuple[str, str], Exception] = {}
        self.ping_error: Optional[Exception] = None
        self.close_count = 0

    def set(self, key: str, value: str = "value", ttl: int = TTL_NO_EXPIRY) -> None:
        self.values[key] = value
        self.ttls[key] = ttl

    def fail(self, operation: str, key: str, error: Optional[Exception] = None) -> None:
        self.fail_on[(operation, key)] = error or StoreCommandError(
            key=key, operation=operation, cause="injected failure"
        )

    def _record(self, operation: str, key: str) -> None:
        self.calls.append((operation, key))
        error = self.fail_on.get((operation, key))
        if error is not None:
            raise error

    def ping(self) -> bool:
        if self.ping_error is not None:
            raise self.ping_error
        return True

    def close(self) -> None:
        self.close_count += 1

    def exists(self, key: str) -> bool:
        self._record("EXISTS", key)
        return key in self.values

    def get_value(self, key: str) -> Optional[str]:
        self._record("GET", key)
        return self.values.get(key)

    def get_remaining_ttl(self, key: str) -> int:
        self._record("TTL", key)
        if key not in self.values:
            return TTL_MISSING
        return self.ttls[key]

    def expire(self, key: str, seconds: int) -> bool:
        self._record("EXPIRE", key)
        if key not in self.values:
            return False
        self.ttls[key] = seconds
        return True


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep environment and cached settings from leaking between tests."""
    for name in ("RENEWAL_TTL", "RENEWAL_THRESHOLD", "PROPERTY_NAME", "LOG_LEVEL"):
        monkeypatch.delenv(f"CACHE_RENEWAL_{name}", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def credentials() -> RedisCredentials:
    return RedisCredentials(host="redis.test", port=6380, database=2)


@pytest.fixture
def manager(store: InMemoryStore) -> ConnectionManager:
    return ConnectionManager(store_factory=lambda _credentials: store)


@pytest.fixture
def connection(manager: ConnectionManager, credentials: RedisCredentials) -> Iterator[Connection]:
    conn = manager.acquire(credentials)
    try:
        yield conn
    finally:
        manager.release(conn)


@pytest.fixture
def unreachable_store(store: InMemoryStore) -> InMemoryStore:
    store.ping_error = StoreConnectionError("Redis connection to redis://redis.test:6380/2 failed")
    return store
