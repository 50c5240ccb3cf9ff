"""Key-value store primitives used by the renewal engine.

``RedisStore`` wraps a redis-py client and translates client failures into
the renewal error hierarchy so callers only ever handle ``RenewalError``.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Protocol

from redis import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from cache_renewal.credentials import RedisCredentials
from cache_renewal.errors import StoreCommandError, StoreConnectionError

logger = logging.getLogger(__name__)

# Redis TTL replies
TTL_NO_EXPIRY = -1
TTL_MISSING = -2


class KeyValueStore(Protocol):
    """Protocol for the store primitives the engine relies on."""

    @abstractmethod
    def ping(self) -> bool:
        """Round-trip to verify the session is usable."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close the underlying session."""
        ...

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Return True when the key exists."""
        ...

    @abstractmethod
    def get_value(self, key: str) -> Optional[str]:
        """Return the stored string value or None."""
        ...

    @abstractmethod
    def get_remaining_ttl(self, key: str) -> int:
        """Return remaining TTL in seconds (-1 no expiry, -2 missing)."""
        ...

    @abstractmethod
    def expire(self, key: str, seconds: int) -> bool:
        """Set the key's TTL; returns whether the store acknowledged it."""
        ...


class RedisStore(KeyValueStore):
    """redis-py backed store."""

    def __init__(self, client: Any, target: str = "redis") -> None:
        self.client = client
        self.target = target

    @classmethod
    def from_credentials(cls, credentials: RedisCredentials) -> RedisStore:
        """Build a client from credentials. No network traffic happens here."""
        client = Redis(**credentials.client_kwargs())
        return cls(client, target=credentials.describe())

    @contextmanager
    def _command(self, operation: str, key: str = "") -> Iterator[None]:
        try:
            yield
        except (RedisConnectionError, RedisTimeoutError) as exc:
            # AuthenticationError is a ConnectionError subclass in redis-py
            suffix = f" {key}" if key else ""
            raise StoreConnectionError(
                f"Redis connection to {self.target} failed during {operation}{suffix}: {exc}"
            ) from exc
        except RedisError as exc:
            raise StoreCommandError(key=key, operation=operation, cause=str(exc)) from exc
        except (TypeError, ValueError) as exc:
            raise StoreCommandError(
                key=key, operation=operation, cause=f"malformed reply: {exc}"
            ) from exc

    def ping(self) -> bool:
        with self._command("PING"):
            return bool(self.client.ping())

    def close(self) -> None:
        self.client.close()

    def exists(self, key: str) -> bool:
        with self._command("EXISTS", key):
            return int(self.client.exists(key)) == 1

    def get_value(self, key: str) -> Optional[str]:
        # str replies: clients are built with decode_responses=True
        with self._command("GET", key):
            return self.client.get(key)

    def get_remaining_ttl(self, key: str) -> int:
        with self._command("TTL", key):
            return int(self.client.ttl(key))

    def expire(self, key: str, seconds: int) -> bool:
        with self._command("EXPIRE", key):
            return bool(self.client.expire(key, seconds))
