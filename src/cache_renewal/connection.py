"""Connection lifecycle for renewal runs.

A renewal batch shares one store session. The session is acquired once,
checked before each item, and released exactly once on every exit path.

Example:
    >>> from cache_renewal.connection import open_connection
    >>> from cache_renewal.credentials import RedisCredentials
    >>> with open_connection(RedisCredentials(host="localhost")) as connection:
    ...     connection.store.exists("cache:user:123")
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from cache_renewal.credentials import RedisCredentials
from cache_renewal.errors import StoreCommandError, StoreConnectionError
from cache_renewal.store import KeyValueStore, RedisStore

logger = logging.getLogger(__name__)

StoreFactory = Callable[[RedisCredentials], KeyValueStore]


class Connection:
    """A single logical session to the store, owned by one batch run."""

    def __init__(self, store: KeyValueStore, target: str) -> None:
        self.store = store
        self.target = target
        self.established = False
        self.released = False

    @property
    def is_open(self) -> bool:
        return self.established and not self.released

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"Connection(target={self.target!r}, state={state})"


class ConnectionManager:
    """Acquires, checks and releases store connections."""

    def __init__(self, store_factory: Optional[StoreFactory] = None) -> None:
        """
        Initialize connection manager.

        Args:
            store_factory: Builds a store client from credentials
                (defaults to a redis-py backed RedisStore)
        """
        self.store_factory: StoreFactory = store_factory or RedisStore.from_credentials

    def acquire(self, credentials: RedisCredentials) -> Connection:
        """
        Open a session to the store.

        Raises:
            StoreConnectionError: If the store is unreachable or rejects the credentials
        """
        target = credentials.describe()
        try:
            store = self.store_factory(credentials)
        except StoreConnectionError:
            raise
        except Exception as exc:
            raise StoreConnectionError(f"Failed to create Redis client for {target}: {exc}") from exc

        connection = Connection(store, target)
        try:
            if not store.ping():
                raise StoreConnectionError(f"Redis at {target} did not answer PING")
        except StoreCommandError as exc:
            self.release(connection)
            raise StoreConnectionError(f"Redis at {target} rejected PING: {exc}") from exc
        except StoreConnectionError:
            self.release(connection)
            raise

        connection.established = True
        logger.info("Connected to %s", target)
        return connection

    def is_ready(self, connection: Optional[Connection]) -> bool:
        """Report whether the session is currently usable."""
        return connection is not None and connection.is_open

    def release(self, connection: Optional[Connection]) -> None:
        """Close the session if open. Never raises; repeated calls are no-ops."""
        if connection is None or connection.released:
            return

        connection.released = True
        try:
            connection.store.close()
        except Exception:
            logger.warning("Failed to close connection to %s", connection.target, exc_info=True)
            return

        if connection.established:
            logger.info("Disconnected from %s", connection.target)


@contextmanager
def open_connection(
    credentials: RedisCredentials, manager: Optional[ConnectionManager] = None
) -> Iterator[Connection]:
    """Acquire a connection and release it on every exit path."""
    manager = manager or ConnectionManager()
    connection = manager.acquire(credentials)
    try:
        yield connection
    finally:
        manager.release(connection)
