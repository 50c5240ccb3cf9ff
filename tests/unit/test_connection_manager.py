"""Unit tests for the connection lifecycle manager."""
from __future__ import annotations

import logging

import pytest

from cache_renewal.connection import ConnectionManager, open_connection
from cache_renewal.errors import StoreCommandError, StoreConnectionError


def test_acquire_opens_connection(manager, store, credentials) -> None:
    connection = manager.acquire(credentials)

    assert manager.is_ready(connection)
    assert connection.store is store
    assert connection.target == "redis://redis.test:6380/2"
    assert "open" in repr(connection)


def test_release_is_idempotent(manager, store, credentials) -> None:
    connection = manager.acquire(credentials)

    manager.release(connection)
    manager.release(connection)

    assert not manager.is_ready(connection)
    assert store.close_count == 1


def test_release_none_is_noop(manager) -> None:
    manager.release(None)

    assert manager.is_ready(None) is False


def test_release_swallows_close_failure(manager, store, credentials, caplog) -> None:
    connection = manager.acquire(credentials)

    def broken_close() -> None:
        raise OSError("socket already closed")

    store.close = broken_close  # type: ignore[method-assign]

    with caplog.at_level(logging.WARNING, logger="cache_renewal.connection"):
        manager.release(connection)

    assert connection.released
    assert "Failed to close connection" in caplog.text


def test_acquire_failure_closes_partial_client(manager, unreachable_store, credentials) -> None:
    with pytest.raises(StoreConnectionError):
        manager.acquire(credentials)

    assert unreachable_store.close_count == 1


def test_acquire_ping_command_error_becomes_connection_error(manager, store, credentials) -> None:
    store.ping_error = StoreCommandError(key="", operation="PING", cause="NOAUTH")

    with pytest.raises(StoreConnectionError, match="rejected PING"):
        manager.acquire(credentials)

    assert store.close_count == 1


def test_acquire_falsy_ping(store, credentials) -> None:
    store.ping = lambda: False  # type: ignore[method-assign]
    manager = ConnectionManager(store_factory=lambda _credentials: store)

    with pytest.raises(StoreConnectionError, match="did not answer PING"):
        manager.acquire(credentials)

    assert store.close_count == 1


def test_client_factory_failure(credentials) -> None:
    def factory(_credentials):
        raise ValueError("invalid port")

    with pytest.raises(StoreConnectionError, match="Failed to create Redis client"):
        ConnectionManager(store_factory=factory).acquire(credentials)


def test_open_connection_releases_on_exit(manager, store, credentials) -> None:
    with open_connection(credentials, manager) as connection:
        assert manager.is_ready(connection)

    assert not manager.is_ready(connection)
    assert store.close_count == 1


def test_open_connection_releases_on_error(manager, store, credentials) -> None:
    with pytest.raises(RuntimeError, match="boom"):
        with open_connection(credentials, manager):
            raise RuntimeError("boom")

    assert store.close_count == 1
