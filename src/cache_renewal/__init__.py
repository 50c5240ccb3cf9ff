"""Proactive TTL renewal for Redis cache keys."""

from __future__ import annotations

from cache_renewal.config import RenewalConfig, RenewalSettings, get_settings
from cache_renewal.connection import Connection, ConnectionManager, open_connection
from cache_renewal.credentials import RedisCredentials
from cache_renewal.engine import RenewalEngine, RenewalItem, RenewalResult, run_batch
from cache_renewal.errors import (
    ConfigurationError,
    RenewalError,
    StoreCommandError,
    StoreConnectionError,
    ValueDecodeError,
)
from cache_renewal.state import Absent, Expired, Expiring, KeyState, Permanent, classify

__version__ = "0.1.0"

__all__ = [
    "Absent",
    "ConfigurationError",
    "Connection",
    "ConnectionManager",
    "Expired",
    "Expiring",
    "KeyState",
    "Permanent",
    "RedisCredentials",
    "RenewalConfig",
    "RenewalEngine",
    "RenewalError",
    "RenewalItem",
    "RenewalResult",
    "RenewalSettings",
    "StoreCommandError",
    "StoreConnectionError",
    "ValueDecodeError",
    "classify",
    "get_settings",
    "open_connection",
    "run_batch",
]
