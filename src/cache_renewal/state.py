"""Point-in-time classification of a cached key."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from cache_renewal.store import TTL_NO_EXPIRY, KeyValueStore


@dataclass(frozen=True, slots=True)
class Absent:
    """Key does not exist in the store."""


@dataclass(frozen=True, slots=True)
class Permanent:
    """Key exists with no expiration."""

    remaining: int = TTL_NO_EXPIRY


@dataclass(frozen=True, slots=True)
class Expiring:
    """Key exists with a positive remaining TTL."""

    remaining: int

    def __post_init__(self) -> None:
        if self.remaining <= 0:
            raise ValueError(f"Expiring keys need a positive TTL, got {self.remaining}")


@dataclass(frozen=True, slots=True)
class Expired:
    """Key reports a non-positive TTL other than the no-expiry sentinel."""

    remaining: int

    def __post_init__(self) -> None:
        if self.remaining > 0 or self.remaining == TTL_NO_EXPIRY:
            raise ValueError(f"Expired keys need a non-positive TTL other than -1, got {self.remaining}")


KeyState = Union[Absent, Permanent, Expiring, Expired]


def classify_ttl(ttl: int) -> KeyState:
    """Classify an existing key from its TTL reply."""
    if ttl == TTL_NO_EXPIRY:
        return Permanent()
    if ttl > 0:
        return Expiring(ttl)
    # 0 or -2: the key expired between the existence check and the TTL read
    return Expired(ttl)


def classify(store: KeyValueStore, key: str) -> KeyState:
    """Query the store and classify the key."""
    if not store.exists(key):
        return Absent()
    return classify_ttl(store.get_remaining_ttl(key))
