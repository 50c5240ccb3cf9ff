"""Renewal decision engine.

Evaluates cache keys against the store, renews keys whose remaining TTL has
fallen to or below the renewal threshold, and routes every item into either
the ``renewed`` or ``not_renewed`` channel.

Example:
    >>> from cache_renewal import RenewalConfig, RenewalItem, RedisCredentials, run_batch
    >>> items = [RenewalItem("cache:user:123", RenewalConfig(renewal_ttl=3600))]
    >>> result = run_batch(items, RedisCredentials())
    >>> for record in result.renewed:
    ...     print(record["redis_key"], record["redis_ttl_after"])
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Tuple

from cache_renewal.config import RenewalConfig
from cache_renewal.connection import Connection, ConnectionManager, open_connection
from cache_renewal.credentials import RedisCredentials
from cache_renewal.errors import ConfigurationError, StoreConnectionError, ValueDecodeError
from cache_renewal.state import Absent, Expired, Expiring, Permanent, classify
from cache_renewal.store import TTL_NO_EXPIRY, KeyValueStore

logger = logging.getLogger(__name__)

OutcomeRecord = Dict[str, Any]


@dataclass(frozen=True, slots=True)
class RenewalItem:
    """One cache key to evaluate, with its configuration and source payload."""

    key: str
    config: RenewalConfig = field(default_factory=RenewalConfig)
    payload: Mapping[str, Any] = field(default_factory=dict)


class RenewalResult(NamedTuple):
    """Records routed to each outcome channel, in input order."""

    renewed: List[OutcomeRecord]
    not_renewed: List[OutcomeRecord]


class RenewalEngine:
    """Classifies keys, decides on renewal and routes outcome records."""

    def __init__(self, manager: Optional[ConnectionManager] = None) -> None:
        self.manager = manager or ConnectionManager()

    def process_batch(self, items: Iterable[RenewalItem], connection: Connection) -> RenewalResult:
        """
        Process items sequentially over one shared connection.

        Args:
            items: Items to evaluate, in order
            connection: Open connection owned by this batch run

        Returns:
            RenewalResult with the renewed and not renewed records

        Raises:
            ConfigurationError: If an item has an empty key
            StoreConnectionError: If the connection is not usable
            StoreCommandError: If a store command fails
            ValueDecodeError: If a value cannot be parsed as JSON
        """
        renewed: List[OutcomeRecord] = []
        not_renewed: List[OutcomeRecord] = []

        for index, item in enumerate(items):
            if not item.key:
                raise ConfigurationError(f"No key specified (item {index})")
            if not self.manager.is_ready(connection):
                raise StoreConnectionError(f"Connection to {connection.target} is not open")

            record, was_renewed = self.process_item(item, connection.store)
            if was_renewed:
                renewed.append(record)
            else:
                not_renewed.append(record)

        logger.info("Renewal batch done: %d renewed, %d not renewed", len(renewed), len(not_renewed))
        return RenewalResult(renewed=renewed, not_renewed=not_renewed)

    def process_item(self, item: RenewalItem, store: KeyValueStore) -> Tuple[OutcomeRecord, bool]:
        """Evaluate a single item. Returns the record and whether it was renewed."""
        state = classify(store, item.key)
        logger.debug("Key %s classified as %s", item.key, state)

        if isinstance(state, Absent):
            return self._absent(item), False
        if isinstance(state, Permanent):
            return self._permanent(item, store), False
        if isinstance(state, Expiring):
            return self._expiring(item, state, store)
        if isinstance(state, Expired):
            return self._expired(item, state), False
        raise TypeError(f"Unhandled key state: {state!r}")

    def _absent(self, item: RenewalItem) -> OutcomeRecord:
        record = dict(item.payload)
        if item.config.include_metadata:
            record["redis_key"] = item.key
            record["redis_exists"] = False
            record["redis_renewed"] = False
        return record

    def _permanent(self, item: RenewalItem, store: KeyValueStore) -> OutcomeRecord:
        record = dict(item.payload)
        config = item.config
        if config.include_value:
            record[config.property_name] = self._read_value(store, item.key, config)
        if config.include_metadata:
            record["redis_key"] = item.key
            record["redis_ttl"] = TTL_NO_EXPIRY
            record["redis_needs_renewal"] = False
            record["redis_renewed"] = False
            record["redis_permanent"] = True
        return record

    def _expired(self, item: RenewalItem, state: Expired) -> OutcomeRecord:
        record = dict(item.payload)
        if item.config.include_metadata:
            record["redis_key"] = item.key
            record["redis_ttl"] = state.remaining
            record["redis_needs_renewal"] = False
            record["redis_renewed"] = False
            record["redis_expired"] = True
        return record

    def _expiring(
        self, item: RenewalItem, state: Expiring, store: KeyValueStore
    ) -> Tuple[OutcomeRecord, bool]:
        record = dict(item.payload)
        config = item.config
        threshold_seconds = config.threshold_seconds()
        needs_renewal = state.remaining <= threshold_seconds

        if config.include_value:
            record[config.property_name] = self._read_value(store, item.key, config)

        if config.include_metadata:
            record["redis_key"] = item.key
            record["redis_ttl_before"] = state.remaining
            record["redis_renewal_threshold"] = threshold_seconds
            record["redis_needs_renewal"] = needs_renewal
            record["redis_permanent"] = False

        if not needs_renewal:
            logger.debug(
                "Key %s has %ds left, above threshold %.1fs", item.key, state.remaining, threshold_seconds
            )
            if config.include_metadata:
                record["redis_renewed"] = False
            return record, False

        if not store.expire(item.key, config.renewal_ttl):
            logger.warning("EXPIRE for %s was not acknowledged; the key may have just expired", item.key)
        logger.debug("Renewed %s to %ds (had %ds)", item.key, config.renewal_ttl, state.remaining)

        if config.include_metadata:
            record["redis_ttl_after"] = store.get_remaining_ttl(item.key)
            record["redis_renewed"] = True
            record["redis_renewal_ttl"] = config.renewal_ttl
        return record, True

    @staticmethod
    def _read_value(store: KeyValueStore, key: str, config: RenewalConfig) -> Any:
        value = store.get_value(key)
        if config.json_parse and value:
            try:
                return json.loads(value)
            except json.JSONDecodeError as exc:
                raise ValueDecodeError(key=key, message=str(exc)) from exc
        return value


def run_batch(
    items: Iterable[RenewalItem],
    credentials: RedisCredentials,
    engine: Optional[RenewalEngine] = None,
) -> RenewalResult:
    """Acquire a connection, process the batch and release the connection.

    Either both complete channels are returned or an error propagates; partial
    results are never returned. The connection is released exactly once.
    """
    engine = engine or RenewalEngine()
    with open_connection(credentials, engine.manager) as connection:
        return engine.process_batch(items, connection)

