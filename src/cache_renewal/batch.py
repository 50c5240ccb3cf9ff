"""Batch definition files.

A batch file is YAML (or JSON) with optional ``defaults`` applied to every
item and an ``items`` list::

    defaults:
      renewal_ttl: 3600
      renewal_threshold: 30
    items:
      - key: cache:user:123
        payload: {user_id: 123}
      - key: cache:session:9
        renewal_threshold: 50
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from cache_renewal.config import RenewalSettings, get_settings
from cache_renewal.engine import RenewalItem
from cache_renewal.errors import ConfigurationError

_ITEM_FIELDS = {"key", "payload"}


def load_batch_file(path: Path, settings: Optional[RenewalSettings] = None) -> list[RenewalItem]:
    """
    Load renewal items from a YAML or JSON batch file.

    Raises:
        FileNotFoundError: If the batch file does not exist
        ConfigurationError: If the file structure or an item configuration is invalid
    """
    if not path.exists():
        raise FileNotFoundError(f"Batch file not found: {path}")

    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Cannot parse batch file {path}: {exc}") from exc

    return parse_batch(data, settings=settings, source=str(path))


def parse_batch(
    data: Any, settings: Optional[RenewalSettings] = None, source: str = "<batch>"
) -> list[RenewalItem]:
    """Build renewal items from an already-decoded batch mapping."""
    if not isinstance(data, dict):
        raise ConfigurationError(f"Batch definition must be a mapping in {source}")

    settings = settings or get_settings()
    defaults = data.get("defaults") or {}
    if not isinstance(defaults, dict):
        raise ConfigurationError(f"'defaults' must be a mapping in {source}")

    raw_items = data.get("items", [])
    if not isinstance(raw_items, list):
        raise ConfigurationError(f"'items' must be a list in {source}")

    items: list[RenewalItem] = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Item {index} must be a mapping in {source}")
        if "key" not in raw:
            raise ConfigurationError(f"Item {index} has no 'key' in {source}")

        payload = raw.get("payload") or {}
        if not isinstance(payload, dict):
            raise ConfigurationError(f"Item {index} payload must be a mapping in {source}")

        overrides = {**defaults, **{k: v for k, v in raw.items() if k not in _ITEM_FIELDS}}
        try:
            config = settings.default_config(**overrides)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration for item {index} in {source}: {exc}") from exc

        items.append(RenewalItem(key=str(raw["key"] or ""), config=config, payload=payload))

    return items
