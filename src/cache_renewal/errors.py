"""Custom exceptions for cache renewal runs."""

from __future__ import annotations

from dataclasses import dataclass


class RenewalError(RuntimeError):
    """Base exception for cache renewal failures."""


class ConfigurationError(RenewalError):
    """Raised when a key or renewal configuration is malformed."""


class StoreConnectionError(RenewalError):
    """Raised when the store session cannot be established or is lost."""


@dataclass(slots=True)
class ValueDecodeError(RenewalError):
    """Raised when a cached value cannot be parsed as JSON."""

    key: str
    message: str

    def __str__(self) -> str:
        return f"Failed to parse Redis value as JSON for key '{self.key}': {self.message}"


@dataclass(slots=True)
class StoreCommandError(RenewalError):
    """Raised when an underlying Redis command fails."""

    key: str
    operation: str
    cause: str = ""

    def __str__(self) -> str:
        suffix = f": {self.cause}" if self.cause else ""
        return f"redis command failed ({self.operation} {self.key}){suffix}"
