"""Renewal configuration models and process-wide settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_RENEWAL_TTL = 3600
DEFAULT_RENEWAL_THRESHOLD = 30
DEFAULT_PROPERTY_NAME = "cachedData"


class RenewalConfig(BaseModel):
    """Per-item renewal configuration.

    Attributes:
        renewal_ttl: New expiration time in seconds to set when renewal is needed
        renewal_threshold: Percentage of the original TTL at or below which the
            key is renewed (30 means renew when 30% or less TTL remains)
        include_value: Include the current value of the key in the output
        property_name: Output property holding the value when include_value is set
        json_parse: Parse the cached value as JSON
        include_metadata: Include TTL and renewal status fields in the output
        original_ttl: TTL the key was created with, when known. Falls back to
            renewal_ttl, which is an approximation of the original TTL.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    renewal_ttl: int = Field(default=DEFAULT_RENEWAL_TTL, gt=0)
    renewal_threshold: int = Field(default=DEFAULT_RENEWAL_THRESHOLD, ge=1, le=99)
    include_value: bool = True
    property_name: str = DEFAULT_PROPERTY_NAME
    json_parse: bool = False
    include_metadata: bool = True
    original_ttl: Optional[int] = Field(default=None, gt=0)

    @model_validator(mode="after")
    def validate_property_name(self) -> "RenewalConfig":
        """Require an output property name whenever the value is included."""
        if self.include_value and not self.property_name:
            raise ValueError("property_name is required when include_value is enabled")
        return self

    @property
    def reference_ttl(self) -> int:
        """TTL used as the 100% mark when computing the renewal threshold."""
        return self.original_ttl if self.original_ttl is not None else self.renewal_ttl

    def threshold_seconds(self) -> float:
        """Remaining seconds at or below which a key needs renewal.

        Whole thresholds are returned as int so they serialize as 1080, not 1080.0.
        """
        whole, remainder = divmod(self.reference_ttl * self.renewal_threshold, 100)
        if remainder == 0:
            return whole
        return (self.reference_ttl * self.renewal_threshold) / 100


class RenewalSettings(BaseSettings):
    """Defaults for renewal runs loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_prefix="CACHE_RENEWAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    renewal_ttl: int = Field(default=DEFAULT_RENEWAL_TTL, gt=0, description="Default renewal TTL")
    renewal_threshold: int = Field(
        default=DEFAULT_RENEWAL_THRESHOLD,
        ge=1,
        le=99,
        description="Default renewal threshold percentage",
    )
    property_name: str = Field(
        default=DEFAULT_PROPERTY_NAME, description="Default output property for cached values"
    )
    log_level: str = Field(default="WARNING", description="Root log level for the CLI")

    def default_config(self, **overrides: object) -> RenewalConfig:
        """Build a RenewalConfig seeded with these defaults."""
        values: dict[str, object] = {
            "renewal_ttl": self.renewal_ttl,
            "renewal_threshold": self.renewal_threshold,
            "property_name": self.property_name,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return RenewalConfig.model_validate(values)


@lru_cache
def get_settings() -> RenewalSettings:
    """Get cached settings instance."""
    return RenewalSettings()
