"""Redis connection credentials."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisCredentials(BaseSettings):
    """Credentials for the Redis store holding the cached keys.

    Values are read from ``CACHE_RENEWAL_REDIS_*`` environment variables or the
    .env file when not passed explicitly.
    """

    model_config = SettingsConfigDict(
        env_prefix="CACHE_RENEWAL_REDIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Redis server host")
    port: int = Field(default=6379, gt=0, lt=65536, description="Redis server port")
    password: Optional[str] = Field(default=None, description="Redis password")
    database: int = Field(default=0, ge=0, description="Redis database index")
    ssl: bool = Field(default=False, description="Connect using TLS")
    username: Optional[str] = Field(default=None, description="Redis ACL username")
    socket_timeout: Optional[float] = Field(
        default=None, gt=0, description="Socket timeout in seconds (transport default if unset)"
    )

    def client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``redis.Redis``."""
        return {
            "host": self.host,
            "port": self.port,
            "password": self.password or None,
            "db": self.database,
            "ssl": self.ssl,
            "username": self.username or None,
            "socket_timeout": self.socket_timeout,
            "decode_responses": True,
        }

    def describe(self) -> str:
        """Loggable target description without secrets."""
        scheme = "rediss" if self.ssl else "redis"
        return f"{scheme}://{self.host}:{self.port}/{self.database}"
