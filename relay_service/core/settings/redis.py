"""Redis settings for the shared counter store."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    """Redis connection settings.

    Environment variables use REDIS_ prefix.
    Example: REDIS_URL="redis://localhost:6379/0", REDIS_KEY_PREFIX=relay

    Supports bidirectional configuration:
    1. Provide REDIS_URL → used as-is
    2. Provide components (host, port, etc.) → URL is built automatically
    """

    redis_url: str | None = Field(
        default=None,
        alias="REDIS_URL",
        description="Redis connection URL. If provided, overrides component fields.",
    )
    host: str = Field(default="localhost", description="Redis server hostname")
    port: int = Field(default=6379, ge=1, le=65535, description="Redis server port")
    db: int = Field(default=0, ge=0, le=15, description="Redis database number")
    username: str | None = Field(default=None, description="Redis username (ACL)")
    password: SecretStr | None = Field(default=None, description="Redis password")

    max_connections: int = Field(default=50, ge=1, le=1000, description="Pool size")
    socket_timeout: float = Field(default=5.0, ge=0.1, le=30.0, description="Op timeout (s)")
    socket_connect_timeout: float = Field(
        default=5.0, ge=0.1, le=30.0, description="Connect timeout (s)"
    )
    ssl_enabled: bool = Field(default=False, description="Use rediss:// scheme")

    key_prefix: str = Field(
        default="relay",
        min_length=1,
        description="Namespace prepended to every counter key",
    )

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @property
    def url(self) -> str:
        """Build Redis URL from component fields unless an explicit URL is set."""
        if self.redis_url:
            return self.redis_url

        scheme = "rediss" if self.ssl_enabled else "redis"
        auth = ""
        if self.username or self.password:
            username_part = quote(self.username) if self.username else ""
            password_part = quote(self.password.get_secret_value()) if self.password else ""
            if username_part and password_part:
                auth = f"{username_part}:{password_part}@"
            elif password_part:
                auth = f":{password_part}@"

        return f"{scheme}://{auth}{self.host}:{self.port}/{self.db}"

    @property
    def is_configured(self) -> bool:
        """Redis is configured when a URL or non-default host is provided."""
        return self.redis_url is not None or self.host != "localhost"

    def connection_pool_kwargs(self) -> dict[str, Any]:
        """Return kwargs for redis.asyncio.ConnectionPool.from_url()."""
        return {
            "max_connections": self.max_connections,
            "socket_timeout": self.socket_timeout,
            "socket_connect_timeout": self.socket_connect_timeout,
            "decode_responses": True,
            "encoding": "utf-8",
        }
