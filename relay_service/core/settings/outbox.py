"""Outbox dispatcher settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class OutboxSettings(BaseSettings):
    """Batch and retry parameters for draining the outbox.

    Environment variables use OUTBOX_ prefix.
    Example: OUTBOX_BATCH_SIZE=100, OUTBOX_MAX_RETRIES=3
    """

    batch_size: int = Field(
        default=100,
        ge=1,
        le=10_000,
        description="Maximum records fetched per drain invocation.",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=100,
        description="Failed publish attempts allowed before a record is frozen.",
    )
    poll_interval: float = Field(
        default=5.0,
        gt=0,
        le=3600.0,
        description="Seconds between drains when the outbox is idle.",
    )
    downstream: str = Field(
        default="broker",
        min_length=1,
        description="Circuit breaker key guarding broker publishes.",
    )
    cleanup_days: int = Field(
        default=7,
        ge=1,
        description="Processed records older than this are eligible for cleanup.",
    )
    skip_locked: bool = Field(
        default=False,
        description="Lease pending rows with FOR UPDATE SKIP LOCKED (PostgreSQL only).",
    )

    model_config = SettingsConfigDict(
        env_prefix="OUTBOX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
