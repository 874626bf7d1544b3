"""CLI command groups."""

from relay_service.cli.commands import accounts, circuit, outbox, ratelimit

__all__ = ["accounts", "circuit", "outbox", "ratelimit"]
