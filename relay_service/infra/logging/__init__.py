"""Structured logging setup."""

from __future__ import annotations

from relay_service.infra.logging.config import configure_logging, reset_logging_state, setup_logging
from relay_service.infra.logging.formatters import JSONFormatter

__all__ = ["JSONFormatter", "configure_logging", "reset_logging_state", "setup_logging"]
