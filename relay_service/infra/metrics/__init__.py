"""Metrics infrastructure for Prometheus monitoring."""

from __future__ import annotations

from relay_service.infra.metrics import business, tracking
from relay_service.infra.metrics.prometheus import REGISTRY, start_metrics_server, write_metrics_file

__all__ = [
    "REGISTRY",
    "business",
    "start_metrics_server",
    "tracking",
    "write_metrics_file",
]
