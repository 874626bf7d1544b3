"""Prometheus registry shared by every relay-service metric, and its exporters."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, start_http_server, write_to_textfile

if TYPE_CHECKING:
    import threading
    from pathlib import Path
    from wsgiref.simple_server import WSGIServer

logger = logging.getLogger(__name__)

# Private registry so importing the package never touches the global default
REGISTRY = CollectorRegistry()


def start_metrics_server(port: int, addr: str = "0.0.0.0") -> tuple[WSGIServer, threading.Thread]:
    """Serve ``REGISTRY`` over HTTP from a daemon thread.

    Used by the long-running dispatcher. Port 0 binds an ephemeral port; read
    the real one from ``server.server_port``. Call ``server.shutdown()`` to stop.
    """
    server, thread = start_http_server(port, addr=addr, registry=REGISTRY)
    logger.info("Metrics endpoint listening", extra={"addr": addr, "port": server.server_port})
    return server, thread


def write_metrics_file(path: str | Path) -> None:
    """Write ``REGISTRY`` in text format for node_exporter's textfile collector.

    One-shot drains exit before any scraper could reach them, so they leave
    their counters in a file instead.
    """
    write_to_textfile(str(path), REGISTRY)
    logger.debug("Metrics written", extra={"path": str(path)})


__all__ = ["REGISTRY", "start_metrics_server", "write_metrics_file"]
