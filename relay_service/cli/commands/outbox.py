"""Transactional outbox commands."""

import asyncio
import sys

import click

from relay_service.cli.utils import coro, error, header, info, key_values, success, warning
from relay_service.cli.utils.resources import open_dispatcher
from relay_service.core.exceptions import NotFoundException
from relay_service.core.settings import get_outbox_settings
from relay_service.infra.metrics import start_metrics_server, write_metrics_file


@click.group(name="outbox")
def outbox() -> None:
    """Dispatch, inspect and repair outbox records."""


@outbox.command()
@click.option("--batch-size", type=click.IntRange(min=1), default=None, help="Records per drain")
@click.option("--max-retries", type=click.IntRange(min=1), default=None, help="Attempts before a record is frozen")
@click.option(
    "--metrics-file",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Write Prometheus metrics here after the drain (textfile collector)",
)
@coro
async def drain(batch_size: int | None, max_retries: int | None, metrics_file: str | None) -> None:
    """Publish one batch of pending records."""
    try:
        async with open_dispatcher(batch_size=batch_size, max_retries=max_retries) as dispatcher:
            result = await dispatcher.drain()
        if metrics_file:
            write_metrics_file(metrics_file)
    except Exception as e:
        error(f"Drain failed: {e}")
        sys.exit(1)

    header("Outbox Drain")
    key_values(result.as_dict())
    if result.exhausted:
        warning(f"{result.exhausted} record(s) exceeded max retries; see 'outbox retry'")
    elif result.failed:
        warning(f"{result.failed} record(s) failed and will be retried")
    else:
        success(f"Processed {result.processed} record(s)")


@outbox.command()
@click.option("--batch-size", type=click.IntRange(min=1), default=None, help="Records per drain")
@click.option("--poll-interval", type=click.FloatRange(min=0, min_open=True), default=None, help="Idle seconds between drains")
@click.option(
    "--metrics-port",
    type=click.IntRange(min=0, max=65535),
    default=None,
    help="Serve Prometheus metrics over HTTP on this port",
)
@coro
async def run(batch_size: int | None, poll_interval: float | None, metrics_port: int | None) -> None:
    """Drain continuously until interrupted."""
    server = None
    try:
        if metrics_port is not None:
            server, _ = start_metrics_server(metrics_port)
            info(f"Serving metrics on port {server.server_port}")
        async with open_dispatcher(batch_size=batch_size, poll_interval=poll_interval) as dispatcher:
            await dispatcher.start()
            info("Outbox dispatcher running, press Ctrl+C to stop")
            try:
                await asyncio.Event().wait()
            finally:
                await dispatcher.stop()
    except asyncio.CancelledError:
        info("Outbox dispatcher stopped")
    except Exception as e:
        error(f"Dispatcher failed: {e}")
        sys.exit(1)
    finally:
        if server is not None:
            server.shutdown()


@outbox.command()
@click.option("--id", "record_id", default=None, help="Reset a single record by id")
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Reset at most this many records")
@coro
async def retry(record_id: str | None, limit: int | None) -> None:
    """Move FAILED records back to PENDING.

    Without --id only records with retry budget left are reset. With --id
    that record is reset whatever its retry count and starts a fresh budget.
    """
    try:
        async with open_dispatcher(connect_broker=False) as dispatcher:
            count = await dispatcher.reset_failed(record_id=record_id, limit=limit)
    except NotFoundException as e:
        error(e.detail)
        sys.exit(1)
    except Exception as e:
        error(f"Retry failed: {e}")
        sys.exit(1)

    if count:
        success(f"Reset {count} record(s) for retry")
    else:
        info("No failed records to reset")


@outbox.command()
@coro
async def stats() -> None:
    """Show record counts by status."""
    try:
        async with open_dispatcher(connect_broker=False) as dispatcher:
            counts = await dispatcher.stats()
    except Exception as e:
        error(f"Failed to read outbox stats: {e}")
        sys.exit(1)

    header("Outbox Statistics")
    key_values(counts)


@outbox.command()
@click.option("--days", type=click.IntRange(min=0), default=None, help="Delete processed records older than this")
@coro
async def cleanup(days: int | None) -> None:
    """Delete old PROCESSED records."""
    try:
        async with open_dispatcher(connect_broker=False) as dispatcher:
            deleted = await dispatcher.cleanup(
                older_than_days=days if days is not None else get_outbox_settings().cleanup_days,
            )
    except Exception as e:
        error(f"Cleanup failed: {e}")
        sys.exit(1)

    success(f"Deleted {deleted} processed record(s)")
