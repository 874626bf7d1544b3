"""Circuit breaker inspection commands."""

import sys

import click

from relay_service.cli.utils import coro, error, header, key_values, success
from relay_service.cli.utils.resources import ProcessLocalStoreError, open_counter_store
from relay_service.core.settings import get_outbox_settings
from relay_service.infra.resilience import create_circuit_breaker


def _default_key() -> str:
    return get_outbox_settings().downstream


@click.group(name="circuit")
def circuit() -> None:
    """Inspect and reset circuit breakers."""


@circuit.command()
@click.argument("key", required=False)
@coro
async def status(key: str | None) -> None:
    """Show the state of a circuit (defaults to the outbox downstream)."""
    key = key or _default_key()
    try:
        async with open_counter_store(require_shared=True) as store:
            metrics = await create_circuit_breaker(store).get_metrics(key)
    except ProcessLocalStoreError as e:
        error(str(e))
        sys.exit(1)
    except Exception as e:
        error(f"Failed to read circuit state: {e}")
        sys.exit(1)

    header(f"Circuit Breaker: {key}")
    key_values(metrics)


@circuit.command()
@click.argument("key", required=False)
@coro
async def reset(key: str | None) -> None:
    """Force a circuit CLOSED and clear its failure count."""
    key = key or _default_key()
    try:
        async with open_counter_store(require_shared=True) as store:
            await create_circuit_breaker(store).reset(key)
    except ProcessLocalStoreError as e:
        error(str(e))
        sys.exit(1)
    except Exception as e:
        error(f"Failed to reset circuit: {e}")
        sys.exit(1)

    success(f"Circuit '{key}' reset to closed")
