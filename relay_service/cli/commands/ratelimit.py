"""Rate limiter inspection commands."""

import sys

import click

from relay_service.cli.utils import coro, error, header, key_values, success
from relay_service.cli.utils.resources import ProcessLocalStoreError, open_counter_store
from relay_service.infra.ratelimit import create_rate_limiter


@click.group(name="ratelimit")
def ratelimit() -> None:
    """Inspect and clear rate limit windows."""


@ratelimit.command()
@click.argument("key")
@coro
async def status(key: str) -> None:
    """Show the current window for KEY (e.g. register:10.0.0.1)."""
    try:
        async with open_counter_store(require_shared=True) as store:
            window = await create_rate_limiter(store).status(key)
    except ProcessLocalStoreError as e:
        error(str(e))
        sys.exit(1)
    except Exception as e:
        error(f"Failed to read rate limit: {e}")
        sys.exit(1)

    header(f"Rate Limit: {key}")
    key_values(window)


@ratelimit.command()
@click.argument("key")
@coro
async def clear(key: str) -> None:
    """Drop the current window for KEY."""
    try:
        async with open_counter_store(require_shared=True) as store:
            await create_rate_limiter(store).clear(key)
    except ProcessLocalStoreError as e:
        error(str(e))
        sys.exit(1)
    except Exception as e:
        error(f"Failed to clear rate limit: {e}")
        sys.exit(1)

    success(f"Rate limit cleared for '{key}'")
