"""Main CLI entry point for relay-service management commands."""

import click

from relay_service.cli.commands.accounts import accounts
from relay_service.cli.commands.circuit import circuit
from relay_service.cli.commands.outbox import outbox
from relay_service.cli.commands.ratelimit import ratelimit
from relay_service.infra.logging import setup_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="relay-service")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Relay service management CLI.

    Drain the transactional outbox, inspect circuit breakers and rate limit
    windows, and register accounts.

    \b
    Examples:
      relay-service outbox drain --batch-size 100 --max-retries 3
      relay-service outbox retry --id <record-id>
      relay-service circuit status broker
      relay-service ratelimit clear register:10.0.0.1
    """
    ctx.ensure_object(dict)


cli.add_command(accounts)
cli.add_command(circuit)
cli.add_command(outbox)
cli.add_command(ratelimit)


def main() -> None:
    """Main entry point for the CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()
