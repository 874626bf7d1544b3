"""Account commands that write through the transactional outbox."""

import sys

import click

from relay_service.cli.utils import coro, error, key_values, success
from relay_service.cli.utils.resources import open_session_factory
from relay_service.core.exceptions import AppException
from relay_service.features.accounts import RegistrationService


@click.group(name="accounts")
def accounts() -> None:
    """Manage user accounts."""


@accounts.command()
@click.option("--email", required=True, help="Login email")
@click.option("--name", required=True, help="Display name")
@click.option("--role", "roles", multiple=True, help="Role to grant (repeatable)")
@coro
async def register(email: str, name: str, roles: tuple[str, ...]) -> None:
    """Create a user and stage its user.created event."""
    try:
        async with open_session_factory() as session_factory, session_factory() as session:
            user = await RegistrationService().register(
                session,
                email=email,
                name=name,
                roles=list(roles) or None,
            )
    except AppException as e:
        error(e.detail)
        sys.exit(1)
    except Exception as e:
        error(f"Registration failed: {e}")
        sys.exit(1)

    success(f"Registered {user.email}")
    key_values({"id": user.id, "roles": ", ".join(user.roles)})
