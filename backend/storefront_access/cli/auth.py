"""Flask CLI commands for credential housekeeping."""

from __future__ import annotations

import click
from flask.cli import with_appcontext

from storefront_access.services.registry import get_services


@click.group("auth")
def auth_cli() -> None:
    """Credential maintenance commands."""


@auth_cli.command("purge-expired")
@with_appcontext
def purge_expired() -> None:
    """Delete expired refresh tokens and dead verification tokens."""
    counts = get_services().auth.purge_expired()
    click.echo("Purged:")
    for name, value in sorted(counts.items()):
        click.echo(f"  {name}={value}")
