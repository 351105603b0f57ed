"""Command-line interface registration for the Flask application."""

from __future__ import annotations

from flask import Flask

from .auth import auth_cli
from .notifications import notifications_cli


def init_app(app: Flask) -> None:
    """Register application-specific CLI command groups.

    Parameters
    ----------
    app:
        Flask application instance whose CLI registry will receive the
        ``auth`` and ``notifications`` command groups.
    """
    app.cli.add_command(auth_cli)
    app.cli.add_command(notifications_cli)
