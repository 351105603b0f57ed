"""Application factory wiring Flask extensions and the identity services."""

from __future__ import annotations

from flask import Flask

from storefront_access.core.config import BaseConfig, get_config, validate_config
from storefront_access.core.logger import configure_logging, init_app as init_logging


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application.

    The app is a host for configuration, extensions, the CLI and the service
    registry; it registers no HTTP routes of its own.

    :raises ConfigurationError: When the signing secret is missing or too short.
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))
    validate_config(app.config)

    from storefront_access.core import extensions

    extensions.init_app(app)

    init_logging(app)

    from storefront_access.core import errors

    errors.init_app(app)

    from storefront_access.services import registry

    registry.init_app(app)

    from storefront_access import cli as app_cli

    app_cli.init_app(app)

    return app
