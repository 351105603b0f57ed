"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any, Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

#: Shortest signing secret accepted at startup.
MIN_JWT_SECRET_LENGTH: Final[int] = 32

# Loads .env during development (no-op when the file is missing)
load_dotenv()


class ConfigurationError(RuntimeError):
    """Raised when the application refuses to start with the given settings."""


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse a positive integer from the environment, keeping ``default`` otherwise."""
    raw = os.getenv(name, "").strip()
    if raw.isdigit() and int(raw) > 0:
        return int(raw)
    return default


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    SECRET_KEY: str
        Flask secret. Unused by the identity core but kept for extensions.
    JWT_SECRET_KEY: str
        Key used by ``flask-jwt-extended`` for signing access tokens. Must
        be at least :data:`MIN_JWT_SECRET_LENGTH` characters long.
    ACCESS_TOKEN_TTL: str
        Access-token lifetime as a duration string (``"1h"``).
    REFRESH_TOKEN_TTL: str
        Refresh-token lifetime as a duration string (``"30d"``).
    EMAIL_VERIFICATION_TTL: str
        Verification-token lifetime as a duration string (``"24h"``).
    PASSWORD_HASH_METHOD: str
        Werkzeug hashing method used for passwords, refresh tokens and
        ticket access codes.
    REDIS_URL: str | None
        Queue backend for ticket notifications. When missing, notifications
        are delivered synchronously (direct-fallback mode).
    NOTIFICATION_QUEUE_NAME: str
        Redis key prefix for the notification queue.
    NOTIFICATION_MAX_ATTEMPTS: int
        Delivery attempts per queued notification (including the first).
    NOTIFICATION_BACKOFF_MS: int
        Base delay of the exponential retry backoff.
    NOTIFICATION_WORKER_INPROCESS: bool
        Start a worker thread next to the queue when ``True``.
    FRONTEND_ORIGIN: str
        Origin used to build verification links.
    EMAIL_OUTPUT_DIR: str
        Directory where the development mailer drops ``.eml`` files.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")
    PASSWORD_HASH_METHOD = os.getenv("PASSWORD_HASH_METHOD", "scrypt")

    # Token lifetimes (duration strings)
    ACCESS_TOKEN_TTL = os.getenv("ACCESS_TOKEN_TTL", "1h")
    REFRESH_TOKEN_TTL = os.getenv("REFRESH_TOKEN_TTL", "30d")
    EMAIL_VERIFICATION_TTL = os.getenv("EMAIL_VERIFICATION_TTL", "24h")

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Notifications
    REDIS_URL = os.getenv("REDIS_URL") or None
    NOTIFICATION_QUEUE_NAME = os.getenv("NOTIFICATION_QUEUE_NAME", "ticket-updates")
    NOTIFICATION_MAX_ATTEMPTS = env_int("NOTIFICATION_MAX_ATTEMPTS", 3)
    NOTIFICATION_BACKOFF_MS = env_int("NOTIFICATION_BACKOFF_MS", 1000)
    NOTIFICATION_WORKER_INPROCESS = env_bool("NOTIFICATION_WORKER_INPROCESS", True)

    # Mail
    FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN", "http://localhost:3000")
    EMAIL_OUTPUT_DIR = os.getenv("EMAIL_OUTPUT_DIR", "./tmp/emails")

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Flask built-ins
    DEBUG = False
    TESTING = False
    PROPAGATE_EXCEPTIONS = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default and honors ``SQLALCHEMY_ECHO`` for verbose
    SQL logging when requested.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Uses a cheap hashing method and never talks to Redis.
    """

    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = "testing-secret-key-that-is-long-enough-0123"
    PASSWORD_HASH_METHOD = "pbkdf2:sha256:1000"
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    REDIS_URL = None
    NOTIFICATION_WORKER_INPROCESS = False
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments."""

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)


def validate_config(config: Mapping[str, Any]) -> None:
    """Reject settings the identity core cannot safely run with.

    :param config: Loaded Flask configuration.
    :raises ConfigurationError: When the signing secret is missing or too short.
    """
    secret = str(config.get("JWT_SECRET_KEY") or "")
    if len(secret) < MIN_JWT_SECRET_LENGTH:
        raise ConfigurationError(
            f"JWT_SECRET_KEY must be at least {MIN_JWT_SECRET_LENGTH} characters long."
        )
