"""
Composition root for the identity and ticket services.

:func:`init_app` builds every adapter once, from the Flask configuration,
and stores the result on ``app.extensions``; callers reach it through
:func:`get_services`. The notification dispatcher is closed at interpreter
exit.
"""

from __future__ import annotations

import atexit
from dataclasses import dataclass
from typing import cast

from flask import Flask, current_app

from storefront_access.core.durations import parse_duration
from storefront_access.infra.db.sqlalchemy_credential_store import SQLAlchemyCredentialStore
from storefront_access.infra.jwt.flask_jwt_token_issuer import JWTTokenIssuer
from storefront_access.infra.mail.outbox_mailer import OutboxMailer
from storefront_access.infra.security.werkzeug_hasher import WerkzeugSecretHasher
from storefront_access.services._shared.ports import CredentialStore, Mailer, SecretHasher, TokenIssuer
from storefront_access.services.auth.dto import AuthSettings
from storefront_access.services.auth.service import AuthSessionService
from storefront_access.services.notifications.dispatcher import NotificationDispatcher
from storefront_access.services.tickets.service import TicketService

EXTENSION_KEY = "storefront_access"


@dataclass(slots=True)
class Services:
    """Process-wide service graph."""

    hasher: SecretHasher
    tokens: TokenIssuer
    store: CredentialStore
    mailer: Mailer
    dispatcher: NotificationDispatcher
    auth: AuthSessionService
    tickets: TicketService


def build_services(app: Flask, *, mailer: Mailer | None = None) -> Services:
    """
    Build the service graph from ``app.config``.

    :param app: Configured application.
    :param mailer: Override the file outbox mailer (tests).
    """
    cfg = app.config
    hasher = WerkzeugSecretHasher(method=cfg.get("PASSWORD_HASH_METHOD", "scrypt"))
    tokens = JWTTokenIssuer(access_ttl=parse_duration(cfg.get("ACCESS_TOKEN_TTL"), setting="ACCESS_TOKEN_TTL"))
    store = SQLAlchemyCredentialStore()
    mailer = mailer or OutboxMailer(cfg.get("EMAIL_OUTPUT_DIR", "./tmp/emails"))

    settings = AuthSettings(
        refresh_ttl=parse_duration(cfg.get("REFRESH_TOKEN_TTL"), setting="REFRESH_TOKEN_TTL"),
        verification_ttl=parse_duration(cfg.get("EMAIL_VERIFICATION_TTL"), setting="EMAIL_VERIFICATION_TTL"),
        frontend_origin=cfg.get("FRONTEND_ORIGIN", "http://localhost:3000"),
    )
    dispatcher = NotificationDispatcher.open(cfg, mailer)

    return Services(
        hasher=hasher,
        tokens=tokens,
        store=store,
        mailer=mailer,
        dispatcher=dispatcher,
        auth=AuthSessionService(store=store, hasher=hasher, tokens=tokens, mailer=mailer, settings=settings),
        tickets=TicketService(hasher=hasher, mailer=mailer, dispatcher=dispatcher),
    )


def init_app(app: Flask, *, mailer: Mailer | None = None) -> Services:
    """Build the services, attach them to ``app`` and register shutdown."""
    services = build_services(app, mailer=mailer)
    app.extensions[EXTENSION_KEY] = services
    atexit.register(services.dispatcher.close)
    return services


def get_services(app: Flask | None = None) -> Services:
    """Return the services of ``app`` (defaults to ``current_app``)."""
    target = app or current_app
    return cast(Services, target.extensions[EXTENSION_KEY])
