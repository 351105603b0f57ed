"""
storefront_access.services._shared.ports
========================================

Collection of *ports* (hexagonal interfaces) that the identity services
depend on.

Modules
-------
- :mod:`clock`:
    :class:`~.Clock` plus :class:`~.SystemClock` and :class:`~.FrozenClock`.
- :mod:`secret_hasher`:
    :class:`~.SecretHasher`, salted slow hashing with constant-time checks.
- :mod:`token_issuer`:
    :class:`~.TokenIssuer`, access-token signing/decoding and refresh-token
    minting, with :class:`~.StubTokenIssuer` for unit tests.
- :mod:`credential_store`:
    :class:`~.CredentialStore` and its record types, with
    :class:`~.InMemoryCredentialStore`.
- :mod:`mailer`:
    :class:`~.Mailer`, with :class:`~.RecordingMailer`.
- :mod:`job_queue`:
    :class:`~.JobQueue`, the durable notification queue.

Design Notes
------------
Concrete adapters (Werkzeug, Flask-JWT-Extended, SQLAlchemy, Redis, file
outbox) live under ``storefront_access.infra``.
"""

from __future__ import annotations

from .clock import Clock, FrozenClock, SystemClock, ensure_utc
from .credential_store import (
    CredentialStore,
    InMemoryCredentialStore,
    RefreshRecord,
    UserRecord,
    VerificationRecord,
)
from .job_queue import JobQueue, QueuedJob
from .mailer import MailDeliveryError, Mailer, RecordingMailer, SentMail
from .secret_hasher import SecretHasher
from .token_issuer import (
    AccessClaims,
    AccessSubject,
    IssuedAccessToken,
    StubTokenIssuer,
    TokenIssuer,
)

__all__ = [
    "AccessClaims",
    "AccessSubject",
    "Clock",
    "CredentialStore",
    "FrozenClock",
    "InMemoryCredentialStore",
    "IssuedAccessToken",
    "JobQueue",
    "MailDeliveryError",
    "Mailer",
    "QueuedJob",
    "RecordingMailer",
    "RefreshRecord",
    "SecretHasher",
    "SentMail",
    "StubTokenIssuer",
    "SystemClock",
    "TokenIssuer",
    "UserRecord",
    "VerificationRecord",
    "ensure_utc",
]
