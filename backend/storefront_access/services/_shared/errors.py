"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask, HTTP, or SQLAlchemy directly. Each one carries an :class:`ErrorKind`
so the transport boundary can map it without inspecting class names.

The translation to HTTP responses (RFC 7807) is handled by
``storefront_access/core/errors.py`` via ``BaseService.translate_exceptions()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar


class ErrorKind(str, Enum):
    """Transport-independent category of a service failure."""

    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"


class AuthFailure(str, Enum):
    """Why an authentication attempt was rejected (never shown verbatim to clients)."""

    INVALID_CREDENTIALS = "invalid_credentials"
    EMAIL_NOT_VERIFIED = "email_not_verified"
    REFRESH_NOT_FOUND = "refresh_not_found"
    REFRESH_MISSING = "refresh_missing"
    REFRESH_INVALID = "refresh_invalid"
    REFRESH_EXPIRED = "refresh_expired"
    TOKEN_INVALID = "token_invalid"
    TOKEN_EXPIRED = "token_expired"


class VerificationFailure(str, Enum):
    """Why an email-verification token was rejected."""

    INVALID = "invalid"
    ALREADY_USED = "already_used"
    EXPIRED = "expired"


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from repositories or domain logic.
    - The API layer or BaseService will later translate them to APIError.
    """

    kind: ClassVar[ErrorKind] = ErrorKind.BAD_REQUEST


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


class AuthenticationError(ServiceError):
    """
    Raised when a caller cannot be authenticated.

    :param message: Client-safe message. Login failures stay generic.
    :param reason: Internal reason, useful for logs and tests.
    """

    kind = ErrorKind.UNAUTHORIZED

    def __init__(self, message: str = "Invalid credentials", *, reason: AuthFailure) -> None:
        super().__init__(message)
        self.reason = reason


class TokenError(AuthenticationError):
    """Raised when an access token cannot be decoded (bad signature, expired, wrong type)."""

    def __init__(self, reason: AuthFailure = AuthFailure.TOKEN_INVALID) -> None:
        message = "Access token expired" if reason is AuthFailure.TOKEN_EXPIRED else "Invalid access token"
        super().__init__(message, reason=reason)


class AuthorizationError(ServiceError):
    """Raised when an authenticated (or anonymous) caller is not allowed to act."""

    kind = ErrorKind.FORBIDDEN


class BadRequestError(ServiceError):
    """
    Raised on invalid input.

    :param message: Summary of the problem.
    :param errors: Optional per-field messages.
    """

    kind = ErrorKind.BAD_REQUEST

    def __init__(self, message: str, errors: dict[str, list[str]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or {}


class VerificationTokenError(BadRequestError):
    """Raised when an email-verification token is unknown, used or expired."""

    _MESSAGES: ClassVar[dict[VerificationFailure, str]] = {
        VerificationFailure.INVALID: "Verification token is invalid or has already been used.",
        VerificationFailure.ALREADY_USED: "Verification token has already been used.",
        VerificationFailure.EXPIRED: "Verification token has expired.",
    }

    def __init__(self, reason: VerificationFailure) -> None:
        super().__init__(self._MESSAGES[reason])
        self.reason = reason


@dataclass
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "Ticket").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int

    kind = ErrorKind.NOT_FOUND

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.key}"


@dataclass
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    kind = ErrorKind.CONFLICT

    def __str__(self) -> str:
        return f"Conflict on {self.entity}: {self.detail}"
