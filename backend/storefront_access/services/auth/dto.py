# storefront_access/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from storefront_access.models.role import Role
from storefront_access.services._shared.ports import AccessClaims, UserRecord

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for registration.

    :param name: Display name.
    :type name: str
    :param email: Login email (normalized by the service).
    :type email: str
    :param password: Raw password (hashed before persistence).
    :type password: str
    :param role: Requested role; only honoured for permitted actors.
    :type role: Role | None
    """

    name: str
    email: str
    password: str
    role: Role | None = None


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: User email.
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    email: str
    password: str


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class AuthUser:
    """
    Public view of an account. Never carries the password hash.

    :param id: User identifier.
    :param email: Normalized email.
    :param name: Display name.
    :param role: Account role.
    :param email_verified_at: Verification timestamp, ``None`` while unverified.
    """

    id: str
    email: str
    name: str
    role: Role
    email_verified_at: datetime | None = None

    @property
    def is_verified(self) -> bool:
        return self.email_verified_at is not None

    @classmethod
    def from_record(cls, record: UserRecord) -> AuthUser:
        return cls(
            id=record.id,
            email=record.email,
            name=record.name,
            role=record.role,
            email_verified_at=record.email_verified_at,
        )

    @classmethod
    def from_claims(cls, claims: AccessClaims) -> AuthUser:
        return cls(
            id=claims.user_id,
            email=claims.email,
            name=claims.name,
            role=claims.role,
            email_verified_at=claims.email_verified_at,
        )


@dataclass(frozen=True, slots=True)
class TokenPair:
    """
    Output DTO with access and refresh tokens.

    :param access_token: Signed access token.
    :type access_token: str
    :param access_expires_at: Access token expiry (UTC).
    :type access_expires_at: datetime
    :param refresh_token: Opaque refresh token (plaintext, shown once).
    :type refresh_token: str
    :param refresh_expires_at: Refresh token expiry (UTC).
    :type refresh_expires_at: datetime
    """

    access_token: str
    access_expires_at: datetime
    refresh_token: str
    refresh_expires_at: datetime


@dataclass(frozen=True, slots=True)
class LoginOut:
    user: AuthUser
    tokens: TokenPair


# ------------------------------ Settings ---------------------------------- #


@dataclass(frozen=True, slots=True)
class AuthSettings:
    """
    Lifetimes and links used by :class:`AuthSessionService`.

    :param refresh_ttl: Refresh token lifetime.
    :type refresh_ttl: timedelta
    :param verification_ttl: Email-verification token lifetime.
    :type verification_ttl: timedelta
    :param frontend_origin: Origin the verification link points to.
    :type frontend_origin: str
    """

    refresh_ttl: timedelta = timedelta(days=30)
    verification_ttl: timedelta = timedelta(hours=24)
    frontend_origin: str = "http://localhost:3000"
