from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from storefront_access.models.role import Role
from storefront_access.services._shared.errors import AuthFailure, TokenError
from storefront_access.services._shared.ports.clock import Clock, SystemClock

#: Token ``type`` claim for access tokens.
ACCESS_TOKEN_TYPE = "access"


class AccessSubject(Protocol):
    """Anything an access token can be minted for (record or public view)."""

    id: str
    email: str
    name: str
    role: Role
    email_verified_at: datetime | None


@dataclass(frozen=True, slots=True)
class IssuedAccessToken:
    """
    Freshly minted access token.

    :ivar token: Encoded, signed token.
    :ivar expires_at: Absolute expiry (UTC).
    """

    token: str
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class AccessClaims:
    """
    Claims carried by a decoded access token.

    The values reflect the account at issuance time only; callers that need
    current state must re-read it from storage.
    """

    user_id: str
    email: str
    name: str
    role: Role
    email_verified_at: datetime | None
    expires_at: datetime


class TokenIssuer(Protocol):
    """Port for minting and decoding credentials."""

    def issue_access_token(self, user: AccessSubject) -> IssuedAccessToken:
        """Sign a short-lived, self-contained access token for ``user``."""
        ...

    def issue_refresh_token(self) -> str:
        """Return a random opaque refresh token (the caller persists its hash)."""
        ...

    def decode_access_token(self, token: str) -> AccessClaims:
        """
        Verify signature, expiry and type of ``token``.

        :raises TokenError: ``TOKEN_EXPIRED`` or ``TOKEN_INVALID``.
        """
        ...


def new_refresh_token() -> str:
    """Random high-entropy refresh token (48 bytes, URL-safe base64)."""
    return secrets.token_urlsafe(48)


class StubTokenIssuer(TokenIssuer):
    """Deterministic, clock-driven token issuer used in unit tests."""

    def __init__(self, *, clock: Clock | None = None, ttl: timedelta = timedelta(hours=1)) -> None:
        self.clock = clock or SystemClock()
        self.ttl = ttl
        self._seq = 0
        self._issued: dict[str, AccessClaims] = {}

    def issue_access_token(self, user: AccessSubject) -> IssuedAccessToken:
        self._seq += 1
        token = f"access.{user.id}.{self._seq}"
        expires_at = self.clock.now() + self.ttl
        self._issued[token] = AccessClaims(
            user_id=str(user.id),
            email=user.email,
            name=user.name,
            role=user.role,
            email_verified_at=user.email_verified_at,
            expires_at=expires_at,
        )
        return IssuedAccessToken(token=token, expires_at=expires_at)

    def issue_refresh_token(self) -> str:
        return new_refresh_token()

    def decode_access_token(self, token: str) -> AccessClaims:
        claims = self._issued.get(token)
        if claims is None:
            raise TokenError(AuthFailure.TOKEN_INVALID)
        if claims.expires_at <= self.clock.now():
            raise TokenError(AuthFailure.TOKEN_EXPIRED)
        return claims
