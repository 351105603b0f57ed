from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, cast

import jwt as pyjwt
from flask_jwt_extended.exceptions import JWTExtendedException

from storefront_access.models.role import Role
from storefront_access.services._shared.errors import AuthFailure, TokenError
from storefront_access.services._shared.ports import (
    AccessClaims,
    AccessSubject,
    IssuedAccessToken,
    TokenIssuer,
)
from storefront_access.services._shared.ports.token_issuer import (
    ACCESS_TOKEN_TYPE,
    new_refresh_token,
)


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


@dataclass(slots=True)
class JWTTokenIssuer(TokenIssuer):
    """
    Adapter for Flask-JWT-Extended.

    :param access_ttl: Lifetime of access tokens.

    .. note::
       Requires an active Flask app context with ``JWT_SECRET_KEY`` set.
       Refresh tokens are opaque random strings, not JWTs: their only proof
       of validity is a matching hash in storage.
    """

    access_ttl: timedelta = timedelta(hours=1)

    def issue_access_token(self, user: AccessSubject) -> IssuedAccessToken:
        from flask_jwt_extended import create_access_token as _create_access
        from flask_jwt_extended import decode_token as _decode

        claims: dict[str, Any] = {
            "email": user.email,
            "name": user.name,
            "role": Role.parse(user.role).value,
            "email_verified_at": _iso(user.email_verified_at),
        }
        token = cast(
            str,
            _create_access(
                identity=str(user.id),
                additional_claims=claims,
                expires_delta=self.access_ttl,
                fresh=False,
            ),
        )
        exp = int(cast(dict[str, Any], _decode(token))["exp"])
        return IssuedAccessToken(token=token, expires_at=datetime.fromtimestamp(exp, tz=UTC))

    def issue_refresh_token(self) -> str:
        return new_refresh_token()

    def decode_access_token(self, token: str) -> AccessClaims:
        from flask_jwt_extended import decode_token

        if not token:
            raise TokenError(AuthFailure.TOKEN_INVALID)
        try:
            payload = cast(dict[str, Any], decode_token(token))
        except pyjwt.ExpiredSignatureError as exc:
            raise TokenError(AuthFailure.TOKEN_EXPIRED) from exc
        except (pyjwt.InvalidTokenError, JWTExtendedException) as exc:
            raise TokenError(AuthFailure.TOKEN_INVALID) from exc

        # Flask-JWT-Extended sets "type": "access" | "refresh"
        if payload.get("type") != ACCESS_TOKEN_TYPE:
            raise TokenError(AuthFailure.TOKEN_INVALID)
        try:
            verified_raw = payload.get("email_verified_at")
            return AccessClaims(
                user_id=str(payload["sub"]),
                email=str(payload["email"]),
                name=str(payload["name"]),
                role=Role.parse(payload["role"]),
                email_verified_at=datetime.fromisoformat(verified_raw) if verified_raw else None,
                expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=UTC),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise TokenError(AuthFailure.TOKEN_INVALID) from exc
