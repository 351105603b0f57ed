"""Factory Boy definitions for refresh and verification tokens."""

from __future__ import annotations

import secrets
from datetime import UTC, datetime, timedelta

import factory

from storefront_access.models.email_verification_token import EmailVerificationToken
from storefront_access.models.refresh_token import RefreshToken
from tests.factories import BaseFactory
from tests.factories.user import UserFactory


class RefreshTokenFactory(BaseFactory):
    class Meta:
        model = RefreshToken

    user = factory.SubFactory(UserFactory, verified=True)
    token_hash = factory.LazyFunction(lambda: secrets.token_hex(16))
    expires_at = factory.LazyFunction(lambda: datetime.now(UTC) + timedelta(days=30))


class EmailVerificationTokenFactory(BaseFactory):
    class Meta:
        model = EmailVerificationToken

    user = factory.SubFactory(UserFactory)
    token = factory.LazyFunction(lambda: secrets.token_urlsafe(32))
    expires_at = factory.LazyFunction(lambda: datetime.now(UTC) + timedelta(hours=24))
    used_at = None
