"""Factory Boy definition for :class:`storefront_access.models.user.User`."""

from __future__ import annotations

from datetime import UTC, datetime

import factory
from werkzeug.security import generate_password_hash

from storefront_access.models.role import Role
from storefront_access.models.user import User
from tests.factories import BaseFactory

DEFAULT_PASSWORD = "Passw0rd!ok"


class UserFactory(BaseFactory):
    """
    Build persisted :class:`User` instances.

    Notes
    -----
    - Users are unverified unless ``verified=True`` is passed.
    - ``password`` is hashed with a cheap pbkdf2 work factor.
    """

    class Meta:
        model = User
        exclude = ("password",)

    class Params:
        verified = factory.Trait(
            email_verified_at=factory.LazyFunction(lambda: datetime.now(UTC)),
        )

    email = factory.Sequence(lambda n: f"user{n}@example.com")
    name = factory.Faker("name")
    role = Role.CUSTOMER
    password = DEFAULT_PASSWORD
    password_hash = factory.LazyAttribute(lambda o: generate_password_hash(o.password, method="pbkdf2:sha256:1000"))
    email_verified_at = None
