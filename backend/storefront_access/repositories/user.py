"""User repository for persistence-only account lookups."""

from __future__ import annotations

from typing import cast

from sqlalchemy import select

from storefront_access.models.user import User, normalize_email
from storefront_access.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    It NEVER hashes secrets or issues tokens; the auth service does that
    through its ports.
    """

    model = User

    def _updatable_fields(self) -> set[str]:
        """Fields the identity flows may change (email is immutable here)."""
        return {"name", "role", "password_hash", "email_verified_at"}

    def get_by_email(self, email: str) -> User | None:
        """Fetch a user by email (case-insensitive).

        :param email: Email address to normalise and search.
        :type email: str
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        stmt = select(User).where(User.email == normalize_email(email))
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def exists_by_email(self, email: str) -> bool:
        stmt = select(User.id).where(User.email == normalize_email(email))
        return bool(self.session.execute(stmt).first())
