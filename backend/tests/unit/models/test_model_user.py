"""Unit tests for the :class:`User` model validators."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from storefront_access.models.role import Role
from storefront_access.models.user import User
from tests.factories.user import UserFactory


class TestUserModel:
    def test_email_is_trimmed_and_lowercased(self, session):
        """
        GIVEN an email with whitespace and capitals
        WHEN a user is built
        THEN the stored email is normalized
        """
        user = User(email="  Alice@Example.COM ", name="Alice", password_hash="x$y")
        assert user.email == "alice@example.com"

    @pytest.mark.parametrize("bad", ["", "no-at-sign", "user@nodot"])
    def test_invalid_email_is_rejected(self, bad):
        with pytest.raises(ValueError):
            User(email=bad, name="Bob", password_hash="x$y")

    def test_blank_name_is_rejected(self):
        with pytest.raises(ValueError, match="Name is required"):
            User(email="bob@example.com", name="   ", password_hash="x$y")

    def test_role_is_parsed_from_string(self):
        user = User(email="carol@example.com", name="Carol", password_hash="x$y", role="Support")
        assert user.role is Role.SUPPORT

    def test_unknown_role_is_rejected(self):
        with pytest.raises(ValueError):
            User(email="dave@example.com", name="Dave", password_hash="x$y", role="root")

    def test_email_is_unique(self, session):
        """
        GIVEN an existing user
        WHEN a second user with the same email (other case) is flushed
        THEN the unique constraint fires
        """
        UserFactory(email="dup@example.com")
        session.add(User(email="DUP@example.com", name="Dup", password_hash="x$y"))
        with pytest.raises(IntegrityError):
            session.flush()
        session.rollback()


class TestEmailVerifiedAt:
    def test_can_be_set_once(self, session):
        user = UserFactory()
        assert user.is_verified is False

        stamp = datetime(2030, 1, 1, tzinfo=UTC)
        user.email_verified_at = stamp
        assert user.is_verified is True

    def test_cannot_change_once_set(self, session):
        """
        GIVEN a verified user
        WHEN the verification timestamp is cleared or moved
        THEN the model rejects it
        """
        user = UserFactory(verified=True)
        with pytest.raises(ValueError, match="cannot change"):
            user.email_verified_at = None
        with pytest.raises(ValueError, match="cannot change"):
            user.email_verified_at = user.email_verified_at + timedelta(days=1)

    def test_rewriting_same_value_is_allowed(self, session):
        user = UserFactory(verified=True)
        same = user.email_verified_at
        user.email_verified_at = same
        assert user.email_verified_at == same
