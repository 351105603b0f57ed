"""Unit tests for RefreshTokenRepository."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from storefront_access.repositories.refresh_token import RefreshTokenRepository
from tests.factories.tokens import RefreshTokenFactory
from tests.factories.user import UserFactory

NOW = datetime(2030, 1, 15, 12, 0, tzinfo=UTC)


class TestRefreshTokenRepository:
    @pytest.fixture()
    def repo(self):
        return RefreshTokenRepository()

    def test_latest_for_user_returns_newest(self, repo, session):
        """
        GIVEN two records of one user and one of another user
        WHEN the latest record is requested
        THEN the newest record of that user is returned
        """
        user = UserFactory(verified=True)
        RefreshTokenFactory(user=user, token_hash="old", created_at=NOW - timedelta(minutes=5))
        newest = RefreshTokenFactory(user=user, token_hash="new", created_at=NOW)
        RefreshTokenFactory(token_hash="someone-else", created_at=NOW + timedelta(minutes=1))

        latest = repo.latest_for_user(user.id)
        assert latest is not None
        assert latest.id == newest.id

    def test_latest_for_unknown_user_is_none(self, repo, session):
        assert repo.latest_for_user("missing") is None

    def test_delete_by_id_reports_who_removed_it(self, repo, session):
        """Only the first delete of a row reports success."""
        record = RefreshTokenFactory()
        record_id = record.id
        session.expunge(record)

        assert repo.delete_by_id(record_id) is True
        assert repo.delete_by_id(record_id) is False

    def test_delete_for_user_and_count(self, repo, session):
        user = UserFactory(verified=True)
        RefreshTokenFactory.create_batch(3, user=user)
        other = RefreshTokenFactory()

        assert repo.count_for_user(user.id) == 3
        assert repo.delete_for_user(user.id) == 3
        assert repo.count_for_user(user.id) == 0
        assert repo.count_for_user(other.user_id) == 1

    def test_purge_expired_uses_inclusive_boundary(self, repo, session):
        """Records expiring exactly at ``now`` count as expired."""
        user = UserFactory(verified=True)
        RefreshTokenFactory(user=user, expires_at=NOW - timedelta(seconds=1))
        RefreshTokenFactory(user=user, expires_at=NOW)
        RefreshTokenFactory(user=user, expires_at=NOW + timedelta(seconds=1))

        assert repo.purge_expired(NOW) == 2
        assert repo.count_for_user(user.id) == 1
