"""Refresh-token repository (hash rows, conditional deletes)."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import delete, select

from storefront_access.models.refresh_token import RefreshToken
from storefront_access.repositories.base import BaseRepository


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Persistence-only repository for :class:`RefreshToken`.

    Deletes are issued as single ``DELETE`` statements and report the
    affected row count, so two callers racing for the same row can tell who
    actually removed it.
    """

    model = RefreshToken

    def latest_for_user(self, user_id: str) -> RefreshToken | None:
        """Return the most recently created record of ``user_id`` (expired or not)."""
        stmt = (
            select(RefreshToken)
            .where(RefreshToken.user_id == user_id)
            .order_by(RefreshToken.created_at.desc())
            .limit(1)
        )
        return cast(RefreshToken | None, self.session.execute(stmt).scalars().first())

    def delete_by_id(self, record_id: str) -> bool:
        """Delete one record. :returns: ``True`` only if this call removed it."""
        stmt = (
            delete(RefreshToken)
            .where(RefreshToken.id == record_id)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1

    def delete_for_user(self, user_id: str) -> int:
        stmt = (
            delete(RefreshToken)
            .where(RefreshToken.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        return int(self.session.execute(stmt).rowcount or 0)

    def count_for_user(self, user_id: str) -> int:
        return self.count(RefreshToken.user_id == user_id)

    def purge_expired(self, now: datetime) -> int:
        stmt = (
            delete(RefreshToken)
            .where(RefreshToken.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        return int(self.session.execute(stmt).rowcount or 0)
