"""Email-verification token repository."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import delete, or_, select, update

from storefront_access.models.email_verification_token import EmailVerificationToken
from storefront_access.repositories.base import BaseRepository

_Token = EmailVerificationToken


class EmailVerificationTokenRepository(BaseRepository[EmailVerificationToken]):
    """Persistence-only repository for :class:`EmailVerificationToken`."""

    model = EmailVerificationToken

    def get_by_token(self, token: str) -> EmailVerificationToken | None:
        stmt = select(_Token).where(_Token.token == token)
        return cast(_Token | None, self.session.execute(stmt).scalars().first())

    def active_for_user(self, user_id: str, now: datetime) -> EmailVerificationToken | None:
        """Return the newest unused, unexpired token of ``user_id``."""
        stmt = (
            select(_Token)
            .where(_Token.user_id == user_id, _Token.used_at.is_(None), _Token.expires_at > now)
            .order_by(_Token.created_at.desc())
            .limit(1)
        )
        return cast(_Token | None, self.session.execute(stmt).scalars().first())

    def mark_used(self, record_id: str, used_at: datetime) -> bool:
        """Set ``used_at`` if still unset. :returns: ``True`` when this call consumed it."""
        stmt = (
            update(_Token)
            .where(_Token.id == record_id, _Token.used_at.is_(None))
            .values(used_at=used_at)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1

    def delete_by_id(self, record_id: str) -> bool:
        stmt = (
            delete(_Token)
            .where(_Token.id == record_id)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1

    def delete_unused_for_user(self, user_id: str, *, keep_id: str | None = None) -> int:
        """Delete unused tokens of ``user_id``, optionally sparing ``keep_id``."""
        criteria = [_Token.user_id == user_id, _Token.used_at.is_(None)]
        if keep_id is not None:
            criteria.append(_Token.id != keep_id)
        stmt = delete(_Token).where(*criteria).execution_options(synchronize_session=False)
        return int(self.session.execute(stmt).rowcount or 0)

    def purge_dead(self, now: datetime) -> int:
        """Delete expired or already-used tokens."""
        stmt = (
            delete(_Token)
            .where(or_(_Token.expires_at <= now, _Token.used_at.is_not(None)))
            .execution_options(synchronize_session=False)
        )
        return int(self.session.execute(stmt).rowcount or 0)
