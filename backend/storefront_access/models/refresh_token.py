"""Persisted refresh-token records (hash only, never the plaintext)."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront_access.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin

if TYPE_CHECKING:
    from .user import User


class RefreshToken(PKMixin, TimestampMixin, ReprMixin, db.Model):
    """
    One link of a user's refresh chain.

    A row is consumed (deleted) on rotation and all rows of a user are
    dropped on login and logout. Rows past ``expires_at`` may linger until
    purged but are never honored.
    """

    __tablename__ = "refresh_tokens"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    token_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_refresh_tokens_user_created", "user_id", "created_at"),
        Index("ix_refresh_tokens_expires_at", "expires_at"),
    )

    user: Mapped[User] = relationship("User", back_populates="refresh_tokens")
