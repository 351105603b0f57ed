"""Single-use email-verification capabilities."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from storefront_access.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin

if TYPE_CHECKING:
    from .user import User


class EmailVerificationToken(PKMixin, TimestampMixin, ReprMixin, db.Model):
    """
    Verification token issued to a user.

    The token is stored in clear: it is a random single-use capability, not
    a password. Once ``used_at`` is set the row is dead for good.
    """

    __tablename__ = "email_verification_tokens"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    token: Mapped[str] = mapped_column(String(128), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("token", name="uq_email_verification_tokens_token"),
        Index("ix_email_verification_tokens_user_id", "user_id"),
    )

    user: Mapped[User] = relationship("User", back_populates="verification_tokens")

    @validates("used_at")
    def _used_is_terminal(self, key: str, value: datetime | None) -> datetime | None:
        if self.used_at is not None:
            raise ValueError("Verification token already used.")
        return value
