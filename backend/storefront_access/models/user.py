"""User model definition for the storefront identity core."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import DateTime, Enum as SAEnum, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from storefront_access.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin
from .role import Role

if TYPE_CHECKING:
    from .email_verification_token import EmailVerificationToken
    from .refresh_token import RefreshToken


def normalize_email(value: str) -> str:
    """Trim and lowercase an email address (the form stored and looked up)."""
    return value.strip().lower()


class User(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Account identity.

    Fields
    ------
    email : str
        Login email. Stored normalized (lowercase, trimmed); globally unique.
    name : str
        Display name.
    role : Role
        One of :class:`~storefront_access.models.role.Role`.
    password_hash : str
        Salted slow hash of the password. Hashing happens in the service
        layer through the ``SecretHasher`` port, never in the model.
    email_verified_at : datetime | None
        Set once when the email is confirmed; never cleared.
    """

    __tablename__ = "users"

    # Columns
    email: Mapped[str] = mapped_column(String(254), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    role: Mapped[Role] = mapped_column(
        SAEnum(Role, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Role.CUSTOMER,
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    email_verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    refresh_tokens: Mapped[list[RefreshToken]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    verification_tokens: Mapped[list[EmailVerificationToken]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    # Constraints & indexes
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        Index("ix_users_email", "email"),
    )

    @property
    def is_verified(self) -> bool:
        return self.email_verified_at is not None

    # -------------------- Validators --------------------
    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and validate email.

        :param key: Field name (``email``).
        :param value: Email to normalize.
        :returns: Normalized email (lowercased/trimmed).
        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = normalize_email(value)
        # Minimal sanity check; full validation happens in the input schema.
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v

    @validates("name")
    def _normalize_name(self, key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Name is required.")
        return value.strip()

    @validates("role")
    def _coerce_role(self, key: str, value: Any) -> Role:
        return Role.parse(value)

    @validates("email_verified_at")
    def _verified_is_terminal(self, key: str, value: datetime | None) -> datetime | None:
        """Reject clearing or rewriting an existing verification timestamp."""
        current = self.email_verified_at
        if current is not None and value != current:
            raise ValueError("email_verified_at is already set and cannot change.")
        return value
