"""Support ticket model (access-control facet plus notification fields)."""

from __future__ import annotations

from enum import Enum

from sqlalchemy import Enum as SAEnum, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, validates

from storefront_access.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin
from .user import normalize_email


class TicketStatus(str, Enum):
    OPEN = "open"
    PENDING = "pending"
    RESOLVED = "resolved"
    CLOSED = "closed"


class Ticket(PKMixin, TimestampMixin, ReprMixin, db.Model):
    """
    Support ticket.

    Ownership is recorded by ``requester_id`` and/or ``requester_email``.
    ``access_code_hash`` is written once at creation; there is no way to
    rotate it or recover the plaintext code.
    """

    __tablename__ = "tickets"

    number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[TicketStatus] = mapped_column(
        SAEnum(TicketStatus, name="ticket_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=TicketStatus.OPEN,
    )
    requester_id: Mapped[str | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    requester_email: Mapped[str | None] = mapped_column(String(254), nullable=True)
    order_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    access_code_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        UniqueConstraint("number", name="uq_tickets_number"),
        Index("ix_tickets_requester_id", "requester_id"),
        Index("ix_tickets_requester_email", "requester_email"),
    )

    @validates("requester_email")
    def _normalize_requester_email(self, key: str, value: str | None) -> str | None:
        if value is None:
            return None
        return normalize_email(value) or None

    @validates("access_code_hash")
    def _access_code_write_once(self, key: str, value: str | None) -> str | None:
        if self.access_code_hash is not None and value != self.access_code_hash:
            raise ValueError("access_code_hash is immutable once set.")
        return value

    @validates("status")
    def _coerce_status(self, key: str, value: TicketStatus | str) -> TicketStatus:
        return value if isinstance(value, TicketStatus) else TicketStatus(str(value).lower())
