"""Ticket repository."""

from __future__ import annotations

from sqlalchemy import func, select

from storefront_access.models.ticket import Ticket
from storefront_access.repositories.base import BaseRepository


class TicketRepository(BaseRepository[Ticket]):
    """Persistence-only repository for :class:`Ticket`.

    ``access_code_hash`` and ownership columns are deliberately absent from
    the update whitelist.
    """

    model = Ticket

    def _updatable_fields(self) -> set[str]:
        return {"status", "title"}

    def next_number(self) -> int:
        """Return the next human-facing ticket number (max + 1, starting at 1)."""
        current = self.session.execute(select(func.max(Ticket.number))).scalar()
        return int(current or 0) + 1
