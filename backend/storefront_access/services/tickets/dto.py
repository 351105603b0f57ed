"""
DTOs for the ticket seam.

Output DTOs never carry ``access_code_hash``; the plaintext access code
appears exactly once, in :class:`TicketCreatedOut`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from storefront_access.models.ticket import TicketStatus

# --------------------------------------------------------------------------- #
# Input
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class TicketCreateIn:
    """
    Payload for opening a ticket.

    :param title: Short summary.
    :type title: str
    :param order_id: Related order, if any.
    :type order_id: str | None
    :param requester_email: Open on behalf of this address (elevated callers only).
    :type requester_email: str | None
    """

    title: str
    order_id: str | None = None
    requester_email: str | None = None


# --------------------------------------------------------------------------- #
# Output
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class TicketOut:
    id: str
    number: int
    title: str
    status: TicketStatus
    requester_id: str | None
    requester_email: str | None
    order_id: str | None
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class TicketCreatedOut:
    """
    Result of :meth:`TicketService.create`.

    :param ticket: The stored ticket.
    :param access_code: Plaintext access code; it cannot be recovered later.
    """

    ticket: TicketOut
    access_code: str
