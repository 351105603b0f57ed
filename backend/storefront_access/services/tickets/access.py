"""Read access to a single ticket."""

from __future__ import annotations

import logging
from typing import Protocol

from storefront_access.models.role import Role
from storefront_access.services._shared.errors import AuthorizationError
from storefront_access.services._shared.policies.common import is_owner, same_email
from storefront_access.services._shared.policies.roles import is_elevated
from storefront_access.services._shared.ports import SecretHasher

logger = logging.getLogger(__name__)


class GuardedTicket(Protocol):
    requester_id: str | None
    requester_email: str | None
    access_code_hash: str | None


class Caller(Protocol):
    id: str
    email: str
    role: Role


class TicketAccessGuard:
    """
    Decide whether a caller may read a ticket.

    Rules, first match wins:

    1. elevated role (admin, staff, support);
    2. caller is the stored requester;
    3. caller email equals the requester email (case-insensitive);
    4. the supplied access code verifies against the stored hash;
    5. otherwise deny.

    A missing or malformed hash goes through the same verification path as
    a wrong code, so all three look identical to the caller.
    """

    def __init__(self, hasher: SecretHasher) -> None:
        self.hasher = hasher

    def can_read(
        self,
        ticket: GuardedTicket,
        caller: Caller | None = None,
        access_code: str | None = None,
    ) -> bool:
        if caller is not None:
            if is_elevated(caller.role):
                return True
            if is_owner(actor_id=caller.id, owner_id=ticket.requester_id):
                return True
            if same_email(caller.email, ticket.requester_email):
                return True
        if access_code:
            return self.hasher.verify(ticket.access_code_hash, access_code)
        return False

    def ensure_can_read(
        self,
        ticket: GuardedTicket,
        caller: Caller | None = None,
        access_code: str | None = None,
    ) -> None:
        """:raises AuthorizationError: If :meth:`can_read` denies."""
        if not self.can_read(ticket, caller, access_code):
            logger.info(
                "Ticket access denied",
                extra={
                    "event": "tickets.access_denied",
                    "ticket_id": getattr(ticket, "id", None),
                    "user_id": caller.id if caller is not None else None,
                },
            )
            raise AuthorizationError("You do not have access to this ticket")
