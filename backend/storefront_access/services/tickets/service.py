"""
TicketService
=============

Thin ticket seam around :class:`TicketAccessGuard` and the notification
dispatcher:

- ``create`` stores a ticket with a one-time access code.
- ``get`` returns a ticket to whoever the guard lets through.
- ``update_status`` changes the status (elevated roles only) and notifies
  the requester after the change is committed.
"""

from __future__ import annotations

import logging
import secrets

from storefront_access.models.ticket import Ticket, TicketStatus
from storefront_access.repositories.ticket import TicketRepository
from storefront_access.services._shared.base import BaseService, ServiceContext
from storefront_access.services._shared.errors import (
    AuthorizationError,
    BadRequestError,
    NotFoundError,
)
from storefront_access.services._shared.policies.common import same_email
from storefront_access.services._shared.policies.roles import is_elevated
from storefront_access.services._shared.ports import Mailer, SecretHasher, ensure_utc
from storefront_access.services.auth.dto import AuthUser
from storefront_access.services.notifications.dispatcher import NotificationDispatcher
from storefront_access.services.tickets.access import TicketAccessGuard
from storefront_access.services.tickets.dto import TicketCreatedOut, TicketCreateIn, TicketOut

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200


def new_access_code() -> str:
    """Random per-ticket access code (16 bytes, hex)."""
    return secrets.token_hex(16)


def ticket_to_out(ticket: Ticket) -> TicketOut:
    return TicketOut(
        id=ticket.id,
        number=ticket.number,
        title=ticket.title,
        status=ticket.status,
        requester_id=ticket.requester_id,
        requester_email=ticket.requester_email,
        order_id=ticket.order_id,
        created_at=ensure_utc(ticket.created_at),
        updated_at=ensure_utc(ticket.updated_at),
    )


class TicketService(BaseService):
    """Create, read and re-status support tickets."""

    def __init__(
        self,
        *,
        hasher: SecretHasher,
        mailer: Mailer,
        dispatcher: NotificationDispatcher,
        guard: TicketAccessGuard | None = None,
        ctx: ServiceContext | None = None,
    ) -> None:
        super().__init__(ctx=ctx)
        self.hasher = hasher
        self.mailer = mailer
        self.dispatcher = dispatcher
        self.guard = guard or TicketAccessGuard(hasher)

    # ------------------------------------------------------------------ #
    # Commands
    # ------------------------------------------------------------------ #

    def create(self, dto: TicketCreateIn, caller: AuthUser) -> TicketCreatedOut:
        """
        Open a ticket and return it with its plaintext access code.

        :param dto: Ticket input.
        :param caller: Authenticated, verified caller.
        :raises AuthorizationError: If the caller is unverified, or opens a
            ticket for another address without an elevated role.
        :raises BadRequestError: On an empty or oversized title.
        """
        if not caller.is_verified:
            raise AuthorizationError("Verify your email to open a support ticket.")

        title = (dto.title or "").strip()
        if not title or len(title) > MAX_TITLE_LENGTH:
            raise BadRequestError(
                "Invalid ticket payload",
                errors={"title": [f"Length must be between 1 and {MAX_TITLE_LENGTH}."]},
            )

        requester_id: str | None = caller.id
        requester_email = caller.email
        if dto.requester_email and not same_email(dto.requester_email, caller.email):
            if not is_elevated(caller.role):
                raise AuthorizationError("Only staff can open tickets on behalf of someone else.")
            requester_id = None
            requester_email = dto.requester_email

        access_code = new_access_code()
        code_hash = self.hasher.hash(access_code)

        with self.rw_uow() as uow:
            repo: TicketRepository = uow.tickets
            ticket = repo.add(
                Ticket(
                    number=repo.next_number(),
                    title=title,
                    status=TicketStatus.OPEN,
                    requester_id=requester_id,
                    requester_email=requester_email,
                    order_id=dto.order_id,
                    access_code_hash=code_hash,
                )
            )
            out = ticket_to_out(ticket)

        logger.info(
            "Ticket created",
            extra={"event": "tickets.created", "ticket_id": out.id, "user_id": caller.id},
        )
        self._send_created_mail(out)
        return TicketCreatedOut(ticket=out, access_code=access_code)

    def update_status(self, ticket_id: str, status: TicketStatus | str, actor: AuthUser) -> TicketOut:
        """
        Change a ticket's status and notify its requester.

        Notification problems are logged by the dispatcher and never undo or
        fail the status change.

        :raises AuthorizationError: If ``actor`` has no elevated role.
        :raises BadRequestError: On an unknown status.
        :raises NotFoundError: If the ticket does not exist.
        """
        if not is_elevated(actor.role):
            raise AuthorizationError("Only staff can change ticket status.")
        try:
            new_status = status if isinstance(status, TicketStatus) else TicketStatus(str(status).lower())
        except ValueError as exc:
            allowed = [s.value for s in TicketStatus]
            raise BadRequestError("Invalid ticket status", errors={"status": [f"Must be one of {allowed}."]}) from exc

        with self.rw_uow() as uow:
            repo: TicketRepository = uow.tickets
            ticket = repo.get(ticket_id)
            if ticket is None:
                raise NotFoundError("Ticket", ticket_id)
            changed = ticket.status is not new_status
            if changed:
                repo.assign_updates(ticket, {"status": new_status})
            out = ticket_to_out(ticket)

        logger.info(
            "Ticket status updated",
            extra={"event": "tickets.status_updated", "ticket_id": out.id, "user_id": actor.id, "value": out.status.value},
        )
        if changed:
            self.dispatcher.notify_ticket_updated(
                to=out.requester_email,
                title=out.title,
                number=out.number,
                status=out.status.value,
                ticket_id=out.id,
            )
        return out

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def get(self, ticket_id: str, caller: AuthUser | None = None, access_code: str | None = None) -> TicketOut:
        """
        Return a ticket the caller may read.

        :raises NotFoundError: If the ticket does not exist.
        :raises AuthorizationError: If the access guard denies.
        """
        with self.ro_uow() as uow:
            repo: TicketRepository = uow.tickets
            ticket = repo.get(ticket_id)
            if ticket is None:
                raise NotFoundError("Ticket", ticket_id)
            self.guard.ensure_can_read(ticket, caller, access_code)
            return ticket_to_out(ticket)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _send_created_mail(self, ticket: TicketOut) -> None:
        if not ticket.requester_email:
            return
        try:
            self.mailer.send_ticket_created(ticket.requester_email, ticket.title, ticket.number)
        except Exception:
            logger.exception(
                "Ticket confirmation mail failed",
                extra={"event": "tickets.created_mail_failed", "ticket_id": ticket.id},
            )
