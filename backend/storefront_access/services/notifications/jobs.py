"""Notification job payloads and their wire schema."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from marshmallow import Schema, fields, post_load, validate

from storefront_access.services._shared.ports import Mailer


class NotificationKind(str, Enum):
    TICKET_UPDATED = "ticket-updated"


@dataclass(frozen=True, slots=True)
class NotificationJob:
    """
    Ticket notification waiting to be delivered.

    Carries only what the mail needs; never secrets such as access codes.

    :ivar kind: What happened.
    :ivar to: Recipient address.
    :ivar title: Ticket title.
    :ivar number: Human-facing ticket number.
    :ivar status: New ticket status.
    :ivar ticket_id: Ticket identifier (for logs).
    """

    kind: NotificationKind
    to: str
    title: str
    number: int
    status: str
    ticket_id: str | None = None


class NotificationJobSchema(Schema):
    """Queue payload for :class:`NotificationJob`."""

    kind = fields.Enum(NotificationKind, by_value=True, required=True)
    to = fields.Email(required=True)
    title = fields.String(required=True, validate=validate.Length(min=1, max=200))
    number = fields.Integer(required=True, strict=True)
    status = fields.String(required=True, validate=validate.Length(min=1, max=32))
    ticket_id = fields.String(load_default=None, allow_none=True)

    @post_load
    def make_job(self, data: dict[str, Any], **_: Any) -> NotificationJob:
        return NotificationJob(**data)


def dump_job(job: NotificationJob) -> dict[str, Any]:
    return NotificationJobSchema().dump(asdict(job))


def load_job(payload: dict[str, Any]) -> NotificationJob:
    """:raises marshmallow.ValidationError: On a malformed payload."""
    return NotificationJobSchema().load(payload)


def send_now(mailer: Mailer, job: NotificationJob) -> None:
    """Deliver ``job`` synchronously through ``mailer`` (raises on failure)."""
    if job.kind is NotificationKind.TICKET_UPDATED:
        mailer.send_ticket_updated(job.to, job.title, job.number, job.status)
        return
    raise ValueError(f"Unsupported notification kind: {job.kind!r}")
