from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Protocol


class MailDeliveryError(RuntimeError):
    """Raised by a mailer when a message could not be handed off."""


class Mailer(Protocol):
    """
    Synchronous mail-sending collaborator.

    Each method returns once the message is handed off and raises on failure.
    Templating belongs to the adapter; callers pass plain values.
    """

    def send_ticket_created(self, to: str, title: str, number: int) -> None: ...

    def send_ticket_updated(self, to: str, title: str, number: int, status: str) -> None: ...

    def send_email_verification(self, to: str, name: str, verification_url: str) -> None: ...


@dataclass(frozen=True, slots=True)
class SentMail:
    """One message captured by :class:`RecordingMailer`."""

    kind: str
    to: str
    payload: dict[str, Any] = field(default_factory=dict)


class RecordingMailer(Mailer):
    """
    Mailer double that records messages in memory.

    :param fail_times: Number of upcoming sends that raise
        :class:`MailDeliveryError` before sends start succeeding. ``-1``
        makes every send fail.
    """

    def __init__(self, *, fail_times: int = 0) -> None:
        self.sent: list[SentMail] = []
        self.attempts = 0
        self.fail_times = fail_times
        self._lock = threading.Lock()

    def _record(self, kind: str, to: str, **payload: Any) -> None:
        with self._lock:
            self.attempts += 1
            if self.fail_times != 0:
                if self.fail_times > 0:
                    self.fail_times -= 1
                raise MailDeliveryError(f"simulated failure sending {kind}")
            self.sent.append(SentMail(kind=kind, to=to, payload=payload))

    def send_ticket_created(self, to: str, title: str, number: int) -> None:
        self._record("ticket_created", to, title=title, number=number)

    def send_ticket_updated(self, to: str, title: str, number: int, status: str) -> None:
        self._record("ticket_updated", to, title=title, number=number, status=status)

    def send_email_verification(self, to: str, name: str, verification_url: str) -> None:
        self._record("email_verification", to, name=name, verification_url=verification_url)

    def of_kind(self, kind: str) -> list[SentMail]:
        return [m for m in self.sent if m.kind == kind]
