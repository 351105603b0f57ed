"""Development mailer that drops RFC 5322 ``.eml`` files into a directory."""

from __future__ import annotations

import logging
import re
import threading
from datetime import UTC, datetime
from email import policy
from email.message import EmailMessage
from email.utils import format_datetime, make_msgid
from pathlib import Path

from storefront_access.services._shared.ports import MailDeliveryError, Mailer

logger = logging.getLogger(__name__)

DEFAULT_SENDER = "Storefront Support <support@storefront.local>"

_SLUG = re.compile(r"[^a-z0-9]+")


def _slug(value: str) -> str:
    return _SLUG.sub("-", value.lower()).strip("-")[:48] or "message"


class OutboxMailer(Mailer):
    """
    File-based :class:`Mailer`.

    Each message becomes ``<timestamp>-<slug>.eml`` in ``output_dir``. Bodies
    are plain text; templating is out of scope.

    :param output_dir: Target directory (created on first send).
    :param sender: ``From`` header value.
    """

    def __init__(self, output_dir: str | Path, *, sender: str = DEFAULT_SENDER) -> None:
        self.output_dir = Path(output_dir)
        self.sender = sender
        self._lock = threading.Lock()
        self._seq = 0

    def send_ticket_created(self, to: str, title: str, number: int) -> None:
        body = f"Thanks for contacting us. Your ticket #{number} ({title}) is open."
        self._deliver(to, f"Ticket #{number} received", body)

    def send_ticket_updated(self, to: str, title: str, number: int, status: str) -> None:
        body = f"Ticket #{number} ({title}) is now {status.upper()}."
        self._deliver(to, f"Ticket #{number} updated", body)

    def send_email_verification(self, to: str, name: str, verification_url: str) -> None:
        body = "\n".join(
            [
                f"Hi {name},",
                "",
                "Confirm your email address by opening the link below:",
                verification_url,
                "",
                "If you did not create an account you can ignore this message.",
            ]
        )
        self._deliver(to, "Verify your email address", body)

    def _deliver(self, to: str, subject: str, body: str) -> Path:
        msg = EmailMessage(policy=policy.SMTP)
        now = datetime.now(UTC)
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg["Date"] = format_datetime(now)
        msg["Message-ID"] = make_msgid(domain="storefront.local")
        msg.set_content(body)

        with self._lock:
            self._seq += 1
            name = f"{now.strftime('%Y%m%dT%H%M%S%f')}-{self._seq:04d}-{_slug(subject)}.eml"
        path = self.output_dir / name
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(msg.as_bytes())
        except OSError as exc:
            raise MailDeliveryError(f"could not write {path}") from exc
        logger.info("Mail written to outbox", extra={"event": "mail.outbox_written", "value": path.name})
        return path
