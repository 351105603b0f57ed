"""Unit tests for the file outbox mailer."""

from __future__ import annotations

from email import message_from_bytes, policy

import pytest

from storefront_access.infra.mail.outbox_mailer import OutboxMailer
from storefront_access.services._shared.ports import MailDeliveryError


def _read_single(directory):
    files = sorted(directory.glob("*.eml"))
    assert len(files) == 1
    return files[0], message_from_bytes(files[0].read_bytes(), policy=policy.default)


class TestOutboxMailer:
    def test_verification_mail_is_written(self, tmp_path):
        """
        GIVEN an outbox directory that does not exist yet
        WHEN a verification mail is sent
        THEN one .eml file holds the link
        """
        mailer = OutboxMailer(tmp_path / "outbox")
        mailer.send_email_verification("alice@example.com", "Alice", "http://localhost:3000/verify-email?token=abc")

        path, msg = _read_single(tmp_path / "outbox")
        assert path.name.endswith("-verify-your-email-address.eml")
        assert msg["To"] == "alice@example.com"
        assert msg["Subject"] == "Verify your email address"
        body = msg.get_content()
        assert "Hi Alice," in body
        assert "verify-email?token=abc" in body

    def test_ticket_created(self, tmp_path):
        OutboxMailer(tmp_path).send_ticket_created("buyer@example.com", "Broken zipper", 12)

        _, msg = _read_single(tmp_path)
        assert msg["Subject"] == "Ticket #12 received"
        assert "Your ticket #12 (Broken zipper) is open." in msg.get_content()

    def test_ticket_updated(self, tmp_path):
        OutboxMailer(tmp_path).send_ticket_updated("buyer@example.com", "Broken zipper", 12, "resolved")

        _, msg = _read_single(tmp_path)
        assert msg["Subject"] == "Ticket #12 updated"
        assert "is now RESOLVED" in msg.get_content()

    def test_unwritable_outbox_raises_delivery_error(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("occupied")

        with pytest.raises(MailDeliveryError):
            OutboxMailer(blocker).send_ticket_updated("buyer@example.com", "t", 1, "open")
