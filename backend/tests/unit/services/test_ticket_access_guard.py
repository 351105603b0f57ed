"""Unit tests for :class:`TicketAccessGuard`."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from storefront_access.models.role import Role
from storefront_access.services._shared.errors import AuthorizationError
from storefront_access.services.auth.dto import AuthUser
from storefront_access.services.tickets.access import TicketAccessGuard


@pytest.fixture
def guard(hasher):
    return TicketAccessGuard(hasher)


@pytest.fixture
def ticket(hasher):
    return SimpleNamespace(
        id="t-1",
        requester_id="owner-1",
        requester_email="owner@example.com",
        access_code_hash=hasher.hash("a1b2c3"),
    )


def _caller(role=Role.CUSTOMER, id="someone", email="someone@example.com"):
    return AuthUser(id=id, email=email, name="Caller", role=role)


class TestAccessCode:
    def test_correct_code_grants_anonymous_access(self, guard, ticket):
        assert guard.can_read(ticket, access_code="a1b2c3") is True

    @pytest.mark.parametrize("code", ["wrong", "A1B2C3", "", None])
    def test_wrong_code_is_denied(self, guard, ticket, code):
        """Codes are compared exactly; case differences do not match."""
        assert guard.can_read(ticket, access_code=code) is False

    def test_ticket_without_hash_is_denied(self, guard, ticket):
        ticket.access_code_hash = None
        assert guard.can_read(ticket, access_code="a1b2c3") is False

    def test_malformed_hash_is_denied(self, guard, ticket):
        ticket.access_code_hash = "garbage"
        assert guard.can_read(ticket, access_code="a1b2c3") is False

    def test_code_helps_a_signed_in_stranger(self, guard, ticket):
        assert guard.can_read(ticket, _caller(), "a1b2c3") is True
        assert guard.can_read(ticket, _caller(), "wrong") is False


class TestCallerRules:
    @pytest.mark.parametrize("role", [Role.ADMIN, Role.STAFF, Role.SUPPORT])
    def test_elevated_roles_read_anything(self, guard, ticket, role):
        assert guard.can_read(ticket, _caller(role)) is True
        assert guard.can_read(ticket, _caller(role), "wrong") is True

    def test_owner_by_id(self, guard, ticket):
        assert guard.can_read(ticket, _caller(id="owner-1")) is True

    def test_owner_by_email_ignores_case(self, guard, ticket):
        assert guard.can_read(ticket, _caller(email="OWNER@Example.com")) is True

    def test_stranger_without_code(self, guard, ticket):
        assert guard.can_read(ticket, _caller()) is False
        assert guard.can_read(ticket) is False

    def test_ticket_without_owner_never_matches_blank_caller(self, guard):
        orphan = SimpleNamespace(id="t-2", requester_id=None, requester_email=None, access_code_hash=None)
        assert guard.can_read(orphan, _caller(id="", email="")) is False


class TestEnsureCanRead:
    def test_raises_when_denied(self, guard, ticket):
        with pytest.raises(AuthorizationError, match="do not have access"):
            guard.ensure_can_read(ticket, _caller(), "wrong")

    def test_passes_when_allowed(self, guard, ticket):
        guard.ensure_can_read(ticket, None, "a1b2c3")
