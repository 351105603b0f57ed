"""Unit tests for the role capability tables."""

import pytest

from storefront_access.models.role import Role
from storefront_access.services._shared.policies.common import is_owner, same_email
from storefront_access.services._shared.policies.roles import (
    DEFAULT_ROLE,
    assignable_roles,
    can_assign_role,
    is_elevated,
)


@pytest.mark.parametrize(
    ("role", "expected"),
    [
        (Role.ADMIN, True),
        (Role.STAFF, True),
        (Role.SUPPORT, True),
        (Role.CUSTOMER, False),
        (Role.GUEST, False),
        (None, False),
    ],
)
def test_is_elevated(role, expected):
    assert is_elevated(role) is expected


@pytest.mark.parametrize(
    ("actor", "requested", "expected"),
    [
        (None, Role.CUSTOMER, True),
        (None, Role.STAFF, False),
        (Role.ADMIN, Role.ADMIN, True),
        (Role.STAFF, Role.STAFF, True),
        (Role.STAFF, Role.ADMIN, False),
        (Role.STAFF, Role.SUPPORT, False),
        (Role.STAFF, Role.GUEST, False),
        (Role.STAFF, Role.CUSTOMER, True),
        (Role.ADMIN, Role.GUEST, True),
        (Role.SUPPORT, Role.GUEST, False),
        (Role.CUSTOMER, Role.CUSTOMER, True),
    ],
)
def test_can_assign_role(actor, requested, expected):
    assert can_assign_role(actor, requested) is expected


def test_default_role_is_customer():
    assert DEFAULT_ROLE is Role.CUSTOMER


def test_role_parse_is_case_insensitive():
    assert Role.parse(" Admin ") is Role.ADMIN
    with pytest.raises(ValueError):
        Role.parse("owner")


def test_ownership_helpers():
    assert is_owner(actor_id="1", owner_id=1)
    assert not is_owner(actor_id=None, owner_id=None)
    assert same_email("A@x.io", " a@X.io ")
    assert not same_email("", "")


def test_assignable_roles_per_actor():
    assert assignable_roles(Role.ADMIN) == frozenset(Role)
    assert assignable_roles(Role.STAFF) == {Role.STAFF, Role.CUSTOMER}
    assert assignable_roles(Role.SUPPORT) == {Role.CUSTOMER}
    assert assignable_roles(None) == {Role.CUSTOMER}
