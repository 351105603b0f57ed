"""Role capability tables.

Every role decision in the services goes through these lookups instead of
comparing role strings inline.
"""

from __future__ import annotations

from typing import Final

from storefront_access.models.role import Role

#: Roles allowed to read any ticket and change its status.
ELEVATED_ROLES: Final[frozenset[Role]] = frozenset({Role.ADMIN, Role.STAFF, Role.SUPPORT})

#: Role given to self-service sign-ups.
DEFAULT_ROLE: Final[Role] = Role.CUSTOMER

#: Roles each actor role may hand out; absent actors get ``{DEFAULT_ROLE}``.
ASSIGNABLE_ROLES: Final[dict[Role, frozenset[Role]]] = {
    Role.ADMIN: frozenset(Role),
    Role.STAFF: frozenset({Role.STAFF, Role.CUSTOMER}),
}


def is_elevated(role: Role | None) -> bool:
    return role is not None and role in ELEVATED_ROLES


def assignable_roles(actor_role: Role | None) -> frozenset[Role]:
    if actor_role is None:
        return frozenset({DEFAULT_ROLE})
    return ASSIGNABLE_ROLES.get(actor_role, frozenset({DEFAULT_ROLE}))


def can_assign_role(actor_role: Role | None, requested: Role) -> bool:
    """Return whether ``actor_role`` may create an account with ``requested``.

    ``admin`` may assign any role and ``staff`` only ``staff`` or
    ``customer``. Everyone else, anonymous callers included, gets
    :data:`DEFAULT_ROLE`.
    """
    return requested in assignable_roles(actor_role)
