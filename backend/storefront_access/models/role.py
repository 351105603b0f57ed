"""Closed set of account roles."""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Account role, ordered from least to most privileged.

    ``support`` sits beside ``staff`` in the elevated group but cannot assign
    roles; the capability tables live in
    :mod:`storefront_access.services._shared.policies.roles`.
    """

    GUEST = "guest"
    CUSTOMER = "customer"
    SUPPORT = "support"
    STAFF = "staff"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: str | Role) -> Role:
        """Return the member for ``value`` (case-insensitive).

        :raises ValueError: If the value names no role.
        """
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())
