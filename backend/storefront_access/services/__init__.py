"""Service layer public API.

This package exposes the essential building blocks for the service layer so that
callers can import from :mod:`storefront_access.services` without knowing
internal structure.

Re-exports
----------
- Base primitives (from ``storefront_access.services._shared.base``)
    * :class:`BaseService`
    * :class:`ServiceContext`

- Auth sessions (from ``storefront_access.services.auth``)
    * :class:`AuthSessionService`
    * DTOs: :class:`RegisterIn`, :class:`LoginIn`, :class:`AuthUser`,
      :class:`TokenPair`, :class:`LoginOut`, :class:`AuthSettings`

- Tickets (from ``storefront_access.services.tickets``)
    * :class:`TicketService`, :class:`TicketAccessGuard`
    * DTOs: :class:`TicketCreateIn`, :class:`TicketOut`, :class:`TicketCreatedOut`

- Notifications (from ``storefront_access.services.notifications``)
    * :class:`NotificationDispatcher`, :class:`NotificationWorker`

The application wiring lives in :mod:`storefront_access.services.registry`.
"""

from __future__ import annotations

# Base primitives (service base + call-scoped context)
from ._shared.base import BaseService, ServiceContext

# Auth sessions + DTOs
from .auth.dto import AuthSettings, AuthUser, LoginIn, LoginOut, RegisterIn, TokenPair
from .auth.service import AuthSessionService

# Notifications
from .notifications.dispatcher import NotificationDispatcher
from .notifications.worker import NotificationWorker

# Tickets + DTOs
from .tickets.access import TicketAccessGuard
from .tickets.dto import TicketCreatedOut, TicketCreateIn, TicketOut
from .tickets.service import TicketService

__all__ = [
    "AuthSessionService",
    "AuthSettings",
    "AuthUser",
    "BaseService",
    "LoginIn",
    "LoginOut",
    "NotificationDispatcher",
    "NotificationWorker",
    "RegisterIn",
    "ServiceContext",
    "TicketAccessGuard",
    "TicketCreateIn",
    "TicketCreatedOut",
    "TicketOut",
    "TicketService",
    "TokenPair",
]
