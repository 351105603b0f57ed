"""Repository package exposing persistence-layer access for all domain models."""

from __future__ import annotations

from storefront_access.repositories.base import BaseRepository
from storefront_access.repositories.email_verification_token import (
    EmailVerificationTokenRepository,
)
from storefront_access.repositories.refresh_token import RefreshTokenRepository
from storefront_access.repositories.ticket import TicketRepository
from storefront_access.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "EmailVerificationTokenRepository",
    "RefreshTokenRepository",
    "TicketRepository",
    "UserRepository",
]
