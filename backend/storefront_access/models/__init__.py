from storefront_access.models.email_verification_token import EmailVerificationToken
from storefront_access.models.refresh_token import RefreshToken
from storefront_access.models.role import Role
from storefront_access.models.ticket import Ticket, TicketStatus
from storefront_access.models.user import User

__all__ = [
    "EmailVerificationToken",
    "RefreshToken",
    "Role",
    "Ticket",
    "TicketStatus",
    "User",
]
