# storefront_access/services/auth/service.py
from __future__ import annotations

import logging
import secrets
from datetime import datetime
from urllib.parse import urlencode

from storefront_access.models.role import Role
from storefront_access.services._shared.base import BaseService, ServiceContext
from storefront_access.services._shared.errors import (
    AuthenticationError,
    AuthFailure,
    AuthorizationError,
    ConflictError,
    VerificationFailure,
    VerificationTokenError,
)
from storefront_access.services._shared.policies.roles import DEFAULT_ROLE, can_assign_role
from storefront_access.services._shared.ports import (
    Clock,
    CredentialStore,
    Mailer,
    SecretHasher,
    SystemClock,
    TokenIssuer,
    UserRecord,
)
from storefront_access.services.auth.dto import (
    AuthSettings,
    AuthUser,
    LoginIn,
    LoginOut,
    RegisterIn,
    TokenPair,
)
from storefront_access.services.auth.schemas import validate_register

logger = logging.getLogger(__name__)

EMAIL_NOT_VERIFIED_MESSAGE = "Email not verified. Please check your inbox for the verification link."


def new_verification_token() -> str:
    """Random single-use verification token (32 bytes, URL-safe base64)."""
    return secrets.token_urlsafe(32)


class AuthSessionService(BaseService):
    """
    Account lifecycle: registration, email verification and sessions.

    A user moves from *unverified* to *pending* when a verification token is
    issued and to *verified* once a token is confirmed; *verified* is
    terminal. Sessions are a short-lived access token plus one rotating
    refresh token whose hash is the only thing stored.

    Security
    --------
    - Unknown email and wrong password produce the same error.
    - Login revokes every earlier refresh token (single session).
    - A refresh token is consumed on use; the consuming delete is
      conditional, so two concurrent refreshes cannot both succeed.
    """

    def __init__(
        self,
        *,
        store: CredentialStore,
        hasher: SecretHasher,
        tokens: TokenIssuer,
        mailer: Mailer,
        settings: AuthSettings | None = None,
        clock: Clock | None = None,
        ctx: ServiceContext | None = None,
    ) -> None:
        """
        Initialize the service with its collaborators.

        :param store: Accounts and credential records.
        :param hasher: Password and refresh-token hashing.
        :param tokens: Access-token signing and refresh-token minting.
        :param mailer: Verification mail delivery.
        :param settings: Token lifetimes and the verification link origin.
        :param clock: Time source for every expiry decision.
        """
        super().__init__(ctx=ctx)
        self.store = store
        self.hasher = hasher
        self.tokens = tokens
        self.mailer = mailer
        self.settings = settings or AuthSettings()
        self.clock = clock or SystemClock()

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn, actor: AuthUser | None = None) -> AuthUser:
        """
        Create an unverified account and send its verification link.

        Registration does not authenticate; no tokens are issued.

        :param dto: Registration input.
        :param actor: Authenticated caller creating the account, if any.
        :returns: Public view of the new user.
        :raises BadRequestError: On invalid input.
        :raises AuthorizationError: If ``actor`` may not assign the requested role.
        :raises ConflictError: If the email is already registered.
        """
        data = validate_register(dto)
        role = self._resolve_role(actor, data.role)

        if self.store.find_user_by_email(data.email) is not None:
            raise ConflictError("User", "email already registered")

        user = self.store.create_user(
            email=data.email,
            name=data.name,
            role=role,
            password_hash=self.hasher.hash(data.password),
        )
        logger.info(
            "User registered",
            extra={"event": "auth.registered", "user_id": user.id, "value": role.value},
        )
        self._issue_verification(user)
        return AuthUser.from_record(user)

    @staticmethod
    def _resolve_role(actor: AuthUser | None, requested: Role | None) -> Role:
        # anonymous sign-ups always get the default role
        if actor is None:
            return DEFAULT_ROLE
        role = requested or DEFAULT_ROLE
        if not can_assign_role(actor.role, role):
            raise AuthorizationError("You are not allowed to assign the requested role.")
        return role

    # ------------------------------------------------------------------ #
    # Login / refresh / logout
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> LoginOut:
        """
        Authenticate credentials and open a new session.

        :raises AuthenticationError: ``INVALID_CREDENTIALS`` for an unknown
            email or a wrong password, ``EMAIL_NOT_VERIFIED`` when the
            account is not verified yet (a verification link is re-sent
            unless one is still active).
        """
        user = self.store.find_user_by_email(dto.email)
        # verify against a dummy hash when the user is unknown (timing)
        stored_hash = user.password_hash if user is not None else None
        if not self.hasher.verify(stored_hash, dto.password) or user is None:
            logger.info("Login rejected", extra={"event": "auth.login_failed", "reason": "invalid_credentials"})
            raise AuthenticationError(reason=AuthFailure.INVALID_CREDENTIALS)

        if user.email_verified_at is None:
            self._ensure_active_verification(user)
            raise AuthenticationError(EMAIL_NOT_VERIFIED_MESSAGE, reason=AuthFailure.EMAIL_NOT_VERIFIED)

        revoked = self.store.delete_all_refresh_records(user.id)
        auth_user = AuthUser.from_record(user)
        tokens = self._issue_tokens(auth_user)
        logger.info(
            "User logged in",
            extra={"event": "auth.login", "user_id": user.id, "value": revoked},
        )
        return LoginOut(user=auth_user, tokens=tokens)

    def refresh(self, caller: AuthUser, refresh_token: str | None) -> TokenPair:
        """
        Rotate the caller's refresh token and issue a new token pair.

        The checks run in a fixed order: verified caller, stored record,
        expiry, presence of the plaintext, hash match, then the conditional
        delete that consumes the record.

        :param caller: User resolved from the (possibly stale) access token.
        :param refresh_token: Plaintext refresh token presented by the client.
        :raises AuthenticationError: On any failed check.
        """
        if caller.email_verified_at is None:
            raise AuthenticationError("Email not verified", reason=AuthFailure.EMAIL_NOT_VERIFIED)

        record = self.store.find_latest_refresh_record(caller.id)
        if record is None:
            raise AuthenticationError("No refresh token", reason=AuthFailure.REFRESH_NOT_FOUND)

        if record.expires_at <= self.clock.now():
            self.store.delete_refresh_record(record.id)
            raise AuthenticationError("Refresh token expired", reason=AuthFailure.REFRESH_EXPIRED)

        if not refresh_token:
            raise AuthenticationError("Refresh token missing", reason=AuthFailure.REFRESH_MISSING)

        if not self.hasher.verify(record.token_hash, refresh_token):
            raise AuthenticationError("Invalid refresh token", reason=AuthFailure.REFRESH_INVALID)

        # losing the delete means another refresh already consumed the record
        if not self.store.delete_refresh_record(record.id):
            logger.warning(
                "Refresh token consumed concurrently",
                extra={"event": "auth.refresh_race", "user_id": caller.id},
            )
            raise AuthenticationError("Invalid refresh token", reason=AuthFailure.REFRESH_INVALID)

        tokens = self._issue_tokens(caller)
        logger.info("Session refreshed", extra={"event": "auth.refresh", "user_id": caller.id})
        return tokens

    def logout(self, user_id: str) -> None:
        """Delete every refresh record of ``user_id``. Idempotent."""
        removed = self.store.delete_all_refresh_records(user_id)
        logger.info("User logged out", extra={"event": "auth.logout", "user_id": user_id, "value": removed})

    def authenticate(self, access_token: str, *, fresh: bool = False) -> AuthUser:
        """
        Resolve the caller behind an access token.

        :param access_token: Encoded access token.
        :param fresh: Re-read the account from storage instead of trusting
            the claims (use before privileged actions).
        :raises TokenError: If the token is invalid or expired.
        :raises AuthenticationError: If ``fresh`` and the account is gone.
        """
        claims = self.tokens.decode_access_token(access_token)
        if not fresh:
            return AuthUser.from_claims(claims)

        user = self.store.find_user_by_id(claims.user_id)
        if user is None:
            raise AuthenticationError("Invalid access token", reason=AuthFailure.TOKEN_INVALID)
        return AuthUser.from_record(user)

    # ------------------------------------------------------------------ #
    # Email verification
    # ------------------------------------------------------------------ #

    def request_verification(self, email: str) -> None:
        """
        Send a new verification link.

        Does nothing for unknown or already verified emails, so the call
        never reveals whether an account exists.
        """
        user = self.store.find_user_by_email(email)
        if user is None or user.email_verified_at is not None:
            return
        self._issue_verification(user)

    def verify_email(self, token: str) -> AuthUser:
        """
        Confirm an email address with a verification token.

        :raises VerificationTokenError: ``INVALID`` (unknown token),
            ``ALREADY_USED`` or ``EXPIRED`` (the record is deleted).
        """
        record = self.store.find_verification_record_by_token(token) if token else None
        if record is None:
            raise VerificationTokenError(VerificationFailure.INVALID)
        if record.used_at is not None:
            raise VerificationTokenError(VerificationFailure.ALREADY_USED)

        now = self.clock.now()
        if record.expires_at <= now:
            self.store.delete_verification_record(record.id)
            raise VerificationTokenError(VerificationFailure.EXPIRED)

        if not self.store.mark_verification_used(record.id, now):
            raise VerificationTokenError(VerificationFailure.ALREADY_USED)

        user = self.store.find_user_by_id(record.user_id)
        if user is None:
            raise VerificationTokenError(VerificationFailure.INVALID)
        if user.email_verified_at is None:
            user = self.store.update_user(user.id, {"email_verified_at": now})
        self.store.delete_other_verification_records(user.id, record.id)

        logger.info("Email verified", extra={"event": "auth.email_verified", "user_id": user.id})
        return AuthUser.from_record(user)

    # ------------------------------------------------------------------ #
    # Housekeeping
    # ------------------------------------------------------------------ #

    def purge_expired(self) -> dict[str, int]:
        """Delete expired refresh records and dead verification records."""
        counts = self.store.purge_expired(self.clock.now())
        logger.info("Expired credentials purged", extra={"event": "auth.purge", "value": counts})
        return counts

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _issue_tokens(self, user: AuthUser) -> TokenPair:
        access = self.tokens.issue_access_token(user)
        refresh = self.tokens.issue_refresh_token()
        refresh_expires_at = self.clock.now() + self.settings.refresh_ttl
        self.store.create_refresh_record(user.id, self.hasher.hash(refresh), refresh_expires_at)
        return TokenPair(
            access_token=access.token,
            access_expires_at=access.expires_at,
            refresh_token=refresh,
            refresh_expires_at=refresh_expires_at,
        )

    def _ensure_active_verification(self, user: UserRecord) -> None:
        if self.store.find_active_verification_record(user.id, self.clock.now()) is not None:
            return
        self._issue_verification(user)

    def _issue_verification(self, user: UserRecord) -> None:
        """Replace unused tokens with a fresh one and mail the link (best effort)."""
        self.store.delete_unused_verification_records(user.id)
        token = new_verification_token()
        expires_at: datetime = self.clock.now() + self.settings.verification_ttl
        self.store.create_verification_record(user.id, token, expires_at)

        url = self.verification_url(token)
        try:
            self.mailer.send_email_verification(user.email, user.name, url)
        except Exception:  # token stays valid; the user can ask for a new mail
            logger.exception(
                "Verification mail failed",
                extra={"event": "auth.verification_mail_failed", "user_id": user.id},
            )
            return
        logger.info("Verification mail sent", extra={"event": "auth.verification_sent", "user_id": user.id})

    def verification_url(self, token: str) -> str:
        origin = self.settings.frontend_origin.rstrip("/")
        return f"{origin}/verify-email?{urlencode({'token': token})}"
