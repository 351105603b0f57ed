"""
Unit tests for :class:`AuthSessionService` with in-memory collaborators.

The store, token issuer, clock and mailer are the test doubles shipped with
the ports, so every expiry decision is driven by the frozen clock.
"""

from __future__ import annotations

from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import pytest

from storefront_access.models.role import Role
from storefront_access.services._shared.errors import (
    AuthenticationError,
    AuthFailure,
    AuthorizationError,
    BadRequestError,
    ConflictError,
    TokenError,
    VerificationFailure,
    VerificationTokenError,
)
from storefront_access.services._shared.ports import InMemoryCredentialStore, RecordingMailer, StubTokenIssuer
from storefront_access.services.auth.dto import AuthSettings, AuthUser, LoginIn, RegisterIn
from storefront_access.services.auth.service import EMAIL_NOT_VERIFIED_MESSAGE, AuthSessionService

PASSWORD = "Str0ngPass!"


@pytest.fixture
def store():
    return InMemoryCredentialStore()


@pytest.fixture
def tokens(clock):
    return StubTokenIssuer(clock=clock, ttl=timedelta(hours=1))


@pytest.fixture
def svc(store, hasher, tokens, mailer, clock):
    return AuthSessionService(
        store=store,
        hasher=hasher,
        tokens=tokens,
        mailer=mailer,
        settings=AuthSettings(refresh_ttl=timedelta(days=30), verification_ttl=timedelta(hours=24)),
        clock=clock,
    )


def _last_token(mailer: RecordingMailer) -> str:
    """Extract the token from the newest verification link."""
    url = mailer.of_kind("email_verification")[-1].payload["verification_url"]
    return parse_qs(urlparse(url).query)["token"][0]


def _register(svc, email="alice@example.com", name="Alice", role=None, actor=None):
    return svc.register(RegisterIn(name=name, email=email, password=PASSWORD, role=role), actor=actor)


def _verified_login(svc, mailer, email="alice@example.com"):
    _register(svc, email=email)
    svc.verify_email(_last_token(mailer))
    return svc.login(LoginIn(email=email, password=PASSWORD))


def _staff(role: Role) -> AuthUser:
    return AuthUser(id=f"{role.value}-actor", email=f"{role.value}@shop.example", name="Actor", role=role)


class TestRegister:
    def test_creates_unverified_user_and_mails_link(self, svc, store, mailer):
        """
        GIVEN a valid registration
        WHEN register is called
        THEN an unverified customer exists, no session is opened and one
        verification link is mailed
        """
        user = _register(svc, email="  Alice@Example.COM ")

        assert user.email == "alice@example.com"
        assert user.role is Role.CUSTOMER
        assert user.is_verified is False
        assert store.count_refresh_records(user.id) == 0

        [mail] = mailer.of_kind("email_verification")
        assert mail.to == "alice@example.com"
        assert mail.payload["verification_url"].startswith("http://localhost:3000/verify-email?token=")

        record = store.find_user_by_email("alice@example.com")
        assert record.password_hash != PASSWORD

    def test_duplicate_email_conflicts(self, svc):
        _register(svc)
        with pytest.raises(ConflictError):
            _register(svc, email="ALICE@example.com", name="Impostor")

    @pytest.mark.parametrize(
        ("field", "payload"),
        [
            ("password", {"name": "Bob", "email": "bob@example.com", "password": "short"}),
            ("email", {"name": "Bob", "email": "not-an-email", "password": PASSWORD}),
            ("name", {"name": "", "email": "bob@example.com", "password": PASSWORD}),
            ("name", {"name": "   ", "email": "bob@example.com", "password": PASSWORD}),
        ],
    )
    def test_invalid_input(self, svc, field, payload):
        with pytest.raises(BadRequestError) as err:
            svc.register(RegisterIn(**payload))
        assert field in err.value.errors

    def test_mail_failure_does_not_fail_registration(self, store, hasher, tokens, clock):
        """
        GIVEN a mailer that always fails
        WHEN a user registers
        THEN the account and its verification token still exist
        """
        failing = RecordingMailer(fail_times=-1)
        svc = AuthSessionService(store=store, hasher=hasher, tokens=tokens, mailer=failing, clock=clock)

        user = _register(svc)

        assert failing.attempts == 1
        assert failing.sent == []
        assert store.find_active_verification_record(user.id, clock.now()) is not None


class TestRoleAssignment:
    def test_anonymous_request_for_elevated_role_gets_customer(self, svc):
        user = _register(svc, role=Role.ADMIN)
        assert user.role is Role.CUSTOMER

    @pytest.mark.parametrize(
        ("actor", "requested"),
        [
            (Role.ADMIN, Role.ADMIN),
            (Role.ADMIN, Role.SUPPORT),
            (Role.STAFF, Role.STAFF),
            (Role.STAFF, Role.CUSTOMER),
            (Role.SUPPORT, Role.CUSTOMER),
            (Role.CUSTOMER, None),
        ],
    )
    def test_allowed(self, svc, actor, requested):
        user = _register(svc, role=requested, actor=_staff(actor))
        assert user.role is (requested or Role.CUSTOMER)

    @pytest.mark.parametrize(
        ("actor", "requested"),
        [
            (Role.STAFF, Role.ADMIN),
            (Role.STAFF, Role.SUPPORT),
            (Role.STAFF, Role.GUEST),
            (Role.SUPPORT, Role.STAFF),
            (Role.SUPPORT, Role.SUPPORT),
            (Role.CUSTOMER, Role.SUPPORT),
            (Role.GUEST, Role.STAFF),
        ],
    )
    def test_denied(self, svc, store, actor, requested):
        with pytest.raises(AuthorizationError):
            _register(svc, role=requested, actor=_staff(actor))
        assert store.find_user_by_email("alice@example.com") is None


class TestLogin:
    def test_unverified_login_is_rejected_without_new_mail(self, svc, mailer):
        """
        GIVEN a freshly registered user with an active verification link
        WHEN they log in
        THEN login fails with EMAIL_NOT_VERIFIED and no second mail is sent
        """
        _register(svc)

        with pytest.raises(AuthenticationError) as err:
            svc.login(LoginIn(email="alice@example.com", password=PASSWORD))

        assert err.value.reason is AuthFailure.EMAIL_NOT_VERIFIED
        assert str(err.value) == EMAIL_NOT_VERIFIED_MESSAGE
        assert len(mailer.of_kind("email_verification")) == 1

    def test_unverified_login_after_link_expired_resends(self, svc, mailer, clock):
        _register(svc)
        clock.advance(hours=25)

        with pytest.raises(AuthenticationError):
            svc.login(LoginIn(email="alice@example.com", password=PASSWORD))

        assert len(mailer.of_kind("email_verification")) == 2

    def test_unknown_email_and_wrong_password_look_the_same(self, svc, mailer):
        _verified_login(svc, mailer)

        with pytest.raises(AuthenticationError) as unknown:
            svc.login(LoginIn(email="nobody@example.com", password=PASSWORD))
        with pytest.raises(AuthenticationError) as wrong:
            svc.login(LoginIn(email="alice@example.com", password="Wrong-pass-123"))

        assert str(unknown.value) == str(wrong.value) == "Invalid credentials"
        assert unknown.value.reason is wrong.value.reason is AuthFailure.INVALID_CREDENTIALS

    def test_login_returns_token_pair(self, svc, mailer, store, clock):
        out = _verified_login(svc, mailer)

        assert out.user.is_verified
        assert out.tokens.access_token
        assert out.tokens.refresh_token
        assert out.tokens.access_expires_at == clock.now() + timedelta(hours=1)
        assert out.tokens.refresh_expires_at == clock.now() + timedelta(days=30)
        assert store.count_refresh_records(out.user.id) == 1

    def test_login_invalidates_previous_refresh_token(self, svc, mailer, store):
        """
        GIVEN a user who logged in once
        WHEN they log in again
        THEN the first refresh token no longer works and one record remains
        """
        first = _verified_login(svc, mailer)
        second = svc.login(LoginIn(email="alice@example.com", password=PASSWORD))

        assert store.count_refresh_records(second.user.id) == 1
        with pytest.raises(AuthenticationError) as err:
            svc.refresh(first.user, first.tokens.refresh_token)
        assert err.value.reason is AuthFailure.REFRESH_INVALID

        assert svc.refresh(second.user, second.tokens.refresh_token).refresh_token


class TestRefresh:
    def test_rotates_refresh_token(self, svc, mailer, store):
        out = _verified_login(svc, mailer)

        rotated = svc.refresh(out.user, out.tokens.refresh_token)

        assert rotated.refresh_token != out.tokens.refresh_token
        assert rotated.access_token != out.tokens.access_token
        assert store.count_refresh_records(out.user.id) == 1

    def test_same_token_cannot_be_used_twice(self, svc, mailer):
        out = _verified_login(svc, mailer)
        svc.refresh(out.user, out.tokens.refresh_token)

        with pytest.raises(AuthenticationError) as err:
            svc.refresh(out.user, out.tokens.refresh_token)
        assert err.value.reason is AuthFailure.REFRESH_INVALID
        assert str(err.value) == "Invalid refresh token"

    def test_expired_record_is_deleted(self, svc, mailer, store, clock):
        out = _verified_login(svc, mailer)
        clock.advance(days=30)

        with pytest.raises(AuthenticationError) as err:
            svc.refresh(out.user, out.tokens.refresh_token)
        assert err.value.reason is AuthFailure.REFRESH_EXPIRED
        assert store.count_refresh_records(out.user.id) == 0

        with pytest.raises(AuthenticationError) as again:
            svc.refresh(out.user, out.tokens.refresh_token)
        assert again.value.reason is AuthFailure.REFRESH_NOT_FOUND

    def test_missing_plaintext(self, svc, mailer):
        out = _verified_login(svc, mailer)
        with pytest.raises(AuthenticationError) as err:
            svc.refresh(out.user, None)
        assert err.value.reason is AuthFailure.REFRESH_MISSING

    def test_unverified_caller(self, svc):
        user = _register(svc)
        with pytest.raises(AuthenticationError) as err:
            svc.refresh(user, "whatever")
        assert err.value.reason is AuthFailure.EMAIL_NOT_VERIFIED

    def test_lost_delete_race_is_rejected(self, svc, mailer, store, monkeypatch):
        """
        GIVEN a refresh whose record is consumed by a concurrent call
        WHEN the conditional delete reports nothing removed
        THEN the refresh fails and no new record is created
        """
        out = _verified_login(svc, mailer)
        monkeypatch.setattr(store, "delete_refresh_record", lambda record_id: False)

        with pytest.raises(AuthenticationError) as err:
            svc.refresh(out.user, out.tokens.refresh_token)
        assert err.value.reason is AuthFailure.REFRESH_INVALID
        assert store.count_refresh_records(out.user.id) == 1


class TestLogoutAndAuthenticate:
    def test_logout_is_idempotent(self, svc, mailer, store):
        out = _verified_login(svc, mailer)

        svc.logout(out.user.id)
        svc.logout(out.user.id)

        assert store.count_refresh_records(out.user.id) == 0
        with pytest.raises(AuthenticationError) as err:
            svc.refresh(out.user, out.tokens.refresh_token)
        assert err.value.reason is AuthFailure.REFRESH_NOT_FOUND

    def test_authenticate_from_claims(self, svc, mailer):
        out = _verified_login(svc, mailer)
        assert svc.authenticate(out.tokens.access_token) == out.user

    def test_authenticate_fresh_rereads_account(self, svc, mailer, store):
        out = _verified_login(svc, mailer)
        store.update_user(out.user.id, {"role": Role.SUPPORT})

        assert svc.authenticate(out.tokens.access_token).role is Role.CUSTOMER
        assert svc.authenticate(out.tokens.access_token, fresh=True).role is Role.SUPPORT

    def test_expired_access_token(self, svc, mailer, clock):
        out = _verified_login(svc, mailer)
        clock.advance(hours=1)

        with pytest.raises(TokenError) as err:
            svc.authenticate(out.tokens.access_token)
        assert err.value.reason is AuthFailure.TOKEN_EXPIRED


class TestEmailVerification:
    def test_verify_marks_user_and_rejects_reuse(self, svc, mailer, store):
        """
        GIVEN a registered user
        WHEN the mailed token is used twice
        THEN the first call verifies and the second reports ALREADY_USED
        """
        user = _register(svc)
        token = _last_token(mailer)

        verified = svc.verify_email(token)
        assert verified.id == user.id
        assert verified.is_verified

        with pytest.raises(VerificationTokenError) as err:
            svc.verify_email(token)
        assert err.value.reason is VerificationFailure.ALREADY_USED
        assert store.find_user_by_id(user.id).email_verified_at == verified.email_verified_at

    def test_unknown_token(self, svc):
        with pytest.raises(VerificationTokenError) as err:
            svc.verify_email("nope")
        assert err.value.reason is VerificationFailure.INVALID

    def test_expired_token_is_deleted(self, svc, mailer, clock):
        _register(svc)
        token = _last_token(mailer)
        clock.advance(hours=24)

        with pytest.raises(VerificationTokenError) as err:
            svc.verify_email(token)
        assert err.value.reason is VerificationFailure.EXPIRED

        with pytest.raises(VerificationTokenError) as again:
            svc.verify_email(token)
        assert again.value.reason is VerificationFailure.INVALID

    def test_only_newest_requested_token_is_valid(self, svc, mailer):
        _register(svc)
        svc.request_verification("alice@example.com")
        older = _last_token(mailer)
        svc.request_verification("ALICE@example.com")
        newest = _last_token(mailer)

        assert older != newest
        with pytest.raises(VerificationTokenError):
            svc.verify_email(older)
        assert svc.verify_email(newest).is_verified

    def test_request_is_silent_for_unknown_and_verified(self, svc, mailer):
        _verified_login(svc, mailer)
        sent = len(mailer.sent)

        svc.request_verification("nobody@example.com")
        svc.request_verification("alice@example.com")

        assert len(mailer.sent) == sent

    def test_verification_url_uses_origin(self, store, hasher, tokens, mailer):
        svc = AuthSessionService(
            store=store,
            hasher=hasher,
            tokens=tokens,
            mailer=mailer,
            settings=AuthSettings(frontend_origin="https://shop.example/"),
        )
        assert svc.verification_url("a b") == "https://shop.example/verify-email?token=a+b"


class TestPurge:
    def test_purge_expired(self, svc, mailer, store, clock):
        out = _verified_login(svc, mailer)
        clock.advance(days=31)

        counts = svc.purge_expired()

        assert counts["refresh_tokens"] == 1
        assert counts["verification_tokens"] == 1
        assert store.count_refresh_records(out.user.id) == 0
