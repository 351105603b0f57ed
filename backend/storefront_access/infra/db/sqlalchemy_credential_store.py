"""SQLAlchemy adapter for the :class:`CredentialStore` port.

Each public method runs in its own Unit of Work, so every operation commits
(or rolls back) on its own, matching the per-operation atomicity the port
promises.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError

from storefront_access.models import EmailVerificationToken, RefreshToken, Role, User
from storefront_access.services._shared.errors import ConflictError, NotFoundError
from storefront_access.services._shared.ports import (
    CredentialStore,
    RefreshRecord,
    UserRecord,
    VerificationRecord,
    ensure_utc,
)
from storefront_access.uow import SQLAlchemyReadOnlyUnitOfWork, SQLAlchemyUnitOfWork


def _user(row: User) -> UserRecord:
    return UserRecord(
        id=row.id,
        email=row.email,
        name=row.name,
        role=Role.parse(row.role),
        password_hash=row.password_hash,
        email_verified_at=ensure_utc(row.email_verified_at),
    )


def _refresh(row: RefreshToken) -> RefreshRecord:
    return RefreshRecord(
        id=row.id,
        user_id=row.user_id,
        token_hash=row.token_hash,
        expires_at=ensure_utc(row.expires_at),
        created_at=ensure_utc(row.created_at),
    )


def _verification(row: EmailVerificationToken) -> VerificationRecord:
    return VerificationRecord(
        id=row.id,
        user_id=row.user_id,
        token=row.token,
        expires_at=ensure_utc(row.expires_at),
        used_at=ensure_utc(row.used_at),
        created_at=ensure_utc(row.created_at),
    )


class SQLAlchemyCredentialStore(CredentialStore):
    """
    Relational credential store.

    :param rw_uow: Factory for read-write units of work.
    :param ro_uow: Factory for read-only units of work.
    """

    def __init__(
        self,
        *,
        rw_uow: Callable[[], SQLAlchemyUnitOfWork] = SQLAlchemyUnitOfWork,
        ro_uow: Callable[[], SQLAlchemyReadOnlyUnitOfWork] = SQLAlchemyReadOnlyUnitOfWork,
    ) -> None:
        self._rw = rw_uow
        self._ro = ro_uow

    # ------------------------------------------------------------------ #
    # Users
    # ------------------------------------------------------------------ #

    def find_user_by_email(self, email: str) -> UserRecord | None:
        with self._ro() as uow:
            row = uow.users.get_by_email(email)
            return _user(row) if row is not None else None

    def find_user_by_id(self, user_id: str) -> UserRecord | None:
        with self._ro() as uow:
            row = uow.users.get(user_id)
            return _user(row) if row is not None else None

    def create_user(self, *, email: str, name: str, role: Role, password_hash: str) -> UserRecord:
        try:
            with self._rw() as uow:
                if uow.users.exists_by_email(email):
                    raise ConflictError("User", "email already registered")
                row = uow.users.add(
                    User(email=email, name=name, role=role, password_hash=password_hash)
                )
                return _user(row)
        except IntegrityError as exc:
            # Lost a race against a concurrent registration of the same email
            raise ConflictError("User", "email already registered") from exc

    def update_user(self, user_id: str, changes: Mapping[str, Any]) -> UserRecord:
        with self._rw() as uow:
            row = uow.users.get(user_id)
            if row is None:
                raise NotFoundError("User", user_id)
            uow.users.assign_updates(row, changes)
            return _user(row)

    # ------------------------------------------------------------------ #
    # Refresh records
    # ------------------------------------------------------------------ #

    def create_refresh_record(self, user_id: str, token_hash: str, expires_at: datetime) -> RefreshRecord:
        with self._rw() as uow:
            row = uow.refresh_tokens.add(
                RefreshToken(user_id=user_id, token_hash=token_hash, expires_at=expires_at)
            )
            return _refresh(row)

    def find_latest_refresh_record(self, user_id: str) -> RefreshRecord | None:
        with self._ro() as uow:
            row = uow.refresh_tokens.latest_for_user(user_id)
            return _refresh(row) if row is not None else None

    def delete_refresh_record(self, record_id: str) -> bool:
        with self._rw() as uow:
            return uow.refresh_tokens.delete_by_id(record_id)

    def delete_all_refresh_records(self, user_id: str) -> int:
        with self._rw() as uow:
            return uow.refresh_tokens.delete_for_user(user_id)

    def count_refresh_records(self, user_id: str) -> int:
        with self._ro() as uow:
            return uow.refresh_tokens.count_for_user(user_id)

    # ------------------------------------------------------------------ #
    # Verification records
    # ------------------------------------------------------------------ #

    def create_verification_record(self, user_id: str, token: str, expires_at: datetime) -> VerificationRecord:
        with self._rw() as uow:
            row = uow.verification_tokens.add(
                EmailVerificationToken(user_id=user_id, token=token, expires_at=expires_at)
            )
            return _verification(row)

    def find_active_verification_record(self, user_id: str, now: datetime) -> VerificationRecord | None:
        with self._ro() as uow:
            row = uow.verification_tokens.active_for_user(user_id, now)
            return _verification(row) if row is not None else None

    def find_verification_record_by_token(self, token: str) -> VerificationRecord | None:
        with self._ro() as uow:
            row = uow.verification_tokens.get_by_token(token)
            return _verification(row) if row is not None else None

    def mark_verification_used(self, record_id: str, used_at: datetime) -> bool:
        with self._rw() as uow:
            return uow.verification_tokens.mark_used(record_id, used_at)

    def delete_verification_record(self, record_id: str) -> bool:
        with self._rw() as uow:
            return uow.verification_tokens.delete_by_id(record_id)

    def delete_unused_verification_records(self, user_id: str) -> int:
        with self._rw() as uow:
            return uow.verification_tokens.delete_unused_for_user(user_id)

    def delete_other_verification_records(self, user_id: str, keep_id: str) -> int:
        with self._rw() as uow:
            return uow.verification_tokens.delete_unused_for_user(user_id, keep_id=keep_id)

    # ------------------------------------------------------------------ #
    # Housekeeping
    # ------------------------------------------------------------------ #

    def purge_expired(self, now: datetime) -> dict[str, int]:
        with self._rw() as uow:
            return {
                "refresh_tokens": uow.refresh_tokens.purge_expired(now),
                "verification_tokens": uow.verification_tokens.purge_dead(now),
            }
