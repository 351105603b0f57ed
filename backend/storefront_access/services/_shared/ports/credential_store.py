from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from itertools import count
from typing import Any, Protocol
from uuid import uuid4

from storefront_access.models.role import Role
from storefront_access.services._shared.errors import ConflictError, NotFoundError

#: Fields :meth:`CredentialStore.update_user` accepts.
USER_UPDATABLE_FIELDS = frozenset({"name", "role", "password_hash", "email_verified_at"})


@dataclass(frozen=True, slots=True)
class UserRecord:
    """
    Stored account as seen by the identity services.

    :ivar id: Opaque identifier.
    :ivar email: Normalized (trimmed, lowercase) email.
    :ivar password_hash: Opaque hash; never leaves the service layer.
    :ivar email_verified_at: ``None`` until verified.
    """

    id: str
    email: str
    name: str
    role: Role
    password_hash: str
    email_verified_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class RefreshRecord:
    id: str
    user_id: str
    token_hash: str
    expires_at: datetime
    created_at: datetime


@dataclass(frozen=True, slots=True)
class VerificationRecord:
    id: str
    user_id: str
    token: str
    expires_at: datetime
    used_at: datetime | None
    created_at: datetime


class CredentialStore(Protocol):
    """
    Persistence contract for accounts and their credential records.

    Every operation is atomic on its own; the services sequence calls and do
    not rely on cross-operation transactions. Expired rows may still be
    returned by lookups; deciding expiry is the caller's job.
    """

    # ---- users -------------------------------------------------------------

    def find_user_by_email(self, email: str) -> UserRecord | None: ...

    def find_user_by_id(self, user_id: str) -> UserRecord | None: ...

    def create_user(self, *, email: str, name: str, role: Role, password_hash: str) -> UserRecord:
        """:raises ConflictError: If the (normalized) email is taken."""
        ...

    def update_user(self, user_id: str, changes: Mapping[str, Any]) -> UserRecord:
        """:raises NotFoundError: If the user is gone. :raises ValueError: On unknown fields."""
        ...

    # ---- refresh records ---------------------------------------------------

    def create_refresh_record(self, user_id: str, token_hash: str, expires_at: datetime) -> RefreshRecord: ...

    def find_latest_refresh_record(self, user_id: str) -> RefreshRecord | None: ...

    def delete_refresh_record(self, record_id: str) -> bool:
        """Delete one record. :returns: ``False`` if it was already gone."""
        ...

    def delete_all_refresh_records(self, user_id: str) -> int: ...

    def count_refresh_records(self, user_id: str) -> int: ...

    # ---- verification records ----------------------------------------------

    def create_verification_record(self, user_id: str, token: str, expires_at: datetime) -> VerificationRecord: ...

    def find_active_verification_record(self, user_id: str, now: datetime) -> VerificationRecord | None:
        """Newest record that is unused and expires after ``now``."""
        ...

    def find_verification_record_by_token(self, token: str) -> VerificationRecord | None: ...

    def mark_verification_used(self, record_id: str, used_at: datetime) -> bool:
        """Set ``used_at`` if unset. :returns: ``False`` if already used or gone."""
        ...

    def delete_verification_record(self, record_id: str) -> bool: ...

    def delete_unused_verification_records(self, user_id: str) -> int: ...

    def delete_other_verification_records(self, user_id: str, keep_id: str) -> int:
        """Delete unused records of ``user_id`` except ``keep_id``."""
        ...

    # ---- housekeeping ------------------------------------------------------

    def purge_expired(self, now: datetime) -> dict[str, int]:
        """Delete expired refresh records and dead verification records."""
        ...


def normalize_email(email: str) -> str:
    return email.strip().lower()


class InMemoryCredentialStore(CredentialStore):
    """
    Lock-protected in-memory store used in unit tests.

    .. note::
       Each method holds the lock for its whole body, which gives the same
       per-operation atomicity a relational row delete or update would.
    """

    def __init__(self) -> None:
        self._users: dict[str, UserRecord] = {}
        self._refresh: dict[str, RefreshRecord] = {}
        self._verification: dict[str, VerificationRecord] = {}
        self._order: dict[str, int] = {}
        self._seq = count(1)
        self._lock = threading.RLock()

    # ------------------------- helpers -------------------------

    def _stamp(self, record_id: str) -> datetime:
        self._order[record_id] = next(self._seq)
        return datetime.now(UTC)

    def _newest(self, records):
        return max(records, key=lambda r: self._order[r.id], default=None)

    # -------------------------- users --------------------------

    def find_user_by_email(self, email: str) -> UserRecord | None:
        wanted = normalize_email(email)
        with self._lock:
            return next((u for u in self._users.values() if u.email == wanted), None)

    def find_user_by_id(self, user_id: str) -> UserRecord | None:
        with self._lock:
            return self._users.get(user_id)

    def create_user(self, *, email: str, name: str, role: Role, password_hash: str) -> UserRecord:
        normalized = normalize_email(email)
        with self._lock:
            if any(u.email == normalized for u in self._users.values()):
                raise ConflictError("User", "email already registered")
            record = UserRecord(
                id=str(uuid4()),
                email=normalized,
                name=name.strip(),
                role=role,
                password_hash=password_hash,
            )
            self._users[record.id] = record
            return record

    def update_user(self, user_id: str, changes: Mapping[str, Any]) -> UserRecord:
        unknown = set(changes) - USER_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown or non-updatable fields: {sorted(unknown)}")
        with self._lock:
            current = self._users.get(user_id)
            if current is None:
                raise NotFoundError("User", user_id)
            if current.email_verified_at is not None and "email_verified_at" in changes:
                if changes["email_verified_at"] != current.email_verified_at:
                    raise ValueError("email_verified_at is already set and cannot change.")
            updated = replace(current, **dict(changes))
            self._users[user_id] = updated
            return updated

    # --------------------- refresh records ---------------------

    def create_refresh_record(self, user_id: str, token_hash: str, expires_at: datetime) -> RefreshRecord:
        with self._lock:
            record_id = str(uuid4())
            record = RefreshRecord(
                id=record_id,
                user_id=user_id,
                token_hash=token_hash,
                expires_at=expires_at,
                created_at=self._stamp(record_id),
            )
            self._refresh[record_id] = record
            return record

    def find_latest_refresh_record(self, user_id: str) -> RefreshRecord | None:
        with self._lock:
            return self._newest(r for r in self._refresh.values() if r.user_id == user_id)

    def delete_refresh_record(self, record_id: str) -> bool:
        with self._lock:
            return self._refresh.pop(record_id, None) is not None

    def delete_all_refresh_records(self, user_id: str) -> int:
        with self._lock:
            doomed = [rid for rid, r in self._refresh.items() if r.user_id == user_id]
            for rid in doomed:
                del self._refresh[rid]
            return len(doomed)

    def count_refresh_records(self, user_id: str) -> int:
        with self._lock:
            return sum(1 for r in self._refresh.values() if r.user_id == user_id)

    # ------------------ verification records -------------------

    def create_verification_record(self, user_id: str, token: str, expires_at: datetime) -> VerificationRecord:
        with self._lock:
            record_id = str(uuid4())
            record = VerificationRecord(
                id=record_id,
                user_id=user_id,
                token=token,
                expires_at=expires_at,
                used_at=None,
                created_at=self._stamp(record_id),
            )
            self._verification[record_id] = record
            return record

    def find_active_verification_record(self, user_id: str, now: datetime) -> VerificationRecord | None:
        with self._lock:
            return self._newest(
                r
                for r in self._verification.values()
                if r.user_id == user_id and r.used_at is None and r.expires_at > now
            )

    def find_verification_record_by_token(self, token: str) -> VerificationRecord | None:
        with self._lock:
            return next((r for r in self._verification.values() if r.token == token), None)

    def mark_verification_used(self, record_id: str, used_at: datetime) -> bool:
        with self._lock:
            record = self._verification.get(record_id)
            if record is None or record.used_at is not None:
                return False
            self._verification[record_id] = replace(record, used_at=used_at)
            return True

    def delete_verification_record(self, record_id: str) -> bool:
        with self._lock:
            return self._verification.pop(record_id, None) is not None

    def _delete_unused(self, user_id: str, keep_id: str | None) -> int:
        with self._lock:
            doomed = [
                rid
                for rid, r in self._verification.items()
                if r.user_id == user_id and r.used_at is None and rid != keep_id
            ]
            for rid in doomed:
                del self._verification[rid]
            return len(doomed)

    def delete_unused_verification_records(self, user_id: str) -> int:
        return self._delete_unused(user_id, None)

    def delete_other_verification_records(self, user_id: str, keep_id: str) -> int:
        return self._delete_unused(user_id, keep_id)

    # ----------------------- housekeeping ----------------------

    def purge_expired(self, now: datetime) -> dict[str, int]:
        with self._lock:
            refresh = [rid for rid, r in self._refresh.items() if r.expires_at <= now]
            verification = [
                rid
                for rid, r in self._verification.items()
                if r.expires_at <= now or r.used_at is not None
            ]
            for rid in refresh:
                del self._refresh[rid]
            for rid in verification:
                del self._verification[rid]
            return {"refresh_tokens": len(refresh), "verification_tokens": len(verification)}
