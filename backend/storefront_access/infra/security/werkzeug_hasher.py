from __future__ import annotations

from dataclasses import dataclass, field

from werkzeug.security import check_password_hash, generate_password_hash

from storefront_access.services._shared.ports import SecretHasher

DEFAULT_METHOD = "scrypt"


@dataclass(slots=True)
class WerkzeugSecretHasher(SecretHasher):
    """
    Adapter for Werkzeug's salted password hashing.

    :param method: Werkzeug method string (``"scrypt"``, ``"pbkdf2:sha256:600000"``).

    .. note::
       ``check_password_hash`` compares digests with :func:`hmac.compare_digest`.
       When the stored hash is unusable a throwaway hash is still checked so a
       malformed record costs as much as a real mismatch.
    """

    method: str = DEFAULT_METHOD
    _dummy: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._dummy = generate_password_hash("storefront-dummy-secret", method=self.method)

    def hash(self, plaintext: str) -> str:
        if not isinstance(plaintext, str) or not plaintext:
            raise ValueError("Cannot hash an empty secret.")
        return generate_password_hash(plaintext, method=self.method)

    def verify(self, stored_hash: str | None, plaintext: str) -> bool:
        if not isinstance(plaintext, str):
            plaintext = ""
        if not stored_hash or not isinstance(stored_hash, str) or "$" not in stored_hash:
            self._check(self._dummy, plaintext)
            return False
        return self._check(stored_hash, plaintext)

    @staticmethod
    def _check(stored_hash: str, plaintext: str) -> bool:
        try:
            return bool(check_password_hash(stored_hash, plaintext))
        except (ValueError, TypeError):
            # Unknown method or corrupt parameters in the stored hash
            return False
