from __future__ import annotations

from typing import Protocol


class SecretHasher(Protocol):
    """
    Port for one-way hashing of passwords, refresh tokens and access codes.

    Implementations MUST:

    * salt every hash and use a deliberately slow algorithm;
    * compare in constant time;
    * return ``False`` from :meth:`verify` for malformed or missing hashes
      instead of raising;
    * never log or return the plaintext.
    """

    def hash(self, plaintext: str) -> str:
        """Return an opaque, self-describing hash of ``plaintext``."""
        ...

    def verify(self, stored_hash: str | None, plaintext: str) -> bool:
        """Return whether ``plaintext`` matches ``stored_hash``."""
        ...
