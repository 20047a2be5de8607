"""Credential hashing and verification (Argon2 via pwdlib)."""

from pwdlib import PasswordHash
from pwdlib.exceptions import PwdlibError


class PasswordService:
    """One-way, salted hashing of secrets with constant-time verification.

    Salt is generated per hash and embedded in the returned string, so the
    hash alone is enough to verify a candidate later.
    """

    def __init__(self, hasher: PasswordHash | None = None):
        self._hasher = hasher or PasswordHash.recommended()
        self._dummy_hash = self._hasher.hash("dummy-password-for-timing")

    def hash(self, plaintext: str) -> str:
        """Hash a secret. Each call produces a different hash."""
        return self._hasher.hash(plaintext)

    def matches(self, plaintext: str, hashed: str) -> bool:
        """Check a plaintext secret against a stored hash.

        Unrecognised or malformed hashes never match.
        """
        try:
            return self._hasher.verify(plaintext, hashed)
        except PwdlibError:
            return False

    def dummy_verify(self, plaintext: str) -> None:
        """Spend one verification so unknown accounts cost as much as wrong passwords."""
        self._hasher.verify(plaintext, self._dummy_hash)


password_service = PasswordService()
