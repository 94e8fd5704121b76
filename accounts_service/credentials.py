"""One-way password hashing backed by passlib's bcrypt handler."""
from __future__ import annotations

from passlib.context import CryptContext

from .errors import CredentialFailure, ValidationFailure

DEFAULT_BCRYPT_ROUNDS = 12
MAX_BCRYPT_BYTES = 72  # bcrypt limit


class CredentialService:
    """Hash and verify passwords with a salted, cost-bounded bcrypt hash.

    The cost is fixed when the service is built from configuration and is
    never read from the stored hash of a caller-supplied value.
    """

    def __init__(self, *, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        self._rounds = rounds
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    @property
    def rounds(self) -> int:
        return self._rounds

    def hash(self, plaintext: str) -> str:
        if len(plaintext.encode("utf-8")) > MAX_BCRYPT_BYTES:
            raise ValidationFailure(f"Password too long. Max {MAX_BCRYPT_BYTES} bytes allowed.")
        return self._context.hash(plaintext)

    def verify(self, plaintext: str, credential: str) -> bool:
        """Return ``True`` if ``plaintext`` matches ``credential``.

        A mismatch returns ``False``; a credential that is not a well-formed
        bcrypt hash raises :class:`CredentialFailure`.
        """

        if len(plaintext.encode("utf-8")) > MAX_BCRYPT_BYTES:
            return False
        try:
            return self._context.verify(plaintext, credential)
        except (ValueError, TypeError) as exc:
            raise CredentialFailure("Stored credential is malformed") from exc


__all__ = ["CredentialService", "DEFAULT_BCRYPT_ROUNDS", "MAX_BCRYPT_BYTES"]
