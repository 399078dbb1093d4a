"""
auth/passwords.py -- One-way adaptive password hashing.

CredentialStore depends on the PasswordHasher protocol, not on bcrypt, so any
adaptive hash (bcrypt, argon2, scrypt) can back it. BcryptHasher is the one
the application wires in.

bcrypt is used directly rather than through passlib: passlib's wrap-bug
detection builds a password longer than 72 bytes, which bcrypt 4.x rejects.

Layer rule: no imports from api/, core/, or ledger/.
"""

from __future__ import annotations

from typing import Protocol

import bcrypt

from auth.errors import PasswordTooLong

# bcrypt only reads the first 72 bytes; bcrypt 5.x raises on anything longer.
MAX_PASSWORD_BYTES = 72


class PasswordHasher(Protocol):
    def hash(self, plain: str) -> str: ...

    def verify(self, plain: str, digest: str) -> bool: ...


class BcryptHasher:
    """bcrypt with a configurable cost factor.

    hash() refuses passwords over MAX_PASSWORD_BYTES UTF-8 bytes with
    PasswordTooLong instead of silently truncating them. The API layer
    rejects them earlier with a 400.
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    def hash(self, plain: str) -> str:
        encoded = plain.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise PasswordTooLong()
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, digest: str) -> bool:
        """Return True if plain matches digest.

        A malformed digest or an over-long password is a mismatch, not an error.
        """
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), digest.encode("utf-8"))
        except (ValueError, TypeError):
            return False
