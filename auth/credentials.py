"""
auth/credentials.py -- Registration and password verification.

CredentialStore is the only component that reads or writes password hashes.
It sits on top of the user directory (UserStore) and a PasswordHasher.

Security design:
  Unknown email and wrong password raise the same InvalidCredentials, with the
  same message, so the response cannot be used to probe which addresses have
  accounts.

  Timing is equalized as well. When the email is unknown the hasher still runs
  against a dummy digest computed once at construction, so both failure paths
  cost one full adaptive-hash comparison.

  Plaintext passwords are never stored or logged.

Layer rule: no imports from api/, core/, or ledger/.
"""

from __future__ import annotations

import logging
import secrets
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from auth.errors import EmailAlreadyRegistered, InvalidCredentials
from auth.models import Principal, User

if TYPE_CHECKING:
    from auth.passwords import PasswordHasher
    from auth.store import UserStore

logger = logging.getLogger("expensetracker.auth")


class CredentialStore:
    def __init__(self, directory: UserStore, hasher: PasswordHasher) -> None:
        self.directory = directory
        self.hasher = hasher
        self._dummy_hash = hasher.hash(secrets.token_hex(16))

    def register(self, email: str, plaintext: str, name: str) -> User:
        """Create an account and return the stored User.

        Raises EmailAlreadyRegistered if the exact email is already taken. The
        UNIQUE constraint catches the race where two requests pass the lookup
        at the same time; the loser gets the same error and the winner's
        credential is left untouched.
        """
        if self.directory.get_by_email(email) is not None:
            logger.info("Registration rejected: email already registered")
            raise EmailAlreadyRegistered()

        user = User(name=name, email=email, hashed_password=self.hasher.hash(plaintext))
        try:
            user_id = self.directory.create_user(user)
        except IntegrityError as exc:
            logger.info("Registration rejected: concurrent insert for same email")
            raise EmailAlreadyRegistered() from exc

        created = self.directory.get_by_id(user_id)
        logger.info("Registered user %s", user_id)
        return created

    def verify(self, email: str, plaintext: str) -> Principal:
        """Return the Principal for a correct email/password pair.

        Raises InvalidCredentials for an unknown email or a wrong password,
        with no way to tell the two apart.
        """
        user = self.directory.get_by_email(email)
        if user is None:
            # Do NOT return before hashing; see module docstring.
            self.hasher.verify(plaintext, self._dummy_hash)
            raise InvalidCredentials()
        if not self.hasher.verify(plaintext, user.hashed_password):
            raise InvalidCredentials()
        return Principal(user_id=user.id, email=user.email)

    def change_password(self, user_id: int, plaintext: str) -> bool:
        """Replace the stored hash. Returns False if the user does not exist."""
        return self.directory.update_user(user_id, hashed_password=self.hasher.hash(plaintext))

    def is_email_available(self, email: str) -> bool:
        return self.directory.get_by_email(email) is None
