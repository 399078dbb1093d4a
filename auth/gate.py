"""
auth/gate.py -- Per-request authentication decision.

The gate answers two questions for every inbound request:

  is_public(path)         -- may this path be served without a token?
  authenticate(header)    -- which user does this Authorization header prove?

It is framework-free on purpose: api/main.py wraps it in an HTTP middleware
that binds the resulting Principal to request.state and answers 401 itself
when authenticate() raises. Keeping the decision here lets tests exercise
every branch without an ASGI stack.

Request states:
  Unauthenticated -- public path; no header is required or inspected.
  Authenticated   -- protected path with a valid token whose subject still
                     exists; the Principal carries a concrete user_id.

Layer rule: no imports from api/, core/, or ledger/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from auth.errors import TokenMissing, UnknownSubject
from auth.models import Principal

if TYPE_CHECKING:
    from auth.store import UserStore
    from auth.validator import TokenValidator

logger = logging.getLogger("expensetracker.auth")

_SUBTREE = "/**"


def _normalize(path: str) -> str:
    if len(path) > 1 and path.endswith("/"):
        return path.rstrip("/") or "/"
    return path


class AuthenticationGate:
    def __init__(self, validator: TokenValidator, directory: UserStore, public_paths: Iterable[str]) -> None:
        self.validator = validator
        self.directory = directory
        self._exact: set[str] = set()
        self._prefixes: list[str] = []
        for entry in public_paths:
            if entry.endswith(_SUBTREE):
                self._prefixes.append(_normalize(entry[: -len(_SUBTREE)]) + "/")
            else:
                self._exact.add(_normalize(entry))

    def is_public(self, path: str) -> bool:
        """Return True if path is on the allow-list.

        Exact entries match the path with or without a trailing slash.
        "/x/**" entries match everything strictly below /x.
        """
        if _normalize(path) in self._exact:
            return True
        return any(path.startswith(prefix) for prefix in self._prefixes)

    @staticmethod
    def extract_bearer(header: str | None) -> str | None:
        """Return the token from an "Authorization: Bearer <token>" header, or None.

        The scheme is case-insensitive (RFC 6750). Any other scheme, or a
        Bearer header with nothing after it, counts as no token at all.
        """
        if not header:
            return None
        scheme, _, token = header.strip().partition(" ")
        if scheme.lower() != "bearer":
            return None
        token = token.strip()
        return token or None

    def authenticate(self, header: str | None) -> Principal:
        """Return the request's Principal with a concrete user_id.

        Raises:
            TokenMissing:      no bearer token in the header.
            TokenMalformed / TokenBadSignature / TokenExpired:
                               from TokenValidator.validate().
            UnknownSubject:    the token is valid but its account was deleted.
        """
        token = self.extract_bearer(header)
        if token is None:
            raise TokenMissing()
        principal = self.validator.validate(token)
        user = self.directory.get_by_email(principal.email)
        if user is None:
            logger.warning("Valid token for a subject with no account")
            raise UnknownSubject()
        return Principal(user_id=user.id, email=user.email)
