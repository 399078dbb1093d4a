"""
auth/validator.py -- Token verification: structure, signature, expiry.

validate() runs the checks in a fixed order and stops at the first failure:

  1. structure  -> TokenMalformed
  2. signature  -> TokenBadSignature
  3. expiry     -> TokenExpired (now >= exp)

Success yields a Principal carrying only the email claim. Resolving it to a
user id is the caller's job (see auth/gate.py); no revocation list is
consulted, so a token stays valid for its whole TTL.

Layer rule: no imports from api/, core/, or ledger/.
"""

from __future__ import annotations

from collections.abc import Callable

from auth.errors import TokenExpired
from auth.models import Principal
from auth.tokens import TokenCodec


class TokenValidator:
    def __init__(self, codec: TokenCodec, clock: Callable[[], float] | None = None) -> None:
        self.codec = codec
        self.clock = clock or codec.clock

    def validate(self, token: str) -> Principal:
        claims = self.codec.decode(token)
        self.codec.verify_signature(token)
        if self.clock() >= claims.exp:
            raise TokenExpired()
        return Principal(email=claims.sub)
