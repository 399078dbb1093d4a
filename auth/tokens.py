"""
auth/tokens.py -- Bearer token encoding, decoding, and signing.

Security design decisions:
  Format: compact JWS (header.payload.signature) signed with HS256 through
       python-jose. Claims are deliberately minimal: sub (email), iat, exp.
       The numeric user id is NOT in the token; it is resolved per request
       from the user directory so a deleted account stops authenticating.

  Canonical encoding: decode() re-encodes every base64url segment and rejects
       the token if the result differs from the input. Without this check a
       flipped low bit in the last character of a segment can decode to the
       same bytes, and a tampered token would still verify.

  Signature check: verify_signature() defers to jws.verify(), which recomputes
       the HMAC over the signing input and compares with hmac.compare_digest.
       The accepted algorithm list is pinned to the codec's algorithm, so a
       token claiming "none" or an asymmetric alg is rejected.

  Expiry is NOT checked here -- see auth/validator.py.

The codec holds only the immutable secret, TTL, and clock, so a single
instance is shared by every request.

Layer rule: no imports from api/, core/, or ledger/.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from dataclasses import dataclass

from jose import jws, jwt
from jose.exceptions import JOSEError
from jose.utils import base64url_decode, base64url_encode

from auth.errors import TokenBadSignature, TokenMalformed
from auth.models import Principal

_ALGORITHM = "HS256"


@dataclass(frozen=True)
class Claims:
    sub: str
    iat: int
    exp: int


def _is_int(value) -> bool:
    # bool is an int subclass; true/false are not timestamps.
    return isinstance(value, int) and not isinstance(value, bool)


def _decode_segment(segment: str) -> bytes:
    raw = segment.encode("ascii")
    decoded = base64url_decode(raw)
    if base64url_encode(decoded) != raw:
        raise ValueError("non-canonical base64url segment")
    return decoded


class TokenCodec:
    """Issue and decode signed bearer tokens.

    Args:
        secret:       Shared HMAC signing secret (SECRET_KEY).
        ttl_seconds:  Fixed token lifetime from settings. Never caller-supplied.
        clock:        Returns the current time as epoch seconds. Injected so
                      tests can move time without sleeping.
    """

    def __init__(
        self,
        secret: str,
        ttl_seconds: int,
        clock: Callable[[], float] = time.time,
        algorithm: str = _ALGORITHM,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._secret = secret
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.algorithm = algorithm

    def issue(self, principal: Principal) -> str:
        """Return a signed token for principal, valid for ttl_seconds from now."""
        now = int(self.clock())
        claims = {"sub": principal.email, "iat": now, "exp": now + self.ttl_seconds}
        return jwt.encode(claims, self._secret, algorithm=self.algorithm)

    def decode(self, token: str) -> Claims:
        """Parse a token's structure and claims without checking the signature.

        Raises TokenMalformed unless the token is three canonical base64url
        segments whose header and payload are JSON objects and whose payload
        carries a non-empty string sub and integer iat/exp.
        """
        parts = token.split(".")
        if len(parts) != 3 or not all(parts):
            raise TokenMalformed()
        try:
            header = json.loads(_decode_segment(parts[0]))
            payload = json.loads(_decode_segment(parts[1]))
            _decode_segment(parts[2])
        except ValueError as exc:
            # binascii.Error, UnicodeError and JSONDecodeError are all ValueErrors
            raise TokenMalformed() from exc

        if not isinstance(header, dict) or not isinstance(payload, dict):
            raise TokenMalformed()
        sub, iat, exp = payload.get("sub"), payload.get("iat"), payload.get("exp")
        if not isinstance(sub, str) or not sub or not _is_int(iat) or not _is_int(exp):
            raise TokenMalformed()
        return Claims(sub=sub, iat=iat, exp=exp)

    def verify_signature(self, token: str) -> None:
        """Raise TokenBadSignature unless the integrity tag matches the signing input."""
        try:
            jws.verify(token, self._secret, algorithms=[self.algorithm])
        except JOSEError as exc:
            raise TokenBadSignature() from exc
