"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in ledger/models.py -- dataclasses own domain shape; stores and routes do the
work.

Layer rule: no imports from api/, core/, or ledger/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account.

    email is the login key and the token subject. It is unique and compared
    case-sensitively, exactly as stored.

    hashed_password together with email forms the account's credential. It is
    only ever read by CredentialStore and never serialized into a response.
    """

    name: str
    email: str
    hashed_password: str
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Principal:
    """The verified identity attached to a single request.

    Reconstructed on every request from a validated token and never persisted.
    user_id is None only between token validation and directory lookup; the
    authentication gate never binds a Principal without one.
    """

    email: str
    user_id: int | None = None
