"""
tests/conftest.py -- Shared test fixtures for ExpenseTracker integration tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for auth + ledger
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus a registered user's bearer token and id
  - other_user: a second registered user in the same app, for isolation tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

The DEBUG env var must be set before any api/core import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set DEBUG before any api/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")
# Minimum bcrypt cost keeps registration fast in tests.
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app, attach_services
from auth.credentials import CredentialStore
from auth.models import Principal
from auth.passwords import BcryptHasher
from auth.store import UserStore
from auth.tokens import TokenCodec
from core.config import get_settings
from ledger.store import LedgerStore

TEST_EMAIL = "alice@example.com"
TEST_PASSWORD = "alicepass123"

OTHER_EMAIL = "bob@example.com"
OTHER_PASSWORD = "bobpass123"


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, LedgerStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state (e.g. 'api').
    """
    auth_url = f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true"
    ledger_url = f"sqlite:///file:test_ledger_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=auth_url), LedgerStore(db_url=ledger_url)


def _patch_lifespan(user_store: UserStore, ledger: LedgerStore):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state through the same
    attach_services() the production lifespan uses, so the gate, codec and
    guards under test are the real ones.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        attach_services(app, user_store, ledger, get_settings())
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, token, user_id) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers and the real authentication gate, but use
    isolated in-memory stores. The user is registered before the client
    starts and the token is issued with the app's own signing key.
    """
    settings = get_settings()
    user_store, ledger = _make_test_stores(request.module.__name__.rsplit(".", 1)[-1])

    credentials = CredentialStore(user_store, BcryptHasher(settings.bcrypt_rounds))
    user = credentials.register(TEST_EMAIL, TEST_PASSWORD, name="Alice")
    codec = TokenCodec(settings.secret_key, settings.token_expire_seconds)
    token = codec.issue(Principal(user_id=user.id, email=user.email))

    app.router.lifespan_context = _patch_lifespan(user_store, ledger)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, user.id

    ledger.close()
    user_store.close()


@pytest.fixture(scope="module")
def other_user(api_client: tuple[TestClient, str, int]) -> tuple[str, int]:
    """Register and log in a second user through the HTTP API. Returns (token, user_id)."""
    client, _token, _uid = api_client
    resp = client.post(
        "/api/v1/auth/register",
        json={"name": "Bob", "email": OTHER_EMAIL, "password": OTHER_PASSWORD},
    )
    assert resp.status_code == 201, resp.text
    resp = client.post("/api/v1/auth/login", json={"email": OTHER_EMAIL, "password": OTHER_PASSWORD})
    assert resp.status_code == 200, resp.text
    data = resp.json()
    return data["token"], data["user"]["id"]
