"""
tests/conftest.py -- Shared test fixtures for passgate integration tests.

This module provides:
  - make_test_store(): creates an isolated in-memory credential store
  - _patch_lifespan(): wires test collaborators into app.state, bypassing real startup
  - api_client: TestClient with its store and token issuer, for API integration tests
  - unique_email(): throwaway addresses so module-scoped stores never collide

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares one
in-memory instance across all connections in the same process.

JWT_SECRET must be set before any api/ import: api.main loads Settings at
import time and refuses to start without a secret. BCRYPT_ROUNDS=4 keeps the
suite fast; production defaults to 12.
"""

from __future__ import annotations

import itertools
import os
import time
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set before any api/ or core/ import so get_settings() succeeds.
os.environ.setdefault("JWT_SECRET", "test-secret-0123456789abcdef0123456789abcdef")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.store import UserStore
from auth.tokens import TokenIssuer

TEST_SECRET = os.environ["JWT_SECRET"]
TEST_ROUNDS = 4
STRONG_PASSWORD = "Abcdef1!"

_email_counter = itertools.count(1)


def unique_email(prefix: str = "user") -> str:
    return f"{prefix}{next(_email_counter)}@acme.io"


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_test_store(db_suffix: str) -> UserStore:
    """Create an isolated named shared-memory SQLite store with its table in place.

    Args:
        db_suffix: Unique string appended to the DB name so test modules don't
                   share state (e.g. 'api', 'ratelimit').
    """
    store = UserStore(
        f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true",
        bcrypt_rounds=TEST_ROUNDS,
    )
    store.create_table()
    return store


def _patch_lifespan(user_store: UserStore, tokens: TokenIssuer):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test collaborators into app.state so TestClient routes
    see isolated test DBs rather than the configured database. The limiter is
    disabled; tests/test_rate_limiting.py switches it on explicitly.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.started_at = time.monotonic()
        app.state.user_store = user_store
        app.state.tokens = tokens
        limiter.enabled = False
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    """Function-scoped in-memory store for unit tests of the store and flows."""
    s = UserStore("sqlite:///:memory:", bcrypt_rounds=TEST_ROUNDS)
    s.create_table()
    yield s
    s.close()


@pytest.fixture
def tokens() -> TokenIssuer:
    return TokenIssuer(secret=TEST_SECRET, expire_seconds=3600)


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, UserStore, TokenIssuer], None, None]:
    """Yield (client, store, tokens) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers, middleware and exception handlers but use an
    isolated in-memory store. One store per test module.
    """
    user_store = make_test_store(request.module.__name__.rsplit(".", 1)[-1])
    issuer = TokenIssuer(secret=TEST_SECRET, expire_seconds=3600)

    app.router.lifespan_context = _patch_lifespan(user_store, issuer)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, user_store, issuer

    user_store.close()


def register_user(client: TestClient, email: str | None = None, password: str = STRONG_PASSWORD, **extra):
    """POST a valid registration and return the response."""
    body = {
        "email": email or unique_email(),
        "password": password,
        "firstName": "Ada",
        "lastName": "Lovelace",
    }
    body.update(extra)
    return client.post("/api/v1/auth/register", json=body)
