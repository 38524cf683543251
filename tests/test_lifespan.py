"""
tests/test_lifespan.py -- The real application lifespan.

Other modules replace the lifespan with test collaborators. These tests run
the production one against a temporary SQLite file to check that startup
creates the users table and wires the store and token issuer, and that an
unreachable database aborts startup.
"""

from __future__ import annotations

import pytest
from conftest import register_user
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app, lifespan
from auth.errors import StorageError
from auth.store import UserStore
from auth.tokens import TokenIssuer
from core.config import get_settings


@pytest.fixture
def real_lifespan(monkeypatch):
    get_settings.cache_clear()
    app.router.lifespan_context = lifespan
    yield monkeypatch
    get_settings.cache_clear()
    limiter.enabled = False
    limiter.reset()


def test_startup_creates_table_and_wires_state(real_lifespan, tmp_path):
    real_lifespan.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'life.db'}")
    with TestClient(app) as client:
        assert isinstance(app.state.user_store, UserStore)
        assert isinstance(app.state.tokens, TokenIssuer)
        resp = register_user(client)
        assert resp.status_code == 201
        assert app.state.tokens.verify(resp.json()["data"]["token"]) == resp.json()["data"]["user"]["id"]


def test_unreachable_database_aborts_startup(real_lifespan, tmp_path):
    real_lifespan.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'missing' / 'dir' / 'life.db'}")
    with pytest.raises(StorageError):
        with TestClient(app):
            pass


def test_uptime_counts_from_startup(real_lifespan, tmp_path):
    real_lifespan.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'uptime.db'}")
    with TestClient(app) as client:
        uptime = client.get("/api/v1/health").json()["uptime"]
    assert 0 <= uptime < 5
