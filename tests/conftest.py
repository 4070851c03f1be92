"""
Shared test fixtures.

Provides:
  • `database` – a temporary SQLite database opened in the test's own
    event loop, for service-level async tests
  • `client` – a FastAPI TestClient wired to a temp database (via app
    lifespan), a mock Shopify client and a mock mailer

Rate limiting is disabled everywhere except the dedicated rate-limit tests.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

import device_guard.db as db_mod
from device_guard.main import app
from tests.mocks.services import MockMailer, MockShopifyClient


@pytest.fixture()
async def database(monkeypatch, tmp_path):
    """Open a fresh database for one async test."""
    monkeypatch.setattr(db_mod, "DB_PATH", str(tmp_path / "test.db"))
    await db_mod.init_db()
    yield db_mod
    await db_mod.close_db()


@pytest.fixture()
def shopify() -> MockShopifyClient:
    return MockShopifyClient()


@pytest.fixture()
def mailer() -> MockMailer:
    return MockMailer()


@pytest.fixture()
def _test_env(monkeypatch, tmp_path, shopify, mailer):
    """
    Patch the DB path and the collaborator factories so that the app
    lifespan runs against a temp database and in-memory collaborators.
    """
    monkeypatch.setattr(db_mod, "DB_PATH", str(tmp_path / "test.db"))
    monkeypatch.setattr("device_guard.main.build_shopify_client", lambda: shopify)
    monkeypatch.setattr("device_guard.main.build_mailer", lambda: mailer)

    from device_guard.rate_limit import limiter as _limiter
    monkeypatch.setattr(_limiter, "enabled", False)


@pytest.fixture()
def client(_test_env) -> TestClient:
    """TestClient that runs the full lifespan (DB init / shutdown)."""
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc
    app.dependency_overrides.clear()
