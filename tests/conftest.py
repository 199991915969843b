"""
tests/conftest.py -- Shared test fixtures for NegoceHub.

This module provides:
  - make_test_stores(): isolated in-memory identity + catalog stores
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient for API integration tests (one DB per test module)
  - register_user(): helper that registers through the API and returns the token

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI shares one in-memory instance across connections.

DEBUG must be set before any auth/core import so get_settings() generates
a SECRET_KEY instead of raising. BCRYPT_ROUNDS=4 keeps hashing fast.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# Set before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
# TestClient sends Host: testserver.
os.environ.setdefault("ALLOWED_HOSTS", '["localhost", "127.0.0.1", "testserver"]')

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.gateway import AuthGateway
from auth.store import IdentityStore
from catalog.guard import OwnershipGuard
from catalog.service import CatalogService
from catalog.store import CatalogStore

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_test_stores(db_suffix: str) -> tuple[IdentityStore, CatalogStore]:
    """Create an identity store and catalog store sharing one named in-memory DB.

    Args:
        db_suffix: Unique string for the DB name so test modules don't share state.
    """
    url = f"sqlite:///file:test_negocehub_{db_suffix}?mode=memory&cache=shared&uri=true"
    return IdentityStore(db_url=url), CatalogStore(db_url=url)


def _patch_lifespan(identity_store: IdentityStore, catalog_store: CatalogStore):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.identity_store = identity_store
        app.state.catalog_store = catalog_store
        app.state.auth_gateway = AuthGateway(identity_store)
        app.state.catalog = CatalogService(catalog_store, OwnershipGuard())
        yield

    return test_lifespan


def register_user(client: TestClient, name: str, email: str, password: str = "secret123") -> str:
    """Register through POST /api/auth/register and return the bearer token."""
    resp = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[TestClient, None, None]:
    """Yield a TestClient over the real app with isolated in-memory stores.

    One database per test module: the module name is the DB suffix.
    """
    identity_store, catalog_store = make_test_stores(request.module.__name__.replace(".", "_"))
    app.router.lifespan_context = _patch_lifespan(identity_store, catalog_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    identity_store.close()
    catalog_store.close()


@pytest.fixture
def identity_store() -> Generator[IdentityStore, None, None]:
    """Function-scoped IdentityStore on a private in-memory DB (single-threaded use only)."""
    store = IdentityStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def catalog_store() -> Generator[CatalogStore, None, None]:
    store = CatalogStore("sqlite:///:memory:")
    yield store
    store.close()
