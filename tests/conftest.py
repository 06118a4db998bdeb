"""
tests/conftest.py -- Shared test fixtures for Lot Market unit and integration tests.

This module provides:
  - unit fixtures: in-memory UserStore / LotStore, a TokenIssuer with a fixed
    secret, a MagicMock mailer, and the services built from them
  - _patch_lifespan(): wires test stores and services into app.state,
    bypassing the real startup
  - api_client: TestClient plus a registered user and a valid Bearer token

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
for the TestClient because it runs route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread.

Environment must be set before any api/ import: DEBUG lets get_settings()
auto-generate SECRET_KEY, ALLOWED_HOSTS admits the TestClient's Host header,
and LOGIN_RATE_LIMIT is raised so repeated logins don't trip slowapi.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from unittest.mock import MagicMock

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver"]')
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import User
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenIssuer, hash_password
from lots.service import LotService
from lots.store import LotStore
from lots.store import metadata as lots_metadata
from tests.mocks import TEST_PASSWORD, TEST_SECRET

# ---------------------------------------------------------------------------
# Unit fixtures -- fresh in-memory stores per test
# ---------------------------------------------------------------------------


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer(TEST_SECRET, 3600)


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def lot_store() -> Generator[LotStore, None, None]:
    store = LotStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def mailer() -> MagicMock:
    return MagicMock()


@pytest.fixture
def auth_service(user_store: UserStore, issuer: TokenIssuer, mailer: MagicMock) -> AuthService:
    return AuthService(user_store, issuer, mailer)


@pytest.fixture
def lot_service(lot_store: LotStore) -> LotService:
    return LotService(lot_store)


@pytest.fixture
def alice(user_store: UserStore) -> User:
    """A stored user with password TEST_PASSWORD."""
    user_id = user_store.create_user(User(email="alice@example.com", hashed_password=hash_password(TEST_PASSWORD)))
    return user_store.get_by_id(user_id)


@pytest.fixture
def bob(user_store: UserStore) -> User:
    user_id = user_store.create_user(User(email="bob@example.com", hashed_password=hash_password(TEST_PASSWORD)))
    return user_store.get_by_id(user_id)


# ---------------------------------------------------------------------------
# Integration helpers
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore, lot_store: LotStore, issuer: TokenIssuer, mailer: MagicMock):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs, and swaps the Brevo mailer for a MagicMock so no
    email leaves the process.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.lot_store = lot_store
        app.state.token_issuer = issuer
        app.state.mailer = mailer
        app.state.auth_service = AuthService(user_store, issuer, mailer)
        app.state.lot_service = LotService(lot_store)
        yield

    return test_lifespan


def clear_lots(lot_store: LotStore) -> None:
    """Delete every lot -- the equivalent of emptying the lots collection."""
    with lot_store.engine.connect() as conn:
        conn.execute(lots_metadata.tables["lots"].delete())
        conn.commit()


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Module-scoped fixture -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, User], None, None]:
    """Yield (client, token, user) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers but use isolated in-memory stores. The
    user is created before the client starts; the token is issued by the
    same TokenIssuer the app verifies with. Stores, issuer and mailer are
    reachable via client.app.state.
    """
    suffix = request.module.__name__.rsplit(".", 1)[-1]
    db_url = f"sqlite:///file:test_{suffix}?mode=memory&cache=shared&uri=true"
    user_store = UserStore(db_url=db_url)
    lot_store = LotStore(db_url=db_url)
    issuer = TokenIssuer(TEST_SECRET, 3600)

    user_id = user_store.create_user(User(email="testuser@example.com", hashed_password=hash_password(TEST_PASSWORD)))
    user = user_store.get_by_id(user_id)
    token = issuer.issue(user)

    app.router.lifespan_context = _patch_lifespan(user_store, lot_store, issuer, MagicMock())

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, user

    lot_store.close()
    user_store.close()
