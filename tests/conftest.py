"""
tests/conftest.py -- Shared test fixtures for the Barnacle test suite.

This module provides:
  - _make_test_store(): creates an isolated in-memory credential store
  - _patch_lifespan(): wires a test store into app.state, bypassing real startup
  - store / service: per-test UserStore and AuthService
  - api_client: TestClient with a seeded Administrator and Ship Captain

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

The environment defaults below must be set before any auth/core import:
  DEBUG=true               -- get_settings() auto-generates JWT_SECRET
  BCRYPT_ROUNDS=4          -- keeps every hash in the suite fast
  RATE_LIMIT_ENABLED=false -- login/signup limits would trip across tests
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: Set before any auth/core import so get_settings() sees them.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import ADMINISTRATOR, SHIP_CAPTAIN, User
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import claims_for, issue_token

ADMIN_EMAIL = "admin@barnacle.test"
ADMIN_PASSWORD = "admin123"
CAPTAIN_EMAIL = "captain@barnacle.test"
CAPTAIN_PASSWORD = "captain123"


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_store(db_suffix: str) -> UserStore:
    """Create an isolated named shared-memory SQLite store.

    Args:
        db_suffix: Unique string appended to the DB name so tests and test
                   modules don't share state.
    """
    return UserStore(db_url=f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(user_store: UserStore):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-created test store (and a service over it) into app.state
    so TestClient routes never touch the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.auth_service = AuthService(user_store)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    user_store = _make_test_store(uuid.uuid4().hex)
    yield user_store
    user_store.close()


@pytest.fixture
def service(store: UserStore) -> AuthService:
    return AuthService(store)


# ---------------------------------------------------------------------------
# Module-scoped API fixture -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@dataclass
class ApiContext:
    client: TestClient
    store: UserStore
    admin: User
    admin_token: str
    captain: User
    captain_token: str

    def auth(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="module")
def api_client(request: pytest.FixtureRequest) -> Generator[ApiContext, None, None]:
    """Yield an ApiContext for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers but use an isolated in-memory store. An
    Administrator and a Ship Captain exist before the client starts.
    """
    user_store = _make_test_store(f"{request.module.__name__.replace('.', '_')}_{uuid.uuid4().hex[:8]}")

    admin = user_store.create(
        User(email=ADMIN_EMAIL, full_name="John Doe", password=ADMIN_PASSWORD, role=ADMINISTRATOR)
    )
    captain = user_store.create(
        User(email=CAPTAIN_EMAIL, full_name="Sarah Wilson", password=CAPTAIN_PASSWORD, role=SHIP_CAPTAIN)
    )

    app.router.lifespan_context = _patch_lifespan(user_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiContext(
            client=client,
            store=user_store,
            admin=admin,
            admin_token=issue_token(claims_for(admin)),
            captain=captain,
            captain_token=issue_token(claims_for(captain)),
        )

    user_store.close()
