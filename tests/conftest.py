"""
tests/conftest.py -- Shared test fixtures for Identity Core.

This module provides:
  - engine / user_store / session_store: a fresh in-memory database per test
  - identity / directory: services wired over those stores
  - api_client: TestClient over the real FastAPI app with a patched lifespan
  - signed_in: (client, headers, user) for routes that need a live session

Design: the API fixtures use named shared-memory SQLite URIs (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

The environment must be set before any app import: get_settings() is cached
on first call, the limiter reads RATE_LIMIT_ENABLED at import time, and the
dummy bcrypt digest is computed at module load with BCRYPT_ROUNDS.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any api/auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from api.main import app, wire_services
from auth.db import create_db_engine, init_schema
from auth.directory import UserDirectoryService
from auth.service import IdentityService
from auth.sessions import SessionStore
from auth.store import UserStore
from core.config import get_settings
from tests.factories import unique_username

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _patch_lifespan(engine):
    """Return an async context manager that replaces the real lifespan.

    Wires the test engine into app.state through the same wire_services()
    the production lifespan uses, so routes see the real services over an
    isolated database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        wire_services(app, engine, get_settings())
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine():
    e = create_db_engine("sqlite:///:memory:")
    init_schema(e)
    yield e
    e.dispose()


@pytest.fixture
def user_store(engine) -> UserStore:
    return UserStore(engine)


@pytest.fixture
def session_store(engine) -> SessionStore:
    return SessionStore(engine)


@pytest.fixture
def identity(user_store, session_store) -> IdentityService:
    return IdentityService(user_store, session_store)


@pytest.fixture
def directory(user_store) -> UserDirectoryService:
    return UserDirectoryService(user_store, default_limit=10, max_limit=100)


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def api_client() -> Generator[TestClient, None, None]:
    """Yield a TestClient backed by a private shared-memory database.

    Function-scoped: every test starts from an empty user table, so listing
    and counting assertions do not depend on test order.
    """
    db_url = f"sqlite:///file:test_identity_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    test_engine = create_db_engine(db_url)
    app.router.lifespan_context = _patch_lifespan(test_engine)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client

    test_engine.dispose()


@pytest.fixture
def signed_in(api_client: TestClient) -> tuple[TestClient, dict[str, str], dict]:
    """Register an account and yield (client, bearer headers, user JSON)."""
    resp = api_client.post(
        "/api/v1/auth/register",
        json={
            "username": unique_username("admin"),
            "firstName": "Admin",
            "lastName": "Boss",
            "password": "adminpassword",
        },
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    headers = {"Authorization": f"Bearer {body['sessionId']}"}
    return api_client, headers, body["user"]
