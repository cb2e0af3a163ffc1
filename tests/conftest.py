"""
tests/conftest.py -- Shared test fixtures for the ratings service.

This module provides:
  - engine: an isolated, empty in-memory database per test
  - services: stores and services over that engine, with default data seeded
  - make_user / make_role: helpers creating records through the services
  - api_client: TestClient over the real app, wired to its own in-memory DB
  - admin_token / token_for: bearer tokens for API tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

The environment must be prepared before any auth/core import: get_settings()
is read once at import time by auth/tokens.py and api/main.py.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: Set these before any auth/core import so get_settings() sees them.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SECRET_KEY", "test-secret-key-0123456789abcdef0123456789abcdef")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ADMIN_EMAIL", "admin@admin.com")
os.environ.setdefault("ADMIN_PASSWORD", "admin-pass-123")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')
os.environ.setdefault("TOKEN_RATE_LIMIT", "30/minute")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from auth.models import Role, User
from auth.roles import RoleService
from auth.store import RoleStore, UserStore
from auth.tokens import hash_password
from auth.users import UserService
from core.config import get_settings
from core.db import make_engine
from ratings.service import RatingService
from ratings.store import RatingStore

ADMIN_EMAIL = os.environ["ADMIN_EMAIL"]
ADMIN_PASSWORD = os.environ["ADMIN_PASSWORD"]
DEFAULT_PASSWORD = "correct-horse-9"


def _memory_url() -> str:
    return f"sqlite:///file:test_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


# ---------------------------------------------------------------------------
# Domain-level fixtures
# ---------------------------------------------------------------------------


@dataclass
class Services:
    users: UserService
    roles: RoleService
    ratings: RatingService
    user_store: UserStore
    role_store: RoleStore
    rating_store: RatingStore


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    eng = make_engine(_memory_url())
    yield eng
    eng.dispose()


@pytest.fixture
def services(engine: Engine) -> Services:
    """Stores and services over a fresh database holding roles 1-2 and principal 1."""
    role_store = RoleStore(engine)
    role_store.ensure_defaults()
    user_store = UserStore(engine)
    user_store.ensure_admin(ADMIN_EMAIL, hash_password(ADMIN_PASSWORD))
    rating_store = RatingStore(engine)

    users = UserService(user_store, role_store)
    return Services(
        users=users,
        roles=RoleService(role_store),
        ratings=RatingService(rating_store, users),
        user_store=user_store,
        role_store=role_store,
        rating_store=rating_store,
    )


@pytest.fixture
def make_user(services: Services) -> Callable[..., User]:
    """Create a principal through UserService and return it re-read (role attached).

    Emails default to a unique address; password defaults to DEFAULT_PASSWORD.
    """

    def _make(**fields) -> User:
        fields.setdefault("email", f"user-{uuid.uuid4().hex[:8]}@example.com")
        fields.setdefault("first_name", "Test")
        fields.setdefault("password", DEFAULT_PASSWORD)
        user = User(**fields)
        services.users.create(user)
        return services.users.by_id(user.id)

    return _make


@pytest.fixture
def make_role(services: Services) -> Callable[..., Role]:
    def _make(label: str | None = None, permissions: int = 0) -> Role:
        role = Role(label=label or f"role {uuid.uuid4().hex[:8]}", permissions=permissions)
        services.roles.create(role)
        return role

    return _make


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(engine: Engine):
    """Return an async context manager that replaces the real lifespan.

    Wires services over the test engine into app.state so TestClient routes
    see an isolated database rather than the configured one.
    """
    from api.main import init_services

    @asynccontextmanager
    async def test_lifespan(app):
        init_services(app, engine, get_settings())
        yield

    return test_lifespan


@pytest.fixture
def api_client(engine: Engine) -> Generator[TestClient, None, None]:
    """TestClient over the real FastAPI app with a patched lifespan.

    Tests hit real middleware, dependencies and route handlers but use the
    isolated in-memory database from the engine fixture. Rate limit counters
    are per process, so they are cleared for every client.
    """
    from api.limiter import limiter
    from api.main import app

    limiter.reset()
    app.router.lifespan_context = _patch_lifespan(engine)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client


def request_token(client: TestClient, email: str, password: str) -> dict:
    """POST the password grant and return the raw response JSON."""
    resp = client.post(
        "/api/v1/oauth/token/",
        data={"grant_type": "password", "email": email, "password": password},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_token(api_client: TestClient) -> str:
    return request_token(api_client, ADMIN_EMAIL, ADMIN_PASSWORD)["access_token"]


@pytest.fixture
def token_for(api_client: TestClient, admin_token: str) -> Callable[..., tuple[int, str]]:
    """Create a principal over the API (as the admin) and log it in.

    Returns (user_id, access_token).
    """

    def _make(role_id: int = 2) -> tuple[int, str]:
        email = f"api-{uuid.uuid4().hex[:8]}@example.com"
        resp = api_client.post(
            "/api/v1/users/",
            json={"email": email, "firstName": "Api", "password": DEFAULT_PASSWORD, "roleId": role_id},
            headers=bearer(admin_token),
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["id"], request_token(api_client, email, DEFAULT_PASSWORD)["access_token"]

    return _make


@pytest.fixture
def login(api_client: TestClient) -> Callable[[str, str], dict]:
    """Password grant helper: login(email, password) -> token response JSON."""

    def _login(email: str, password: str) -> dict:
        return request_token(api_client, email, password)

    return _login
