"""
tests/conftest.py -- Shared test fixtures for the SSO test suite.

This module provides:
  - FakeStore: in-memory implementation of the three storage ports, with
    per-method failure injection, for AuthService unit tests
  - FailingSigner / SpyHasher: collaborators for error-path tests
  - db_url / store: a temp-file SQLite database migrated with the real
    migrations/ files, and a Storage on top of it
  - service: AuthService wired to the real Storage
  - api_client: TestClient over create_app() with the same service injected

Design: a temp file (not ':memory:') is used because the migration runner
and Storage open separate engines, and TestClient runs sync handlers in a
thread pool. A plain ':memory:' DB is per-connection and would present a
blank schema to each of them.

bcrypt cost is 4 everywhere in tests. Production cost (12) would make the
suite take minutes.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Generator
from datetime import timedelta
from pathlib import Path

# Set DEBUG before any core import so Settings() accepts the low test cost.
os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from auth.context import RequestContext
from auth.errors import AppNotFoundError, SigningError, UserExistsError, UserNotFoundError
from auth.models import App, User
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import Storage
from core.config import Settings
from core.migrations import apply_migrations

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"

TEST_APP_ID = 10
TEST_APP_SECRET = "test-secret-0123456789abcdef0123456789"
TEST_TTL = timedelta(hours=1)


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------


class FakeStore:
    """In-memory UserSaver + UserProvider + AppProvider.

    Set `failures[method_name] = exc` to make that method raise exc.
    Every call is recorded in `calls` as (method_name, args).
    """

    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self.apps: dict[int, App] = {}
        self.failures: dict[str, Exception] = {}
        self.calls: list[tuple[str, tuple]] = []

    def _enter(self, ctx: RequestContext, name: str, *args) -> None:
        ctx.check(f"fake.{name}")
        self.calls.append((name, args))
        if name in self.failures:
            raise self.failures[name]

    def save_user(self, ctx: RequestContext, email: str, pass_hash: bytes) -> int:
        self._enter(ctx, "save_user", email)
        if email in self.users:
            raise UserExistsError(op="fake.save_user")
        user = User(id=len(self.users) + 1, email=email, pass_hash=pass_hash)
        self.users[email] = user
        return user.id

    def user(self, ctx: RequestContext, email: str) -> User:
        self._enter(ctx, "user", email)
        try:
            return self.users[email]
        except KeyError:
            raise UserNotFoundError(email) from None

    def is_admin(self, ctx: RequestContext, user_id: int) -> bool:
        self._enter(ctx, "is_admin", user_id)
        for user in self.users.values():
            if user.id == user_id:
                return user.is_admin
        raise UserNotFoundError(str(user_id))

    def app(self, ctx: RequestContext, app_id: int) -> App:
        self._enter(ctx, "app", app_id)
        try:
            return self.apps[app_id]
        except KeyError:
            raise AppNotFoundError(str(app_id)) from None


class FailingSigner:
    def sign(self, user, app, ttl) -> str:
        raise SigningError("key unavailable")


class SpyHasher(PasswordHasher):
    """PasswordHasher that counts dummy comparisons."""

    def __init__(self, rounds: int = 4) -> None:
        super().__init__(rounds)
        self.dummy_calls = 0

    def dummy_verify(self, plain: str) -> None:
        self.dummy_calls += 1
        super().dummy_verify(plain)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def ctx() -> RequestContext:
    return RequestContext.background()


@pytest.fixture
def fake_store() -> FakeStore:
    store = FakeStore()
    store.apps[TEST_APP_ID] = App(id=TEST_APP_ID, name="test-app", secret=TEST_APP_SECRET)
    return store


@pytest.fixture
def fake_service(fake_store: FakeStore, hasher: PasswordHasher) -> AuthService:
    return AuthService(
        logging.getLogger("sso.test"),
        fake_store,
        fake_store,
        fake_store,
        TEST_TTL,
        hasher=hasher,
    )


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    """URL of a fresh SQLite file with all migrations applied."""
    url = f"sqlite:///{tmp_path / 'sso.db'}"
    apply_migrations(url, MIGRATIONS_DIR)
    return url


@pytest.fixture
def store(db_url: str) -> Generator[Storage, None, None]:
    """Migrated Storage with the test app registered under TEST_APP_ID."""
    s = Storage(db_url)
    s.save_app(RequestContext.background(), "test-app", TEST_APP_SECRET, app_id=TEST_APP_ID)
    yield s
    s.close()


@pytest.fixture
def service(store: Storage, hasher: PasswordHasher) -> AuthService:
    return AuthService(logging.getLogger("sso.test"), store, store, store, TEST_TTL, hasher=hasher)


@pytest.fixture
def api_client(service: AuthService, store: Storage) -> Generator[TestClient, None, None]:
    """TestClient over the real app with the test service injected."""
    settings = Settings(debug=True, bcrypt_rounds=4, request_timeout_seconds=5.0)
    app = create_app(service=service, storage=store, settings=settings)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client
