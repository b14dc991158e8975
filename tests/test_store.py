"""
tests/test_store.py -- Integration tests for auth/store.py and AuthService over real SQLite.

Covers:
  - save_user / user round trip, IDs assigned sequentially from 1
  - duplicate email -> UserExistsError (UNIQUE constraint), case-sensitive emails
  - unknown email / app / user id -> the matching not-found error
  - is_admin defaults to False and follows set_admin
  - save_app with pinned and auto-assigned IDs; duplicate name -> StorageError
  - cancelled context raises before touching the database
  - storage failures (no schema) surface as StorageError
  - end to end: register + login through AuthService with the real store
"""

from __future__ import annotations

import time

import pytest
from conftest import TEST_APP_ID, TEST_APP_SECRET, TEST_TTL

from auth.context import RequestContext
from auth.errors import (
    AppNotFoundError,
    InvalidCredentialsError,
    OperationCancelledError,
    StorageError,
    UserExistsError,
    UserNotFoundError,
)
from auth.store import Storage
from auth.tokens import decode_token


class TestUsers:
    """User rows: inserts, lookups and the admin flag."""

    def test_save_and_fetch(self, store, ctx) -> None:
        """A saved user reads back with the same email and hash and no admin flag."""
        uid = store.save_user(ctx, "alice@example.com", b"$2b$04$hash")
        assert uid == 1
        user = store.user(ctx, "alice@example.com")
        assert user.id == 1
        assert user.email == "alice@example.com"
        assert user.pass_hash == b"$2b$04$hash"
        assert user.is_admin is False

    def test_ids_are_sequential(self, store, ctx) -> None:
        """User ids are assigned sequentially from 1."""
        assert store.save_user(ctx, "a@example.com", b"h1") == 1
        assert store.save_user(ctx, "b@example.com", b"h2") == 2

    def test_duplicate_email_raises_user_exists(self, store, ctx) -> None:
        """The UNIQUE email constraint surfaces as UserExistsError."""
        store.save_user(ctx, "bob@example.com", b"h")
        with pytest.raises(UserExistsError):
            store.save_user(ctx, "bob@example.com", b"h2")

    def test_email_is_case_sensitive(self, store, ctx) -> None:
        """Emails differing only in case are distinct users."""
        store.save_user(ctx, "carol@example.com", b"h")
        assert store.save_user(ctx, "Carol@example.com", b"h") == 2
        with pytest.raises(UserNotFoundError):
            store.user(ctx, "CAROL@example.com")

    def test_unknown_email(self, store, ctx) -> None:
        """Looking up an unregistered email raises UserNotFoundError."""
        with pytest.raises(UserNotFoundError):
            store.user(ctx, "nobody@example.com")

    def test_is_admin_follows_set_admin(self, store, ctx) -> None:
        """is_admin defaults to False and tracks set_admin both ways."""
        uid = store.save_user(ctx, "dave@example.com", b"h")
        assert store.is_admin(ctx, uid) is False
        store.set_admin(ctx, uid, True)
        assert store.is_admin(ctx, uid) is True
        store.set_admin(ctx, uid, False)
        assert store.is_admin(ctx, uid) is False

    def test_is_admin_unknown_user(self, store, ctx) -> None:
        """is_admin for an unknown id raises UserNotFoundError."""
        with pytest.raises(UserNotFoundError):
            store.is_admin(ctx, 42)

    def test_set_admin_unknown_user(self, store, ctx) -> None:
        """set_admin for an unknown id raises UserNotFoundError."""
        with pytest.raises(UserNotFoundError):
            store.set_admin(ctx, 42, True)


class TestApps:
    """App rows: pinned and assigned ids, lookups."""

    def test_fetch_registered_app(self, store, ctx) -> None:
        """The fixture app reads back with its name and secret."""
        app = store.app(ctx, TEST_APP_ID)
        assert app.id == TEST_APP_ID
        assert app.name == "test-app"
        assert app.secret == TEST_APP_SECRET

    def test_auto_assigned_id(self, store, ctx) -> None:
        """save_app without an id assigns a fresh one."""
        app_id = store.save_app(ctx, "mobile", "mobile-secret")
        assert app_id != TEST_APP_ID
        assert store.app(ctx, app_id).name == "mobile"

    def test_duplicate_name_is_storage_error(self, store, ctx) -> None:
        """A duplicate app name raises StorageError."""
        with pytest.raises(StorageError):
            store.save_app(ctx, "test-app", "different-secret")

    def test_unknown_app(self, store, ctx) -> None:
        """Looking up an unknown app id raises AppNotFoundError."""
        with pytest.raises(AppNotFoundError):
            store.app(ctx, 999)


class TestContextAndFailures:
    """Context checks and error mapping."""

    def test_cancelled_context_raises_before_query(self, store) -> None:
        """A cancelled context raises before any row is written."""
        ctx = RequestContext.background()
        ctx.cancel()
        with pytest.raises(OperationCancelledError):
            store.save_user(ctx, "eve@example.com", b"h")
        assert store.ping() is True
        with pytest.raises(UserNotFoundError):
            store.user(RequestContext.background(), "eve@example.com")

    def test_missing_schema_is_storage_error(self, tmp_path, ctx) -> None:
        """Queries against an unmigrated database raise StorageError."""
        bare = Storage(f"sqlite:///{tmp_path / 'bare.db'}")
        try:
            with pytest.raises(StorageError):
                bare.user(ctx, "a@example.com")
            with pytest.raises(StorageError):
                bare.save_user(ctx, "a@example.com", b"h")
        finally:
            bare.close()

    def test_ping(self, store) -> None:
        """ping() reports a reachable database."""
        assert store.ping() is True


class TestServiceWithStorage:
    """AuthService end to end over a migrated SQLite database."""

    def test_register_then_login(self, service, store, ctx) -> None:
        """Register and login through the real store issue a token for the stored user."""
        uid = service.register_new_user(ctx, "alice@example.com", "s3cret")
        assert uid == 1
        assert store.user(ctx, "alice@example.com").pass_hash != b"s3cret"

        token = service.login(ctx, "alice@example.com", "s3cret", TEST_APP_ID)
        claims = decode_token(token, TEST_APP_SECRET)
        assert claims.uid == uid
        assert claims.email == "alice@example.com"
        assert claims.app_id == TEST_APP_ID
        assert claims.exp - claims.iat == int(TEST_TTL.total_seconds())
        assert abs(claims.iat - time.time()) < 5

    def test_login_failures_collapse(self, service, ctx) -> None:
        """Wrong password, unknown email and unknown app all raise InvalidCredentialsError."""
        service.register_new_user(ctx, "bob@example.com", "pw")
        for email, password, app_id in [
            ("bob@example.com", "wrong", TEST_APP_ID),
            ("nobody@example.com", "pw", TEST_APP_ID),
            ("bob@example.com", "pw", 999),
        ]:
            with pytest.raises(InvalidCredentialsError):
                service.login(ctx, email, password, app_id)

    def test_duplicate_registration(self, service, ctx) -> None:
        """Registering the same email twice raises UserExistsError."""
        service.register_new_user(ctx, "carol@example.com", "pw")
        with pytest.raises(UserExistsError):
            service.register_new_user(ctx, "carol@example.com", "pw")

    def test_is_admin_reflects_store(self, service, store, ctx) -> None:
        """The service reports the flag as set in the database."""
        uid = service.register_new_user(ctx, "dave@example.com", "pw")
        assert service.is_admin(ctx, uid) is False
        store.set_admin(ctx, uid, True)
        assert service.is_admin(ctx, uid) is True
