"""
auth/ports.py -- Capability contracts AuthService depends on.

Pattern: Ports (typing.Protocol). The service is written against these
structural types only, so any backing store that satisfies them plugs in:
auth.store.Storage in production, in-memory fakes in unit tests.

Every storage method takes the caller's RequestContext first and must call
ctx.check() before doing I/O.

Error contracts:
  UserSaver.save_user   -- UserExistsError on duplicate email, StorageError otherwise.
  UserProvider.user     -- UserNotFoundError, StorageError.
  UserProvider.is_admin -- StorageError (UserNotFoundError for unknown ids).
  AppProvider.app       -- AppNotFoundError, StorageError.
  TokenSigner.sign      -- SigningError.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Protocol

from auth.context import RequestContext
from auth.models import App, User


class UserSaver(Protocol):
    def save_user(self, ctx: RequestContext, email: str, pass_hash: bytes) -> int: ...


class UserProvider(Protocol):
    def user(self, ctx: RequestContext, email: str) -> User: ...

    def is_admin(self, ctx: RequestContext, user_id: int) -> bool: ...


class AppProvider(Protocol):
    def app(self, ctx: RequestContext, app_id: int) -> App: ...


class TokenSigner(Protocol):
    """Signs a token binding user to app, valid for ttl from now."""

    def sign(self, user: User, app: App, ttl: timedelta) -> str: ...
