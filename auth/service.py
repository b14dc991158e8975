"""
auth/service.py -- AuthService: login, registration and admin checks.

Pattern: Service with injected ports. AuthService owns the decision logic
(credential comparison, error classification, token issuance) and nothing
else. Persistence and signing arrive through the Protocols in auth/ports.py.

Security:
  Login collapses unknown email, wrong password and unknown app into a single
  InvalidCredentialsError. The distinction is logged for operators but never
  returned, so callers cannot discover which emails or apps exist. Do not split
  these into separate errors.

  Unknown emails still pay for one bcrypt comparison (dummy_verify) so the
  response time matches the wrong-password path.

  Passwords are never logged.

Concurrency:
  The service holds only configuration set in __init__. Every call is
  independent; email uniqueness under concurrent registration is the store's
  job (UNIQUE constraint). The RequestContext is checked on entry and between
  steps, and is passed into every storage call.

Layer rule: no imports from api/. core/ is allowed for logging helpers.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from auth.context import RequestContext
from auth.errors import (
    InternalError,
    InvalidCredentialsError,
    SigningError,
    StorageError,
    UserExistsError,
    UserNotFoundError,
)
from auth.passwords import PasswordHasher
from auth.ports import AppProvider, TokenSigner, UserProvider, UserSaver
from auth.tokens import JWTSigner
from core.logging import OpLogger


class AuthService:
    """Verifies credentials, registers users and issues app-scoped tokens.

    Usage:
        service = AuthService(logger, store, store, store, timedelta(hours=1))
        uid = service.register_new_user(ctx, "alice@example.com", "s3cret")
        token = service.login(ctx, "alice@example.com", "s3cret", app_id=10)
    """

    def __init__(
        self,
        log: logging.Logger,
        user_saver: UserSaver,
        user_provider: UserProvider,
        app_provider: AppProvider,
        token_ttl: timedelta,
        *,
        signer: TokenSigner | None = None,
        hasher: PasswordHasher | None = None,
    ) -> None:
        self._log = log
        self._user_saver = user_saver
        self._user_provider = user_provider
        self._app_provider = app_provider
        self._token_ttl = token_ttl
        self._signer = signer or JWTSigner()
        self._hasher = hasher or PasswordHasher()

    def login(self, ctx: RequestContext, email: str, password: str, app_id: int) -> str:
        """Authenticate email/password and return a token for app_id.

        Raises InvalidCredentialsError if the user is unknown, the password
        is wrong or the app is unknown. Raises InternalError on storage or
        signing failure, OperationCancelledError if ctx is done.
        """
        op = "auth.login"
        log = OpLogger(self._log, op=op, email=email)
        log.info("attempting to login user")
        ctx.check(op)

        try:
            user = self._user_provider.user(ctx, email)
        except UserNotFoundError as err:
            self._hasher.dummy_verify(password)
            log.warning("user not found", extra={"error": err})
            raise InvalidCredentialsError(op=op) from None
        except StorageError as err:
            log.error("failed to get user", extra={"error": err})
            raise InternalError("failed to get user", op=op) from err

        if not self._hasher.verify(password, user.pass_hash):
            log.warning("invalid credentials", extra={"user_id": user.id})
            raise InvalidCredentialsError(op=op)
        ctx.check(op)

        try:
            app = self._app_provider.app(ctx, app_id)
        except StorageError as err:
            log.warning("app lookup failed", extra={"app_id": app_id, "error": err})
            raise InvalidCredentialsError(op=op) from None

        try:
            token = self._signer.sign(user, app, self._token_ttl)
        except SigningError as err:
            log.error("failed to create token", extra={"app_id": app_id, "error": err})
            raise InternalError("failed to create token", op=op) from err

        log.info("user logged in successfully", extra={"user_id": user.id, "app_id": app_id})
        return token

    def register_new_user(self, ctx: RequestContext, email: str, password: str) -> int:
        """Create a user with a bcrypt-hashed password and return its id.

        Raises UserExistsError if the email is already registered, InternalError
        on any other failure.
        """
        op = "auth.register_new_user"
        log = OpLogger(self._log, op=op, email=email)
        log.info("registering new user")
        ctx.check(op)

        try:
            pass_hash = self._hasher.hash(password)
        except ValueError as err:
            log.error("failed to hash password", extra={"error": err})
            raise InternalError("failed to hash password", op=op) from err
        ctx.check(op)

        try:
            user_id = self._user_saver.save_user(ctx, email, pass_hash)
        except UserExistsError:
            log.warning("user already exists")
            raise
        except StorageError as err:
            log.error("failed to save user", extra={"error": err})
            raise InternalError("failed to save user", op=op) from err

        log.info("user registered", extra={"user_id": user_id})
        return user_id

    def is_admin(self, ctx: RequestContext, user_id: int) -> bool:
        """Return the stored admin flag for user_id.

        No credential check: the caller is trusted to have authenticated.
        Any storage failure, including an unknown user_id, is an InternalError.
        """
        op = "auth.is_admin"
        log = OpLogger(self._log, op=op, user_id=user_id)
        log.info("checking if user is admin")
        ctx.check(op)

        try:
            is_admin = self._user_provider.is_admin(ctx, user_id)
        except StorageError as err:
            log.error("failed to check if user is admin", extra={"error": err})
            raise InternalError("failed to check if user is admin", op=op) from err

        log.info("checked if user is admin", extra={"is_admin": is_admin})
        return is_admin
