"""
auth/errors.py -- Error taxonomy for the auth service and its collaborators.

Two families live here:

  Caller-visible (AuthError subclasses). These are the only exceptions
  AuthService lets escape. Each carries a stable `code` string the transport
  layer maps to a response status without inspecting messages:

    InvalidCredentialsError  -- Login only. Unknown email, wrong password and
                                unknown app all collapse into this one error
                                so callers cannot enumerate users or apps.
    UserExistsError          -- RegisterNewUser only. Raised by the store and
                                propagated unchanged by the service.
    InternalError            -- any unclassified storage, hashing or signing
                                failure. Safe for callers to retry.
    OperationCancelledError  -- the request context was cancelled mid-call.
    DeadlineExceededError    -- the request context's deadline passed.

  Collaborator errors (StorageError, SigningError and subclasses). Raised by
  the store and the signer; the service translates them before they reach a
  caller.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for every error AuthService returns to its callers."""

    code = "auth_error"

    def __init__(self, message: str = "", *, op: str | None = None) -> None:
        self.op = op
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(f"{op}: {self.message}" if op else self.message)


class InvalidCredentialsError(AuthError):
    """Invalid email, password or app."""

    code = "invalid_credentials"


class UserExistsError(AuthError):
    """User already exists."""

    code = "user_exists"


class InternalError(AuthError):
    """Internal error."""

    code = "internal_error"


class OperationCancelledError(InternalError):
    """Operation cancelled."""

    code = "cancelled"


class DeadlineExceededError(OperationCancelledError):
    """Deadline exceeded."""

    code = "deadline_exceeded"


# ---------------------------------------------------------------------------
# Collaborator errors
# ---------------------------------------------------------------------------


class StorageError(Exception):
    """Backend failure in the persistence layer."""


class UserNotFoundError(StorageError):
    """No user matches the lookup key."""


class AppNotFoundError(StorageError):
    """No app matches the given id."""


class SigningError(Exception):
    """A token could not be signed or verified."""
