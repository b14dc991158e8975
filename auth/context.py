"""
auth/context.py -- Per-request cancellation and deadline handle.

A RequestContext is created by the caller (one per request), handed to
AuthService, and passed on unchanged to every storage call. Anyone holding
it may cancel it from another thread; the service and the store call
check() between steps and abort with OperationCancelledError (or
DeadlineExceededError) instead of finishing with stale results.

The deadline uses time.monotonic(), so wall-clock adjustments never cancel
or extend a request.

Usage:
    ctx = RequestContext.with_timeout(5.0)
    token = service.login(ctx, email, password, app_id)

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import threading
import time

from auth.errors import DeadlineExceededError, OperationCancelledError


class RequestContext:
    def __init__(self, deadline: float | None = None) -> None:
        self._deadline = deadline
        self._cancelled = threading.Event()

    @classmethod
    def background(cls) -> "RequestContext":
        """A context that is never done unless cancelled explicitly."""
        return cls()

    @classmethod
    def with_timeout(cls, seconds: float) -> "RequestContext":
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def check(self, op: str | None = None) -> None:
        """Raise if the context is cancelled or past its deadline.

        Cancellation wins over expiry when both hold.
        """
        if self.cancelled:
            raise OperationCancelledError("context cancelled", op=op)
        if self.expired:
            raise DeadlineExceededError("context deadline exceeded", op=op)
