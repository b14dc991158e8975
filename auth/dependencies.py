"""
auth/dependencies.py -- FastAPI Depends() helpers for the auth routes.

get_auth_service() hands route handlers the AuthService wired into
app.state by the lifespan (or injected by tests).

get_request_context() builds one RequestContext per request with the
configured deadline. Starlette runs sync handlers in a thread pool and does
not interrupt them when the client goes away, so the deadline is what bounds
the time a request can spend in storage.

Layer rule: no imports from api/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.context import RequestContext
from auth.service import AuthService


def get_auth_service(request: Request) -> AuthService:
    """Return the AuthService stored on app.state."""
    return request.app.state.auth_service


def get_request_context(request: Request) -> RequestContext:
    """Return a fresh RequestContext bounded by REQUEST_TIMEOUT_SECONDS."""
    return RequestContext.with_timeout(request.app.state.settings.request_timeout_seconds)
