"""
api/main.py -- FastAPI application entry point for the SSO service.

Exposes AuthService over HTTP. The service itself knows nothing about HTTP;
this module only wires it up, logs requests and maps AuthError codes to
status codes.

Run with:  uvicorn asgi:app --reload

Lifespan handles startup (open storage, build AuthService) and shutdown
(dispose the engine) symmetrically. Tests call create_app(service=...,
storage=...) with pre-built objects; the lifespan then leaves app.state alone
and does not close what it did not open.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.errors import AuthError
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import Storage
from core.config import Settings, get_settings
from core.logging import setup_logging

__version__ = "0.1.0"

logger = logging.getLogger("sso.api")

# AuthError.code -> HTTP status. Anything not listed is a 500.
_STATUS_BY_CODE: dict[str, int] = {
    "invalid_credentials": 401,
    "user_exists": 409,
    "cancelled": 503,
    "deadline_exceeded": 504,
}

_PUBLIC_MESSAGES: dict[str, str] = {
    "invalid_credentials": "Invalid email, password or app.",
    "user_exists": "User already exists.",
    "cancelled": "The request was cancelled.",
    "deadline_exceeded": "The request took too long.",
}


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


def create_app(
    service: AuthService | None = None,
    storage: Storage | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Build the FastAPI app.

    With no arguments, the lifespan opens Storage at settings.storage_url and
    builds the AuthService from Settings. Passing service and storage skips
    that wiring (used by tests and by embedders with their own stores).
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Open storage and build the service on startup; close on shutdown.

        Everything before yield runs on startup; everything after yield
        runs on shutdown.
        """
        owned: Storage | None = None
        if app.state.auth_service is None:
            setup_logging(settings.log_level)
            owned = Storage(settings.storage_url)
            app.state.storage = owned
            app.state.auth_service = AuthService(
                logging.getLogger("sso.auth"),
                owned,
                owned,
                owned,
                settings.token_ttl,
                hasher=PasswordHasher(settings.bcrypt_rounds),
            )
            logger.info("SSO API starting up (storage=%s, token_ttl=%s)", settings.storage_url, settings.token_ttl)

        yield

        if owned is not None:
            owned.close()
            logger.info("SSO API shutdown complete")

    app = FastAPI(
        title="SSO API",
        description="Credential verification and app-scoped token issuance.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.auth_service = service
    app.state.storage = storage

    # -----------------------------------------------------------------------
    # Request logging middleware
    # -----------------------------------------------------------------------

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %d %.1fms %s",
            request.method,
            request.url.path,
            response.status_code,
            ms,
            request.client.host if request.client else "unknown",
        )
        return response

    # -----------------------------------------------------------------------
    # Router registration
    # -----------------------------------------------------------------------

    app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])

    # -----------------------------------------------------------------------
    # Exception handlers
    #
    # All handlers return the same ErrorResponse envelope so API clients can
    # parse errors uniformly without inspecting status codes to choose a schema.
    # -----------------------------------------------------------------------

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
        """Map service errors to status codes.

        Internal errors get a generic message; the cause was already logged
        by the service with its operation context.
        """
        status_code = _STATUS_BY_CODE.get(exc.code, 500)
        message = _PUBLIC_MESSAGES.get(exc.code, "An unexpected error occurred.")
        code = exc.code if exc.code in _STATUS_BY_CODE else "internal_error"
        return _error_response(status_code, code, message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Return 422 with structured error when request body or path params fail validation.

        Inputs are not echoed back: the body may contain a password.
        """
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        return _error_response(422, "validation_error", "Request validation failed.", fields)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        """Return a structured error for all FastAPI/Starlette HTTP exceptions."""
        return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all handler for unexpected server errors.

        The raw exception goes to the log only, never to the response body.
        """
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return _error_response(500, "internal_error", "An unexpected error occurred.")

    # -----------------------------------------------------------------------
    # Health endpoint
    # -----------------------------------------------------------------------

    @app.get("/api/v1/health", tags=["Health"])
    def health(request: Request) -> HealthResponse:
        """Return liveness, version and database reachability."""
        store: Storage | None = request.app.state.storage
        database = "ok" if store is not None and store.ping() else "error"
        return HealthResponse(version=__version__, components={"app": "ok", "database": database})

    return app
