"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/login                      -- email/password/app_id -> signed token
  POST /api/v1/auth/register                   -- create user; 201 with user_id
  GET  /api/v1/auth/users/{user_id}/is-admin   -- admin flag for a user

Handlers are plain `def` so FastAPI runs them in its thread pool: bcrypt
and SQLite both block. AuthError subclasses raised by the service are turned
into responses by the handler registered in api/main.py, so the routes only
deal with the success path.

Security:
  Login returns the same 401 invalid_credentials for unknown email, wrong
  password and unknown app. Do not add a branch here that tells them apart.
  Cache-Control: no-store on login responses so tokens are not cached by
  intermediaries.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Response

from api.models import IsAdminResponse, LoginRequest, LoginResponse, RegisterRequest, RegisterResponse
from auth.context import RequestContext
from auth.dependencies import get_auth_service, get_request_context
from auth.service import AuthService

# Auth policy:
# - POST /api/v1/auth/login:                    public -- login endpoint must be unauthenticated
# - POST /api/v1/auth/register:                 public -- self-registration
# - GET  /api/v1/auth/users/{id}/is-admin:      trusted callers only; no credential check here
router = APIRouter()


@router.post("/auth/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
    ctx: RequestContext = Depends(get_request_context),
) -> LoginResponse:
    """Authenticate and return a token signed with the app's secret."""
    token = service.login(ctx, body.email, body.password, body.app_id)
    response.headers["Cache-Control"] = "no-store"
    return LoginResponse(token=token)


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
def register(
    body: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
    ctx: RequestContext = Depends(get_request_context),
) -> RegisterResponse:
    """Register a new user. 409 if the email is already taken."""
    user_id = service.register_new_user(ctx, body.email, body.password)
    return RegisterResponse(user_id=user_id)


@router.get("/auth/users/{user_id}/is-admin", response_model=IsAdminResponse)
def is_admin(
    user_id: int = Path(gt=0),
    service: AuthService = Depends(get_auth_service),
    ctx: RequestContext = Depends(get_request_context),
) -> IsAdminResponse:
    """Return whether user_id has the admin flag set."""
    return IsAdminResponse(is_admin=service.is_admin(ctx, user_id))
