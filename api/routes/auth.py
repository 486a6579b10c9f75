"""
api/routes/auth.py -- Authentication REST endpoints.

Routes (mounted under /api/auth):
  POST /signup        -- register; returns {user, token}
  POST /login         -- password login; returns {user, token}
  GET  /me            -- current user profile (requires auth)
  POST /logout        -- stateless acknowledgement (requires auth)
  POST /verify        -- check a token passed in the body; echoes it back
  PUT  /promote-user  -- change another account's role (Administrator only)

Security:
  POST /login and POST /signup are rate-limited per client IP.
  Responses that carry a token send Cache-Control: no-store.
  Handlers are plain `def` so FastAPI runs bcrypt and JWT work in its thread
  pool instead of on the event loop.

All handlers raise auth.errors exceptions on failure; api/main.py renders them
into the standard envelope.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import ApiResponse, LoginRequest, PromoteRequest, SignupRequest, VerifyRequest
from auth.dependencies import get_current_user, require_roles
from auth.models import ADMINISTRATOR, Identity
from auth.service import AuthService
from core.config import get_settings

# Auth policy:
# - POST /api/auth/signup:        public
# - POST /api/auth/login:         public
# - POST /api/auth/verify:        public -- token travels in the body
# - GET  /api/auth/me:            requires auth (get_current_user)
# - POST /api/auth/logout:        requires auth (get_current_user)
# - PUT  /api/auth/promote-user:  requires auth + Administrator (require_roles)
router = APIRouter()

_login_limit = get_settings().login_rate_limit

# @router.post goes above @limiter.limit so the registered endpoint is the
# limited wrapper. SlowAPIMiddleware skips decorated routes, so a bare function
# would go unlimited.


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _ok(data: dict | None = None, message: str | None = None, no_store: bool = False) -> JSONResponse:
    resp = JSONResponse(
        status_code=200,
        content=ApiResponse(success=True, message=message, data=data).model_dump(exclude_none=True),
    )
    if no_store:
        resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/signup", response_model=ApiResponse)
@limiter.limit(_login_limit)
def signup(request: Request, body: SignupRequest) -> JSONResponse:
    """Create an account. Administrator is never self-assignable; such a
    request is downgraded to Demo User rather than rejected."""
    result = _service(request).signup(
        full_name=body.full_name,
        email=body.email,
        password=body.password,
        role=body.role,
        agree_to_terms=body.agree_to_terms,
    )
    return _ok(result.to_dict(), "Account created successfully", no_store=True)


@router.post("/login", response_model=ApiResponse)
@limiter.limit(_login_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password.

    Unknown email, wrong password and deactivated account produce the same
    401 body.
    """
    result = _service(request).login(body.email, body.password, remember_me=body.remember_me)
    return _ok(result.to_dict(), "Login successful", no_store=True)


@router.post("/verify", response_model=ApiResponse)
def verify(request: Request, body: VerifyRequest) -> JSONResponse:
    """Verify a token and return the account behind it."""
    result = _service(request).verify_token(body.token)
    return _ok(result.to_dict(), no_store=True)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/me", response_model=ApiResponse)
def me(request: Request, identity: Identity = Depends(get_current_user)) -> JSONResponse:
    """Return the full sanitized profile of the authenticated user."""
    user = _service(request).get_profile(identity.id)
    return _ok({"user": user})


@router.post("/logout", response_model=ApiResponse)
def logout(identity: Identity = Depends(get_current_user)) -> JSONResponse:
    """Acknowledge logout. Tokens are stateless, so the client discarding its
    token is what ends the session."""
    return _ok(message="Logout successful")


@router.put("/promote-user", response_model=ApiResponse)
def promote_user(
    request: Request,
    body: PromoteRequest,
    identity: Identity = Depends(get_current_user),
    _admin: Identity = Depends(require_roles(ADMINISTRATOR)),
) -> JSONResponse:
    """Change a user's role. Audited."""
    change = _service(request).promote_user_role(identity, body.user_id, body.new_role)
    return _ok(
        change.to_dict(),
        f"User role updated from {change.old_role} to {change.new_role}",
    )
