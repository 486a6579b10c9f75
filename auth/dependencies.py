"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Requests authenticate with an `Authorization: Bearer <token>` header.

get_current_user() is the hard gate: it raises Unauthenticated (401) on any
failure and attaches the sanitized Identity to request.state.identity.

try_get_current_user() is the optional-auth variant: it runs the same steps
but any failure yields an anonymous request (None) and never blocks.

require_roles(...) builds a role guard. It must be declared after
get_current_user in the route signature (FastAPI resolves dependencies in
parameter order) and reads the identity that gate attached.

Layer rule: no imports from api/ or client/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Request

from auth.errors import Forbidden, TokenExpired, TokenMalformed, Unauthenticated
from auth.models import Identity
from auth.store import UserStore
from auth.tokens import decode_token

_BEARER_PREFIX = "Bearer "


def _extract_bearer(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    if not header.startswith(_BEARER_PREFIX):
        return None
    token = header[len(_BEARER_PREFIX) :].strip()
    return token or None


def _authenticate(request: Request) -> Identity:
    token = _extract_bearer(request)
    if token is None:
        raise Unauthenticated("Access denied. No token provided.")
    try:
        claims = decode_token(token)
    except TokenExpired as exc:
        raise Unauthenticated("Token has expired.") from exc
    except TokenMalformed as exc:
        raise Unauthenticated("Token is not valid.") from exc

    user_store: UserStore = request.app.state.user_store
    user = user_store.find_by_id(claims.user_id)
    if user is None:
        raise Unauthenticated("Token is not valid. User not found.")
    if not user.is_active:
        raise Unauthenticated("Account has been deactivated.")
    return Identity.from_user(user)


def get_current_user(request: Request) -> Identity:
    """Require authentication. Raises Unauthenticated (401) if the request is
    not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: Identity = Depends(get_current_user)): ...
    """
    identity = _authenticate(request)
    request.state.identity = identity
    return identity


def try_get_current_user(request: Request) -> Identity | None:
    """Authenticate if possible. Returns None (anonymous) on any failure."""
    try:
        identity: Identity | None = _authenticate(request)
    except Unauthenticated:
        identity = None
    request.state.identity = identity
    return identity


def require_roles(*roles: str) -> Callable[[Request], Identity]:
    """Build a dependency that allows only identities holding one of roles.

    Use after get_current_user:
        @router.put("/admin-only")
        def route(
            identity: Identity = Depends(get_current_user),
            _: Identity = Depends(require_roles(ADMINISTRATOR)),
        ): ...
    """
    allowed = frozenset(roles)
    label = " or ".join(roles)

    def role_guard(request: Request) -> Identity:
        identity = getattr(request.state, "identity", None)
        if identity is None:
            raise Unauthenticated("Authentication required.")
        if identity.role not in allowed:
            raise Forbidden(f"Access denied. Required role: {label}")
        return identity

    return role_guard
