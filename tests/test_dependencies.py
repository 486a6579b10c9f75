"""
tests/test_dependencies.py -- Unit tests for auth/dependencies.py.

The dependencies only need request.headers, request.state and
request.app.state.user_store, so they are exercised with a bare Starlette
Request built from a scope dict rather than a full TestClient.

Coverage:
  - get_current_user: each 401 message; identity attached to request.state
  - try_get_current_user: anonymous on any failure, never raises
  - require_roles: 401 without a prior identity, 403 listing the roles
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from starlette.requests import Request

from auth.dependencies import get_current_user, require_roles, try_get_current_user
from auth.errors import Forbidden, Unauthenticated
from auth.models import ADMINISTRATOR, FLEET_OPERATOR, SHIP_CAPTAIN, Identity, User
from auth.store import UserStore
from auth.tokens import claims_for, issue_token
from core.config import get_settings


def _request(store: UserStore, authorization: str | None = None) -> Request:
    headers = [(b"authorization", authorization.encode())] if authorization is not None else []
    app = SimpleNamespace(state=SimpleNamespace(user_store=store))
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers, "app": app})


@pytest.fixture
def captain(store: UserStore) -> User:
    user = User(email="cap@example.com", full_name="Sarah Wilson", password="captain123", role=SHIP_CAPTAIN)
    return store.create(user)


class TestGetCurrentUser:
    def test_valid_token(self, store: UserStore, captain: User) -> None:
        request = _request(store, f"Bearer {issue_token(claims_for(captain))}")
        identity = get_current_user(request)
        assert identity.id == captain.id
        assert identity.role == SHIP_CAPTAIN
        assert request.state.identity == identity

    @pytest.mark.parametrize("header", [None, "", "Bearer ", "Basic dXNlcjpwYXNz", "bearer abc"])
    def test_no_token(self, store: UserStore, header: str | None) -> None:
        with pytest.raises(Unauthenticated, match="Access denied. No token provided."):
            get_current_user(_request(store, header))

    def test_malformed_token(self, store: UserStore) -> None:
        with pytest.raises(Unauthenticated, match="Token is not valid."):
            get_current_user(_request(store, "Bearer not.a.token"))

    def test_expired_token(self, store: UserStore, captain: User) -> None:
        issued = datetime.now(timezone.utc) - timedelta(seconds=get_settings().token_expire_seconds + 1)
        token = issue_token(claims_for(captain), now=issued)
        with pytest.raises(Unauthenticated, match="Token has expired."):
            get_current_user(_request(store, f"Bearer {token}"))

    def test_user_gone(self, store: UserStore) -> None:
        ghost = User(id="e" * 32, email="ghost@example.com", full_name="Ghost Ship")
        ghost.first_name, ghost.last_name = "Ghost", "Ship"
        with pytest.raises(Unauthenticated, match="User not found"):
            get_current_user(_request(store, f"Bearer {issue_token(claims_for(ghost))}"))

    def test_deactivated(self, store: UserStore, captain: User) -> None:
        token = issue_token(claims_for(captain))
        captain.is_active = False
        store.save(captain)
        with pytest.raises(Unauthenticated, match="Account has been deactivated."):
            get_current_user(_request(store, f"Bearer {token}"))


class TestTryGetCurrentUser:
    def test_anonymous_without_token(self, store: UserStore) -> None:
        request = _request(store)
        assert try_get_current_user(request) is None
        assert request.state.identity is None

    def test_anonymous_with_bad_token(self, store: UserStore) -> None:
        assert try_get_current_user(_request(store, "Bearer garbage")) is None

    def test_identity_with_good_token(self, store: UserStore, captain: User) -> None:
        identity = try_get_current_user(_request(store, f"Bearer {issue_token(claims_for(captain))}"))
        assert identity is not None
        assert identity.email == "cap@example.com"


class TestRequireRoles:
    def test_without_identity_is_unauthenticated(self, store: UserStore) -> None:
        """A guard used without get_current_user before it fails closed."""
        guard = require_roles(ADMINISTRATOR)
        with pytest.raises(Unauthenticated, match="Authentication required."):
            guard(_request(store))

    def test_wrong_role(self, store: UserStore, captain: User) -> None:
        request = _request(store)
        request.state.identity = Identity.from_user(captain)
        guard = require_roles(ADMINISTRATOR, FLEET_OPERATOR)
        with pytest.raises(Forbidden) as exc_info:
            guard(request)
        assert exc_info.value.message == "Access denied. Required role: Administrator or Fleet Operator"
        assert exc_info.value.status_code == 403

    def test_allowed_role(self, store: UserStore, captain: User) -> None:
        request = _request(store)
        request.state.identity = Identity.from_user(captain)
        assert require_roles(ADMINISTRATOR, SHIP_CAPTAIN)(request).id == captain.id
