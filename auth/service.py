"""
auth/service.py -- Signup, login, profile, token verification and promotion.

Pattern: Service layer. AuthService owns the business rules and translates
every failure into the auth/errors.py taxonomy. There is no server-side
session: each method is an independent transaction against the UserStore.

Security:
  login() runs bcrypt whether or not the email exists (against DUMMY_HASH for
  unknown users) and returns the identical InvalidCredentials failure for an
  unknown email, a wrong password and a deactivated account. Neither the
  message nor the response time distinguishes the three.

  signup() never grants Administrator. A request for it is downgraded to Demo
  User and logged as a security event; the caller still gets a success so the
  response does not confirm which roles exist.

  promote_user_role() is audited on the "barnacle.audit" logger.

Layer rule: no imports from api/ or client/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from auth.errors import (
    Forbidden,
    InvalidCredentials,
    InvalidRole,
    NotFound,
    TokenExpired,
    TokenMalformed,
    Unauthenticated,
    ValidationFailed,
)
from auth.models import (
    ADMINISTRATOR,
    DEFAULT_ROLE,
    ROLES,
    SELF_ASSIGNABLE_ROLES,
    Identity,
    RoleChange,
    User,
    sanitize_user,
)
from auth.passwords import DUMMY_HASH, verify_password
from auth.store import UserStore
from auth.tokens import claims_for, decode_token, issue_token
from auth.validation import sanitize_input, validate_login, validate_signup

logger = logging.getLogger("barnacle.auth")
audit_logger = logging.getLogger("barnacle.audit")


@dataclass(frozen=True)
class AuthResult:
    """Sanitized user plus the bearer token for it."""

    user: dict
    token: str

    def to_dict(self) -> dict:
        return {"user": self.user, "token": self.token}


def clamp_signup_role(requested: object) -> str:
    """Return requested if it is self-assignable, otherwise the default role."""
    if isinstance(requested, str) and requested in SELF_ASSIGNABLE_ROLES:
        return requested
    return DEFAULT_ROLE


class AuthService:
    def __init__(self, store: UserStore) -> None:
        self.store = store

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def signup(
        self,
        full_name: object,
        email: object,
        password: object,
        role: object = None,
        agree_to_terms: object = False,
    ) -> AuthResult:
        """Register a new account and log it in.

        Raises ValidationFailed (first message surfaced) or DuplicateEmail.
        """
        data = validate_signup(full_name, email, password, agree_to_terms)

        user_role = clamp_signup_role(role)
        if role == ADMINISTRATOR:
            logger.warning("Security alert: self-assignment of %s role blocked for %s", ADMINISTRATOR, data.email)
        elif role not in (None, "") and user_role != role:
            logger.info("Unknown signup role %r downgraded to %s", sanitize_input(role), user_role)

        user = self.store.create(
            User(
                email=data.email,
                full_name=data.full_name,
                first_name=data.first_name,
                last_name=data.last_name,
                password=data.password,
                role=user_role,
            )
        )
        token = issue_token(claims_for(user))
        self._record_login(user)
        logger.info("Account created for %s (role=%s)", user.email, user.role)
        return AuthResult(user=sanitize_user(user), token=token)

    def login(self, email: object, password: object, remember_me: bool = False) -> AuthResult:
        """Authenticate with email and password.

        remember_me only affects where the client stores the token; every token
        has the same absolute lifetime.
        """
        data = validate_login(email, password)
        user = self.store.find_by_email(data.email)
        if user is None:
            # Equalize timing -- do NOT return before running bcrypt.
            verify_password(data.password, DUMMY_HASH)
            raise InvalidCredentials()
        if not verify_password(data.password, user.hashed_password):
            raise InvalidCredentials()
        if not user.is_active:
            logger.info("Login refused for deactivated account %s", user.email)
            raise InvalidCredentials()

        token = issue_token(claims_for(user))
        self._record_login(user)
        logger.info("Login for %s (remember_me=%s)", user.email, bool(remember_me))
        return AuthResult(user=sanitize_user(user), token=token)

    def get_profile(self, user_id: str) -> dict:
        user = self.store.find_by_id(user_id)
        if user is None:
            raise NotFound()
        return sanitize_user(user)

    def verify_token(self, token: object) -> AuthResult:
        """Check a token and the account behind it. The token is echoed back,
        not reissued."""
        if not token or not isinstance(token, str):
            raise ValidationFailed("Token is required")
        try:
            claims = decode_token(token)
        except TokenExpired as exc:
            raise Unauthenticated("Token has expired") from exc
        except TokenMalformed as exc:
            raise Unauthenticated("Invalid token") from exc

        user = self.store.find_by_id(claims.user_id)
        if user is None or not user.is_active:
            raise Unauthenticated("Invalid token or user not found")
        return AuthResult(user=sanitize_user(user), token=token)

    def promote_user_role(self, acting: Identity, target_user_id: object, new_role: object) -> RoleChange:
        """Change another account's role. Administrator only.

        The acting role is checked before anything else so a non-administrator
        learns nothing about the target or the role set.
        """
        if acting.role != ADMINISTRATOR:
            logger.warning("Role change by non-administrator %s refused", acting.email)
            raise Forbidden()
        if not isinstance(new_role, str) or new_role not in ROLES:
            raise InvalidRole()
        if not target_user_id or not isinstance(target_user_id, str):
            raise NotFound()
        user = self.store.find_by_id(target_user_id)
        if user is None:
            raise NotFound()

        old_role = user.role
        user.role = new_role
        self.store.save(user)
        audit_logger.info(
            "Role change: %s changed %s from %s to %s",
            acting.email,
            user.email,
            old_role,
            new_role,
        )
        return RoleChange(
            target_id=user.id or "",
            email=user.email,
            old_role=old_role,
            new_role=new_role,
            updated_by=acting.email,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _record_login(self, user: User) -> None:
        user.last_login = datetime.now(timezone.utc).isoformat()
        self.store.save(user)
