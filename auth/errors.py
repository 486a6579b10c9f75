"""
auth/errors.py -- Failure taxonomy for the auth subsystem.

Every failure the service boundary can produce is one of these. Each carries
the HTTP status it maps to and a single human-readable message; api/main.py
renders them into the {"success": false, "message": ...} envelope. Storage
errors (IntegrityError etc.) are translated here-side and never reach clients.

TokenExpired and TokenMalformed are token-layer failures. They are not
AuthError subclasses because callers must branch on them and decide which
user-facing Unauthenticated message to raise.

Layer rule: no imports from api/ or client/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for failures that map onto an HTTP status."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(AuthError):
    """Input failed validation.

    errors keeps every collected message; message is the first one, which is
    what the API surfaces.
    """

    status_code = 400
    default_message = "Validation error"

    def __init__(self, errors: list[str] | str) -> None:
        self.errors = [errors] if isinstance(errors, str) else list(errors)
        super().__init__(self.errors[0] if self.errors else None)


class InvalidRole(AuthError):
    status_code = 400
    default_message = "Invalid role specified"


class DuplicateEmail(AuthError):
    status_code = 409
    default_message = "A user with this email address already exists"


class InvalidCredentials(AuthError):
    """Unknown email, wrong password and deactivated account all raise this
    with the same message so responses cannot be used to enumerate accounts."""

    status_code = 401
    default_message = "Invalid email or password"


class Unauthenticated(AuthError):
    status_code = 401
    default_message = "Authentication required."


class Forbidden(AuthError):
    status_code = 403
    default_message = "Access denied. Administrator privileges required."


class NotFound(AuthError):
    status_code = 404
    default_message = "User not found"


class TokenError(Exception):
    """Base class for token verification failures."""


class TokenExpired(TokenError):
    """Signature and structure are valid but exp is in the past."""


class TokenMalformed(TokenError):
    """Bad signature, bad structure, wrong issuer/audience or missing claims."""
