"""
auth/tokens.py -- Bearer token issue and verification.

Security design decisions:
  JWT: python-jose with HS256, signed with Settings.jwt_secret. Tokens carry the
       user id (as sub), email, role and names, plus iss/aud so a token minted
       for another service with the same secret is still rejected.

  Expiry: absolute, Settings.token_expire_seconds from issue time (7 days by
       default). No sliding expiry and no refresh tokens.

  Failures: decode_token() raises TokenExpired or TokenMalformed so callers can
       choose the user-facing message. It never returns a partial claims object.

Layer rule: no imports from api/ or client/. Import from core/ is allowed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from jose import ExpiredSignatureError, JWTError, jwt

from auth.errors import TokenExpired, TokenMalformed
from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User

_settings = get_settings()

_ALGORITHM = "HS256"

_REQUIRED_CLAIMS = ("sub", "email", "role", "fullName", "firstName", "lastName")


@dataclass(frozen=True)
class TokenClaims:
    """Identity claims embedded in a bearer token."""

    user_id: str
    email: str
    role: str
    full_name: str
    first_name: str
    last_name: str


def claims_for(user: User) -> TokenClaims:
    return TokenClaims(
        user_id=user.id or "",
        email=user.email,
        role=user.role,
        full_name=user.full_name,
        first_name=user.first_name,
        last_name=user.last_name,
    )


def issue_token(claims: TokenClaims, now: datetime | None = None) -> str:
    """Encode and sign a JWT for claims.

    Args:
        claims: Identity to embed.
        now:    Issue time. Defaults to the current UTC time; tests pass a past
                instant to mint already-expired tokens.
    """
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "sub": claims.user_id,
        "email": claims.email,
        "role": claims.role,
        "fullName": claims.full_name,
        "firstName": claims.first_name,
        "lastName": claims.last_name,
        "iat": issued_at,
        "exp": issued_at + timedelta(seconds=_settings.token_expire_seconds),
        "iss": _settings.jwt_issuer,
        "aud": _settings.jwt_audience,
    }
    return jwt.encode(payload, _settings.jwt_secret, algorithm=_ALGORITHM)


def decode_token(token: str) -> TokenClaims:
    """Verify signature, expiry, issuer and audience and return the claims.

    Raises:
        TokenExpired:   structurally valid and correctly signed, but past exp.
        TokenMalformed: anything else (bad signature, garbage, wrong iss/aud,
                        missing identity claims).
    """
    if not token or not isinstance(token, str):
        raise TokenMalformed("Empty token")
    try:
        payload = jwt.decode(
            token,
            _settings.jwt_secret,
            algorithms=[_ALGORITHM],
            audience=_settings.jwt_audience,
            issuer=_settings.jwt_issuer,
        )
    except ExpiredSignatureError as exc:
        raise TokenExpired("Token has expired") from exc
    except JWTError as exc:
        raise TokenMalformed(str(exc)) from exc

    if any(not isinstance(payload.get(name), str) for name in _REQUIRED_CLAIMS):
        raise TokenMalformed("Token is missing identity claims")

    return TokenClaims(
        user_id=payload["sub"],
        email=payload["email"],
        role=payload["role"],
        full_name=payload["fullName"],
        first_name=payload["firstName"],
        last_name=payload["lastName"],
    )
