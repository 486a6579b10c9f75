"""
auth/passwords.py -- One-way salted password hashing.

bcrypt is used directly rather than through passlib: passlib's internal
wrap-bug detection builds a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

Cost factor comes from Settings.bcrypt_rounds (default 12, tens to hundreds
of milliseconds per call). It is a process-wide constant, not a per-call
argument. Tests lower it through BCRYPT_ROUNDS.

Passwords are capped at 128 characters by validation, which can be well over
bcrypt's 72-byte input limit once encoded (multi-byte characters count more than
once). bcrypt 5.x raises on longer input instead of truncating, so both
hash_password and verify_password cut the UTF-8 encoding to 72 bytes
themselves. The stored hash is the same one bcrypt 4.x produced.
"""

from __future__ import annotations

import logging

import bcrypt

from core.config import get_settings

logger = logging.getLogger("barnacle.auth")

_settings = get_settings()

_BCRYPT_MAX_BYTES = 72


def _password_bytes(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of plain. The random salt is embedded in the output,
    so two calls with the same input return different strings."""
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(_password_bytes(plain), salt).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    """Return True if plain matches hashed.

    Fails closed: a malformed hash, a None hash or non-string input is a
    non-match, never an exception.
    """
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(plain), hashed.encode("utf-8"))
    except (ValueError, TypeError, AttributeError):
        logger.debug("Password verification against malformed hash")
        return False


# Timing equalization. Computed once at import so the first unknown-user login
# is not measurably faster than a wrong-password login.
DUMMY_HASH: str = hash_password("barnacle_timing_dummy")
