"""
auth/validation.py -- Input validation for signup and login.

Each field validator returns the normalized value or raises FieldError with the
user-facing message. validate_signup() runs every check independently and
raises ValidationFailed carrying all collected messages; the API surfaces only
the first (ValidationFailed.message).

Layer rule: no imports from api/ or client/.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from auth.errors import ValidationFailed
from auth.models import split_full_name

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Unicode letters, whitespace, hyphens and apostrophes. [^\W\d_] is "word
# character that is not a digit or underscore", i.e. any letter.
NAME_RE = re.compile(r"^(?:[^\W\d_]|[\s\-'])+$")

WEAK_PASSWORDS = frozenset(
    {
        "123456",
        "password",
        "qwerty",
        "abc123",
        "password123",
        "12345678",
        "123456789",
        "letmein",
        "welcome",
        "admin",
    }
)

_REPEATED_DIGITS_RE = re.compile(r"(\d)\1{2,}")
_ASCENDING_RUN_RE = re.compile(
    "|".join("abcdefghijklmnopqrstuvwxyz"[i : i + 3] for i in range(24)),
    re.IGNORECASE,
)
_UNSAFE_CHARS_RE = re.compile(r"[<>\x00-\x1f\x7f]")


class FieldError(ValueError):
    """A single field failed validation. str(exc) is the user-facing message."""


@dataclass(frozen=True)
class SignupData:
    full_name: str
    first_name: str
    last_name: str
    email: str
    password: str


@dataclass(frozen=True)
class LoginData:
    email: str
    password: str


def validate_email(email: object) -> str:
    if not email or not isinstance(email, str):
        raise FieldError("Email is required")
    normalized = email.strip().lower()
    if len(normalized) < 5:
        raise FieldError("Email must be at least 5 characters long")
    if len(normalized) > 254:
        raise FieldError("Email address is too long")
    if not EMAIL_RE.match(normalized):
        raise FieldError("Please enter a valid email address")
    return normalized


def validate_password(password: object) -> str:
    if not password or not isinstance(password, str):
        raise FieldError("Password is required")
    if len(password) < 6:
        raise FieldError("Password must be at least 6 characters long")
    if len(password) > 128:
        raise FieldError("Password cannot exceed 128 characters")
    if password.lower() in WEAK_PASSWORDS:
        raise FieldError("Please choose a stronger password")
    if _REPEATED_DIGITS_RE.search(password) or _ASCENDING_RUN_RE.search(password):
        raise FieldError("Avoid using sequential or repeated characters")
    return password


def validate_full_name(full_name: object) -> tuple[str, str, str]:
    """Return (full_name, first_name, last_name) for a valid name."""
    if not full_name or not isinstance(full_name, str):
        raise FieldError("Full name is required")
    trimmed = full_name.strip()
    if len(trimmed) < 2:
        raise FieldError("Full name must be at least 2 characters long")
    if len(trimmed) > 100:
        raise FieldError("Full name cannot exceed 100 characters")
    if not NAME_RE.match(trimmed):
        raise FieldError("Name can only contain letters, spaces, hyphens, and apostrophes")
    first, last = split_full_name(trimmed)
    if not first:
        raise FieldError("Please provide a valid full name")
    return trimmed, first, last


def validate_signup(full_name: object, email: object, password: object, agree_to_terms: object) -> SignupData:
    errors: list[str] = []
    name_parts: tuple[str, str, str] | None = None
    normalized_email = ""

    try:
        name_parts = validate_full_name(full_name)
    except FieldError as exc:
        errors.append(str(exc))
    try:
        normalized_email = validate_email(email)
    except FieldError as exc:
        errors.append(str(exc))
    try:
        validate_password(password)
    except FieldError as exc:
        errors.append(str(exc))
    if not agree_to_terms:
        errors.append("You must agree to the terms and conditions")

    if errors or name_parts is None:
        raise ValidationFailed(errors)
    trimmed, first, last = name_parts
    return SignupData(
        full_name=trimmed,
        first_name=first,
        last_name=last,
        email=normalized_email,
        password=password,  # type: ignore[arg-type]
    )


def validate_login(email: object, password: object) -> LoginData:
    """Shape check only. Strength rules are not applied at login so that
    accounts created before a rule change can still sign in."""
    errors: list[str] = []
    normalized_email = ""
    try:
        normalized_email = validate_email(email)
    except FieldError as exc:
        errors.append(str(exc))
    if not password or not isinstance(password, str):
        errors.append("Password is required")
    elif len(password) > 128:
        errors.append("Invalid credentials")
    if errors:
        raise ValidationFailed(errors)
    return LoginData(email=normalized_email, password=password)  # type: ignore[arg-type]


def sanitize_input(value: object) -> object:
    """Strip surrounding whitespace, angle brackets and control characters.

    Non-strings pass through unchanged.
    """
    if not isinstance(value, str):
        return value
    return _UNSAFE_CHARS_RE.sub("", value.strip())
