"""
tests/test_validation.py -- Unit tests for auth/validation.py.

Coverage:
  - Field rules and their exact user-facing messages
  - validate_signup collects every error but surfaces the first
  - validate_login is a shape check only
  - sanitize_input strips angle brackets and control characters
"""

from __future__ import annotations

import pytest

from auth.errors import ValidationFailed
from auth.validation import (
    FieldError,
    sanitize_input,
    validate_email,
    validate_full_name,
    validate_login,
    validate_password,
    validate_signup,
)


class TestEmail:
    def test_normalized(self) -> None:
        assert validate_email("  Ana@Example.COM ") == "ana@example.com"

    @pytest.mark.parametrize(
        ("value", "message"),
        [
            (None, "Email is required"),
            ("", "Email is required"),
            ("a@b", "Email must be at least 5 characters long"),
            ("ana.example.com", "Please enter a valid email address"),
            ("ana@example", "Please enter a valid email address"),
            ("a" * 250 + "@x.co", "Email address is too long"),
        ],
    )
    def test_rejected(self, value, message: str) -> None:
        with pytest.raises(FieldError, match=message):
            validate_email(value)


class TestPassword:
    def test_accepted(self) -> None:
        assert validate_password("Harbor7!x") == "Harbor7!x"

    @pytest.mark.parametrize(
        ("value", "message"),
        [
            (None, "Password is required"),
            ("Ab1!", "Password must be at least 6 characters long"),
            ("x" * 129, "Password cannot exceed 128 characters"),
            ("PASSWORD", "Please choose a stronger password"),
            ("letmein", "Please choose a stronger password"),
            ("Harbor111!", "Avoid using sequential or repeated characters"),
            ("xyABC9!q", "Avoid using sequential or repeated characters"),
            ("abcdef", "Avoid using sequential or repeated characters"),
        ],
    )
    def test_rejected(self, value, message: str) -> None:
        with pytest.raises(FieldError, match=message):
            validate_password(value)


class TestFullName:
    def test_split(self) -> None:
        assert validate_full_name("  Ana María López ") == ("Ana María López", "Ana", "María López")

    def test_single_word_name_fills_both(self) -> None:
        assert validate_full_name("Cher") == ("Cher", "Cher", "Cher")

    def test_hyphen_and_apostrophe(self) -> None:
        assert validate_full_name("Siobhán O'Neil-Hart")[2] == "O'Neil-Hart"

    @pytest.mark.parametrize(
        ("value", "message"),
        [
            (None, "Full name is required"),
            ("A", "Full name must be at least 2 characters long"),
            ("A" * 101, "Full name cannot exceed 100 characters"),
            ("R2 D2", "Name can only contain letters, spaces, hyphens, and apostrophes"),
            ("<script>", "Name can only contain letters, spaces, hyphens, and apostrophes"),
        ],
    )
    def test_rejected(self, value, message: str) -> None:
        with pytest.raises(FieldError, match=message):
            validate_full_name(value)


class TestSignup:
    def test_valid(self) -> None:
        data = validate_signup("Ana María López", "ANA@example.com", "Harbor7!x", True)
        assert data.email == "ana@example.com"
        assert data.first_name == "Ana"
        assert data.last_name == "María López"

    def test_terms_required(self) -> None:
        with pytest.raises(ValidationFailed) as exc_info:
            validate_signup("Ana López", "ana@example.com", "Harbor7!x", False)
        assert exc_info.value.message == "You must agree to the terms and conditions"

    def test_all_errors_collected_first_surfaced(self) -> None:
        with pytest.raises(ValidationFailed) as exc_info:
            validate_signup("", "bad", "123456", False)
        err = exc_info.value
        assert err.errors == [
            "Full name is required",
            "Email must be at least 5 characters long",
            "Please choose a stronger password",
            "You must agree to the terms and conditions",
        ]
        assert err.message == "Full name is required"
        assert err.status_code == 400


class TestLogin:
    def test_strength_rules_not_applied(self) -> None:
        """Seeded accounts use simple passwords; login must still accept them."""
        data = validate_login(" Admin@Barnacle.com", "admin123")
        assert data.email == "admin@barnacle.com"
        assert data.password == "admin123"

    def test_missing_password(self) -> None:
        with pytest.raises(ValidationFailed, match="Password is required"):
            validate_login("ana@example.com", "")

    def test_overlong_password(self) -> None:
        with pytest.raises(ValidationFailed, match="Invalid credentials"):
            validate_login("ana@example.com", "x" * 129)


class TestSanitizeInput:
    def test_strips_markup_and_controls(self) -> None:
        assert sanitize_input("  <Admin>\x00 ") == "Admin"

    def test_non_string_unchanged(self) -> None:
        assert sanitize_input(42) == 42
