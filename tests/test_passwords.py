"""
tests/test_passwords.py -- Unit tests for auth/passwords.py.

Coverage:
  - hash_password: salted (same input, different output), bcrypt format
  - verify_password: match, mismatch, fails closed on None / malformed hashes
  - Input past bcrypt's 72-byte limit: hashed and verified, not rejected
  - DUMMY_HASH: a real bcrypt hash that no user password is expected to match
"""

from __future__ import annotations

from auth.passwords import DUMMY_HASH, hash_password, verify_password


class TestHashPassword:
    def test_hash_is_salted(self) -> None:
        assert hash_password("Harbor7!x") != hash_password("Harbor7!x")

    def test_hash_is_bcrypt(self) -> None:
        assert hash_password("Harbor7!x").startswith("$2")

    def test_hash_does_not_contain_plaintext(self) -> None:
        assert "Harbor7!x" not in hash_password("Harbor7!x")


class TestVerifyPassword:
    def test_correct_password(self) -> None:
        hashed = hash_password("Harbor7!x")
        assert verify_password("Harbor7!x", hashed) is True

    def test_wrong_password(self) -> None:
        hashed = hash_password("Harbor7!x")
        assert verify_password("harbor7!x", hashed) is False

    def test_none_hash_is_non_match(self) -> None:
        assert verify_password("anything", None) is False

    def test_empty_hash_is_non_match(self) -> None:
        assert verify_password("anything", "") is False

    def test_malformed_hash_is_non_match(self) -> None:
        """A corrupted stored hash must fail closed, not raise."""
        assert verify_password("anything", "not-a-bcrypt-hash") is False

    def test_dummy_hash_is_valid_bcrypt(self) -> None:
        assert DUMMY_HASH.startswith("$2")
        assert verify_password("barnacle_timing_dummy", DUMMY_HASH) is True
        assert verify_password("admin123", DUMMY_HASH) is False


class TestLongPasswords:
    """bcrypt 5 raises on input over 72 bytes; both sides cut to 72 bytes first."""

    LONG_ASCII = "Harbor7!x" + "q" * 119
    LONG_MULTIBYTE = "Harbor7!" + "€" * 32

    def test_long_ascii_round_trip(self) -> None:
        assert len(self.LONG_ASCII) == 128
        assert verify_password(self.LONG_ASCII, hash_password(self.LONG_ASCII)) is True

    def test_multibyte_round_trip(self) -> None:
        assert len(self.LONG_MULTIBYTE) == 40
        assert len(self.LONG_MULTIBYTE.encode("utf-8")) > 72
        assert verify_password(self.LONG_MULTIBYTE, hash_password(self.LONG_MULTIBYTE)) is True

    def test_first_72_bytes_decide(self) -> None:
        hashed = hash_password(self.LONG_ASCII)
        assert verify_password(self.LONG_ASCII[:72] + "different tail", hashed) is True
        assert verify_password("x" + self.LONG_ASCII[1:], hashed) is False

    def test_multibyte_character_split_at_boundary(self) -> None:
        # 71 ASCII bytes then a 3-byte character: the cut lands inside it.
        password = "H7!" + "q" * 68 + "€€"
        assert verify_password(password, hash_password(password)) is True
