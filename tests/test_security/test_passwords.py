"""Tests for bcrypt credential hashing."""

from __future__ import annotations

import pytest

from escrow_platform.security.passwords import (
    dummy_verify,
    hash_password,
    password_context,
    verify_password,
)

ROUNDS = 4


class TestHashPassword:
    def test_hash_is_bcrypt_with_configured_rounds(self) -> None:
        stored = hash_password("correct horse", rounds=ROUNDS)
        assert stored.startswith("$2b$04$")

    def test_hash_is_salted(self) -> None:
        first = hash_password("correct horse", rounds=ROUNDS)
        second = hash_password("correct horse", rounds=ROUNDS)
        assert first != second

    def test_hash_does_not_contain_password(self) -> None:
        assert "correct horse" not in hash_password("correct horse", rounds=ROUNDS)

    def test_context_is_cached_per_rounds(self) -> None:
        assert password_context(ROUNDS) is password_context(ROUNDS)


class TestVerifyPassword:
    def test_matching_password(self) -> None:
        stored = hash_password("correct horse", rounds=ROUNDS)
        assert verify_password("correct horse", stored, rounds=ROUNDS)

    def test_wrong_password(self) -> None:
        stored = hash_password("correct horse", rounds=ROUNDS)
        assert not verify_password("battery staple", stored, rounds=ROUNDS)

    def test_password_is_case_sensitive(self) -> None:
        stored = hash_password("Secret", rounds=ROUNDS)
        assert not verify_password("secret", stored, rounds=ROUNDS)

    def test_hash_from_other_cost_still_verifies(self) -> None:
        stored = hash_password("correct horse", rounds=5)
        assert verify_password("correct horse", stored, rounds=ROUNDS)

    @pytest.mark.parametrize("stored", ["plain-text", "pbkdf2_sha256$1$x$y"])
    def test_unrecognised_hash_raises(self, stored: str) -> None:
        with pytest.raises(ValueError):
            verify_password("anything", stored, rounds=ROUNDS)

    def test_dummy_verify_never_matches(self) -> None:
        assert dummy_verify(rounds=ROUNDS) is False
