"""bcrypt credential hashing through passlib.

The work factor comes from settings, so tests and the simulation can run
with cheap rounds while production keeps the default.
"""

from __future__ import annotations

from functools import lru_cache

from passlib.context import CryptContext

DEFAULT_ROUNDS = 12

__all__ = ["hash_password", "verify_password", "dummy_verify", "password_context"]


@lru_cache(maxsize=4)
def password_context(rounds: int = DEFAULT_ROUNDS) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def hash_password(password: str, *, rounds: int = DEFAULT_ROUNDS) -> str:
    return password_context(rounds).hash(password)


def verify_password(password: str, stored_hash: str, *, rounds: int = DEFAULT_ROUNDS) -> bool:
    """Unrecognised or malformed hashes raise ``ValueError`` from passlib."""
    return password_context(rounds).verify(password, stored_hash)


def dummy_verify(*, rounds: int = DEFAULT_ROUNDS) -> bool:
    """Spend one verification's worth of time for an unknown email."""
    return password_context(rounds).dummy_verify()
