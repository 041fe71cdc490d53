"""Invite code generation and normalization.

Codes are short, upper-case alphanumeric tokens drawn from ``secrets`` so they
cannot be predicted from earlier codes. Uniqueness against live codes is the
registry's job; callers retry generation on collision.
"""

from __future__ import annotations

import secrets
import string

INVITE_CODE_ALPHABET = string.ascii_uppercase + string.digits
DEFAULT_INVITE_CODE_LENGTH = 8


def generate_invite_code(length: int = DEFAULT_INVITE_CODE_LENGTH) -> str:
    """Return a fresh random invite code of ``length`` characters."""
    if length <= 0:
        raise ValueError("Invite code length must be positive")
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(length))


def normalize_invite_code(code: str) -> str:
    """Canonical form used for registry lookups: trimmed and upper-cased."""
    return code.strip().upper()
