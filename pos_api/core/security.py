"""Security helpers (password hashing, API key and bearer token material)."""

from __future__ import annotations

import secrets

from argon2 import PasswordHasher, exceptions as argon_exc

from .utils import random_base36

_ph = PasswordHasher()
_PREFIX = "argon2$"


def hash_password(password: str) -> str:
    """Create an Argon2 hash with a prefix for detection."""
    hashed = _ph.hash(password)
    return f"{_PREFIX}{hashed}"


def verify_password(password: str, stored_hash: str | None) -> bool:
    stored = stored_hash or ""
    if not stored.startswith(_PREFIX):
        return False
    try:
        return _ph.verify(stored[len(_PREFIX):], password)
    except (argon_exc.VerifyMismatchError, argon_exc.VerificationError, argon_exc.InvalidHashError):
        return False


def needs_rehash(stored_hash: str | None) -> bool:
    stored = stored_hash or ""
    if not stored.startswith(_PREFIX):
        return True
    return _ph.check_needs_rehash(stored[len(_PREFIX):])


def new_api_key() -> str:
    return random_base36(30)


def constant_time_equals(left: str | None, right: str | None) -> bool:
    return secrets.compare_digest((left or "").encode(), (right or "").encode())
