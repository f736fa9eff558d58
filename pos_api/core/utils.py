"""
Utility helpers shared across repositories/services.
"""

from __future__ import annotations

import secrets
import time
from datetime import datetime, timezone

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    n = abs(value)
    while n:
        n, rem = divmod(n, 36)
        digits.append(_BASE36[rem])
    return ("-" if value < 0 else "") + "".join(reversed(digits))


def random_base36(length: int) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def generate_id(prefix: str = "") -> str:
    """
    Timestamp + random suffix identifier (ex.: ``lqz3k1a0_4f9s2kd``).
    Not collision-proof: two ids in the same millisecond rely on the suffix.
    """
    millis = int(time.time() * 1000)
    return f"{prefix}{to_base36(millis)}_{random_base36(7)}"


def reference_number(prefix: str) -> str:
    """Human-facing document number such as ``ORD-482913`` (last 6 ms digits)."""
    return f"{prefix}-{str(int(time.time() * 1000))[-6:]}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(value: datetime) -> str:
    """Fixed-width UTC timestamp (``2024-05-01T12:00:00.000Z``) so strings sort chronologically."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
