"""Human-readable order numbers and opaque identifiers."""
from __future__ import annotations

import secrets
import string
import time
import uuid

from truthhair.core.constants import ORDER_NUMBER_PREFIX, ORDER_NUMBER_RANDOM_LENGTH

BASE36_ALPHABET = string.digits + string.ascii_lowercase


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 encoding expects a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(BASE36_ALPHABET[rem])
    return "".join(reversed(digits))


def generate_order_number(timestamp_ms: int | None = None) -> str:
    """Return ``TH-<base36 ms timestamp>-<5 random base36 chars>`` upper-cased."""
    if timestamp_ms is None:
        timestamp_ms = time.time_ns() // 1_000_000
    suffix = "".join(
        secrets.choice(BASE36_ALPHABET) for _ in range(ORDER_NUMBER_RANDOM_LENGTH)
    )
    return f"{ORDER_NUMBER_PREFIX}-{to_base36(timestamp_ms)}-{suffix}".upper()


def generate_id() -> str:
    return str(uuid.uuid4())
