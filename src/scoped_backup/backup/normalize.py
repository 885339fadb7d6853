"""Canonical value normalization and checksums.

Export and import both call ``normalize_value`` and ``compute_checksum``
from here so an archive's hash is reproducible no matter which side
computes it.

Canonical forms:

- ``datetime`` -> ISO-8601 UTC with milliseconds and ``Z``
  (naive values are taken as UTC); ``date`` -> midnight of that day
- ``Decimal`` -> decimal string
- integers outside +/-(2**53 - 1) -> decimal string
- integral floats -> ``int``; NaN and infinities are rejected
- ``bytes`` -> base64 string; ``UUID`` -> string
- mappings -> dicts with keys sorted by code point, recursively
- tuples and sets -> lists
"""

import base64
import hashlib
import json
import math
from collections.abc import Mapping
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

MAX_SAFE_INTEGER = 2**53 - 1


def format_timestamp(value: datetime) -> str:
    """Render a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def normalize_value(value: Any) -> Any:
    """Return the canonical JSON-compatible form of ``value``."""
    if isinstance(value, Enum):
        return normalize_value(value.value)
    if value is None or isinstance(value, (bool, str)):
        return value

    if isinstance(value, int):
        if abs(value) > MAX_SAFE_INTEGER:
            return str(value)
        return value

    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Cannot normalize non-finite float {value!r}")
        if value.is_integer():
            return normalize_value(int(value))
        return value

    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, date):
        return format_timestamp(datetime(value.year, value.month, value.day))

    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, Mapping):
        return {str(k): normalize_value(value[k]) for k in sorted(value, key=str)}

    if isinstance(value, (list, tuple, set, frozenset)):
        items = sorted(value, key=repr) if isinstance(value, (set, frozenset)) else value
        return [normalize_value(item) for item in items]

    raise TypeError(f"Cannot normalize value of type {type(value).__name__}")


def normalize_rows(rows: list[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Normalize a list of rows."""
    return [normalize_value(row) for row in rows]


def canonical_json(value: Any) -> str:
    """Compact JSON of the normalized value, keys sorted."""
    return json.dumps(
        normalize_value(value),
        ensure_ascii=False,
        separators=(",", ":"),
        sort_keys=True,
        allow_nan=False,
    )


def compute_checksum(scope: str, data: Mapping[str, Any]) -> str:
    """SHA-256 (lowercase hex) of the canonical JSON of ``{scope, data}``.

    Independent of key insertion order at every nesting level.
    """
    scope_value = scope.value if isinstance(scope, Enum) else scope
    payload = canonical_json({"scope": scope_value, "data": data})
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
