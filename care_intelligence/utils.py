"""Small helpers for ids and timestamps."""

from __future__ import annotations

import random
import string
import time
from datetime import date, datetime, timezone
from typing import Optional

from dateutil import parser as dt_parser


_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id(prefix: str, *, size: int = 8) -> str:
    """Generate a short unique identifier with a readable prefix."""

    suffix = "".join(random.choice(_ID_ALPHABET) for _ in range(size))
    return f"{prefix}_{suffix}"


def timestamp_ms() -> int:
    """Return current UTC timestamp in milliseconds."""

    return int(time.time() * 1000)


def coerce_timestamp_ms(value: object) -> Optional[int]:
    """Accept epoch millis, epoch seconds, or an ISO string."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        # Anything below ~2001-09 in millis is treated as seconds.
        return int(value) if value >= 1e12 else int(value * 1000)
    if isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.isdigit():
            return coerce_timestamp_ms(int(raw))
        try:
            parsed = dt_parser.parse(raw)
        except (ValueError, OverflowError):
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp() * 1000)
    return None


def utc_today() -> date:
    """Today's date in UTC, the calendar every per-day computation uses."""
    return datetime.now(timezone.utc).date()


def day_key(ts_ms: Optional[int] = None) -> str:
    """ISO date (UTC) for a timestamp, used to key per-day state."""
    if ts_ms is None:
        return utc_today().isoformat()
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).date().isoformat()
