from __future__ import annotations

import secrets
import string
import time
from datetime import date, datetime, timezone, tzinfo
from typing import Container, Optional

DEFAULT_TITLE = "Untitled"
DEFAULT_EMOJI = "⏳"
DEFAULT_COLOR = "#8B5CF6"

_BASE36 = string.digits + string.ascii_uppercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


# PUBLIC_INTERFACE
def generate_id(taken: Container[str] = ()) -> str:
    """
    Return a new URL-safe countdown id.

    The id is the current time in milliseconds (base 36) followed by eight
    random base-36 characters. Ids present in `taken` are never returned.
    """
    while True:
        candidate = _to_base36(time.time_ns() // 1_000_000) + "".join(
            secrets.choice(_BASE36) for _ in range(8)
        )
        if candidate not in taken:
            return candidate


# PUBLIC_INTERFACE
def clean_text(value: Optional[str], default: str = "") -> str:
    """Strip whitespace and substitute `default` when nothing is left."""
    s = (value or "").strip()
    return s or default


# PUBLIC_INTERFACE
def ensure_utc(value: datetime, assume: tzinfo = timezone.utc) -> datetime:
    """
    Return `value` as an aware UTC datetime. Naive values are interpreted in
    the `assume` zone first.
    """
    if value.tzinfo is None or value.utcoffset() is None:
        value = value.replace(tzinfo=assume)
    return value.astimezone(timezone.utc)


# PUBLIC_INTERFACE
def combine_date_time(day: date, hhmm: Optional[str], zone: tzinfo) -> datetime:
    """
    Build an aware UTC instant from a calendar date and an optional 'HH:MM'
    wall-clock time in `zone`. A missing time means midnight.
    """
    hours, minutes = 0, 0
    s = (hhmm or "").strip()
    if s:
        parts = s.split(":")
        if len(parts) < 2:
            raise ValueError("Invalid target_time format. Use 'HH:MM' (e.g., '18:30').")
        try:
            hours, minutes = int(parts[0]), int(parts[1])
        except ValueError as e:
            raise ValueError("Invalid target_time format. Use 'HH:MM' (e.g., '18:30').") from e
        if not (0 <= hours <= 23 and 0 <= minutes <= 59):
            raise ValueError("target_time out of range; hours 0..23 and minutes 0..59.")
    local = datetime(day.year, day.month, day.day, hours, minutes, tzinfo=zone)
    return local.astimezone(timezone.utc)
