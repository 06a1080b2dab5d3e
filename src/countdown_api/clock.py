"""Time-remaining computation for countdown displays.

`evaluate` is pure: it holds no timer and touches no shared state, so a
display loop may call it once per second per visible countdown, as often as
it likes. Once a target has arrived it stays arrived for every later `now`.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Union

SECONDS_PER_DAY = 86400
SECONDS_PER_HOUR = 3600
SECONDS_PER_MINUTE = 60

ARRIVED_LABEL = "It's time!"


@dataclass(frozen=True)
class Arrived:
    """The target instant is now or in the past."""

    arrived = True

    @property
    def total_seconds(self) -> int:
        return 0

    @property
    def label(self) -> str:
        return ARRIVED_LABEL

    def as_dict(self) -> Dict[str, Any]:
        return {"arrived": True, "remaining": None, "label": self.label}


@dataclass(frozen=True)
class Remaining:
    """Whole time units left until the target."""

    days: int
    hours: int
    minutes: int
    seconds: int

    arrived = False

    @property
    def total_seconds(self) -> int:
        return (
            self.days * SECONDS_PER_DAY
            + self.hours * SECONDS_PER_HOUR
            + self.minutes * SECONDS_PER_MINUTE
            + self.seconds
        )

    @property
    def label(self) -> str:
        return f"{self.days}d {self.hours:02d}:{self.minutes:02d}:{self.seconds:02d}"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "arrived": False,
            "remaining": {
                "days": self.days,
                "hours": self.hours,
                "minutes": self.minutes,
                "seconds": self.seconds,
            },
            "label": self.label,
        }


DisplayState = Union[Arrived, Remaining]

ARRIVED = Arrived()


def _aware(value: datetime) -> datetime:
    # Naive datetimes are taken as UTC
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# PUBLIC_INTERFACE
def evaluate(now: datetime, target: datetime) -> DisplayState:
    """
    Return the display state of a countdown to `target` as seen at `now`.

    `Arrived` when target <= now. Otherwise the difference is truncated to
    whole seconds and split into days, hours (0..23), minutes (0..59) and
    seconds (0..59). Less than one second left yields Remaining(0, 0, 0, 0).
    """
    diff = _aware(target) - _aware(now)
    if diff <= timedelta(0):
        return ARRIVED

    total = diff.days * SECONDS_PER_DAY + diff.seconds
    days, rest = divmod(total, SECONDS_PER_DAY)
    hours, rest = divmod(rest, SECONDS_PER_HOUR)
    minutes, seconds = divmod(rest, SECONDS_PER_MINUTE)
    return Remaining(days=days, hours=hours, minutes=minutes, seconds=seconds)
