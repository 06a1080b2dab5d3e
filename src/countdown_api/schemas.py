from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .settings import get_settings
from .utils import (
    DEFAULT_COLOR,
    DEFAULT_EMOJI,
    DEFAULT_TITLE,
    clean_text,
    combine_date_time,
    ensure_utc,
)


def _clean(value: Any, default: str) -> Any:
    # Non-string input is left for pydantic to reject
    if value is None or isinstance(value, str):
        return clean_text(value, default)
    return value


# PUBLIC_INTERFACE
class CountdownCreate(BaseModel):
    """
    Schema for creating or replacing a countdown.

    Text fields are trimmed; a blank title, emoji or color falls back to its
    placeholder instead of being rejected. The target is given either as an
    ISO8601 datetime (`target`) or as `target_date` plus optional
    `target_time` ('HH:MM'). Naive values are read in the configured TIMEZONE.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Vacation",
                "description": "Sunshine, sea, and serenity",
                "target_date": "2026-08-01",
                "target_time": "09:30",
                "emoji": "🏝️",
                "color": "#00D1FF",
            }
        }
    )

    title: str = Field(default=DEFAULT_TITLE, description="Display name of the event")
    description: str = Field(default="", description="Optional free-text description")
    target: Optional[datetime] = Field(default=None, description="Instant the countdown runs to")
    target_date: Optional[date] = Field(default=None, description="Calendar date of the target (YYYY-MM-DD)")
    target_time: Optional[str] = Field(default=None, description="Wall-clock time of the target (HH:MM)")
    emoji: str = Field(default=DEFAULT_EMOJI, description="Display glyph")
    color: str = Field(default=DEFAULT_COLOR, description="Display color token")

    @field_validator("title", mode="before")
    @classmethod
    def clean_title(cls, v: Any) -> Any:
        return _clean(v, DEFAULT_TITLE)

    @field_validator("description", mode="before")
    @classmethod
    def clean_description(cls, v: Any) -> Any:
        return _clean(v, "")

    @field_validator("emoji", mode="before")
    @classmethod
    def clean_emoji(cls, v: Any) -> Any:
        return _clean(v, DEFAULT_EMOJI)

    @field_validator("color", mode="before")
    @classmethod
    def clean_color(cls, v: Any) -> Any:
        return _clean(v, DEFAULT_COLOR)

    @model_validator(mode="after")
    def resolve_target(self) -> "CountdownCreate":
        """
        Collapse target / target_date / target_time into a single aware UTC
        `target`. An explicit `target` wins over the date/time pair.
        """
        zone = get_settings().zone
        if self.target is not None:
            self.target = ensure_utc(self.target, zone)
        elif self.target_date is not None:
            self.target = combine_date_time(self.target_date, self.target_time, zone)
        else:
            raise ValueError("target or target_date is required")
        return self


# PUBLIC_INTERFACE
class CountdownOut(BaseModel):
    """
    Schema returned by the API for a countdown.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "LQ2X5K9Z4TA81C0F",
                "title": "Anniversary",
                "description": "Celebrating love and good times",
                "target": "2026-11-16T12:00:00Z",
                "emoji": "💖",
                "color": "#FF6EC7",
            }
        }
    )

    id: str = Field(..., description="Unique identifier of the countdown")
    title: str = Field(..., description="Display name of the event")
    description: str = Field(default="", description="Free-text description")
    target: datetime = Field(..., description="Instant the countdown runs to (UTC)")
    emoji: str = Field(..., description="Display glyph")
    color: str = Field(..., description="Display color token")


class RemainingOut(BaseModel):
    days: int = Field(..., ge=0)
    hours: int = Field(..., ge=0, le=23)
    minutes: int = Field(..., ge=0, le=59)
    seconds: int = Field(..., ge=0, le=59)


# PUBLIC_INTERFACE
class BoardEntry(CountdownOut):
    """
    A countdown annotated with its display state at the board's `now`.
    `remaining` is null once the target has arrived.
    """

    arrived: bool = Field(..., description="True once the target instant has passed")
    remaining: Optional[RemainingOut] = Field(default=None, description="Time left, if not arrived")
    label: str = Field(..., description="Human readable remaining time or arrival message")


class Board(BaseModel):
    """Countdowns sorted by soonest target."""

    now: datetime = Field(..., description="Instant the display states were computed for")
    items: List[BoardEntry]


class AdminListing(BaseModel):
    items: List[CountdownOut]
    auth_enabled: bool


class LoginRequest(BaseModel):
    token: str = Field(..., description="Shared admin secret")


class LoginStatus(BaseModel):
    auth_enabled: bool
    authenticated: bool
