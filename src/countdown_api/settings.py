from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timezone, tzinfo
from typing import List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - COUNTDOWN_DATA_FILE: path to the JSON data file. Default './data/countdowns.json'
    - ADMIN_TOKEN: shared secret for the admin gate; empty disables auth (default)
    - ADMIN_COOKIE_DAYS: lifetime of the admin cookie in days (default: 365)
    - TIMEZONE: IANA zone used for naive admin date/time input (default: 'UTC')
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: root log level (default: 'INFO')
    """

    data_file: str
    admin_token: str
    admin_cookie_days: int
    timezone: str
    cors_allow_origins: List[str]
    log_level: str

    @property
    def auth_enabled(self) -> bool:
        return bool(self.admin_token)

    @property
    def admin_cookie_max_age(self) -> int:
        """Cookie lifetime in seconds."""
        return self.admin_cookie_days * 24 * 60 * 60

    @property
    def zone(self) -> tzinfo:
        if self.timezone == "UTC":
            return timezone.utc
        return ZoneInfo(self.timezone)


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(value: str, default: int) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_timezone(value: str) -> str:
    name = value.strip()
    if name.upper() == "UTC":
        return "UTC"
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        # Fallback to UTC if the zone is unknown
        return "UTC"
    return name


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    log_level = _get_env("LOG_LEVEL", "INFO").strip().upper()
    if log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        log_level = "INFO"

    return Settings(
        data_file=_get_env("COUNTDOWN_DATA_FILE", "./data/countdowns.json").strip(),
        admin_token=os.getenv("ADMIN_TOKEN", "").strip(),
        admin_cookie_days=_parse_int(_get_env("ADMIN_COOKIE_DAYS", "365"), 365),
        timezone=_parse_timezone(_get_env("TIMEZONE", "UTC")),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=log_level,
    )
