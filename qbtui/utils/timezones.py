"""Timezone helpers for diagnostic timestamps."""

from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError, available_timezones

from qbtui.utils.exceptions import TimezoneError

DEFAULT_TIMEZONE = "UTC"

COMMON_TIMEZONES = (
    "UTC",
    "US/Eastern",
    "US/Central",
    "US/Mountain",
    "US/Pacific",
    "Europe/London",
    "Europe/Paris",
    "Europe/Berlin",
    "Europe/Rome",
    "Asia/Tokyo",
    "Asia/Shanghai",
    "Asia/Kolkata",
    "Australia/Sydney",
    "America/Sao_Paulo",
    "America/Mexico_City",
    "America/Toronto",
    "America/New_York",
    "America/Los_Angeles",
    "America/Chicago",
    "Africa/Cairo",
    "Pacific/Auckland",
)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S %Z"


@lru_cache(maxsize=1)
def known_timezones() -> frozenset[str]:
    """All names in the IANA database visible to this interpreter."""
    return frozenset(available_timezones())


def is_valid_timezone(name: str) -> bool:
    """Return True if ``name`` is a known IANA timezone."""
    if not name:
        return False
    if name in known_timezones():
        return True
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def validate_timezone(name: str) -> str:
    """Return ``name`` unchanged or raise TimezoneError."""
    if not is_valid_timezone(name):
        msg = f"Unknown timezone: {name!r}"
        raise TimezoneError(msg, {"hint": "run with --list-timezones"})
    return name


def resolve_timezone(name: str | None) -> timezone | ZoneInfo:
    """Resolve a name to a tzinfo, falling back to UTC."""
    if name and is_valid_timezone(name):
        return ZoneInfo(name)
    return timezone.utc


def format_timestamp(
    name: str | None,
    when: datetime | None = None,
    fmt: str = TIMESTAMP_FORMAT,
) -> str:
    """Format ``when`` (default: now) in the named timezone."""
    moment = when or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(resolve_timezone(name)).strftime(fmt)
