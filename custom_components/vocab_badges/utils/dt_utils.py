# File: utils/dt_utils.py
"""Date and time utilities for Vocab Badges.

Pure Python date/time functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

Calendar-day logic (streaks, daily buckets) is always computed in the
configured local timezone, never in UTC: a check-in at 23:59 and one at
00:01 local time land on consecutive days even when both share a UTC date.

Functions:
    - set_default_timezone / get_default_timezone
    - dt_now_local / dt_now_utc
    - dt_today_local
    - as_utc / as_local
    - dt_parse: Normalize str/date/datetime input to an aware datetime
    - dt_parse_date: Parse date strings
    - dt_local_date: Calendar date of an instant in local time
    - dt_days_between: Whole calendar days separating two dates
"""

from __future__ import annotations

from datetime import UTC, date, datetime
import logging
from zoneinfo import ZoneInfo

# Third-party date utilities (no HA dependency)
from dateutil import parser as dateutil_parser

# Module-level logger (no HA dependency)
_LOGGER = logging.getLogger(__name__)

# Default timezone - can be overridden by caller
DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")


# ==============================================================================
# Timezone Configuration
# ==============================================================================


def set_default_timezone(tz: ZoneInfo) -> None:
    """Set the default timezone for all dt_utils functions.

    Call this during integration setup to configure the user's timezone.

    Args:
        tz: ZoneInfo object representing the default timezone
    """
    global DEFAULT_TIME_ZONE  # noqa: PLW0603
    DEFAULT_TIME_ZONE = tz


def get_default_timezone() -> ZoneInfo:
    """Get the current default timezone."""
    return DEFAULT_TIME_ZONE


# ==============================================================================
# Current Date/Time Functions
# ==============================================================================


def dt_now_local(tz: ZoneInfo | None = None) -> datetime:
    """Return the current datetime in local timezone (timezone-aware).

    Args:
        tz: Optional timezone override. Uses DEFAULT_TIME_ZONE if not provided.
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    return datetime.now(tz_info)


def dt_now_utc() -> datetime:
    """Return the current datetime in UTC (timezone-aware)."""
    return datetime.now(UTC)


def dt_today_local(tz: ZoneInfo | None = None) -> date:
    """Return today's date in local timezone as a `datetime.date`."""
    return dt_now_local(tz).date()


# ==============================================================================
# Timezone Conversion
# ==============================================================================


def as_utc(dt_obj: datetime) -> datetime:
    """Convert a datetime to UTC timezone.

    Naive datetimes are assumed to be in the default timezone.
    """
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=DEFAULT_TIME_ZONE)
    return dt_obj.astimezone(UTC)


def as_local(dt_obj: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Convert a datetime to local timezone.

    Naive datetimes are assumed to be in UTC.
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=UTC)
    return dt_obj.astimezone(tz_info)


# ==============================================================================
# Parsing
# ==============================================================================


def dt_parse_date(date_str: str | None) -> date | None:
    """Safely parse a date string into a `datetime.date`.

    Accepts "2025-04-07" (ISO) first, then anything dateutil understands
    (e.g. "Mon Apr 07 2025" as produced by JavaScript's toDateString()).

    Returns:
        datetime.date or None if parsing fails.
    """
    if not date_str or not isinstance(date_str, str):
        return None

    try:
        return date.fromisoformat(date_str)
    except ValueError:
        pass

    try:
        return dateutil_parser.parse(date_str).date()
    except (ValueError, OverflowError):
        _LOGGER.debug("Unparseable date string: %s", date_str)
        return None


def dt_parse(
    dt_input: str | date | datetime | None,
    default_tzinfo: ZoneInfo | None = None,
) -> datetime | None:
    """Normalize str, date or datetime input into a timezone-aware datetime.

    Naive inputs get `default_tzinfo` (DEFAULT_TIME_ZONE if not given).

    Args:
        dt_input: String, date or datetime to normalize, or None
        default_tzinfo: Timezone to use if the input is naive

    Returns:
        Aware datetime, or None if the input could not be parsed.

    Example:
        >>> dt_parse("2025-04-15T08:00:00Z")
        datetime.datetime(2025, 4, 15, 8, 0, tzinfo=datetime.timezone.utc)
    """
    if not dt_input:
        return None

    tz_info = default_tzinfo or DEFAULT_TIME_ZONE
    result: datetime | None = None

    if isinstance(dt_input, datetime):
        result = dt_input
    elif isinstance(dt_input, date):
        result = datetime.combine(dt_input, datetime.min.time())
    elif isinstance(dt_input, str):
        try:
            result = datetime.fromisoformat(dt_input)
        except ValueError:
            try:
                result = dateutil_parser.parse(dt_input)
            except (ValueError, OverflowError):
                _LOGGER.debug("Unparseable datetime string: %s", dt_input)
                return None
    else:
        return None

    if result.tzinfo is None:
        result = result.replace(tzinfo=tz_info)
    return result


# ==============================================================================
# Calendar Day Helpers
# ==============================================================================


def dt_local_date(
    dt_input: str | date | datetime | None, tz: ZoneInfo | None = None
) -> date | None:
    """Return the local calendar date of an instant.

    Plain dates (and ISO date strings) are returned as-is; datetimes are
    converted to the local timezone first.
    """
    if isinstance(dt_input, date) and not isinstance(dt_input, datetime):
        return dt_input
    if isinstance(dt_input, str) and len(dt_input) == 10:
        return dt_parse_date(dt_input)

    parsed = dt_parse(dt_input, default_tzinfo=tz)
    if parsed is None:
        return None
    return as_local(parsed, tz).date()


def dt_days_between(earlier: date, later: date) -> int:
    """Return the number of calendar days from `earlier` to `later`.

    Example:
        dt_days_between(date(2025, 4, 6), date(2025, 4, 7)) → 1
    """
    return (later - earlier).days
