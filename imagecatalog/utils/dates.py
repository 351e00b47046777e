"""Date utilities for scene acquisition times."""
import math
from datetime import datetime, timezone

from dateutil.parser import isoparse

DAYS_PER_DECADE = 3652.5


def parse_rfc3339(value):
    """
    Parse an RFC3339 timestamp.

    Args:
        value: Timestamp string such as 2016-04-01T10:15:00Z

    Returns:
        Timezone-aware datetime

    Raises:
        ValueError: If the value is not a string with a date, time and offset
    """
    if not isinstance(value, str) or "T" not in value.upper():
        raise ValueError(f"not an RFC3339 timestamp: {value!r}")
    parsed = isoparse(value)
    if parsed.tzinfo is None:
        raise ValueError(f"RFC3339 timestamp has no offset: {value!r}")
    return parsed


def try_parse_rfc3339(value):
    """Parse an RFC3339 timestamp, returning None instead of raising."""
    try:
        return parse_rfc3339(value)
    except (ValueError, OverflowError):
        return None


def format_rfc3339(moment):
    """Render a datetime (or unix seconds) as a UTC RFC3339 string."""
    if isinstance(moment, (int, float)):
        moment = datetime.fromtimestamp(moment, tz=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def utcnow():
    return datetime.now(timezone.utc)


def age_in_decades(acquired, now=None):
    """
    Age of an acquisition in decades (days / 3652.5).

    Returns NaN when the acquisition date cannot be parsed.
    """
    if isinstance(acquired, str):
        acquired = try_parse_rfc3339(acquired)
    if acquired is None:
        return math.nan
    now = now or utcnow()
    return (now - acquired).total_seconds() / 86400.0 / DAYS_PER_DECADE
