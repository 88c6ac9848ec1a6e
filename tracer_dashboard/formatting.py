"""Display formatting helpers.

Pure functions turning raw numbers and timestamps into display strings. These
replace the per-state formatting helpers so every view formats the same way.
"""

import math
from datetime import datetime, timezone
from typing import Optional, Union

Timestamp = Union[str, datetime]

# Relative time buckets, in seconds
_MINUTE = 60
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR
_MONTH = 30 * _DAY


def parse_timestamp(value: Timestamp) -> datetime:
    """Parse an ISO 8601 string or datetime into a timezone-aware datetime.

    Naive values are taken to be UTC.

    Parameters
    ----------
    value : Union[str, datetime]
        e.g. "2025-01-15T10:30:00Z", "2025-01-15T10:30:00+02:00" or a datetime.

    Returns
    -------
    datetime
        Timezone-aware datetime.

    Raises
    ------
    ValueError
        If the value is empty or not a valid ISO 8601 timestamp.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        if not value.strip():
            raise ValueError("Empty timestamp")
        # trailing Z is shorthand for UTC, older fromisoformat does not accept it
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        raise ValueError(f"Unsupported timestamp type: {type(value).__name__}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_duration(ms: Union[int, float]) -> str:
    """Format a duration in milliseconds.

    Examples: 999 -> "999ms", 1000 -> "1.00s", 90000 -> "1.50m", 5400000 -> "1.50h".
    """
    if ms < 1000:
        return f"{ms}ms"

    seconds = ms / 1000
    if seconds < 60:
        return f"{seconds:.2f}s"

    minutes = seconds / 60
    if minutes < 60:
        return f"{minutes:.2f}m"

    return f"{minutes / 60:.2f}h"


def format_currency(amount: float) -> str:
    """Format a USD amount with 2 to 6 fractional digits.

    Rounds to 6 digits, then drops trailing zeros down to a minimum of 2 so
    very small costs are not displayed as "$0.00".

    Examples: 1.5 -> "$1.50", 0.000123 -> "$0.000123", 1234.5 -> "$1,234.50".
    """
    sign = "-" if amount < 0 else ""
    text = f"{abs(amount):,.6f}"
    whole, fraction = text.split(".")
    fraction = fraction.rstrip("0").ljust(2, "0")
    if sign and not whole.strip("0,") and not fraction.strip("0"):
        sign = ""  # rounds to zero
    return f"{sign}${whole}.{fraction}"


def format_number(value: Union[int, float]) -> str:
    """Format a number with thousands separators (e.g. 1234567 -> "1,234,567")."""
    if isinstance(value, float) and not value.is_integer():
        return f"{value:,}"
    return f"{int(value):,}"


def format_tokens(value: int) -> str:
    """Format a token count with K/M suffix (e.g. "1.5M", "250.0K", "999")."""
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    elif value >= 1_000:
        return f"{value / 1_000:.1f}K"
    return str(value)


def format_date(value: Timestamp) -> str:
    """Format a timestamp as e.g. "Jan 15, 2025, 02:30:45 PM"."""
    return parse_timestamp(value).strftime("%b %d, %Y, %I:%M:%S %p")


def format_relative_time(value: Timestamp, now: Optional[datetime] = None) -> str:
    """Format a timestamp relative to `now`.

    Every bucket floors: 59s -> "59s ago", 90s -> "1m ago", 29d -> "29d ago",
    45d -> "1mo ago", 400d -> "1y ago". Timestamps in the future read "0s ago".

    Parameters
    ----------
    value : Union[str, datetime]
        Timestamp to describe.
    now : Optional[datetime]
        Reference instant, defaults to the current UTC time.

    Raises
    ------
    ValueError
        If the timestamp cannot be parsed.
    """
    then = parse_timestamp(value)
    reference = parse_timestamp(now) if now is not None else datetime.now(timezone.utc)

    seconds = max(0, math.floor((reference - then).total_seconds()))
    if seconds < _MINUTE:
        return f"{seconds}s ago"
    if seconds < _HOUR:
        return f"{seconds // _MINUTE}m ago"
    if seconds < _DAY:
        return f"{seconds // _HOUR}h ago"
    if seconds < _MONTH:
        return f"{seconds // _DAY}d ago"

    months = seconds // _MONTH
    if months < 12:
        return f"{months}mo ago"
    return f"{months // 12}y ago"
