"""Environment driven settings for the dashboard engine and its API boundary.

Values are read once at import time. A `.env` file found from the current
working directory is loaded first but never overrides real environment variables.
"""

import os
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv, find_dotenv

load_dotenv(find_dotenv(usecwd=True), override=False)

# Tracer API (transport boundary)
API_URL = os.getenv("TRACER_API_URL", "http://localhost:8001")
API_KEY = os.getenv("TRACER_API_KEY", "")

# Timeouts for API requests (seconds)
DEFAULT_TIMEOUT = float(os.getenv("TRACER_API_TIMEOUT", "30.0"))
HEALTH_TIMEOUT = float(os.getenv("TRACER_HEALTH_TIMEOUT", "5.0"))

# Max traces requested per window when loading the dashboard
TRACE_FETCH_LIMIT = int(os.getenv("TRACE_FETCH_LIMIT", "1000"))

# Engine defaults
DEFAULT_TIMEZONE = os.getenv("DASHBOARD_TIMEZONE", "UTC")
DURATION_TOLERANCE_MS = float(os.getenv("DURATION_TOLERANCE_MS", "1.0"))
TOP_MODELS_LIMIT = int(os.getenv("TOP_MODELS_LIMIT", "10"))  # 0 = unlimited


def get_timezone(name: Optional[str] = None) -> ZoneInfo:
    """Resolve an IANA timezone name, falling back to DASHBOARD_TIMEZONE.

    Parameters
    ----------
    name : Optional[str]
        IANA name such as "UTC" or "Europe/Berlin".

    Raises
    ------
    ValueError
        If the name is not a known timezone.
    """
    tz_name = name or DEFAULT_TIMEZONE
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {tz_name!r}") from e
