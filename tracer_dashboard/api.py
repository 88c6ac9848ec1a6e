"""Async client for the tracer API.

This is the boundary between the network and the engine. Every fetch returns
a FetchResult: either validated data or a FetchError describing what went
wrong. Nothing here substitutes sample data when the API is unavailable.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

import httpx

from . import config
from .aggregation import DashboardSummary, TimeRange, compute_dashboard_summary, window_bounds
from .errors import FetchError, FetchResult, ValidationError
from .models import Trace, validate_trace, validate_traces

logger = logging.getLogger(__name__)


def _get_headers() -> Dict[str, str]:
    """Get default headers for API requests."""
    return {"X-API-Key": config.API_KEY}


async def _get_json(path: str, params: Optional[Dict[str, Any]] = None) -> Union[Any, FetchError]:
    """GET a JSON document, mapping every failure to a FetchError."""
    url = f"{config.API_URL}{path}"
    try:
        async with httpx.AsyncClient(timeout=config.DEFAULT_TIMEOUT) as client:
            resp = await client.get(url, headers=_get_headers(), params=params)
            resp.raise_for_status()
            return resp.json()
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        logger.warning(f"Tracer API returned {status} for {url}")
        return FetchError(kind="http", message=f"HTTP {status} from {path}", status_code=status)
    except httpx.RequestError as e:
        logger.warning(f"Tracer API request to {url} failed: {e}")
        return FetchError(kind="transport", message=str(e) or type(e).__name__)
    except ValueError as e:
        logger.warning(f"Tracer API returned invalid JSON for {url}: {e}")
        return FetchError(kind="decode", message=f"Invalid JSON from {path}")


def _validation_failure(e: ValidationError) -> FetchError:
    logger.warning(f"Rejected trace batch: {e}")
    return FetchError(kind="validation", message=str(e))


async def fetch_traces(
    start: datetime,
    end: datetime,
    limit: Optional[int] = None,
) -> FetchResult[List[Trace]]:
    """Fetch and validate traces with start <= timestamp < end.

    Parameters
    ----------
    start, end : datetime
        Window bounds, sent as ISO 8601.
    limit : Optional[int]
        Maximum number of traces, defaults to TRACE_FETCH_LIMIT.

    Returns
    -------
    FetchResult[List[Trace]]
        Validated traces, or the reason the fetch failed.
    """
    params = {
        "start_time": start.isoformat(),
        "end_time": end.isoformat(),
        "limit": limit or config.TRACE_FETCH_LIMIT,
    }
    data = await _get_json("/api/v1/traces", params=params)
    if isinstance(data, FetchError):
        return FetchResult.failure(data)
    if not isinstance(data, dict) or not isinstance(data.get("traces", []), list):
        return FetchResult.failure(
            FetchError(kind="decode", message="Expected an object with a 'traces' list")
        )

    try:
        traces = validate_traces(data.get("traces") or [])
    except ValidationError as e:
        return FetchResult.failure(_validation_failure(e))
    return FetchResult.success(traces)


async def fetch_trace(trace_id: str) -> FetchResult[Trace]:
    """Fetch a single trace with all its spans."""
    data = await _get_json(f"/api/v1/traces/{trace_id}")
    if isinstance(data, FetchError):
        return FetchResult.failure(data)

    # Accept both {"trace": {...}} and the bare trace object
    record = data.get("trace", data) if isinstance(data, dict) else None
    if not isinstance(record, dict):
        return FetchResult.failure(FetchError(kind="decode", message="Expected a trace object"))

    try:
        trace = validate_trace(record)
    except ValidationError as e:
        return FetchResult.failure(_validation_failure(e))
    return FetchResult.success(trace)


async def load_dashboard(
    time_range: Union[str, TimeRange] = TimeRange.DAY,
    now: Optional[datetime] = None,
    tz: Optional[str] = None,
) -> FetchResult[DashboardSummary]:
    """Fetch the current and previous windows and compute the dashboard summary.

    Parameters
    ----------
    time_range : Union[str, TimeRange]
        "1h", "24h", "7d", "30d" or "90d".
    now : Optional[datetime]
        End of the current window, defaults to the current time.
    tz : Optional[str]
        Timezone for cost_by_day buckets.

    Returns
    -------
    FetchResult[DashboardSummary]
        The computed summary, or the first fetch/validation error.

    Raises
    ------
    ValueError
        If time_range is not a supported range.
    """
    prev_start, start, end = window_bounds(time_range, now)

    current = await fetch_traces(start, end)
    if not current.ok:
        return FetchResult.failure(current.error)

    previous = await fetch_traces(prev_start, start)
    if not previous.ok:
        return FetchResult.failure(previous.error)

    summary = compute_dashboard_summary(current.value, previous.value, time_range, tz=tz)
    return FetchResult.success(summary)


async def check_health() -> bool:
    """True when the tracer service answers its health endpoint with 200.

    Timeouts are a kind of httpx.RequestError and report unhealthy.
    """
    url = f"{config.API_URL}/health"
    try:
        async with httpx.AsyncClient(timeout=config.HEALTH_TIMEOUT) as client:
            response = await client.get(url)  # unauthenticated
    except httpx.RequestError as e:
        logger.warning(f"Health check to {url} failed: {e}")
        return False
    return response.status_code == 200
