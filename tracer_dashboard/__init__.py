"""LLM Tracer Dashboard - aggregation, filtering and timeline layout for traces"""

from .aggregation import (
    DashboardSummary,
    TimeRange,
    compute_dashboard_summary,
    partition_windows,
)
from .errors import (
    FetchError,
    FetchResult,
    InconsistentDurationWarning,
    ValidationError,
)
from .filters import FilterResult, FilterSummary, TraceExplorer, filter_traces
from .models import Span, Trace, validate_traces
from .timeline import TimelineEntry, compute_timeline

__all__ = [
    "DashboardSummary",
    "TimeRange",
    "compute_dashboard_summary",
    "partition_windows",
    "FetchError",
    "FetchResult",
    "InconsistentDurationWarning",
    "ValidationError",
    "FilterResult",
    "FilterSummary",
    "TraceExplorer",
    "filter_traces",
    "Span",
    "Trace",
    "validate_traces",
    "TimelineEntry",
    "compute_timeline",
]

__version__ = "0.1.0"
