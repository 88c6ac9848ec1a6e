"""Trace list filtering and search.

Status filter, then model filter, then a case-insensitive substring search
over trace_id, model, status and user_id. All three must match. The summary
cards under the list are recomputed over the filtered subset.
"""

import logging
from typing import Iterator, List, NamedTuple, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from .aggregation import average_latency, success_rate, total_cost
from .models import Trace

logger = logging.getLogger(__name__)

ALL = "all"


class FilterSummary(BaseModel):
    """Summary stats over the filtered traces."""

    model_config = ConfigDict(frozen=True)

    count: int = 0
    total_cost: float = 0.0
    avg_latency: float = 0.0
    success_rate: float = 0.0


class FilterResult(NamedTuple):
    traces: List[Trace]
    summary: FilterSummary
    available_models: List[str]
    available_statuses: List[str]


def summarize(traces: Sequence[Trace]) -> FilterSummary:
    """Count, total cost, average latency and success rate, zero when empty."""
    return FilterSummary(
        count=len(traces),
        total_cost=total_cost(traces),
        avg_latency=average_latency(traces),
        success_rate=success_rate(traces),
    )


def available_options(traces: Sequence[Trace]) -> Tuple[List[str], List[str]]:
    """Distinct (models, statuses) present in the traces, sorted."""
    models = sorted({t.model for t in traces})
    statuses = sorted({t.status for t in traces})
    return models, statuses


def matches_query(trace: Trace, query: str) -> bool:
    """True if any searchable field contains the query, ignoring case."""
    needle = query.lower()
    if not needle:
        return True
    fields = (trace.trace_id, trace.model, trace.status, trace.user_id)
    return any(needle in value.lower() for value in fields if value)


def _iter_matching(
    traces: Sequence[Trace],
    status_filter: str,
    model_filter: str,
    query: str,
) -> Iterator[Trace]:
    for trace in traces:
        if status_filter != ALL and trace.status != status_filter:
            continue
        if model_filter != ALL and trace.model != model_filter:
            continue
        if not matches_query(trace, query):
            continue
        yield trace


def filter_traces(
    traces: Sequence[Trace],
    status_filter: Optional[str] = ALL,
    model_filter: Optional[str] = ALL,
    query: Optional[str] = "",
) -> FilterResult:
    """Filter and search a trace collection.

    Parameters
    ----------
    traces : Sequence[Trace]
        The full, unfiltered collection.
    status_filter : Optional[str]
        "all" or an exact status.
    model_filter : Optional[str]
        "all" or an exact model name.
    query : Optional[str]
        Free-text search; empty matches everything.

    Returns
    -------
    FilterResult
        (traces, summary, available_models, available_statuses). Filtered
        traces keep their relative order; the available options come from the
        unfiltered collection.
    """
    models, statuses = available_options(traces)
    return _apply(traces, status_filter, model_filter, query, models, statuses)


def _apply(
    traces: Sequence[Trace],
    status_filter: Optional[str],
    model_filter: Optional[str],
    query: Optional[str],
    models: List[str],
    statuses: List[str],
) -> FilterResult:
    filtered = list(_iter_matching(
        traces,
        status_filter or ALL,
        model_filter or ALL,
        query or "",
    ))
    logger.debug(
        f"Filtered {len(traces)} traces to {len(filtered)} "
        f"(status={status_filter!r}, model={model_filter!r}, query={query!r})"
    )
    return FilterResult(
        traces=filtered,
        summary=summarize(filtered),
        available_models=list(models),
        available_statuses=list(statuses),
    )


class TraceExplorer:
    """A trace collection that is filtered repeatedly.

    The available filter options are computed once per source collection,
    not on every filter change.
    """

    def __init__(self, traces: Sequence[Trace]):
        self._traces: Tuple[Trace, ...] = tuple(traces)
        self._models, self._statuses = available_options(self._traces)

    @property
    def traces(self) -> Tuple[Trace, ...]:
        return self._traces

    @property
    def available_models(self) -> List[str]:
        return list(self._models)

    @property
    def available_statuses(self) -> List[str]:
        return list(self._statuses)

    def apply(
        self,
        status_filter: Optional[str] = ALL,
        model_filter: Optional[str] = ALL,
        query: Optional[str] = "",
    ) -> FilterResult:
        return _apply(
            self._traces, status_filter, model_filter, query, self._models, self._statuses
        )
