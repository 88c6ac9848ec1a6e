"""Dashboard aggregation engine.

Computes the dashboard rollups for a time window from validated traces:
totals, rates, period-over-period trends, top models, daily cost and status
counts. Also hosts the analytics built on top of the same traces: insights,
cost analysis, performance assessment and model comparison.

Every rate and average is zero-guarded: an empty window gives zeros, never
NaN, infinity or an exception.
"""

import logging
import math
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from . import config
from .formatting import format_currency, parse_timestamp
from .models import Trace

logger = logging.getLogger(__name__)


class TimeRange(str, Enum):
    """Supported dashboard windows."""

    HOUR = "1h"
    DAY = "24h"
    WEEK = "7d"
    MONTH = "30d"
    QUARTER = "90d"

    @property
    def window(self) -> timedelta:
        return _WINDOWS[self]

    @classmethod
    def parse(cls, token: Union[str, "TimeRange"]) -> "TimeRange":
        """Resolve a range token or one of its aliases ("week", "last_24h", ...).

        Raises
        ------
        ValueError
            If the token is not a supported time range.
        """
        if isinstance(token, cls):
            return token
        key = str(token).strip().lower()
        try:
            return cls(_ALIASES.get(key, key))
        except ValueError:
            raise ValueError(f"Unsupported time range: {token!r}") from None


_WINDOWS: Dict[TimeRange, timedelta] = {
    TimeRange.HOUR: timedelta(hours=1),
    TimeRange.DAY: timedelta(hours=24),
    TimeRange.WEEK: timedelta(days=7),
    TimeRange.MONTH: timedelta(days=30),
    TimeRange.QUARTER: timedelta(days=90),
}

_ALIASES: Dict[str, str] = {
    "last_hour": "1h",
    "last_24h": "24h",
    "today": "24h",
    "last_7d": "7d",
    "week": "7d",
    "last_30d": "30d",
    "month": "30d",
    "last_90d": "90d",
}


# =============================================================================
# RESULT MODELS
# =============================================================================

class _Result(BaseModel):
    model_config = ConfigDict(frozen=True)


class TrendData(_Result):
    """Percent change of each metric vs. the previous window."""

    traces: float = 0.0
    cost: float = 0.0
    tokens: float = 0.0
    latency: float = 0.0


class ModelStats(_Result):
    model: str
    count: int
    cost: float


class DailyCost(_Result):
    date: str  # YYYY-MM-DD
    cost: float


class StatusCount(_Result):
    status: str
    count: int


class DashboardSummary(_Result):
    """Dashboard rollup for one window, with trends against the window before it."""

    time_range: str
    total_traces: int = 0
    total_cost: float = 0.0
    total_tokens: int = 0
    avg_latency: float = 0.0
    error_rate: float = 0.0
    success_rate: float = 0.0
    trends: TrendData = Field(default_factory=TrendData)
    top_models: List[ModelStats] = Field(default_factory=list)
    cost_by_day: List[DailyCost] = Field(default_factory=list)
    traces_by_status: List[StatusCount] = Field(default_factory=list)


class Insight(_Result):
    type: str  # success, info, warning
    category: str  # cost, performance, reliability, usage, optimization
    title: str
    description: str
    severity: str  # info, low, medium, high


class CostBreakdown(_Result):
    model: str
    total_cost: float
    count: int
    percentage: float


class CostAnalysis(_Result):
    total_cost: float = 0.0
    daily_average: float = 0.0
    monthly_projection: float = 0.0
    cost_breakdown: List[CostBreakdown] = Field(default_factory=list)
    most_expensive_model: Optional[str] = None
    highest_cost: float = 0.0


class PerformanceMetrics(_Result):
    total_traces: int = 0
    avg_latency: float = 0.0
    p50_latency: float = 0.0
    p95_latency: float = 0.0
    p99_latency: float = 0.0
    error_rate: float = 0.0
    success_rate: float = 0.0
    avg_cost_per_request: float = 0.0
    status: str = "excellent"
    recommendation: str = ""


class ModelComparison(_Result):
    model: str
    total_calls: int
    total_cost: float
    avg_cost_per_request: float
    avg_latency: float
    avg_tokens_per_request: float
    efficiency_score: float  # lower is better


# =============================================================================
# WINDOWS
# =============================================================================

def window_bounds(
    time_range: Union[str, TimeRange],
    now: Optional[datetime] = None,
) -> Tuple[datetime, datetime, datetime]:
    """Return (previous_start, current_start, end) for a time range.

    The current window is [current_start, end), the previous one
    [previous_start, current_start), both of the same length.
    """
    window = TimeRange.parse(time_range).window
    end = parse_timestamp(now) if now is not None else datetime.now(timezone.utc)
    start = end - window
    return start - window, start, end


def partition_windows(
    traces: Iterable[Trace],
    time_range: Union[str, TimeRange],
    now: Optional[datetime] = None,
) -> Tuple[List[Trace], List[Trace]]:
    """Split traces into (current, previous) windows; traces outside both are dropped."""
    prev_start, start, end = window_bounds(time_range, now)
    current: List[Trace] = []
    previous: List[Trace] = []

    for trace in traces:
        if start <= trace.timestamp < end:
            current.append(trace)
        elif prev_start <= trace.timestamp < start:
            previous.append(trace)

    return current, previous


# =============================================================================
# PRIMITIVES
# =============================================================================

def percent_change(previous: float, current: float) -> float:
    """Percent change from previous to current.

    Defined as 0.0 whenever previous is 0, including previous=0, current=5,
    so a trend never becomes infinite.
    """
    if previous == 0:
        return 0.0
    return 100.0 * (current - previous) / previous


def safe_ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0.0 when the denominator is 0."""
    if denominator == 0:
        return 0.0
    return numerator / denominator


def total_cost(traces: Sequence[Trace]) -> float:
    return math.fsum(t.total_cost_usd for t in traces)


def average_latency(traces: Sequence[Trace]) -> float:
    return safe_ratio(sum(t.duration_ms for t in traces), len(traces))


def error_rate(traces: Sequence[Trace]) -> float:
    """Percent of traces whose status is anything other than success."""
    failed = sum(1 for t in traces if not t.is_success)
    return 100.0 * safe_ratio(failed, len(traces))


def success_rate(traces: Sequence[Trace]) -> float:
    if not traces:
        return 0.0
    return 100.0 - error_rate(traces)


def percentile(values: Sequence[float], pct: float) -> float:
    """Linear-interpolated percentile (0-100) of values; 0.0 when empty."""
    if not values:
        return 0.0
    ordered = sorted(values)
    rank = (len(ordered) - 1) * pct / 100.0
    lower = math.floor(rank)
    upper = math.ceil(rank)
    if lower == upper:
        return float(ordered[lower])
    return ordered[lower] + (ordered[upper] - ordered[lower]) * (rank - lower)


# =============================================================================
# GROUPINGS
# =============================================================================

def top_models(traces: Sequence[Trace], limit: Optional[int] = None) -> List[ModelStats]:
    """Group traces by model, ordered by count desc then model name asc.

    Parameters
    ----------
    traces : Sequence[Trace]
        Traces of one window.
    limit : Optional[int]
        Keep at most this many groups; None or 0 keeps all.
    """
    counts: Counter = Counter()
    costs: Dict[str, List[float]] = defaultdict(list)
    for trace in traces:
        counts[trace.model] += 1
        costs[trace.model].append(trace.total_cost_usd)

    stats = [
        ModelStats(model=model, count=count, cost=math.fsum(costs[model]))
        for model, count in counts.items()
    ]
    stats.sort(key=lambda m: (-m.count, m.model))
    return stats[:limit] if limit else stats


def cost_by_day(traces: Sequence[Trace], tz: Optional[str] = None) -> List[DailyCost]:
    """Sum trace cost per calendar day in the given timezone.

    Only days with at least one trace appear; gaps are left to the caller.
    """
    zone = config.get_timezone(tz)
    daily: Dict[str, List[float]] = defaultdict(list)
    for trace in traces:
        day = trace.timestamp.astimezone(zone).date().isoformat()
        daily[day].append(trace.total_cost_usd)

    return [DailyCost(date=day, cost=math.fsum(daily[day])) for day in sorted(daily)]


def traces_by_status(traces: Sequence[Trace]) -> List[StatusCount]:
    """Count traces per observed status, count desc then status asc."""
    counts = Counter(t.status for t in traces)
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [StatusCount(status=status, count=count) for status, count in ordered]


# =============================================================================
# DASHBOARD SUMMARY
# =============================================================================

def compute_dashboard_summary(
    current: Sequence[Trace],
    previous: Sequence[Trace],
    time_range: Union[str, TimeRange],
    tz: Optional[str] = None,
    top_models_limit: Optional[int] = None,
) -> DashboardSummary:
    """Compute the dashboard summary for one window.

    Parameters
    ----------
    current : Sequence[Trace]
        Traces inside the selected window.
    previous : Sequence[Trace]
        Traces inside the preceding window of equal length, for trends.
    time_range : Union[str, TimeRange]
        "1h", "24h", "7d", "30d" or "90d".
    tz : Optional[str]
        IANA timezone used to bucket cost_by_day, defaults to DASHBOARD_TIMEZONE.
    top_models_limit : Optional[int]
        Number of model groups to keep, defaults to TOP_MODELS_LIMIT.

    Returns
    -------
    DashboardSummary
        All-zero with empty groupings when `current` is empty.
    """
    token = TimeRange.parse(time_range)
    limit = config.TOP_MODELS_LIMIT if top_models_limit is None else top_models_limit

    cur_cost = total_cost(current)
    cur_tokens = sum(t.total_tokens for t in current)
    cur_latency = average_latency(current)
    cur_error_rate = error_rate(current)

    trends = TrendData(
        traces=percent_change(len(previous), len(current)),
        cost=percent_change(total_cost(previous), cur_cost),
        tokens=percent_change(sum(t.total_tokens for t in previous), cur_tokens),
        latency=percent_change(average_latency(previous), cur_latency),
    )

    summary = DashboardSummary(
        time_range=token.value,
        total_traces=len(current),
        total_cost=cur_cost,
        total_tokens=cur_tokens,
        avg_latency=cur_latency,
        error_rate=cur_error_rate,
        success_rate=success_rate(current),
        trends=trends,
        top_models=top_models(current, limit),
        cost_by_day=cost_by_day(current, tz),
        traces_by_status=traces_by_status(current),
    )
    logger.debug(
        f"Dashboard summary for {token.value}: {summary.total_traces} traces "
        f"({len(previous)} in previous window)"
    )
    return summary


# =============================================================================
# ANALYTICS
# =============================================================================

def generate_insights(summary: DashboardSummary) -> List[Insight]:
    """Derive actionable insights from a dashboard summary."""
    insights: List[Insight] = []

    if summary.error_rate > 5.0:
        insights.append(Insight(
            type="warning",
            category="reliability",
            title="High Error Rate",
            description=(
                f"Error rate is {summary.error_rate:.2f}%, which is above "
                f"the recommended 5% threshold"
            ),
            severity="high",
        ))
    elif summary.error_rate > 1.0:
        insights.append(Insight(
            type="info",
            category="reliability",
            title="Elevated Error Rate",
            description=(
                f"Error rate is {summary.error_rate:.2f}%, consider investigating recent changes"
            ),
            severity="medium",
        ))

    if summary.top_models and summary.total_cost > 0:
        costliest = max(summary.top_models, key=lambda m: (m.cost, -m.count))
        share = 100.0 * costliest.cost / summary.total_cost
        if share > 80.0:
            insights.append(Insight(
                type="info",
                category="cost",
                title="Cost Concentration",
                description=(
                    f"{share:.1f}% of costs come from {costliest.model}. "
                    f"Consider model optimization or caching"
                ),
                severity="low",
            ))

    avg_cost = safe_ratio(summary.total_cost, summary.total_traces)
    if avg_cost > 0.01:
        insights.append(Insight(
            type="info",
            category="cost",
            title="High Average Cost",
            description=(
                f"Average cost per request is {format_currency(avg_cost)}. "
                f"Consider optimizing prompts or using cheaper models"
            ),
            severity="low",
        ))

    if summary.success_rate > 99.0:
        insights.append(Insight(
            type="success",
            category="reliability",
            title="Excellent Reliability",
            description=f"Success rate is {summary.success_rate:.2f}% - great job!",
            severity="info",
        ))

    if summary.top_models:
        most_used = summary.top_models[0]
        if most_used.count > 100:
            insights.append(Insight(
                type="info",
                category="usage",
                title="High Model Usage",
                description=(
                    f"{most_used.model} is your most used model with {most_used.count} calls. "
                    f"Ensure you're getting the best value"
                ),
                severity="info",
            ))

    if len(summary.top_models) == 1 and summary.top_models[0].count > 50:
        insights.append(Insight(
            type="info",
            category="optimization",
            title="Single Model Usage",
            description=(
                f"You're only using {summary.top_models[0].model}. Consider testing "
                f"other models for cost/performance optimization"
            ),
            severity="low",
        ))
    elif len(summary.top_models) >= 3:
        insights.append(Insight(
            type="success",
            category="optimization",
            title="Good Model Diversity",
            description=(
                f"Using {len(summary.top_models)} different models - great job "
                f"optimizing for different use cases!"
            ),
            severity="info",
        ))

    return insights


def compute_cost_analysis(
    traces: Sequence[Trace],
    time_range: Union[str, TimeRange],
) -> CostAnalysis:
    """Cost totals, daily average and 30-day projection for one window."""
    total = total_cost(traces)
    days = max(TimeRange.parse(time_range).window / timedelta(days=1), 1.0)
    daily_average = total / days

    breakdown = [
        CostBreakdown(
            model=m.model,
            total_cost=m.cost,
            count=m.count,
            percentage=100.0 * safe_ratio(m.cost, total),
        )
        for m in top_models(traces)
    ]
    breakdown.sort(key=lambda b: (-b.total_cost, b.model))

    return CostAnalysis(
        total_cost=total,
        daily_average=daily_average,
        monthly_projection=daily_average * 30,
        cost_breakdown=breakdown,
        most_expensive_model=breakdown[0].model if breakdown else None,
        highest_cost=breakdown[0].total_cost if breakdown else 0.0,
    )


# (p95 ceiling in ms, error rate ceiling in %, status, recommendation)
_PERFORMANCE_TIERS = (
    (500, 1.0, "excellent", "Performance is optimal. Continue monitoring."),
    (1000, 5.0, "good", "Performance is acceptable but could be improved."),
    (2000, 10.0, "fair", "Performance issues detected. Consider optimization."),
)


def compute_performance_metrics(traces: Sequence[Trace]) -> PerformanceMetrics:
    """Latency percentiles, error rate and an overall performance status."""
    latencies = [t.duration_ms for t in traces]
    p95 = percentile(latencies, 95)
    err = error_rate(traces)

    status, recommendation = "poor", "Critical performance issues. Immediate attention required."
    for max_p95, max_error_rate, tier, advice in _PERFORMANCE_TIERS:
        if p95 < max_p95 and err < max_error_rate:
            status, recommendation = tier, advice
            break

    return PerformanceMetrics(
        total_traces=len(traces),
        avg_latency=average_latency(traces),
        p50_latency=percentile(latencies, 50),
        p95_latency=p95,
        p99_latency=percentile(latencies, 99),
        error_rate=err,
        success_rate=success_rate(traces),
        avg_cost_per_request=safe_ratio(total_cost(traces), len(traces)),
        status=status,
        recommendation=recommendation,
    )


def compare_models(traces: Sequence[Trace]) -> List[ModelComparison]:
    """Per-model cost/latency comparison, most efficient (lowest score) first."""
    groups: Dict[str, List[Trace]] = defaultdict(list)
    for trace in traces:
        groups[trace.model].append(trace)

    comparisons: List[ModelComparison] = []
    for model, group in groups.items():
        calls = len(group)
        cost = total_cost(group)
        avg_cost = safe_ratio(cost, calls)
        avg_latency = average_latency(group)
        comparisons.append(ModelComparison(
            model=model,
            total_calls=calls,
            total_cost=cost,
            avg_cost_per_request=avg_cost,
            avg_latency=avg_latency,
            avg_tokens_per_request=safe_ratio(sum(t.total_tokens for t in group), calls),
            efficiency_score=avg_latency / 1000.0 + avg_cost * 100.0,
        ))

    comparisons.sort(key=lambda c: (c.efficiency_score, c.model))
    return comparisons
