"""Span timeline (Gantt) layout.

Positions each span of a trace as a horizontal bar: start_percent is the
offset from the trace start, width_percent the span duration, both relative
to trace.duration_ms. Bars are clamped to the 0-100% track, so bad timestamps
never push a bar outside it.
"""

import logging
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from . import config
from .errors import InconsistentDurationWarning
from .formatting import format_duration
from .models import Span, Trace
from .tree import span_depths

logger = logging.getLogger(__name__)


class TimelineEntry(BaseModel):
    """Layout of one span bar.

    duration_mismatch flags spans whose timestamps disagree with duration_ms;
    the bar is still laid out from duration_ms.
    """

    model_config = ConfigDict(frozen=True)

    span_id: str
    name: str
    status: str
    depth: int = 0
    start_percent: float
    width_percent: float
    duration_ms: int
    duration_mismatch: bool = False

    @property
    def end_percent(self) -> float:
        return self.start_percent + self.width_percent


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def _has_mismatch(span: Span, tolerance_ms: float) -> bool:
    return abs(span.observed_duration_ms - span.duration_ms) > tolerance_ms


def duration_warnings(
    trace: Trace,
    tolerance_ms: Optional[float] = None,
) -> List[InconsistentDurationWarning]:
    """List spans whose end_time - start_time disagrees with duration_ms."""
    tolerance = config.DURATION_TOLERANCE_MS if tolerance_ms is None else tolerance_ms
    return [
        InconsistentDurationWarning(
            trace_id=trace.trace_id,
            span_id=span.span_id,
            declared_ms=span.duration_ms,
            observed_ms=span.observed_duration_ms,
        )
        for span in trace.spans
        if _has_mismatch(span, tolerance)
    ]


def compute_timeline(trace: Trace, tolerance_ms: Optional[float] = None) -> List[TimelineEntry]:
    """Lay out every span of a trace on a 0-100% track.

    Parameters
    ----------
    trace : Trace
        A validated trace with its spans.
    tolerance_ms : Optional[float]
        Allowed gap between timestamps and duration_ms before a span is
        flagged, defaults to DURATION_TOLERANCE_MS.

    Returns
    -------
    List[TimelineEntry]
        One entry per span, in the trace's original span order. A zero
        duration trace puts every span at start 0 with width 100.
    """
    tolerance = config.DURATION_TOLERANCE_MS if tolerance_ms is None else tolerance_ms
    total_ms = trace.duration_ms
    depths = span_depths(trace.spans)
    entries: List[TimelineEntry] = []

    for span in trace.spans:
        if total_ms == 0:
            start_pct, width_pct = 0.0, 100.0
        else:
            offset_ms = (span.start_time - trace.timestamp).total_seconds() * 1000
            start_pct = _clamp(100.0 * offset_ms / total_ms, 0.0, 100.0)
            width_pct = _clamp(100.0 * span.duration_ms / total_ms, 0.0, 100.0 - start_pct)

        mismatch = _has_mismatch(span, tolerance)
        if mismatch:
            logger.warning(
                f"Span {span.span_id} in trace {trace.trace_id}: duration_ms={span.duration_ms} "
                f"but timestamps span {span.observed_duration_ms:.1f}ms"
            )

        entries.append(TimelineEntry(
            span_id=span.span_id,
            name=span.name,
            status=span.status,
            depth=depths.get(span.span_id, 0),
            start_percent=start_pct,
            width_percent=width_pct,
            duration_ms=span.duration_ms,
            duration_mismatch=mismatch,
        ))

    return entries


def sort_by_start(entries: Sequence[TimelineEntry]) -> List[TimelineEntry]:
    """Chronological copy of the entries; ties keep their original order."""
    return sorted(entries, key=lambda e: e.start_percent)


def axis_end_label(trace: Trace) -> str:
    """Label for the right end of the time axis, e.g. "1.50s"; "0" for empty traces."""
    if trace.duration_ms <= 0:
        return "0"
    return format_duration(trace.duration_ms)
