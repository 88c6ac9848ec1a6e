"""Raw record builders shared by the test modules."""

from datetime import datetime, timedelta, timezone

BASE_TIME = datetime(2025, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


def make_span(span_id, offset_ms=0, duration_ms=100, parent_span_id=None, **overrides):
    """Build a raw span dict starting offset_ms after BASE_TIME."""
    start = BASE_TIME + timedelta(milliseconds=offset_ms)
    span = {
        "span_id": span_id,
        "parent_span_id": parent_span_id,
        "name": f"span-{span_id}",
        "model": "gpt-4",
        "provider": "openai",
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(milliseconds=duration_ms)).isoformat(),
        "duration_ms": duration_ms,
        "prompt_tokens": 10,
        "completion_tokens": 5,
        "total_tokens": 15,
        "cost_usd": 0.001,
        "status": "success",
    }
    span.update(overrides)
    return span


def make_trace(trace_id="trace-1", **overrides):
    """Build a raw trace dict with sensible defaults."""
    trace = {
        "trace_id": trace_id,
        "organization_id": "org-test",
        "project_id": "proj-test",
        "timestamp": BASE_TIME.isoformat(),
        "duration_ms": 1000,
        "status": "success",
        "total_cost_usd": 0.01,
        "total_tokens": 100,
        "model": "gpt-4",
        "provider": "openai",
        "spans": [],
    }
    trace.update(overrides)
    return trace
