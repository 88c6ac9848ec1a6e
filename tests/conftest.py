"""Shared pytest fixtures for dashboard engine tests."""

import pytest
import respx

from tracer_dashboard.models import Trace

from factories import make_trace


@pytest.fixture
def trace_factory():
    """Factory returning validated Trace models."""
    def _factory(trace_id="trace-1", **overrides):
        return Trace.model_validate(make_trace(trace_id, **overrides))
    return _factory


@pytest.fixture
def sample_traces(trace_factory):
    """A small mixed collection for filter and aggregation tests."""
    return [
        trace_factory("trace-a1", model="gpt-4", status="success",
                      total_cost_usd=1.0, duration_ms=100, user_id="alice"),
        trace_factory("trace-b2", model="claude-3", status="error",
                      total_cost_usd=2.0, duration_ms=300, user_id="bob"),
        trace_factory("trace-c3", model="gpt-4", status="timeout",
                      total_cost_usd=0.5, duration_ms=500),
        trace_factory("trace-d4", model="gemini-pro", status="success",
                      total_cost_usd=0.25, duration_ms=200, user_id="Carol"),
    ]


@pytest.fixture
def respx_mock():
    """Fixture that provides a respx mock router.

    Configuration:
        - assert_all_mocked=False: Allows unmocked requests to pass through.
        - assert_all_called=True: Ensures every mock defined is actually used.
          Catches typos in mock URLs and dead mocks.
    """
    with respx.mock(assert_all_mocked=False, assert_all_called=True) as mock:
        yield mock
