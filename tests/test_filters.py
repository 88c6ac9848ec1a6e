"""Tests for trace filtering, search and filter summaries."""

import pytest

from tracer_dashboard.filters import (
    FilterSummary,
    TraceExplorer,
    available_options,
    filter_traces,
    matches_query,
    summarize,
)


def ids(traces):
    return [t.trace_id for t in traces]


class TestFilterTraces:
    """Tests for filter_traces."""

    def test_no_filters_returns_everything_in_order(self, sample_traces):
        traces, summary, _, _ = filter_traces(sample_traces, "all", "all", "")

        assert traces == sample_traces
        assert summary.count == len(sample_traces)

    def test_status_filter(self, sample_traces):
        result = filter_traces(sample_traces, status_filter="success")
        assert ids(result.traces) == ["trace-a1", "trace-d4"]

    def test_model_filter(self, sample_traces):
        result = filter_traces(sample_traces, model_filter="gpt-4")
        assert ids(result.traces) == ["trace-a1", "trace-c3"]

    def test_filters_combine_with_and(self, sample_traces):
        result = filter_traces(sample_traces, status_filter="timeout", model_filter="gpt-4", query="c3")
        assert ids(result.traces) == ["trace-c3"]

        result = filter_traces(sample_traces, status_filter="error", model_filter="gpt-4")
        assert result.traces == []

    def test_search_is_case_insensitive(self, sample_traces):
        assert ids(filter_traces(sample_traces, query="CLAUDE").traces) == ["trace-b2"]
        assert ids(filter_traces(sample_traces, query="carol").traces) == ["trace-d4"]

    @pytest.mark.parametrize("query, expected", [
        ("trace-a", ["trace-a1"]),  # trace_id
        ("gemini", ["trace-d4"]),  # model
        ("timeout", ["trace-c3"]),  # status
        ("bob", ["trace-b2"]),  # user_id
    ])
    def test_search_fields(self, sample_traces, query, expected):
        assert ids(filter_traces(sample_traces, query=query).traces) == expected

    def test_whitespace_in_query_is_literal(self, trace_factory):
        traces = [
            trace_factory("trace-1", model="gpt-4", user_id=None),
            trace_factory("trace-2", model="gpt 4", user_id=None),
        ]

        assert ids(filter_traces(traces, query=" 4").traces) == ["trace-2"]
        assert ids(filter_traces(traces, query="   ").traces) == []

    def test_only_empty_query_matches_everything(self, sample_traces):
        assert len(filter_traces(sample_traces, query="").traces) == 4

    def test_none_values_mean_no_filter(self, sample_traces):
        result = filter_traces(sample_traces, status_filter=None, model_filter=None, query=None)
        assert len(result.traces) == 4

    def test_available_options_come_from_unfiltered_source(self, sample_traces):
        result = filter_traces(sample_traces, status_filter="error")

        assert result.available_models == ["claude-3", "gemini-pro", "gpt-4"]
        assert result.available_statuses == ["error", "success", "timeout"]

    def test_empty_collection(self):
        result = filter_traces([], "all", "all", "")

        assert result.traces == []
        assert result.summary == FilterSummary()
        assert result.available_models == []


class TestFilterSummary:
    """Tests for summarize over the filtered subset."""

    def test_summary_values(self, sample_traces):
        summary = summarize(sample_traces)

        assert summary.count == 4
        assert summary.total_cost == pytest.approx(3.75)
        assert summary.avg_latency == 275.0
        assert summary.success_rate == 50.0

    def test_summary_over_filtered_subset(self, sample_traces):
        summary = filter_traces(sample_traces, model_filter="gpt-4").summary

        assert summary.count == 2
        assert summary.total_cost == pytest.approx(1.5)
        assert summary.avg_latency == 300.0
        assert summary.success_rate == 50.0

    def test_empty_summary_is_zero(self):
        summary = summarize([])
        assert summary == FilterSummary(count=0, total_cost=0.0, avg_latency=0.0, success_rate=0.0)


class TestMatchesQuery:
    def test_missing_user_id_is_skipped(self, trace_factory):
        trace = trace_factory("abc", user_id=None)
        assert matches_query(trace, "abc")
        assert not matches_query(trace, "none")


class TestTraceExplorer:
    """Options are fixed per source collection; filters can change freely."""

    def test_options_computed_once(self, sample_traces):
        explorer = TraceExplorer(sample_traces)

        narrowed = explorer.apply(status_filter="success", query="gemini")

        assert ids(narrowed.traces) == ["trace-d4"]
        assert narrowed.available_models == explorer.available_models
        assert explorer.available_statuses == available_options(sample_traces)[1]

    def test_source_is_snapshotted(self, sample_traces):
        source = list(sample_traces)
        explorer = TraceExplorer(source)
        source.pop()

        assert len(explorer.apply().traces) == 4
