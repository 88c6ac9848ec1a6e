"""Tests for span tree building and cycle detection.

Trees are built from lightweight stand-ins so cyclic data (which the model
validator rejects) can still be exercised.
"""

from types import SimpleNamespace

from tracer_dashboard.tree import build_span_tree, find_cycle, flatten_tree, span_depths


def span(span_id, parent_span_id=None):
    return SimpleNamespace(span_id=span_id, parent_span_id=parent_span_id)


class TestBuildSpanTree:
    """Tests for build_span_tree."""

    def test_builds_flat_list_as_roots(self):
        """Spans without parents become roots."""
        tree = build_span_tree([span("a"), span("b")])

        assert [n.span_id for n in tree] == ["a", "b"]

    def test_builds_parent_child_relationship(self):
        tree = build_span_tree([span("parent"), span("child", "parent")])

        assert len(tree) == 1
        assert tree[0].span_id == "parent"
        assert [c.span_id for c in tree[0].children] == ["child"]

    def test_children_listed_before_parent(self):
        """Discovery order does not need to be parent-first."""
        tree = build_span_tree([span("child", "root"), span("root")])

        assert [n.span_id for n in tree] == ["root"]
        assert tree[0].children[0].span_id == "child"

    def test_handles_orphaned_spans(self):
        """Spans with missing parents become roots."""
        tree = build_span_tree([span("orphan", "nonexistent")])
        assert [n.span_id for n in tree] == ["orphan"]

    def test_handles_empty_list(self):
        assert build_span_tree([]) == []

    def test_cycle_does_not_loop(self):
        """Cyclic spans are promoted to roots instead of hanging."""
        spans = [span("a", "b"), span("b", "a"), span("c", "a")]

        tree = build_span_tree(spans)
        flattened = [s.span_id for s, _ in flatten_tree(tree)]

        assert sorted(flattened) == ["a", "b", "c"]


class TestFindCycle:
    """Tests for find_cycle."""

    def test_no_cycle_in_forest(self):
        spans = [span("root"), span("child", "root"), span("grandchild", "child")]
        assert find_cycle(spans) is None

    def test_detects_three_node_cycle(self):
        cycle = find_cycle([span("a", "c"), span("b", "a"), span("c", "b")])

        assert cycle is not None
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"a", "b", "c"}

    def test_detects_self_parent(self):
        assert find_cycle([span("a", "a")]) == ["a", "a"]

    def test_branch_leading_into_cycle(self):
        """A span hanging off a cycle reports only the cycle members."""
        cycle = find_cycle([span("tail", "x"), span("x", "y"), span("y", "x")])
        assert set(cycle) == {"x", "y"}


class TestDepths:
    """Tests for flatten_tree and span_depths."""

    def test_depth_first_order(self):
        spans = [
            span("root"),
            span("child-1", "root"),
            span("child-2", "root"),
            span("grandchild", "child-1"),
        ]

        order = [(s.span_id, depth) for s, depth in flatten_tree(build_span_tree(spans))]

        assert order == [
            ("root", 0),
            ("child-1", 1),
            ("grandchild", 2),
            ("child-2", 1),
        ]

    def test_span_depths(self):
        depths = span_depths([span("root"), span("child", "root"), span("orphan", "gone")])
        assert depths == {"root": 0, "child": 1, "orphan": 0}
