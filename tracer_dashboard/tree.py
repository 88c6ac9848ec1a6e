"""Parent/child relations between spans of one trace.

parent_span_id is a plain reference, not a pointer, and upstream data does not
guarantee it is acyclic. Every walk here tracks visited span ids, so a cycle
is reported instead of looping.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional, Sequence, Set, Tuple

if TYPE_CHECKING:
    from .models import Span


@dataclass
class SpanNode:
    """A span together with its direct children, in original order."""

    span: "Span"
    children: List["SpanNode"] = field(default_factory=list)

    @property
    def span_id(self) -> str:
        return self.span.span_id


def find_cycle(spans: Sequence["Span"]) -> Optional[List[str]]:
    """Return the span ids forming the first parent cycle, or None.

    Parents that are not part of `spans` end the walk (orphans are roots).

    Parameters
    ----------
    spans : Sequence[Span]
        Spans of a single trace; anything with span_id and parent_span_id works.

    Returns
    -------
    Optional[List[str]]
        Ids along the cycle starting and ending with the same id,
        e.g. ["a", "b", "a"], or None if the relation is a forest.
    """
    parents: Dict[str, Optional[str]] = {s.span_id: s.parent_span_id for s in spans}
    cleared: Set[str] = set()  # ids known to reach a root

    for span in spans:
        path: List[str] = []
        on_path: Set[str] = set()
        current: Optional[str] = span.span_id

        while current is not None and current in parents and current not in cleared:
            if current in on_path:
                start = path.index(current)
                return path[start:] + [current]
            path.append(current)
            on_path.add(current)
            current = parents[current]

        cleared.update(path)

    return None


def build_span_tree(spans: Sequence["Span"]) -> List[SpanNode]:
    """Build the span forest from a flat list.

    Spans whose parent is missing become roots. Spans caught in a parent
    cycle are also promoted to roots so callers always get a finite tree;
    the validator rejects such traces before they get here.

    Returns
    -------
    List[SpanNode]
        Root nodes, in the order their spans appear in `spans`.
    """
    if not spans:
        return []

    nodes: Dict[str, SpanNode] = {s.span_id: SpanNode(span=s) for s in spans}
    in_cycle: Set[str] = set()
    cycle = find_cycle(spans)
    while cycle:
        in_cycle.update(cycle)
        remaining = [s for s in spans if s.span_id not in in_cycle]
        cycle = find_cycle(remaining)

    roots: List[SpanNode] = []
    for span in spans:
        parent_id = span.parent_span_id
        node = nodes[span.span_id]
        if parent_id and parent_id in nodes and span.span_id not in in_cycle:
            nodes[parent_id].children.append(node)
        else:
            roots.append(node)

    return roots


def flatten_tree(roots: Sequence[SpanNode]) -> Iterator[Tuple["Span", int]]:
    """Yield (span, depth) pairs depth-first, roots at depth 0."""
    visited: Set[str] = set()
    stack: List[Tuple[SpanNode, int]] = [(node, 0) for node in reversed(roots)]

    while stack:
        node, depth = stack.pop()
        if node.span_id in visited:
            continue
        visited.add(node.span_id)
        yield node.span, depth
        stack.extend((child, depth + 1) for child in reversed(node.children))


def span_depths(spans: Sequence["Span"]) -> Dict[str, int]:
    """Map each span_id to its nesting depth."""
    return {span.span_id: depth for span, depth in flatten_tree(build_span_tree(spans))}
