"""Service for detecting overlaps and grouping conflicting events."""

from __future__ import annotations

from event_lottery.domain.models import Event


def events_overlap(a: Event, b: Event) -> bool:
    """Return True when the two spans intersect.

    Overlap rule: a.start < b.end AND b.start < a.end.
    Exact boundary touches (end == start) are NOT considered conflicts.
    """
    return a.start < b.end and b.start < a.end


def group_overlapping_events(events: list[Event]) -> list[list[Event]]:
    """Partition *events* into groups connected by the transitive closure of overlap.

    Two events share a group when a chain of pairwise overlaps links them,
    even if they do not overlap each other directly. Groups come out in the
    order their first member appears in *events*, and members keep their
    input order.
    """
    # Union-Find over positions; scoped to this call
    parent = list(range(len(events)))

    def find(x: int) -> int:
        root = x
        while parent[root] != root:
            root = parent[root]
        while parent[x] != root:
            parent[x], x = root, parent[x]
        return root

    def union(x: int, y: int) -> None:
        rx, ry = find(x), find(y)
        if rx != ry:
            # Keep the earliest position as root so group order follows the input
            if ry < rx:
                rx, ry = ry, rx
            parent[ry] = rx

    for i in range(len(events)):
        for j in range(i + 1, len(events)):
            if events_overlap(events[i], events[j]):
                union(i, j)

    groups: dict[int, list[Event]] = {}
    for i, event in enumerate(events):
        groups.setdefault(find(i), []).append(event)
    return list(groups.values())
