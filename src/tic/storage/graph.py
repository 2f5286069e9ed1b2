"""Relationship graph checks for the parent forest and the dependency DAG.

The graph is an arena of items indexed by id; edges are the ``parent`` and
``depends_on`` identifier fields. All checks run against a *proposed* graph
(the stored items with one item's edges replaced) so an illegal mutation is
rejected before anything is written.
"""

from __future__ import annotations

from collections.abc import Mapping

from tic.errors import ValidationError
from tic.models import WorkItem


def parent_chain_reaches(graph: Mapping[str, WorkItem], start: str | None,
                         target: str) -> bool:
    """Walk ``parent`` pointers from ``start``; True if ``target`` is reached.

    The visited set bounds the walk by the item count, so a pre-existing
    cycle elsewhere in the graph cannot loop forever.
    """
    current = start
    visited: set[str] = set()
    while current is not None:
        if current == target:
            return True
        if current in visited:
            return False
        visited.add(current)
        item = graph.get(current)
        current = item.parent if item else None
    return False


def dependency_closure_reaches(graph: Mapping[str, WorkItem], start: str,
                               target: str) -> bool:
    """DFS over ``depends_on`` from ``start``; True if ``target`` is reached."""
    stack = [start]
    visited: set[str] = set()
    while stack:
        current = stack.pop()
        if current == target:
            return True
        if current in visited:
            continue
        visited.add(current)
        item = graph.get(current)
        if item:
            stack.extend(item.depends_on)
    return False


def check_relationships(graph: Mapping[str, WorkItem], item_id: str,
                        parent: str | None, depends_on: list[str],
                        previous: WorkItem | None = None) -> None:
    """Validate an item's proposed edges against the rest of the graph.

    ``graph`` holds the stored items; it may or may not already contain
    ``item_id``. The item's stored edges are replaced by the proposed ones
    before walking, so the check sees the final state.

    ``previous`` is the item as stored before an update. Edges it already
    had are not required to resolve: a pull may have left one dangling, and
    that must not block an unrelated edit. Cycle walks always cover every edge.

    Raises ValidationError naming the violated rule.
    """
    proposed = dict(graph)
    proposed[item_id] = WorkItem(id=item_id, parent=parent, depends_on=list(depends_on))
    kept_parent = previous.parent if previous else None
    kept_deps = set(previous.depends_on) if previous else set()

    if parent is not None:
        if parent == item_id:
            raise ValidationError("self-parent",
                                  f"Work item {item_id} cannot be its own parent")
        if parent not in graph and parent != kept_parent:
            raise ValidationError("missing-parent", f"Parent {parent} does not exist")
        if parent_chain_reaches(proposed, parent, item_id):
            raise ValidationError("parent-cycle",
                                  f"Circular parent chain detected for {item_id}")

    for dep_id in depends_on:
        if dep_id == item_id:
            raise ValidationError("self-dependency",
                                  f"Work item {item_id} cannot depend on itself")
        if dep_id not in graph and dep_id not in kept_deps:
            raise ValidationError("missing-dependency",
                                  f"Dependency {dep_id} does not exist")
    for dep_id in depends_on:
        if dependency_closure_reaches(proposed, dep_id, item_id):
            raise ValidationError(
                "dependency-cycle",
                f"Circular dependency chain detected for {item_id} (via {dep_id})",
            )
