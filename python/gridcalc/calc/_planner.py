"""Recalculation planning: dependents-first depth-first search with cycle checks."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import Protocol

from gridcalc._errors import CircularDependencyError

logger = logging.getLogger(__name__)


class DependentsSource(Protocol):
    """Anything that can list the direct dependents of a cell."""

    def get_dependents(self, name: str) -> tuple[str, ...]: ...


def cells_to_recalculate(root: str, graph: DependentsSource) -> list[str]:
    """Return *root* followed by every cell that depends on it, in evaluation order.

    No cell appears before one of its dependees. Raises
    ``CircularDependencyError`` if a cycle is reachable from *root*
    (a formula referencing its own cell included).
    """
    return cells_to_recalculate_many((root,), graph)


def cells_to_recalculate_many(
    roots: Iterable[str],
    graph: DependentsSource,
) -> list[str]:
    """Plan a recalculation seeded from several changed cells at once."""
    visited: set[str] = set()
    order: list[str] = []
    for root in roots:
        if root not in visited:
            _visit(root, graph, visited, order)
    order.reverse()
    logger.debug("Recalculation plan: %s", order)
    return order


def _visit(
    start: str,
    graph: DependentsSource,
    visited: set[str],
    order: list[str],
) -> None:
    """Post-order DFS from *start*, appending finished cells to *order*.

    Uses an explicit stack so long formula chains do not hit the
    interpreter's recursion limit. ``on_stack`` holds the current path.
    """
    on_stack: set[str] = {start}
    stack: list[tuple[str, Iterator[str]]] = [(start, iter(graph.get_dependents(start)))]

    while stack:
        node, pending = stack[-1]
        for dependent in pending:
            if dependent in on_stack:
                raise CircularDependencyError(dependent)
            if dependent not in visited:
                on_stack.add(dependent)
                stack.append((dependent, iter(graph.get_dependents(dependent))))
                break
        else:
            stack.pop()
            on_stack.discard(node)
            visited.add(node)
            order.append(node)
