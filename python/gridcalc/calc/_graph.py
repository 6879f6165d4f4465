"""Dependency graph between cell names with ordered, set-like edges."""

from __future__ import annotations

from collections.abc import Iterable


class DependencyGraph:
    """Tracks which cells reference which.

    An edge ``X -> Y`` means Y's formula reads X: X is a *dependee* of Y and
    Y is a *dependent* of X. Duplicate edges collapse to one. Edge sets are
    dicts used as ordered sets, so every query yields names in insertion
    order and tests can rely on it.
    """

    __slots__ = ("_dependents", "_dependees", "_size")

    def __init__(self) -> None:
        # cell -> cells that read from it
        self._dependents: dict[str, dict[str, None]] = {}
        # cell -> cells it reads from (reverse edges)
        self._dependees: dict[str, dict[str, None]] = {}
        self._size = 0

    @property
    def size(self) -> int:
        """Number of distinct edges."""
        return self._size

    def __len__(self) -> int:
        return self._size

    def __contains__(self, edge: object) -> bool:
        if not isinstance(edge, tuple) or len(edge) != 2:
            return False
        dependee, dependent = edge
        return dependent in self._dependents.get(dependee, {})

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_dependents(self, name: str) -> tuple[str, ...]:
        return tuple(self._dependents.get(name, ()))

    def get_dependees(self, name: str) -> tuple[str, ...]:
        return tuple(self._dependees.get(name, ()))

    def has_dependents(self, name: str) -> bool:
        return bool(self._dependents.get(name))

    def has_dependees(self, name: str) -> bool:
        return bool(self._dependees.get(name))

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add_dependency(self, dependee: str, dependent: str) -> None:
        """Add the edge ``dependee -> dependent`` (no-op if present)."""
        targets = self._dependents.setdefault(dependee, {})
        if dependent in targets:
            return
        targets[dependent] = None
        self._dependees.setdefault(dependent, {})[dependee] = None
        self._size += 1

    def remove_dependency(self, dependee: str, dependent: str) -> None:
        """Remove the edge ``dependee -> dependent`` (no-op if absent)."""
        targets = self._dependents.get(dependee)
        if targets is None or dependent not in targets:
            return
        del targets[dependent]
        if not targets:
            del self._dependents[dependee]
        sources = self._dependees[dependent]
        del sources[dependee]
        if not sources:
            del self._dependees[dependent]
        self._size -= 1

    def replace_dependees(self, dependent: str, new_dependees: Iterable[str]) -> None:
        """Make *new_dependees* the exact set of edges into *dependent*.

        Edges kept by the replacement stay where they are, so unchanged
        neighbours keep their query order.
        """
        wanted = dict.fromkeys(new_dependees)
        for old in self.get_dependees(dependent):
            if old not in wanted:
                self.remove_dependency(old, dependent)
        for dependee in wanted:
            self.add_dependency(dependee, dependent)

    def replace_dependents(self, dependee: str, new_dependents: Iterable[str]) -> None:
        """Make *new_dependents* the exact set of edges out of *dependee*."""
        wanted = dict.fromkeys(new_dependents)
        for old in self.get_dependents(dependee):
            if old not in wanted:
                self.remove_dependency(dependee, old)
        for dependent in wanted:
            self.add_dependency(dependee, dependent)

    # ------------------------------------------------------------------
    # Speculative views
    # ------------------------------------------------------------------

    def with_dependees(self, dependent: str, new_dependees: Iterable[str]) -> GraphView:
        """Read-only view of this graph as if ``replace_dependees`` had run."""
        return GraphView(self, dependent, new_dependees)


class GraphView:
    """Overlay answering ``get_dependents`` for one pending edge replacement.

    The underlying graph is never touched, which makes it safe to plan a
    recalculation (and detect cycles) before committing an edit.
    """

    __slots__ = ("_graph", "_dependent", "_added", "_removed")

    def __init__(
        self,
        graph: DependencyGraph,
        dependent: str,
        new_dependees: Iterable[str],
    ) -> None:
        new = dict.fromkeys(new_dependees)
        old = graph.get_dependees(dependent)
        self._graph = graph
        self._dependent = dependent
        self._added = {n for n in new if n not in old}
        self._removed = {n for n in old if n not in new}

    def get_dependents(self, name: str) -> tuple[str, ...]:
        current = self._graph.get_dependents(name)
        if name in self._removed:
            return tuple(d for d in current if d != self._dependent)
        if name in self._added:
            return (*current, self._dependent)
        return current
