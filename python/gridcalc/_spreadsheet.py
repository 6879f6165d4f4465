"""Spreadsheet - named cells, their dependency graph and the edit protocol.

Every edit goes through :meth:`Spreadsheet.set_contents`, which plans the
recalculation against a speculative view of the graph first and commits
the graph and the cell store together only once the plan is known to be
acyclic. A rejected edit therefore leaves nothing to undo.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Callable, Iterator

from gridcalc import _persistence
from gridcalc._cell import (
    EMPTY,
    Cell,
    FormulaContent,
    NumberContent,
    classify,
    content_string,
    references,
    unwrap,
)
from gridcalc._errors import CircularDependencyError, InvalidNameError
from gridcalc.calc._evaluator import FormulaError
from gridcalc.calc._graph import DependencyGraph
from gridcalc.calc._parser import Formula
from gridcalc.calc._planner import cells_to_recalculate
from gridcalc.calc._protocol import CellValue

logger = logging.getLogger(__name__)

DEFAULT_VERSION = "default"

CELL_NAME_RE = re.compile(r"[A-Za-z][A-Za-z0-9]*")


def _identity(name: str) -> str:
    return name


def _always_valid(name: str) -> bool:
    return True


class Spreadsheet:
    """A grid of named cells holding numbers, text or formulas.

    Parameters
    ----------
    is_valid : callable, optional
        Extra policy on (normalized) cell names, applied on top of the
        ``letters then letters/digits`` grammar. Defaults to accepting all.
    normalize : callable, optional
        Applied to every cell name, including names inside formulas,
        before validation. Defaults to the identity.
    version : str
        Stamped into saved files and checked when loading.

    Usage::

        sheet = Spreadsheet()
        sheet["A1"] = "5"
        sheet.set_contents("B1", "=A1*2")
        sheet.get_value("B1")  # 10.0
    """

    def __init__(
        self,
        is_valid: Callable[[str], bool] | None = None,
        normalize: Callable[[str], str] | None = None,
        version: str = DEFAULT_VERSION,
    ) -> None:
        self._is_valid = is_valid or _always_valid
        self._normalize = normalize or _identity
        self._version = version
        self._cells: dict[str, Cell] = {}
        self._graph = DependencyGraph()
        self._changed = False

    @classmethod
    def from_file(
        cls,
        filename: str | os.PathLike[str],
        is_valid: Callable[[str], bool] | None = None,
        normalize: Callable[[str], str] | None = None,
        version: str = DEFAULT_VERSION,
    ) -> Spreadsheet:
        """Build a spreadsheet from a file written by :meth:`save`."""
        sheet = cls(is_valid=is_valid, normalize=normalize, version=version)
        _persistence.load(filename, sheet)
        sheet._changed = False
        return sheet

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def version(self) -> str:
        return self._version

    @property
    def changed(self) -> bool:
        """True if the spreadsheet was edited since it was created, loaded or saved."""
        return self._changed

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def set_contents(self, name: str, content: str) -> list[str]:
        """Set a cell from raw text and recalculate everything that depends on it.

        *content* is a number literal, ``=`` followed by a formula, or text;
        the empty string clears the cell. Returns the edited cell followed
        by every direct and indirect dependent, in recalculation order.

        Raises ``InvalidNameError``, ``FormulaFormatError`` or
        ``CircularDependencyError``; in each case the spreadsheet is left
        exactly as it was.
        """
        name = self._check_name(name)
        new = classify(content, self._parse_formula)
        refs = references(new)

        try:
            order = cells_to_recalculate(name, self._graph.with_dependees(name, refs))
        except CircularDependencyError:
            logger.debug("Rejected %s=%r: circular dependency", name, content)
            raise

        self._graph.replace_dependees(name, refs)
        if new == EMPTY:
            self._cells.pop(name, None)
        else:
            self._cells[name] = Cell(new)

        self._recalculate(order)
        self._changed = True
        return order

    def __setitem__(self, name: str, content: str) -> None:
        """``sheet['A1'] = '=B1+1'`` - shorthand for :meth:`set_contents`."""
        self.set_contents(name, content)

    def _recalculate(self, order: list[str]) -> None:
        evaluated = 0
        for name in order:
            cell = self._cells.get(name)
            if cell is not None and isinstance(cell.content, FormulaContent):
                cell.value = cell.content.formula.evaluate(self._lookup)
                evaluated += 1
        logger.debug("Recalculated %d formula cell(s) of %d affected", evaluated, len(order))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_value(self, name: str) -> CellValue:
        """Number, text or ``FormulaError`` held by a cell; ``""`` if empty."""
        cell = self._cells.get(self._check_name(name))
        if cell is None:
            return ""
        if isinstance(cell.content, FormulaContent):
            if cell.value is None:
                cell.value = cell.content.formula.evaluate(self._lookup)
            return cell.value
        return unwrap(cell.content)  # type: ignore[return-value]

    def __getitem__(self, name: str) -> CellValue:
        return self.get_value(name)

    def get_contents(self, name: str) -> float | str | Formula:
        """Unevaluated content: a float, a str or a ``Formula``; ``""`` if empty."""
        cell = self._cells.get(self._check_name(name))
        if cell is None:
            return ""
        return unwrap(cell.content)

    def get_direct_dependents(self, name: str) -> set[str]:
        """Cells whose formulas reference *name* directly."""
        return set(self._graph.get_dependents(self._normalize(name)))

    def get_names_of_all_nonempty_cells(self) -> set[str]:
        return set(self._cells)

    def iter_contents(self) -> Iterator[tuple[str, str]]:
        """Yield (name, raw text) for every non-empty cell, in edit order.

        Setting each raw text on a fresh spreadsheet rebuilds this one.
        """
        for name, cell in list(self._cells.items()):
            yield name, content_string(cell.content)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._normalize(name) in self._cells

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._cells))

    def __len__(self) -> int:
        return len(self._cells)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, filename: str | os.PathLike[str]) -> None:
        """Write every non-empty cell's raw content to a JSON file and clear ``changed``."""
        _persistence.dump(self, filename)
        self._changed = False

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_name(self, name: str) -> str:
        """Normalize *name*, raising ``InvalidNameError`` if it is not a cell name."""
        normalized = self._normalize(name)
        if not self._is_cell_name(normalized):
            raise InvalidNameError(name)
        return normalized

    def _is_cell_name(self, name: str) -> bool:
        return bool(CELL_NAME_RE.fullmatch(name)) and self._is_valid(name)

    def _parse_formula(self, text: str) -> Formula:
        return Formula(text, normalize=self._normalize, is_valid=self._is_cell_name)

    def _lookup(self, name: str) -> float | FormulaError:
        """Numeric value of *name* for formula evaluation. Never mutates."""
        cell = self._cells.get(name)
        if cell is None:
            return FormulaError.ref(name)
        content = cell.content
        if isinstance(content, NumberContent):
            return content.value
        if isinstance(content, FormulaContent):
            if cell.value is None:
                return content.formula.evaluate(self._lookup)
            return cell.value
        return FormulaError.value(name)

    def __repr__(self) -> str:
        return f"<Spreadsheet version={self._version!r} cells={len(self._cells)}>"
