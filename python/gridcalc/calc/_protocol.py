"""Lookup protocol and value types shared by the evaluator and the grid."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Union, runtime_checkable

if TYPE_CHECKING:
    from gridcalc.calc._evaluator import FormulaError

# What get_value() can return: a number, text ("" for empty), or an error.
CellValue = Union[float, str, "FormulaError"]


@runtime_checkable
class Lookup(Protocol):
    """Read-only access to other cells' numeric values during evaluation.

    Returns the cell's number, or a ``FormulaError`` when the cell is empty,
    holds text, or is itself in error. Raising ``KeyError`` is treated the
    same as an undefined (empty) cell.
    """

    def __call__(self, name: str) -> float | FormulaError:
        ...
