"""Exceptions raised by gridcalc edit, read and file operations.

Evaluation failures are not exceptions: they are ``FormulaError`` values
that flow through formulas (see :mod:`gridcalc.calc._evaluator`).
"""

from __future__ import annotations


class SpreadsheetError(Exception):
    """Base class for every gridcalc exception."""


class InvalidNameError(SpreadsheetError, ValueError):
    """A cell name failed the name grammar or the grid's validator."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Invalid cell name: {name!r}")
        self.name = name


class FormulaFormatError(SpreadsheetError, ValueError):
    """Formula text could not be tokenized or parsed."""


class CircularDependencyError(SpreadsheetError, ValueError):
    """An edit would make a cell depend on itself, directly or indirectly."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Circular dependency detected involving: {name!r}")
        self.name = name


class SpreadsheetReadWriteError(SpreadsheetError):
    """Saving or loading a spreadsheet file failed."""
