"""gridcalc - a reactive grid of named cells with formula recalculation.

Usage::

    from gridcalc import Spreadsheet, load_spreadsheet

    sheet = Spreadsheet()
    sheet["A1"] = "1"
    sheet["B1"] = "=A1+1"
    sheet["C1"] = "=B1+1"
    sheet.set_contents("A1", "5")   # -> ["A1", "B1", "C1"]
    sheet["C1"]                     # 7.0

    sheet.save("grid.json")
    again = load_spreadsheet("grid.json")
"""

import os
from collections.abc import Callable

from gridcalc._errors import (
    CircularDependencyError,
    FormulaFormatError,
    InvalidNameError,
    SpreadsheetError,
    SpreadsheetReadWriteError,
)
from gridcalc._spreadsheet import DEFAULT_VERSION, Spreadsheet
from gridcalc.calc import Formula, FormulaError

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CircularDependencyError",
    "DEFAULT_VERSION",
    "Formula",
    "FormulaError",
    "FormulaFormatError",
    "InvalidNameError",
    "Spreadsheet",
    "SpreadsheetError",
    "SpreadsheetReadWriteError",
    "load_spreadsheet",
]


def load_spreadsheet(
    filename: str | os.PathLike[str],
    is_valid: Callable[[str], bool] | None = None,
    normalize: Callable[[str], str] | None = None,
    version: str = DEFAULT_VERSION,
) -> Spreadsheet:
    """Open a spreadsheet saved with :meth:`Spreadsheet.save`.

    Raises ``SpreadsheetReadWriteError`` if the file cannot be read, is not
    a spreadsheet, was saved under a different *version*, or holds an
    invalid name, a malformed formula or a circular dependency.
    """
    return Spreadsheet.from_file(filename, is_valid=is_valid, normalize=normalize, version=version)
