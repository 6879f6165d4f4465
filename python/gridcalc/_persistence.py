"""JSON file format for spreadsheets.

Layout::

    {
      "version": "default",
      "cells": {
        "A1": {"stringForm": "5"},
        "B1": {"stringForm": "=A1*2"}
      }
    }

Only raw contents are stored. Loading replays each entry through
``Spreadsheet.set_contents`` so the dependency graph and cached values are
rebuilt by the same code path as interactive edits.
"""

from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING, Any

from gridcalc._errors import (
    CircularDependencyError,
    FormulaFormatError,
    InvalidNameError,
    SpreadsheetReadWriteError,
)

if TYPE_CHECKING:
    from gridcalc._spreadsheet import Spreadsheet

logger = logging.getLogger(__name__)


def to_dict(sheet: Spreadsheet) -> dict[str, Any]:
    """Serializable form of *sheet*: its version and every cell's raw content."""
    return {
        "version": sheet.version,
        "cells": {name: {"stringForm": raw} for name, raw in sheet.iter_contents()},
    }


def dump(sheet: Spreadsheet, filename: str | os.PathLike[str]) -> None:
    """Write *sheet* to *filename* as indented JSON."""
    data = to_dict(sheet)
    try:
        with open(filename, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
    except OSError as exc:
        raise SpreadsheetReadWriteError(f"Unable to save spreadsheet to {os.fspath(filename)!r}") from exc
    logger.info("Saved %d cell(s) to %s", len(data["cells"]), os.fspath(filename))


def load(filename: str | os.PathLike[str], sheet: Spreadsheet) -> None:
    """Replay the cells stored in *filename* into the empty *sheet*."""
    try:
        with open(filename, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as exc:
        raise SpreadsheetReadWriteError(f"Unable to read spreadsheet from {os.fspath(filename)!r}") from exc
    except ValueError as exc:
        raise SpreadsheetReadWriteError(f"{os.fspath(filename)!r} is not valid JSON") from exc

    from_dict(data, sheet)
    logger.info("Loaded %d cell(s) from %s", len(sheet), os.fspath(filename))


def from_dict(data: Any, sheet: Spreadsheet) -> None:
    """Replay a :func:`to_dict` payload into *sheet*."""
    cells = _check_layout(data)
    if data["version"] != sheet.version:
        raise SpreadsheetReadWriteError(
            f"Saved spreadsheet has version {data['version']!r}, expected {sheet.version!r}"
        )

    for name, raw in cells:
        try:
            sheet.set_contents(name, raw)
        except InvalidNameError as exc:
            raise SpreadsheetReadWriteError(f"Saved spreadsheet contains an invalid cell name {name!r}") from exc
        except FormulaFormatError as exc:
            raise SpreadsheetReadWriteError(f"Saved spreadsheet contains a malformed formula in {name}") from exc
        except CircularDependencyError as exc:
            raise SpreadsheetReadWriteError(f"Saved spreadsheet contains a circular dependency at {name}") from exc


def _check_layout(data: Any) -> list[tuple[str, str]]:
    """Validate the decoded JSON shape; return ``(name, raw)`` pairs."""
    if not isinstance(data, dict) or not isinstance(data.get("version"), str):
        raise SpreadsheetReadWriteError("Saved spreadsheet has no version")
    cells = data.get("cells", {})
    if not isinstance(cells, dict):
        raise SpreadsheetReadWriteError("Saved spreadsheet 'cells' must be an object")

    pairs: list[tuple[str, str]] = []
    for name, entry in cells.items():
        raw = entry.get("stringForm") if isinstance(entry, dict) else None
        if not isinstance(raw, str):
            raise SpreadsheetReadWriteError(f"Saved cell {name!r} has no stringForm")
        pairs.append((name, raw))
    return pairs
