"""Integration tests: replaying contents, JSON save/load and file errors."""

from __future__ import annotations

import json
import os
import tempfile

import pytest

import gridcalc
from gridcalc import (
    Formula,
    FormulaError,
    Spreadsheet,
    SpreadsheetReadWriteError,
    load_spreadsheet,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _raw(content: float | str | Formula) -> str:
    """Text that reproduces a get_contents() result when set again."""
    if isinstance(content, Formula):
        return f"={content}"
    if isinstance(content, float):
        return repr(content)
    return content


def _build_model() -> Spreadsheet:
    """Mixed numbers, text, formulas, an error and a forward reference."""
    sheet = Spreadsheet()
    sheet.set_contents("Rate", "0.25")
    sheet.set_contents("Base", "1200")
    sheet.set_contents("Tax", "=Base * Rate")
    sheet.set_contents("Net", "=Base - Tax")
    sheet.set_contents("Label", "net income")
    sheet.set_contents("Ratio", "=Net / Missing")
    sheet.set_contents("Broken", "=Tax / (Rate - 0.25)")
    sheet.set_contents("Bad", "=Label + 1")
    return sheet


def _write_json(directory: str, payload: object) -> str:
    path = os.path.join(directory, "sheet.json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f)
    return path


# ---------------------------------------------------------------------------
# Replay
# ---------------------------------------------------------------------------


class TestReplay:
    def test_replay_reproduces_values(self) -> None:
        original = _build_model()
        copy = Spreadsheet()
        for name in original:
            copy.set_contents(name, _raw(original.get_contents(name)))

        assert copy.get_names_of_all_nonempty_cells() == original.get_names_of_all_nonempty_cells()
        for name in original:
            assert copy.get_value(name) == original.get_value(name)

    def test_replay_in_reverse_order(self) -> None:
        """Forward references resolve once their dependees arrive."""
        original = _build_model()
        copy = Spreadsheet()
        for name in reversed(list(original)):
            copy.set_contents(name, _raw(original.get_contents(name)))
        for name in original:
            assert copy.get_value(name) == original.get_value(name)

    def test_replay_through_iter_contents(self) -> None:
        original = _build_model()
        copy = Spreadsheet()
        for name, raw in original.iter_contents():
            copy.set_contents(name, raw)
        for name in original:
            assert copy.get_contents(name) == original.get_contents(name)
            assert copy.get_value(name) == original.get_value(name)

    def test_overflowing_literal_never_reaches_the_grid(self) -> None:
        sheet = _build_model()
        with pytest.raises(gridcalc.FormulaFormatError):
            sheet.set_contents("Huge", "=1e400*0+1")
        sheet.set_contents("Huge", "1e400")
        assert sheet.get_value("Huge") == "1e400"
        copy = Spreadsheet()
        for name, raw in sheet.iter_contents():
            copy.set_contents(name, raw)
        assert copy.get_value("Huge") == "1e400"
        assert copy.get_value("Net") == 900.0

    def test_model_values(self) -> None:
        sheet = _build_model()
        assert sheet["Tax"] == 300.0
        assert sheet["Net"] == 900.0
        assert sheet["Ratio"] == FormulaError.ref("Missing")
        assert sheet["Broken"] == FormulaError.div0()
        assert sheet["Bad"] == FormulaError.value("Label")


# ---------------------------------------------------------------------------
# Save / load
# ---------------------------------------------------------------------------


class TestSaveLoad:
    def test_roundtrip(self) -> None:
        sheet = _build_model()
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "model.json")
            sheet.save(path)
            assert not sheet.changed
            loaded = load_spreadsheet(path)

        assert not loaded.changed
        assert loaded.get_names_of_all_nonempty_cells() == sheet.get_names_of_all_nonempty_cells()
        for name in sheet:
            assert loaded.get_value(name) == sheet.get_value(name)
            assert loaded.get_contents(name) == sheet.get_contents(name)

    def test_file_layout(self) -> None:
        sheet = Spreadsheet(version="1.0")
        sheet.set_contents("A1", "5")
        sheet.set_contents("B1", "=A1 * 2")
        sheet.set_contents("C1", "hello")
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "layout.json")
            sheet.save(path)
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        assert data == {
            "version": "1.0",
            "cells": {
                "A1": {"stringForm": "5"},
                "B1": {"stringForm": "=A1*2"},
                "C1": {"stringForm": "hello"},
            },
        }

    def test_from_file_with_normalizer(self) -> None:
        payload = {
            "version": "default",
            "cells": {"a1": {"stringForm": "2"}, "b1": {"stringForm": "=a1*10"}},
        }
        with tempfile.TemporaryDirectory() as tmp:
            path = _write_json(tmp, payload)
            sheet = Spreadsheet.from_file(path, normalize=str.upper)
        assert sheet.get_value("B1") == 20.0
        assert sheet.get_direct_dependents("A1") == {"B1"}

    def test_edit_after_load_marks_changed(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = _write_json(tmp, {"version": "default", "cells": {}})
            sheet = load_spreadsheet(path)
        assert not sheet.changed
        sheet.set_contents("A1", "1")
        assert sheet.changed


class TestFileErrors:
    def test_version_mismatch(self) -> None:
        sheet = Spreadsheet(version="1.0")
        sheet.set_contents("A1", "1")
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "v.json")
            sheet.save(path)
            with pytest.raises(SpreadsheetReadWriteError, match="version"):
                load_spreadsheet(path, version="2.0")

    def test_missing_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with pytest.raises(SpreadsheetReadWriteError):
                load_spreadsheet(os.path.join(tmp, "nope.json"))

    def test_not_json(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "junk.json")
            with open(path, "w", encoding="utf-8") as f:
                f.write("{not json")
            with pytest.raises(SpreadsheetReadWriteError, match="not valid JSON"):
                load_spreadsheet(path)

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            {"cells": {}},
            {"version": "default", "cells": []},
            {"version": "default", "cells": {"A1": "5"}},
            {"version": "default", "cells": {"A1": {"stringForm": 5}}},
        ],
    )
    def test_bad_layout(self, payload: object) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = _write_json(tmp, payload)
            with pytest.raises(SpreadsheetReadWriteError):
                load_spreadsheet(path)

    def test_invalid_name(self) -> None:
        payload = {"version": "default", "cells": {"1A": {"stringForm": "5"}}}
        with tempfile.TemporaryDirectory() as tmp:
            path = _write_json(tmp, payload)
            with pytest.raises(SpreadsheetReadWriteError, match="invalid cell name") as exc_info:
                load_spreadsheet(path)
        assert isinstance(exc_info.value.__cause__, gridcalc.InvalidNameError)

    def test_malformed_formula(self) -> None:
        payload = {"version": "default", "cells": {"A1": {"stringForm": "=1+"}}}
        with tempfile.TemporaryDirectory() as tmp:
            path = _write_json(tmp, payload)
            with pytest.raises(SpreadsheetReadWriteError, match="malformed formula"):
                load_spreadsheet(path)

    def test_circular_dependency(self) -> None:
        payload = {
            "version": "default",
            "cells": {"A1": {"stringForm": "=B1"}, "B1": {"stringForm": "=A1"}},
        }
        with tempfile.TemporaryDirectory() as tmp:
            path = _write_json(tmp, payload)
            with pytest.raises(SpreadsheetReadWriteError, match="circular") as exc_info:
                load_spreadsheet(path)
        assert isinstance(exc_info.value.__cause__, gridcalc.CircularDependencyError)

    def test_save_to_missing_directory(self) -> None:
        sheet = Spreadsheet()
        sheet.set_contents("A1", "1")
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "no", "such", "dir", "x.json")
            with pytest.raises(SpreadsheetReadWriteError):
                sheet.save(path)
        assert sheet.changed
