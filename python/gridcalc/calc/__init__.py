"""gridcalc.calc - Dependency graph, planner, parser and evaluator for formulas."""

from gridcalc.calc._evaluator import FormulaError, evaluate, first_error, is_error
from gridcalc.calc._graph import DependencyGraph, GraphView
from gridcalc.calc._parser import Formula, format_number, tokenize
from gridcalc.calc._planner import cells_to_recalculate, cells_to_recalculate_many
from gridcalc.calc._protocol import CellValue, Lookup

__all__ = [
    "CellValue",
    "DependencyGraph",
    "Formula",
    "FormulaError",
    "GraphView",
    "Lookup",
    "cells_to_recalculate",
    "cells_to_recalculate_many",
    "evaluate",
    "first_error",
    "format_number",
    "is_error",
    "tokenize",
]
