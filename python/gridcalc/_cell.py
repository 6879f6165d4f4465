"""Cell content variants and the cell record kept by a Spreadsheet."""

from __future__ import annotations

import math
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Union

from gridcalc.calc._evaluator import FormulaError
from gridcalc.calc._parser import Formula, format_number

# Plain decimal literal, optional sign/fraction/exponent. Rejects the
# nan/inf spellings float() would otherwise accept.
_NUMBER_RE = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?\s*")


@dataclass(frozen=True)
class NumberContent:
    value: float


@dataclass(frozen=True)
class TextContent:
    text: str


@dataclass(frozen=True)
class FormulaContent:
    formula: Formula


Content = Union[NumberContent, TextContent, FormulaContent]

EMPTY = TextContent("")


def classify(raw: str, parse_formula: Callable[[str], Formula]) -> Content:
    """Turn raw cell text into content.

    Checked in order: numeric literal, ``=`` followed by a formula, text.
    *parse_formula* receives the text after ``=`` and raises
    ``FormulaFormatError`` if it is malformed.
    """
    if _NUMBER_RE.fullmatch(raw):
        value = float(raw)
        if math.isfinite(value):
            return NumberContent(value)
    if raw.startswith("="):
        return FormulaContent(parse_formula(raw[1:]))
    return TextContent(raw)


def references(content: Content) -> tuple[str, ...]:
    """Names a content reads from; only formulas read anything."""
    if isinstance(content, FormulaContent):
        return content.formula.variables
    return ()


def content_string(content: Content) -> str:
    """Raw text that reproduces *content* when set again."""
    if isinstance(content, NumberContent):
        return format_number(content.value)
    if isinstance(content, FormulaContent):
        return f"={content.formula}"
    return content.text


def unwrap(content: Content) -> float | str | Formula:
    """Plain Python object for a content: float, str or Formula."""
    if isinstance(content, NumberContent):
        return content.value
    if isinstance(content, FormulaContent):
        return content.formula
    return content.text


class Cell:
    """A non-empty cell: its content plus the cached formula result."""

    __slots__ = ("content", "value")

    def __init__(self, content: Content) -> None:
        self.content = content
        # Only formulas cache a result; None means "not evaluated yet".
        self.value: float | FormulaError | None = None

    def __repr__(self) -> str:
        return f"Cell({content_string(self.content)!r})"
