"""Tree-walking evaluator for parsed formulas.

Evaluation never raises for bad data. A reference to an empty or
non-numeric cell, a reference to a cell that is itself in error, and
division by zero all produce a :class:`FormulaError` value that propagates
through every expression that uses it, the way spreadsheet error codes do.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from gridcalc.calc._parser import BinaryOp, Node, Number, UnaryOp, Variable

if TYPE_CHECKING:
    from gridcalc.calc._protocol import Lookup

# ---------------------------------------------------------------------------
# FormulaError: error values that propagate through formula chains
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FormulaError:
    """Result of a formula that could not be reduced to a number."""

    code: str
    reason: str = ""

    DIV0 = "#DIV/0!"
    REF = "#REF!"
    VALUE = "#VALUE!"

    @classmethod
    def div0(cls) -> FormulaError:
        return cls(cls.DIV0, "Division by zero")

    @classmethod
    def ref(cls, name: str) -> FormulaError:
        return cls(cls.REF, f"Undefined variable {name}")

    @classmethod
    def value(cls, name: str) -> FormulaError:
        return cls(cls.VALUE, f"Variable {name} is not a number")

    def __str__(self) -> str:
        return self.code


def is_error(val: Any) -> bool:
    """Return True if *val* is a FormulaError instance."""
    return isinstance(val, FormulaError)


def first_error(*values: Any) -> FormulaError | None:
    """Return the first FormulaError found in *values*, or None."""
    for v in values:
        if isinstance(v, FormulaError):
            return v
    return None


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def evaluate(node: Node, lookup: Lookup) -> float | FormulaError:
    """Reduce an expression tree to a float, reading variables via *lookup*.

    Walks the tree with an explicit stack, so long operator chains such as
    ``A1+A2+...+A5000`` are not limited by the interpreter recursion depth.
    Left operands are evaluated (and looked up) before right operands.
    """
    values: list[float | FormulaError] = []
    stack: list[tuple[Node, bool]] = [(node, False)]
    while stack:
        current, expanded = stack.pop()
        if isinstance(current, Number):
            values.append(current.value)
        elif isinstance(current, Variable):
            values.append(_resolve(current.name, lookup))
        elif isinstance(current, UnaryOp):
            if expanded:
                values.append(_unary_op(current.op, values.pop()))
            else:
                stack.append((current, True))
                stack.append((current.operand, False))
        elif isinstance(current, BinaryOp):
            if expanded:
                right = values.pop()
                left = values.pop()
                values.append(_binary_op(left, current.op, right))
            else:
                stack.append((current, True))
                stack.append((current.right, False))
                stack.append((current.left, False))
        else:
            raise TypeError(f"Unknown expression node: {current!r}")
    return values.pop()


def _resolve(name: str, lookup: Lookup) -> float | FormulaError:
    """Read one variable, turning lookup failures into error values."""
    try:
        value = lookup(name)
    except KeyError:
        return FormulaError.ref(name)
    if isinstance(value, FormulaError):
        return value
    # bool is an int subclass but never a cell number
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return FormulaError.value(name)
    return float(value)


def _unary_op(op: str, operand: float | FormulaError) -> float | FormulaError:
    if isinstance(operand, FormulaError):
        return operand
    return -operand if op == "-" else operand


def _binary_op(
    left: float | FormulaError,
    op: str,
    right: float | FormulaError,
) -> float | FormulaError:
    err = first_error(left, right)
    if err is not None:
        return err
    if op == "+":
        return left + right
    if op == "-":
        return left - right
    if op == "*":
        return left * right
    if op == "/":
        return FormulaError.div0() if right == 0 else left / right
    raise ValueError(f"Unknown operator: {op!r}")
