"""Formula parser: regex tokenizer + recursive descent into an expression tree."""

from __future__ import annotations

import math
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, NamedTuple, Union

from gridcalc._errors import FormulaFormatError

if TYPE_CHECKING:
    from gridcalc.calc._evaluator import FormulaError
    from gridcalc.calc._protocol import Lookup

# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

_WHITESPACE_RE = re.compile(r"\s*")

_TOKEN_RE = re.compile(
    r"""
    (?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
    |(?P<name>[A-Za-z_][A-Za-z0-9_]*)
    |(?P<op>[-+*/])
    |(?P<lparen>\()
    |(?P<rparen>\))
    """,
    re.VERBOSE,
)

_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

# Parenthesis and unary-sign nesting allowed in one formula.
MAX_NESTING = 100


class Token(NamedTuple):
    kind: str  # number, name, op, lparen, rparen
    text: str


def tokenize(text: str) -> list[Token]:
    """Split formula text into tokens, ignoring whitespace."""
    tokens: list[Token] = []
    pos = 0
    length = len(text)
    while True:
        pos = _WHITESPACE_RE.match(text, pos).end()  # type: ignore[union-attr]
        if pos >= length:
            return tokens
        m = _TOKEN_RE.match(text, pos)
        if m is None:
            raise FormulaFormatError(f"Unexpected character {text[pos]!r} at position {pos}")
        tokens.append(Token(m.lastgroup or "", m.group()))
        pos = m.end()


def format_number(value: float) -> str:
    """Shortest text for *value* that parses back to the same float."""
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)


# ---------------------------------------------------------------------------
# Expression tree
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: Node


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: Node
    right: Node


Node = Union[Number, Variable, UnaryOp, BinaryOp]


class _Parser:
    """Recursive descent over a token list.

    Grammar::

        expr    := term (('+' | '-') term)*
        term    := unary (('*' | '/') unary)*
        unary   := ('-' | '+') unary | primary
        primary := number | name | '(' expr ')'

    Loops in ``expr``/``term`` give left-to-right associativity.
    """

    def __init__(
        self,
        tokens: list[Token],
        normalize: Callable[[str], str],
        is_valid: Callable[[str], bool],
    ) -> None:
        self._tokens = tokens
        self._pos = 0
        self._normalize = normalize
        self._is_valid = is_valid
        self._depth = 0
        self.variables: dict[str, None] = {}
        self.canonical: list[str] = []

    def parse(self) -> Node:
        if not self._tokens:
            raise FormulaFormatError("Formula is empty")
        node = self._expr()
        if self._pos < len(self._tokens):
            tok = self._tokens[self._pos]
            raise FormulaFormatError(f"Unexpected token {tok.text!r} after complete expression")
        return node

    def _peek(self) -> Token | None:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def _nest(self) -> None:
        self._depth += 1
        if self._depth > MAX_NESTING:
            raise FormulaFormatError(f"Formula is nested more than {MAX_NESTING} levels deep")

    def _advance(self, text: str | None = None) -> Token:
        tok = self._tokens[self._pos]
        self._pos += 1
        self.canonical.append(tok.text if text is None else text)
        return tok

    def _expr(self) -> Node:
        node = self._term()
        tok = self._peek()
        while tok is not None and tok.text in ("+", "-"):
            self._advance()
            node = BinaryOp(tok.text, node, self._term())
            tok = self._peek()
        return node

    def _term(self) -> Node:
        node = self._unary()
        tok = self._peek()
        while tok is not None and tok.text in ("*", "/"):
            self._advance()
            node = BinaryOp(tok.text, node, self._unary())
            tok = self._peek()
        return node

    def _unary(self) -> Node:
        tok = self._peek()
        if tok is not None and tok.text in ("+", "-"):
            self._advance()
            self._nest()
            node = UnaryOp(tok.text, self._unary())
            self._depth -= 1
            return node
        return self._primary()

    def _primary(self) -> Node:
        tok = self._peek()
        if tok is None:
            raise FormulaFormatError("Formula ends unexpectedly")

        if tok.kind == "number":
            value = float(tok.text)
            if not math.isfinite(value):
                raise FormulaFormatError(f"Number {tok.text!r} is out of range")
            self._advance(format_number(value))
            return Number(value)

        if tok.kind == "name":
            name = self._normalize(tok.text)
            if not _NAME_RE.fullmatch(name) or not self._is_valid(name):
                raise FormulaFormatError(f"Invalid variable {tok.text!r}")
            self._advance(name)
            self.variables[name] = None
            return Variable(name)

        if tok.kind == "lparen":
            self._advance()
            self._nest()
            node = self._expr()
            self._depth -= 1
            closing = self._peek()
            if closing is None or closing.kind != "rparen":
                raise FormulaFormatError("Missing closing parenthesis")
            self._advance()
            return node

        raise FormulaFormatError(f"Unexpected token {tok.text!r}")


# ---------------------------------------------------------------------------
# Formula
# ---------------------------------------------------------------------------


def _identity(name: str) -> str:
    return name


def _always_valid(name: str) -> bool:
    return True


class Formula:
    """A parsed arithmetic formula over numbers and named variables.

    Variables are normalized with *normalize* and then checked with
    *is_valid*; a rejected variable makes the formula malformed. Two
    formulas are equal when their canonical text (``str(formula)``) is,
    so ``Formula("x1 + 2.0")`` equals ``Formula("x1+2")``.
    """

    __slots__ = ("_tree", "_text", "_variables")

    def __init__(
        self,
        text: str,
        normalize: Callable[[str], str] | None = None,
        is_valid: Callable[[str], bool] | None = None,
    ) -> None:
        parser = _Parser(tokenize(text), normalize or _identity, is_valid or _always_valid)
        self._tree = parser.parse()
        self._text = "".join(parser.canonical)
        self._variables = tuple(parser.variables)

    @property
    def tree(self) -> Node:
        return self._tree

    @property
    def variables(self) -> tuple[str, ...]:
        """Normalized referenced names, first occurrence first."""
        return self._variables

    def evaluate(self, lookup: Lookup) -> float | FormulaError:
        """Evaluate against *lookup*; failures come back as ``FormulaError``."""
        from gridcalc.calc._evaluator import evaluate

        return evaluate(self._tree, lookup)

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"Formula({self._text!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Formula):
            return self._text == other._text
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._text)
