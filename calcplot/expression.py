"""Numeric evaluator for the expressions typed in the plotter input field.

Expressions are plain strings such as ``"sin(x)*y^2"``.  They are never
compiled into a persistent tree: every call to :func:`evaluate` tokenizes the
string again and walks it with a small recursive-descent parser.  The parser
state (token stream and current token) belongs to that single call, which keeps
evaluation a pure function of ``(expression, x, y, z)`` and lets several
callers share an expression without sharing state.

The evaluator is deliberately lenient.  A missing operand counts as ``0``, an
unmatched parenthesis is skipped, an unknown identifier or function resolves
to ``0`` and characters outside the grammar are ignored.  Arithmetic is done on
``numpy.float64`` scalars with floating point errors silenced, so division by
zero, domain errors and overflow surface as ``inf``/``nan`` values rather than
exceptions.  The sampler is responsible for discarding those samples.

:func:`evaluate_detailed` runs the very same parse but also reports every
place where the lenient rules kicked in; :func:`check_syntax` builds on it to
validate an expression once, when the user submits it.
"""

from __future__ import annotations

import math
import re
import string
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import numpy as np

__all__ = [
    "Evaluation",
    "ExpressionEvaluator",
    "FUNCTION_NAMES",
    "InvalidExpressionError",
    "Token",
    "check_syntax",
    "evaluate",
    "evaluate_detailed",
    "tokenize",
    "uses_y",
    "uses_z",
]

NUMBER = "number"
NAME = "name"
OPERATOR = "operator"

OPERATOR_CHARS = "+-*/^(),"

_LETTERS = frozenset(string.ascii_letters)
_DIGITS = frozenset(string.digits)
_NUMBER_CHARS = _DIGITS | {"."}
_NAME_CHARS = _LETTERS | _DIGITS

_USES_Y = re.compile(r"(?<![a-zA-Z])[yY](?![a-zA-Z])")
_USES_Z = re.compile(r"(?<![a-zA-Z])[zZ](?![a-zA-Z])")

_ZERO = np.float64(0.0)
_ONE = np.float64(1.0)


# ---------------------------------------------------------------------------
# Tokens


@dataclass(frozen=True)
class Token:
    """One lexical unit of an expression and the offset where it starts."""

    kind: str
    text: str
    start: int

    def is_op(self, *symbols: str) -> bool:
        return self.kind == OPERATOR and self.text in symbols


def tokenize(expression: str) -> Iterator[Token]:
    """Yield the tokens of ``expression`` lazily, one at a time.

    A number consumes digits and dots, an identifier consumes a letter followed
    by letters and digits (``x2`` is a single identifier).  Any character that
    cannot start a token is skipped without error.
    """

    pos = 0
    length = len(expression)
    while pos < length:
        char = expression[pos]
        if char in OPERATOR_CHARS:
            yield Token(OPERATOR, char, pos)
            pos += 1
        elif char in _NUMBER_CHARS:
            start = pos
            while pos < length and expression[pos] in _NUMBER_CHARS:
                pos += 1
            yield Token(NUMBER, expression[start:pos], start)
        elif char in _LETTERS:
            start = pos
            while pos < length and expression[pos] in _NAME_CHARS:
                pos += 1
            yield Token(NAME, expression[start:pos], start)
        else:
            pos += 1


# ---------------------------------------------------------------------------
# Functions


def _round_half_away(value: np.float64) -> np.float64:
    return np.copysign(np.floor(np.abs(value) + 0.5), value)


_Function = Callable[[np.float64, Optional[np.float64]], np.float64]

_FUNCTIONS: Dict[str, _Function] = {
    "sin": lambda a, b: np.sin(a),
    "cos": lambda a, b: np.cos(a),
    "tan": lambda a, b: np.tan(a),
    "asin": lambda a, b: np.arcsin(a),
    "acos": lambda a, b: np.arccos(a),
    "atan": lambda a, b: np.arctan(a),
    "atan2": lambda a, b: np.arctan2(a, _ONE if b is None else b),
    "sinh": lambda a, b: np.sinh(a),
    "cosh": lambda a, b: np.cosh(a),
    "tanh": lambda a, b: np.tanh(a),
    "exp": lambda a, b: np.exp(a),
    "log": lambda a, b: np.log(a),
    "ln": lambda a, b: np.log(a),
    "log10": lambda a, b: np.log10(a),
    "sqrt": lambda a, b: np.sqrt(a),
    "abs": lambda a, b: np.abs(a),
    "floor": lambda a, b: np.floor(a),
    "ceil": lambda a, b: np.ceil(a),
    "round": lambda a, b: _round_half_away(a),
    "sign": lambda a, b: np.sign(a),
    "min": lambda a, b: a if b is None else np.minimum(a, b),
    "max": lambda a, b: a if b is None else np.maximum(a, b),
    "pow": lambda a, b: np.power(a, _ONE if b is None else b),
    "mod": lambda a, b: np.mod(a, _ONE if b is None else b),
}

FUNCTION_NAMES: Tuple[str, ...] = tuple(sorted(_FUNCTIONS))


# ---------------------------------------------------------------------------
# Parser


class _Parser:
    """Recursive-descent evaluator owning the token stream of one call."""

    def __init__(self, expression: str, x: float, y: float, z: float) -> None:
        self._tokens = tokenize(expression)
        self._token: Optional[Token] = next(self._tokens, None)
        self._x = np.float64(x)
        self._y = np.float64(y)
        self._z = np.float64(z)
        self.issues: List[str] = []

    def _advance(self) -> None:
        self._token = next(self._tokens, None)

    def _at(self, *symbols: str) -> bool:
        return self._token is not None and self._token.is_op(*symbols)

    def run(self) -> np.float64:
        value = self._expression()
        if self._token is not None:
            self.issues.append(f"unexpected '{self._token.text}' at position {self._token.start}")
        return value

    def _expression(self) -> np.float64:
        value = self._term()
        while self._at("+", "-"):
            op = self._token.text  # type: ignore[union-attr]
            self._advance()
            rhs = self._term()
            value = value + rhs if op == "+" else value - rhs
        return value

    def _term(self) -> np.float64:
        value = self._power()
        while self._at("*", "/"):
            op = self._token.text  # type: ignore[union-attr]
            self._advance()
            rhs = self._power()
            value = value * rhs if op == "*" else value / rhs
        return value

    def _power(self) -> np.float64:
        # ``^`` is applied at most once per call site: ``2^3^2`` reads as ``2^3``.
        value = self._unary()
        if self._at("^"):
            self._advance()
            value = np.power(value, self._unary())
        return value

    def _unary(self) -> np.float64:
        if self._at("-"):
            self._advance()
            return -self._factor()
        if self._at("+"):
            self._advance()
        return self._factor()

    def _factor(self) -> np.float64:
        token = self._token
        if token is None:
            self.issues.append("missing operand at end of expression")
            return _ZERO

        if token.is_op("("):
            self._advance()
            value = self._expression()
            if self._at(")"):
                self._advance()
            else:
                self.issues.append(f"unmatched '(' at position {token.start}")
            return value

        self._advance()
        if token.kind == NUMBER:
            try:
                return np.float64(float(token.text))
            except ValueError:
                self.issues.append(f"malformed number '{token.text}' at position {token.start}")
                return _ZERO

        if token.kind == OPERATOR:
            self.issues.append(f"missing operand before '{token.text}' at position {token.start}")
            return _ZERO

        name = token.text.lower()
        if name == "x":
            return self._x
        if name == "y":
            return self._y
        if name == "z":
            return self._z
        if name == "pi":
            return np.float64(math.pi)
        if name == "e":
            return np.float64(math.e)
        if self._at("("):
            return self._call(name, token)
        self.issues.append(f"unknown identifier '{token.text}' at position {token.start}")
        return _ZERO

    def _call(self, name: str, token: Token) -> np.float64:
        self._advance()
        first = self._expression()
        second: Optional[np.float64] = None
        if self._at(","):
            self._advance()
            second = self._expression()
        if self._at(")"):
            self._advance()
        else:
            self.issues.append(f"unmatched '(' after '{token.text}' at position {token.start}")
        function = _FUNCTIONS.get(name)
        if function is None:
            self.issues.append(f"unknown function '{token.text}' at position {token.start}")
            return _ZERO
        return np.float64(function(first, second))


# ---------------------------------------------------------------------------
# Public API


class InvalidExpressionError(ValueError):
    """Raised when an expression is rejected at submission time."""

    def __init__(self, message: str, issues: Tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.issues = tuple(issues)


@dataclass(frozen=True)
class Evaluation:
    """Value of one evaluation together with the lenient-parse diagnostics."""

    value: float
    issues: Tuple[str, ...] = ()

    @property
    def indeterminate(self) -> bool:
        return bool(self.issues) or not math.isfinite(self.value)


def evaluate_detailed(expression: str, x: float, y: float = 0.0, z: float = 0.0) -> Evaluation:
    parser = _Parser(expression, x, y, z)
    with np.errstate(all="ignore"):
        value = parser.run()
    return Evaluation(float(value), tuple(parser.issues))


def evaluate(expression: str, x: float, y: float = 0.0, z: float = 0.0) -> float:
    """Evaluate ``expression`` at ``(x, y, z)``.

    Never raises for any input string; malformed parts contribute ``0`` and
    numeric failures come back as ``inf`` or ``nan``.
    """

    return evaluate_detailed(expression, x, y, z).value


def check_syntax(expression: str) -> List[str]:
    """Return the problems the lenient parser had to skip over.

    An empty list means the expression is well formed.  Used once when the user
    submits an expression, never while rendering.
    """

    if not expression.strip():
        return ["empty expression"]
    return list(evaluate_detailed(expression, 1.0, 1.0, 1.0).issues)


def uses_y(expression: str) -> bool:
    """Whether ``y`` appears as a standalone variable (``"yx"`` does not count)."""

    return _USES_Y.search(expression) is not None


def uses_z(expression: str) -> bool:
    return _USES_Z.search(expression) is not None


class ExpressionEvaluator:
    """Callable wrapper binding an expression string to the evaluator."""

    __slots__ = ("expression",)

    def __init__(self, expression: str) -> None:
        self.expression = expression

    def evaluate(self, x: float, y: float = 0.0, z: float = 0.0) -> float:
        return evaluate(self.expression, x, y, z)

    __call__ = evaluate

    @property
    def uses_y(self) -> bool:
        return uses_y(self.expression)

    @property
    def uses_z(self) -> bool:
        return uses_z(self.expression)

    def __repr__(self) -> str:
        return f"ExpressionEvaluator({self.expression!r})"
