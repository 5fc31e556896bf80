"""
Numeric Expression Evaluator
============================
Parses the plain expression language produced by
:func:`mcpainter.model.latex.convert_latex` and evaluates it with NumPy.

Why is this file needed?
------------------------
1. Safety: Expressions come from a text field. They are never handed to
   ``eval``; a small recursive-descent parser builds an abstract syntax tree
   that only knows numbers, the axis variables, a fixed function table and
   arithmetic operators.
2. Speed: The tree is compiled once per distinct expression string into a
   closure (memoized), which is then called for every sample.
3. Vectorization: The closures operate on ``numpy.float64`` scalars and
   arrays alike, so the rasterizer can evaluate a whole grid in one call.

Grammar (lowest to highest precedence)::

    expr    := term (('+' | '-') term)*
    term    := unary (('*' | '/' | '%') unary)*
    unary   := ('+' | '-') unary | power
    power   := primary ('**' unary)?
    primary := NUMBER | NAME '(' [expr (',' expr)*] ')' | NAME | '(' expr ')'

Evaluation follows IEEE arithmetic: ``1/0`` is ``inf``, ``sqrt(-1)`` is
``nan``. The public ``evaluate_*`` and ``sample_*`` functions never raise;
any failure comes back as NaN.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import logging
import math
import re
from typing import Any, Callable, Mapping, Optional, Union, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)

AXIS_VARIABLES: frozenset[str] = frozenset({"x", "y"})

CONSTANTS: dict[str, float] = {
    "pi": math.pi,
    "e": math.e,
}


def _round_half_up(value: Any) -> Any:
    return np.floor(value + 0.5)


# name -> (implementation, arity)
FUNCTIONS: dict[str, tuple[Callable[..., Any], int]] = {
    "sin": (np.sin, 1),
    "cos": (np.cos, 1),
    "tan": (np.tan, 1),
    "asin": (np.arcsin, 1),
    "acos": (np.arccos, 1),
    "atan": (np.arctan, 1),
    "sinh": (np.sinh, 1),
    "cosh": (np.cosh, 1),
    "tanh": (np.tanh, 1),
    "log": (np.log, 1),
    "log10": (np.log10, 1),
    "exp": (np.exp, 1),
    "sqrt": (np.sqrt, 1),
    "abs": (np.abs, 1),
    "floor": (np.floor, 1),
    "ceil": (np.ceil, 1),
    "round": (_round_half_up, 1),
    "pow": (np.power, 2),
}

_BINARY_OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "+": np.add,
    "-": np.subtract,
    "*": np.multiply,
    "/": np.true_divide,
    "%": np.fmod,
    "**": np.power,
}

_TOKEN_PATTERN = re.compile(
    r"\s*(?:"
    r"(?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
    r"|(?P<name>[A-Za-z_][A-Za-z_0-9]*)"
    r"|(?P<op>\*\*|[-+*/%(),])"
    r")"
)


class ExpressionError(ValueError):
    """Raised when an expression cannot be tokenized, parsed or compiled."""


# -------------------------------------------------------------------------------
# Abstract syntax tree
# -------------------------------------------------------------------------------

@dataclass(frozen=True)
class Literal:
    """Numeric literal as written in the source."""
    value: float

@dataclass(frozen=True)
class Variable:
    """Bare name: an axis variable or a key of ``CONSTANTS``, resolved at compile time."""
    name: str

@dataclass(frozen=True)
class UnaryOp:
    """Prefix ``+`` or ``-``."""
    op: str
    operand: Node

@dataclass(frozen=True)
class BinaryOp:
    """Arithmetic operator applied to two subtrees."""
    op: str
    left: Node
    right: Node

@dataclass(frozen=True)
class FunctionCall:
    """Call of a whitelisted function from ``FUNCTIONS``."""
    name: str
    args: tuple[Node, ...]

Node = Union[Literal, Variable, UnaryOp, BinaryOp, FunctionCall]


@dataclass(frozen=True)
class Token:
    """Lexeme with its offset in the source, for error messages."""
    kind: str  # "number", "name", "op" or "end"
    text: str
    position: int


def tokenize(text: str) -> list[Token]:
    """
    Split an expression into tokens.

    Raises:
        ExpressionError: On a character that starts no valid token.
    """
    tokens: list[Token] = []
    pos = 0
    end = len(text.rstrip())
    while pos < end:
        match = _TOKEN_PATTERN.match(text, pos)
        if match is None or match.end() == pos or match.lastgroup is None:
            raise ExpressionError(f"Unexpected character {text[pos]!r} at position {pos}.")
        tokens.append(Token(match.lastgroup, match.group(match.lastgroup), match.start(match.lastgroup)))
        pos = match.end()
    tokens.append(Token("end", "", end))
    return tokens


class Parser:
    """Recursive-descent parser producing a :data:`Node` tree."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = tokenize(text)
        self.index = 0

    def parse(self) -> Node:
        if self._peek().kind == "end":
            raise ExpressionError("Empty expression.")
        node = self._expr()
        token = self._peek()
        if token.kind != "end":
            raise ExpressionError(f"Unexpected {token.text!r} at position {token.position}.")
        return node

    # ---- token helpers ----

    def _peek(self) -> Token:
        return self.tokens[self.index]

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def _accept(self, *ops: str) -> Optional[Token]:
        token = self._peek()
        if token.kind == "op" and token.text in ops:
            return self._advance()
        return None

    def _expect(self, op: str) -> None:
        if self._accept(op) is None:
            token = self._peek()
            found = token.text or "end of input"
            raise ExpressionError(f"Expected {op!r} but found {found!r} at position {token.position}.")

    # ---- grammar ----

    def _expr(self) -> Node:
        node = self._term()
        while (token := self._accept("+", "-")) is not None:
            node = BinaryOp(token.text, node, self._term())
        return node

    def _term(self) -> Node:
        node = self._unary()
        while (token := self._accept("*", "/", "%")) is not None:
            node = BinaryOp(token.text, node, self._unary())
        return node

    def _unary(self) -> Node:
        token = self._accept("+", "-")
        if token is not None:
            return UnaryOp(token.text, self._unary())
        return self._power()

    def _power(self) -> Node:
        base = self._primary()
        if self._accept("**") is not None:
            # Right-associative: 2**3**2 == 2**(3**2)
            return BinaryOp("**", base, self._unary())
        return base

    def _primary(self) -> Node:
        token = self._advance()
        if token.kind == "number":
            return Literal(float(token.text))
        if token.kind == "name":
            if self._accept("(") is not None:
                return FunctionCall(token.text, self._arguments())
            return Variable(token.text)
        if token.kind == "op" and token.text == "(":
            node = self._expr()
            self._expect(")")
            return node
        found = token.text or "end of input"
        raise ExpressionError(f"Unexpected {found!r} at position {token.position}.")

    def _arguments(self) -> tuple[Node, ...]:
        if self._accept(")") is not None:
            return ()
        args = [self._expr()]
        while self._accept(",") is not None:
            args.append(self._expr())
        self._expect(")")
        return tuple(args)


def parse_expression(text: str) -> Node:
    """Parse an expression string into an AST."""
    return Parser(text).parse()


# -------------------------------------------------------------------------------
# Compilation
# -------------------------------------------------------------------------------

Bindings = Mapping[str, Any]
Closure = Callable[[Bindings], Any]


def _compile_node(node: Node, variables: set[str]) -> Closure:
    if isinstance(node, Literal):
        value = np.float64(node.value)
        return lambda env: value

    if isinstance(node, Variable):
        name = node.name
        if name in AXIS_VARIABLES:
            variables.add(name)

            def lookup(env: Bindings) -> Any:
                try:
                    return env[name]
                except KeyError:
                    raise ExpressionError(f"Variable {name!r} is not bound.") from None
            return lookup
        if name in CONSTANTS:
            constant = np.float64(CONSTANTS[name])
            return lambda env: constant
        raise ExpressionError(f"Unknown name {name!r}.")

    if isinstance(node, UnaryOp):
        operand = _compile_node(node.operand, variables)
        if node.op == "-":
            return lambda env: np.negative(operand(env))
        return operand

    if isinstance(node, BinaryOp):
        left = _compile_node(node.left, variables)
        right = _compile_node(node.right, variables)
        func = _BINARY_OPERATORS[node.op]
        return lambda env: func(left(env), right(env))

    if isinstance(node, FunctionCall):
        if node.name not in FUNCTIONS:
            raise ExpressionError(f"Unknown function {node.name!r}.")
        impl, arity = FUNCTIONS[node.name]
        if len(node.args) != arity:
            raise ExpressionError(f"{node.name}() takes {arity} argument(s), got {len(node.args)}.")
        args = [_compile_node(arg, variables) for arg in node.args]
        if arity == 1:
            (arg,) = args
            return lambda env: impl(arg(env))
        return lambda env: impl(*(a(env) for a in args))

    raise ExpressionError(f"Unsupported node {node!r}.")


@dataclass(frozen=True)
class CompiledExpression:
    """An expression compiled to a closure, callable with variable bindings."""
    source: str
    tree: Node
    variables: frozenset[str]
    _closure: Closure

    def __call__(self, **bindings: Any) -> Any:
        with np.errstate(all="ignore"):
            return self._closure(bindings)


@lru_cache(maxsize=256)
def compile_expression(text: str) -> CompiledExpression:
    """
    Parse and compile an expression string. Results are memoized.

    Raises:
        ExpressionError: If the expression is malformed or references an
            unknown name, or a function is called with the wrong arity.
    """
    tree = parse_expression(text)
    variables: set[str] = set()
    closure = _compile_node(tree, variables)
    return CompiledExpression(text, tree, frozenset(variables), closure)


# -------------------------------------------------------------------------------
# Public evaluation API (never raises)
# -------------------------------------------------------------------------------

def _evaluate(expression: str, bindings: dict[str, Any]) -> float:
    try:
        value = compile_expression(expression)(**bindings)
        return float(value)
    except Exception as e:
        logger.debug(f"Evaluation of {expression!r} at {bindings} failed: {e}")
        return math.nan


def evaluate_explicit(expression: str, x: float) -> float:
    """
    Evaluate y = f(x).

    Returns:
        The value, ``inf`` for divergent results, or NaN on any failure.
    """
    return _evaluate(expression, {"x": np.float64(x)})


def evaluate_implicit(expression: str, x: float, y: float) -> float:
    """Evaluate f(x, y) of an implicit relation f(x, y) = 0. NaN on failure."""
    return _evaluate(expression, {"x": np.float64(x), "y": np.float64(y)})


def _sample(expression: str, bindings: dict[str, Any]) -> npt.NDArray[np.float64]:
    arrays = {name: np.asarray(value, dtype=np.float64) for name, value in bindings.items()}
    shape = np.broadcast_shapes(*(a.shape for a in arrays.values()))
    try:
        value = compile_expression(expression)(**arrays)
        return np.array(np.broadcast_to(np.asarray(value, dtype=np.float64), shape))
    except Exception as e:
        logger.debug(f"Sampling of {expression!r} failed: {e}")
        # Read-only view, so a failed oversized sample allocates nothing
        return np.broadcast_to(np.float64(np.nan), shape)


def sample_explicit(expression: str, xs: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Vectorized :func:`evaluate_explicit` over an array of x values."""
    return _sample(expression, {"x": xs})


def sample_implicit(
    expression: str,
    xs: npt.ArrayLike,
    ys: npt.ArrayLike
) -> npt.NDArray[np.float64]:
    """
    Vectorized :func:`evaluate_implicit`.

    Args:
        expression: Normalized expression string.
        xs: x values, broadcast against ``ys``.
        ys: y values, broadcast against ``xs``.

    Returns:
        Float array of the broadcast shape. When the expression cannot be
        compiled or evaluated, a read-only all-NaN view of that shape.
    """
    return _sample(expression, {"x": xs, "y": ys})
