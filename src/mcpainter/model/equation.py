"""
Equation Classification
=======================
Decides whether user input describes an explicit function y = f(x) or an
implicit relation f(x, y) = 0, and normalizes it for the evaluator.

Classes:
    EquationKind: EXPLICIT or IMPLICIT.
    ParsedEquation: Immutable result of a parse call.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import re
from typing import Optional

from mcpainter.model.expression import CONSTANTS, FUNCTIONS
from mcpainter.model.latex import convert_latex

logger = logging.getLogger(__name__)

_HAS_Y = re.compile(r"\by\b")
_Y_PREFIX = re.compile(r"^y\s*=\s*", re.IGNORECASE)
_NAME = re.compile(r"\b[A-Za-z_]\w*\b")


class EquationKind(Enum):
    EXPLICIT = "explicit"
    IMPLICIT = "implicit"


@dataclass(frozen=True)
class ParsedEquation:
    """
    A classified, normalized equation.

    For IMPLICIT equations ``expression`` is always ``(left_side) - (right_side)``
    and its zero set is the curve. EXPLICIT equations carry no sides.
    """
    kind: EquationKind
    expression: str
    left_side: Optional[str] = None
    right_side: Optional[str] = None

    @property
    def is_implicit(self) -> bool:
        return self.kind is EquationKind.IMPLICIT


def parse_latex(latex: str) -> ParsedEquation:
    """
    Classify and translate a LaTeX-subset equation. Never raises.

    Args:
        latex: Raw user input, e.g. ``"\\frac{x^2}{4}+\\frac{y^2}{9}=1"`` or
            ``"y = \\sin(x)"``.

    Returns:
        EXPLICIT for ``y = f(x)`` (bare ``y`` on the left, no ``y`` on the
        right) and for input without a single ``=``. IMPLICIT when the input
        has exactly one ``=`` and ``y`` appears on either translated side
        otherwise.
    """
    expr = latex.strip()

    if "=" in expr:
        parts = expr.split("=")
        if len(parts) == 2:
            left = convert_latex(parts[0].strip())
            right = convert_latex(parts[1].strip())
            if left == "y" and not _HAS_Y.search(right):
                return ParsedEquation(kind=EquationKind.EXPLICIT, expression=right)
            if _HAS_Y.search(left) or _HAS_Y.search(right):
                return ParsedEquation(
                    kind=EquationKind.IMPLICIT,
                    expression=f"({left}) - ({right})",
                    left_side=left,
                    right_side=right,
                )
        else:
            # More than one '=' falls through untouched and evaluates to NaN
            logger.debug(f"Input {expr!r} has {len(parts) - 1} '=' signs; treating as explicit.")

    clean = expr
    if clean.lower().startswith("y=") or clean.lower().startswith("y ="):
        clean = _Y_PREFIX.sub("", clean)

    return ParsedEquation(kind=EquationKind.EXPLICIT, expression=convert_latex(clean))


def _lower_known_name(match: re.Match[str]) -> str:
    name = match.group(0)
    return name.lower() if name.lower() in FUNCTIONS or name.lower() in CONSTANTS else name


def parse_plain(expression: str) -> ParsedEquation:
    """
    Normalize a plain calculator-style expression (``x^2 + sin(x)``).

    Plain input is always treated as y = f(x). ``^`` becomes ``**`` and
    function and constant names are matched case-insensitively (``Sin(x)``,
    ``PI``); ``log`` is the natural logarithm.
    """
    normalized = _NAME.sub(_lower_known_name, expression.strip().replace("^", "**"))
    return ParsedEquation(kind=EquationKind.EXPLICIT, expression=normalized)


def parse_function(expression: str, is_latex: bool) -> ParsedEquation:
    """Dispatch to :func:`parse_latex` or :func:`parse_plain`."""
    return parse_latex(expression) if is_latex else parse_plain(expression)
