"""
LaTeX Subset Translator
=======================
Converts a constrained LaTeX string into the plain expression language
understood by :mod:`mcpainter.model.expression`.

Supported input:
    ``$...$`` delimiters, ``\\left`` / ``\\right``, ``\\frac{A}{B}`` (nested),
    ``\\sqrt{A}``, ``\\sqrt[n]{A}``, ``^{...}`` / ``^2`` / ``^x``, trigonometric,
    hyperbolic and inverse trigonometric commands, ``\\ln``, ``\\log``, ``\\lg``,
    ``\\exp``, ``\\abs{A}``, ``|A|``, ``\\pi``, ``\\e``, ``\\cdot``, ``\\times``,
    ``\\div`` and implicit multiplication (``2x``, ``x(x+1)``, ``(a)(b)``).

The rewrite passes run in a fixed order: later passes rely on earlier ones
having fully resolved their constructs. The translator never raises; unknown
commands survive as bare identifiers and fail later, at evaluation time.
"""
from __future__ import annotations

import math
import re

# One level of nested braces inside a braced group: {a{b}c}
_BRACED = r"\{([^{}]*(?:\{[^{}]*\}[^{}]*)*)\}"

_SQRT = re.compile(r"\\sqrt\s*" + _BRACED)
_NTH_ROOT = re.compile(r"\\sqrt\s*\[([^\]]+)\]\s*" + _BRACED)
_BRACED_POWER = re.compile(r"\^\s*" + _BRACED)
_DIGIT_POWER = re.compile(r"\^(\d+)")
_LETTER_POWER = re.compile(r"\^([a-zA-Z])")
_ABS_COMMAND = re.compile(r"\\abs\s*" + _BRACED)
_ABS_PIPES = re.compile(r"\|([^|]+)\|")

# Longest command first so that \sinh is not read as \sin + h
_FUNCTIONS: list[tuple[str, str]] = [
    ("arcsin", "asin"),
    ("arccos", "acos"),
    ("arctan", "atan"),
    ("sinh", "sinh"),
    ("cosh", "cosh"),
    ("tanh", "tanh"),
    ("sin", "sin"),
    ("cos", "cos"),
    ("tan", "tan"),
    ("ln", "log"),
    ("log", "log10"),
    ("lg", "log10"),
    ("exp", "exp"),
]
_FUNCTION_PATTERNS = [(re.compile(rf"\\{cmd}\s*"), name) for cmd, name in _FUNCTIONS]

_SYMBOLS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\\pi"), f"({math.pi!r})"),
    (re.compile(r"\\e\b"), f"({math.e!r})"),
    (re.compile(r"\\cdot"), "*"),
    (re.compile(r"\\times"), "*"),
    (re.compile(r"\\div"), "/"),
]

# Junctures where multiplication is implied. The number-before-paren rule
# must not split identifiers ending in digits (log10).
_IMPLICIT_MULTIPLICATION: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"(\d)([xy])"), r"\1*\2"),
    (re.compile(r"([xy])(\()"), r"\1*\2"),
    (re.compile(r"(\))(\()"), r"\1*\2"),
    (re.compile(r"(?<![A-Za-z_\d])(\d+(?:\.\d+)?)(\()"), r"\1*\2"),
    (re.compile(r"(\))([xy\d])"), r"\1*\2"),
]


def find_matching_brace(text: str, open_index: int) -> int:
    """
    Find the index of the ``}`` closing the ``{`` at ``open_index``.

    Args:
        text: String to scan.
        open_index: Index of an opening brace.

    Returns:
        Index of the matching closing brace, or -1 when ``text[open_index]``
        is not ``{`` or the group is never closed.
    """
    if open_index >= len(text) or text[open_index] != "{":
        return -1

    depth = 1
    for i in range(open_index + 1, len(text)):
        if text[i] == "{":
            depth += 1
        elif text[i] == "}":
            depth -= 1
            if depth == 0:
                return i
    return -1


def resolve_fractions(latex: str) -> str:
    """
    Rewrite every ``\\frac{A}{B}`` as ``((A)/(B))``.

    The leftmost fraction is resolved first; fractions nested in its
    numerator or denominator are picked up by later iterations. Stops on the
    first malformed fraction and leaves the rest untouched.
    """
    result = latex
    while "\\frac" in result:
        frac_index = result.index("\\frac")

        num_start = result.find("{", frac_index + 5)
        if num_start == -1:
            break
        num_end = find_matching_brace(result, num_start)
        if num_end == -1:
            break

        den_start = result.find("{", num_end + 1)
        if den_start == -1:
            break
        den_end = find_matching_brace(result, den_start)
        if den_end == -1:
            break

        numerator = result[num_start + 1:num_end]
        denominator = result[den_start + 1:den_end]
        result = f"{result[:frac_index]}(({numerator})/({denominator})){result[den_end + 1:]}"

    return result


def _resolve_powers(text: str) -> str:
    previous = None
    while previous != text:
        previous = text
        text = _BRACED_POWER.sub(r"**(\1)", text)
    text = _DIGIT_POWER.sub(r"**\1", text)
    return _LETTER_POWER.sub(r"**\1", text)


def convert_latex(latex: str) -> str:
    """
    Translate a LaTeX-subset string into a plain expression string.

    Args:
        latex: Input such as ``\\frac{x^2}{4} + \\sin(x)``.

    Returns:
        Whitespace-free expression, e.g. ``((x**2)/(4))+sin(x)``.
    """
    result = latex.replace("$", "").strip()
    result = re.sub(r"\\left\s*", "", result)
    result = re.sub(r"\\right\s*", "", result)

    result = resolve_fractions(result)

    result = _SQRT.sub(r"sqrt(\1)", result)
    result = _NTH_ROOT.sub(r"pow(\2, 1/(\1))", result)

    result = _resolve_powers(result)

    for pattern, name in _FUNCTION_PATTERNS:
        result = pattern.sub(name, result)

    result = _ABS_COMMAND.sub(r"abs(\1)", result)
    result = _ABS_PIPES.sub(r"abs(\1)", result)

    for pattern, replacement in _SYMBOLS:
        result = pattern.sub(replacement, result)

    # Unknown commands become bare identifiers
    result = result.replace("\\", "")
    result = result.replace("{", "(").replace("}", ")")

    for pattern, replacement in _IMPLICIT_MULTIPLICATION:
        result = pattern.sub(replacement, result)

    return re.sub(r"\s+", "", result)
