"""
Grid Sampler / Rasterizer
=========================
Turns a :class:`~mcpainter.model.equation.ParsedEquation` into something
drawable.

Mode A (discrete grid marking):
    :func:`mark_grid_cells` returns the ``"x,y" -> color`` cells a curve
    passes through inside an integer range.

Mode B (continuous drawing):
    :func:`trace_explicit_curve` returns screen-space polylines,
    :func:`trace_implicit_curve` returns short diagonal segments over screen
    blocks where the curve changes sign.

Implicit curves use the sign-change step of marching squares only: a cell
is crossed when its four corner values are finite and mixed in sign. There
is no sub-cell interpolation.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Any, TYPE_CHECKING

import numpy as np

from mcpainter.config import (
    DEFAULT_RANGE,
    SUBSAMPLES_PER_CELL,
    DEFAULT_CELL_SIZE,
    IMPLICIT_TOLERANCE,
    EXPLICIT_COLUMN_STEP,
    IMPLICIT_BLOCK_STEP,
    SAMPLE_CHUNK_SIZE,
)
from mcpainter.model.equation import ParsedEquation
from mcpainter.model.expression import evaluate_implicit, sample_explicit, sample_implicit
from mcpainter.utils import grid_key

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)

_INT_PREFIX = re.compile(r"^\s*[+-]?\d+")


# -------------------------------------------------------------------------------
# Data model
# -------------------------------------------------------------------------------

def _parse_int(value: Any) -> int:
    """Leading-integer parse of a text field value; anything else is 0."""
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, float):
        return int(value) if np.isfinite(value) else 0
    match = _INT_PREFIX.match(str(value))
    return int(match.group(0)) if match else 0


@dataclass(frozen=True)
class GridRange:
    """Inclusive integer bounds of the marking area."""
    x_min: int = DEFAULT_RANGE[0]
    x_max: int = DEFAULT_RANGE[1]
    y_min: int = DEFAULT_RANGE[2]
    y_max: int = DEFAULT_RANGE[3]

    @classmethod
    def from_inputs(cls, x_min: Any, x_max: Any, y_min: Any, y_max: Any) -> GridRange:
        """
        Build a range from raw input field values.

        Examples:
            - GridRange.from_inputs("-5", "5", "0", "10")
            - GridRange.from_inputs("abc", "7.9", "", "3px")  ->  (0, 7, 0, 3)
        """
        return cls(_parse_int(x_min), _parse_int(x_max), _parse_int(y_min), _parse_int(y_max))

    @property
    def is_empty(self) -> bool:
        return self.x_min > self.x_max or self.y_min > self.y_max


@dataclass(frozen=True)
class Viewport:
    """
    Screen-to-math transform of the live canvas.

    ``offset_x`` / ``offset_y`` is the screen position of the math origin and
    ``grid_size`` the width of one unit cell in pixels. Screen y grows
    downwards, math y upwards.
    """
    width: int
    height: int
    offset_x: float
    offset_y: float
    grid_size: float

    def to_math(self, sx: Any, sy: Any) -> tuple[Any, Any]:
        return (sx - self.offset_x) / self.grid_size, -(sy - self.offset_y) / self.grid_size

    def to_screen(self, mx: Any, my: Any) -> tuple[Any, Any]:
        return mx * self.grid_size + self.offset_x, self.offset_y - my * self.grid_size

    def cell_rect(self, x: int, y: int) -> tuple[float, float, float, float]:
        """Screen (left, top, width, height) of grid cell (x, y)."""
        sx = x * self.grid_size + self.offset_x
        sy = -y * self.grid_size + self.offset_y - self.grid_size
        return sx, sy, self.grid_size, self.grid_size


# -------------------------------------------------------------------------------
# Cell classification
# -------------------------------------------------------------------------------

def _corners_cross(v00: Any, v10: Any, v01: Any, v11: Any) -> Any:
    """True where all four values are finite and at least one is >0 and one <0."""
    stacked = np.stack(np.broadcast_arrays(v00, v10, v01, v11))
    finite = np.all(np.isfinite(stacked), axis=0)
    with np.errstate(invalid="ignore"):
        positive = np.any(stacked > 0, axis=0)
        negative = np.any(stacked < 0, axis=0)
    return finite & positive & negative


def corner_config(v00: Any, v10: Any, v11: Any, v01: Any) -> Any:
    """
    Marching-squares index of a cell: bit 8 for (x0, y0), 4 for (x1, y0),
    2 for (x1, y1) and 1 for (x0, y1), set when the corner is strictly
    positive. 0 and 15 mean the curve does not cross the cell.
    Works element-wise on arrays.
    """
    with np.errstate(invalid="ignore"):
        return (
            (np.asarray(v00) > 0) * 8
            + (np.asarray(v10) > 0) * 4
            + (np.asarray(v11) > 0) * 2
            + (np.asarray(v01) > 0) * 1
        )


def check_grid_cell(expression: str, x: float, y: float, cell_size: float = DEFAULT_CELL_SIZE) -> bool:
    """
    Check whether the implicit curve ``expression = 0`` passes through a cell.

    Args:
        expression: Normalized implicit expression f(x, y).
        x: Cell origin x.
        y: Cell origin y.
        cell_size: Edge length of the square cell.

    Returns:
        True if all four corners evaluate to finite values with mixed signs.
    """
    v00 = evaluate_implicit(expression, x, y)
    v10 = evaluate_implicit(expression, x + cell_size, y)
    v01 = evaluate_implicit(expression, x, y + cell_size)
    v11 = evaluate_implicit(expression, x + cell_size, y + cell_size)
    return bool(_corners_cross(v00, v10, v01, v11))


def is_on_implicit_curve(
    expression: str,
    x: float,
    y: float,
    tolerance: float = IMPLICIT_TOLERANCE
) -> bool:
    """Check whether |f(x, y)| is below ``tolerance``."""
    return bool(abs(evaluate_implicit(expression, x, y)) < tolerance)


# -------------------------------------------------------------------------------
# Mode A: discrete grid marking
# -------------------------------------------------------------------------------

def _mark_explicit(expression: str, grid_range: GridRange, color: str) -> dict[str, str]:
    offsets = np.arange(SUBSAMPLES_PER_CELL) / SUBSAMPLES_PER_CELL
    n_columns = grid_range.x_max - grid_range.x_min + 1
    step = max(1, SAMPLE_CHUNK_SIZE // SUBSAMPLES_PER_CELL)

    cells: dict[str, str] = {}
    for start in range(0, n_columns, step):
        columns = grid_range.x_min + np.arange(start, min(start + step, n_columns))
        xs = columns[:, None] + offsets[None, :]  # (n_columns, n_subsamples)

        ys = sample_explicit(expression, xs)
        finite = np.isfinite(ys)
        rows = np.floor(np.where(finite, ys, 0.0))
        inside = finite & (rows >= grid_range.y_min) & (rows <= grid_range.y_max)

        for i, j in zip(*np.nonzero(inside)):
            cells[grid_key(int(columns[i]), int(rows[i, j]))] = color
    return cells


def _mark_implicit(expression: str, grid_range: GridRange, color: str) -> dict[str, str]:
    n_columns = grid_range.x_max - grid_range.x_min + 1
    n_rows = grid_range.y_max - grid_range.y_min + 1
    # Blocks of whole columns while a column fits, else one column at a time,
    # so cells are always visited in x-major order
    row_step = min(n_rows, SAMPLE_CHUNK_SIZE)
    column_step = max(1, SAMPLE_CHUNK_SIZE // row_step)

    cells: dict[str, str] = {}
    for i0 in range(0, n_columns, column_step):
        i1 = min(i0 + column_step, n_columns)
        xs = grid_range.x_min + np.arange(i0, i1 + 1, dtype=np.float64)
        for j0 in range(0, n_rows, row_step):
            j1 = min(j0 + row_step, n_rows)
            ys = grid_range.y_min + np.arange(j0, j1 + 1, dtype=np.float64)

            # Corner lattice of the block: cell (i, j) uses values[i:i+2, j:j+2]
            values = sample_implicit(expression, xs[:, None], ys[None, :])
            crossed = _corners_cross(values[:-1, :-1], values[1:, :-1], values[:-1, 1:], values[1:, 1:])

            for i, j in np.argwhere(crossed):
                cells[grid_key(grid_range.x_min + i0 + int(i), grid_range.y_min + j0 + int(j))] = color
    return cells


def mark_grid_cells(parsed: ParsedEquation, grid_range: GridRange, color: str) -> dict[str, str]:
    """
    Mode A: compute the grid cells a curve passes through.

    Explicit equations are sampled at ``SUBSAMPLES_PER_CELL`` points per
    column (x, x+0.1, ..., x+0.9) and each finite value marks row floor(y).
    Implicit equations mark every cell whose corners change sign.

    Args:
        parsed: Classified equation.
        grid_range: Inclusive integer bounds.
        color: Color stored for every marked cell.

    Returns:
        New ``"x,y" -> color`` map in x-major order. Merge it into an existing
        pixel map with :func:`mcpainter.model.pixels.merge_pixels`.
    """
    if grid_range.is_empty:
        return {}

    if parsed.is_implicit:
        cells = _mark_implicit(parsed.expression, grid_range, color)
    else:
        cells = _mark_explicit(parsed.expression, grid_range, color)

    logger.debug(f"Marked {len(cells)} cells for {parsed.kind.value} expression {parsed.expression!r}.")
    return cells


# -------------------------------------------------------------------------------
# Mode B: continuous curve drawing
# -------------------------------------------------------------------------------

def trace_explicit_curve(
    expression: str,
    viewport: Viewport,
    column_step: int = EXPLICIT_COLUMN_STEP
) -> list[npt.NDArray[np.float64]]:
    """
    Sample y = f(x) once per ``column_step`` screen columns.

    Returns:
        Polylines of shape (n, 2) in screen coordinates, n >= 2. A new
        polyline starts after every non-finite sample.
    """
    sxs = np.arange(0, viewport.width + 1, column_step, dtype=np.float64)
    mxs, _ = viewport.to_math(sxs, 0.0)
    mys = sample_explicit(expression, mxs)
    _, sys_ = viewport.to_screen(mxs, mys)

    polylines: list[npt.NDArray[np.float64]] = []
    current: list[int] = []
    for i, finite in enumerate(np.isfinite(mys)):
        if finite:
            current.append(i)
            continue
        if len(current) >= 2:
            polylines.append(np.column_stack((sxs[current], sys_[current])))
        current = []
    if len(current) >= 2:
        polylines.append(np.column_stack((sxs[current], sys_[current])))

    return polylines


def trace_implicit_curve(
    expression: str,
    viewport: Viewport,
    step: int = IMPLICIT_BLOCK_STEP
) -> npt.NDArray[np.float64]:
    """
    Coarse implicit curve indicator over ``step``-pixel screen blocks.

    Every block whose corner configuration is mixed (not 0 or 15) and whose
    corners are all finite yields the fixed diagonal from its top-left to its
    bottom-right corner, regardless of which edges the curve crosses.

    Returns:
        Array of shape (n, 2, 2): n segments of two (sx, sy) points.
    """
    sxs = np.arange(0, viewport.width, step, dtype=np.float64)
    sys_ = np.arange(0, viewport.height, step, dtype=np.float64)
    if sxs.size == 0 or sys_.size == 0:
        return np.empty((0, 2, 2))

    # Corner lattice, one extra row and column for the far block edges
    lattice_x = np.append(sxs, sxs[-1] + step)
    lattice_y = np.append(sys_, sys_[-1] + step)
    mx, my = viewport.to_math(lattice_x[:, None], lattice_y[None, :])
    values = sample_implicit(expression, mx, my)

    v00 = values[:-1, :-1]
    v10 = values[1:, :-1]
    v01 = values[:-1, 1:]
    v11 = values[1:, 1:]

    finite = np.isfinite(v00) & np.isfinite(v10) & np.isfinite(v01) & np.isfinite(v11)
    config = corner_config(v00, v10, v11, v01)
    crossed = finite & (config != 0) & (config != 15)

    ii, jj = np.nonzero(crossed)
    starts = np.column_stack((sxs[ii], sys_[jj]))
    return np.stack((starts, starts + step), axis=1)
