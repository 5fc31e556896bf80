"""
Function List (Data Model)
==========================
Holds the functions the user plots on the canvas and marks onto the grid.

Classes:
    FunctionItem: One user-entered function.
    FunctionList: Ordered collection with palette assignment.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
import itertools
import logging
from typing import Any, Iterator

from mcpainter.config import FUNCTION_COLORS
from mcpainter.model.equation import parse_function
from mcpainter.model.raster import GridRange, mark_grid_cells

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FunctionItem:
    id: str
    expression: str = ""  # raw user input, LaTeX or plain
    color: str = FUNCTION_COLORS[0]
    visible: bool = True
    is_latex: bool = False

    @property
    def is_blank(self) -> bool:
        return not self.expression.strip()


@dataclass
class FunctionList:
    """
    Ordered list of functions. New items take the next palette color,
    ``len(items) % len(palette)``.
    """
    items: list[FunctionItem] = field(default_factory=list)
    palette: list[str] = field(default_factory=lambda: list(FUNCTION_COLORS))
    _ids: Iterator[int] = field(default_factory=lambda: itertools.count(1), repr=False)

    def __iter__(self) -> Iterator[FunctionItem]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def get(self, fn_id: str) -> FunctionItem:
        for item in self.items:
            if item.id == fn_id:
                return item
        raise KeyError(f"Function '{fn_id}' not found.")

    def add(self, is_latex: bool = False, expression: str = "") -> FunctionItem:
        color = self.palette[len(self.items) % len(self.palette)]
        item = FunctionItem(id=f"fn-{next(self._ids)}", expression=expression, color=color, is_latex=is_latex)
        self.items.append(item)
        return item

    def remove(self, fn_id: str) -> None:
        self.items = [item for item in self.items if item.id != fn_id]

    def update(self, fn_id: str, **changes: Any) -> FunctionItem:
        for i, item in enumerate(self.items):
            if item.id == fn_id:
                self.items[i] = replace(item, **changes)
                return self.items[i]
        raise KeyError(f"Function '{fn_id}' not found.")

    def toggle_visibility(self, fn_id: str) -> FunctionItem:
        return self.update(fn_id, visible=not self.get(fn_id).visible)

    def visible(self) -> list[FunctionItem]:
        return [item for item in self.items if item.visible and not item.is_blank]


def mark_function(item: FunctionItem, grid_range: GridRange) -> dict[str, str]:
    """
    Mark the grid cells of one function in its own color.

    Blank expressions mark nothing. The result is meant to be merged into the
    caller's pixel map.
    """
    if item.is_blank:
        return {}

    parsed = parse_function(item.expression, item.is_latex)
    cells = mark_grid_cells(parsed, grid_range, item.color)
    logger.info(f"Marked {len(cells)} cells for {item.id} ({parsed.kind.value}).")
    return cells
