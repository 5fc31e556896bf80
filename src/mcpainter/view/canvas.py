"""
Canvas Painting
===============
Draws the painter scene with QPainter: background grid, axes, function
curves (Mode B tracing) and marked pixels. Also renders a pixel map to a
standalone QImage for PNG export.

Note: All tracing math lives in :mod:`mcpainter.model.raster`; this module
only converts its output into Qt primitives.
"""
from __future__ import annotations

import logging
import math
from typing import Iterable, Mapping, Optional, TYPE_CHECKING

import numpy as np
from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QColor, QImage, QMouseEvent, QPainter, QPainterPath, QPaintEvent, QPen
from PySide6.QtWidgets import QWidget

from mcpainter.config import (
    AXIS_COLOR,
    BACKGROUND_COLOR,
    CURVE_LINE_WIDTH,
    DEFAULT_GRID_SIZE,
    EXPORT_PADDING,
    GRID_LINE_COLOR,
    PIXEL_OUTLINE_COLOR,
)
from mcpainter.model.equation import parse_function
from mcpainter.model.functions import FunctionItem
from mcpainter.model.pixels import pixel_bounds
from mcpainter.model.raster import Viewport, trace_explicit_curve, trace_implicit_curve
from mcpainter.utils import parse_grid_key

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)


# -------------------------------------------------------------------------------
# Path construction
# -------------------------------------------------------------------------------

def polylines_to_path(polylines: Iterable[npt.NDArray[np.float64]]) -> QPainterPath:
    """One subpath per (n, 2) polyline."""
    path = QPainterPath()
    for line in polylines:
        path.moveTo(QPointF(float(line[0, 0]), float(line[0, 1])))
        for sx, sy in line[1:]:
            path.lineTo(QPointF(float(sx), float(sy)))
    return path


def segments_to_path(segments: npt.NDArray[np.float64]) -> QPainterPath:
    """One two-point subpath per (2, 2) segment."""
    path = QPainterPath()
    for (x0, y0), (x1, y1) in segments:
        path.moveTo(QPointF(float(x0), float(y0)))
        path.lineTo(QPointF(float(x1), float(y1)))
    return path


def function_path(item: FunctionItem, viewport: Viewport) -> Optional[QPainterPath]:
    """Trace one function over the viewport. None for blank expressions."""
    if item.is_blank:
        return None
    parsed = parse_function(item.expression, item.is_latex)
    if parsed.is_implicit:
        return segments_to_path(trace_implicit_curve(parsed.expression, viewport))
    return polylines_to_path(trace_explicit_curve(parsed.expression, viewport))


# -------------------------------------------------------------------------------
# Scene painting
# -------------------------------------------------------------------------------

def _pen(color: str, width: float = 1.0) -> QPen:
    pen = QPen(QColor(color))
    pen.setWidthF(width)
    return pen


def paint_grid(painter: QPainter, viewport: Viewport) -> None:
    """Background, unit grid lines and the two axes (when on screen)."""
    width, height = viewport.width, viewport.height
    g = viewport.grid_size
    painter.fillRect(QRectF(0, 0, width, height), QColor(BACKGROUND_COLOR))

    start_x = math.floor(-viewport.offset_x / g) - 1
    start_y = math.floor(-viewport.offset_y / g) - 1
    end_x = math.ceil((width - viewport.offset_x) / g) + 1
    end_y = math.ceil((height - viewport.offset_y) / g) + 1

    painter.setPen(_pen(GRID_LINE_COLOR))
    for x in range(start_x, end_x + 1):
        sx = x * g + viewport.offset_x
        painter.drawLine(QPointF(sx, 0), QPointF(sx, height))
    for y in range(start_y, end_y + 1):
        sy = y * g + viewport.offset_y
        painter.drawLine(QPointF(0, sy), QPointF(width, sy))

    painter.setPen(_pen(AXIS_COLOR, 2.0))
    if 0 <= viewport.offset_x <= width:
        painter.drawLine(QPointF(viewport.offset_x, 0), QPointF(viewport.offset_x, height))
    if 0 <= viewport.offset_y <= height:
        painter.drawLine(QPointF(0, viewport.offset_y), QPointF(width, viewport.offset_y))


def paint_functions(painter: QPainter, viewport: Viewport, functions: Iterable[FunctionItem]) -> None:
    painter.setBrush(Qt.BrushStyle.NoBrush)
    for item in functions:
        if not item.visible:
            continue
        path = function_path(item, viewport)
        if path is None:
            continue
        painter.setPen(_pen(item.color, CURVE_LINE_WIDTH))
        painter.drawPath(path)


def paint_pixels(painter: QPainter, viewport: Viewport, pixels: Mapping[str, str]) -> None:
    """Marked cells as squares inset by one pixel."""
    painter.setPen(Qt.PenStyle.NoPen)
    for key, color in pixels.items():
        x, y = parse_grid_key(key)
        sx, sy, w, h = viewport.cell_rect(x, y)
        painter.fillRect(QRectF(sx + 1, sy + 1, w - 2, h - 2), QColor(color))


def paint_scene(
    painter: QPainter,
    viewport: Viewport,
    functions: Iterable[FunctionItem],
    pixels: Mapping[str, str]
) -> None:
    paint_grid(painter, viewport)
    paint_functions(painter, viewport, functions)
    paint_pixels(painter, viewport, pixels)


# -------------------------------------------------------------------------------
# Export
# -------------------------------------------------------------------------------

def export_pixels_image(
    pixels: Mapping[str, str],
    grid_size: int = DEFAULT_GRID_SIZE,
    padding: int = EXPORT_PADDING
) -> Optional[QImage]:
    """
    Render a pixel map to an image cropped to its bounding box.

    Args:
        pixels: ``"x,y" -> color`` map.
        grid_size: Cell size in image pixels.
        padding: Empty cells added around the bounding box.

    Returns:
        The image, or None if the map is empty.
    """
    bounds = pixel_bounds(pixels)
    if bounds is None:
        return None
    min_x, max_x, min_y, max_y = bounds

    width = (max_x - min_x + 1 + padding * 2) * grid_size
    height = (max_y - min_y + 1 + padding * 2) * grid_size

    image = QImage(width, height, QImage.Format.Format_ARGB32)
    image.fill(QColor(BACKGROUND_COLOR))

    painter = QPainter(image)
    try:
        painter.setPen(_pen(GRID_LINE_COLOR))
        for x in range(0, width + 1, grid_size):
            painter.drawLine(QPointF(x, 0), QPointF(x, height))
        for y in range(0, height + 1, grid_size):
            painter.drawLine(QPointF(0, y), QPointF(width, y))

        outline = _pen(PIXEL_OUTLINE_COLOR)
        for key, color in pixels.items():
            x, y = parse_grid_key(key)
            sx = (x - min_x + padding) * grid_size
            sy = (max_y - y + padding) * grid_size  # image y grows downwards
            painter.fillRect(QRectF(sx + 1, sy + 1, grid_size - 2, grid_size - 2), QColor(color))
            painter.setPen(outline)
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawRect(QRectF(sx + 0.5, sy + 0.5, grid_size - 1, grid_size - 1))
    finally:
        painter.end()

    logger.debug(f"Exported {len(pixels)} pixels to a {width}x{height} image.")
    return image


# -------------------------------------------------------------------------------
# Widget
# -------------------------------------------------------------------------------

class PixelCanvas(QWidget):
    """
    Live canvas: grid, curves and pixels. Left-drag pans the view; the math
    origin starts at the widget center.
    """
    def __init__(
        self,
        functions: Iterable[FunctionItem] = (),
        pixels: Optional[Mapping[str, str]] = None,
        grid_size: int = DEFAULT_GRID_SIZE,
        parent: QWidget | None = None
    ) -> None:
        super().__init__(parent)
        self.functions: list[FunctionItem] = list(functions)
        self.pixels: dict[str, str] = dict(pixels or {})
        self.grid_size = grid_size
        self._offset: Optional[tuple[float, float]] = None
        self._last_pan_pos: Optional[QPointF] = None
        self.setMinimumSize(320, 240)

    # ---- public API ----

    def set_functions(self, functions: Iterable[FunctionItem]) -> None:
        self.functions = list(functions)
        self.update()

    def set_pixels(self, pixels: Mapping[str, str]) -> None:
        self.pixels = dict(pixels)
        self.update()

    def viewport(self) -> Viewport:
        if self._offset is None:
            self._offset = (self.width() / 2, self.height() / 2)
        return Viewport(
            width=self.width(),
            height=self.height(),
            offset_x=self._offset[0],
            offset_y=self._offset[1],
            grid_size=self.grid_size,
        )

    # ---- Qt events ----

    def paintEvent(self, event: QPaintEvent) -> None:
        painter = QPainter(self)
        try:
            painter.setRenderHint(QPainter.RenderHint.Antialiasing)
            paint_scene(painter, self.viewport(), self.functions, self.pixels)
        finally:
            painter.end()

    def mousePressEvent(self, event: QMouseEvent) -> None:
        if event.button() == Qt.MouseButton.LeftButton:
            self._last_pan_pos = event.position()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        if self._last_pan_pos is None:
            return
        pos = event.position()
        ox, oy = self.viewport().offset_x, self.viewport().offset_y
        self._offset = (ox + pos.x() - self._last_pan_pos.x(), oy + pos.y() - self._last_pan_pos.y())
        self._last_pan_pos = pos
        self.update()

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        self._last_pan_pos = None
