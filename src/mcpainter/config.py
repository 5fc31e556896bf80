"""
Configuration & Constants
=========================
This module serves as the central registry for global constants.

Why is this file needed?
------------------------
1. Abstraction: It prevents magic numbers (sampling steps, palette colors)
   scattered throughout the code.
2. Consistency: The rasterizer, the canvas painter and the share codec must
   agree on the same palette and grid defaults.

Exports:
    DEFAULT_RANGE (tuple): Default inclusive (x_min, x_max, y_min, y_max).
    FUNCTION_COLORS (list): Palette cycled through when adding functions.
    SHARE_COLORS (list): Palette indexed by the share codec.
"""
from typing import Final

# Mode A (grid marking)
DEFAULT_RANGE: Final[tuple[int, int, int, int]] = (-10, 10, -10, 10)
SUBSAMPLES_PER_CELL: Final[int] = 10  # x, x+0.1, ..., x+0.9
DEFAULT_CELL_SIZE: Final[float] = 1.0
IMPLICIT_TOLERANCE: Final[float] = 0.1
SAMPLE_CHUNK_SIZE: Final[int] = 1 << 18  # max grid cells evaluated per numpy call

# Mode B (live drawing), in screen pixels
EXPLICIT_COLUMN_STEP: Final[int] = 2
IMPLICIT_BLOCK_STEP: Final[int] = 4
DEFAULT_GRID_SIZE: Final[int] = 24
CURVE_LINE_WIDTH: Final[float] = 2.0

# Canvas colors
BACKGROUND_COLOR: Final[str] = "#1a1a2e"
GRID_LINE_COLOR: Final[str] = "#2a2a4a"
AXIS_COLOR: Final[str] = "#4a4a6a"
LABEL_COLOR: Final[str] = "#6a6a8a"
PIXEL_OUTLINE_COLOR: Final[str] = "#0a0a15"
EXPORT_PADDING: Final[int] = 1

FUNCTION_COLORS: Final[list[str]] = [
    "#ffffff",  # white
    "#1a1a2e",  # dark grey
    "#e74c3c",  # red
    "#e67e22",  # orange
    "#f1c40f",  # yellow
    "#2ecc71",  # green
    "#3498db",  # blue
    "#9b59b6",  # purple
    "#1abc9c",  # teal
    "#e91e63",  # pink
    "#795548",  # brown
    "#607d8b",  # blue grey
]

SHARE_COLORS: Final[list[str]] = [
    "#ffffff", "#e74c3c", "#e67e22", "#f1c40f", "#2ecc71", "#3498db",
    "#9b59b6", "#1abc9c", "#e91e63", "#795548", "#607d8b", "#12d1ef",
]
SHARE_FALLBACK_COLOR: Final[str] = "#2ecc71"
