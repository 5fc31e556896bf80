"""
Pixel Map Helpers
A pixel map is a plain ``dict`` from grid key ``"x,y"`` to a ``#rrggbb`` color.
"""
from __future__ import annotations

from typing import Mapping, Optional

from mcpainter.utils import parse_grid_key

PixelMap = dict[str, str]


def merge_pixels(existing: Mapping[str, str], new: Mapping[str, str]) -> PixelMap:
    """Return a new map with ``new`` written over ``existing`` (last write wins, no blending)."""
    merged = dict(existing)
    merged.update(new)
    return merged


def pixel_bounds(pixels: Mapping[str, str]) -> Optional[tuple[int, int, int, int]]:
    """
    Bounding box of a pixel map.

    Returns:
        (min_x, max_x, min_y, max_y), or None for an empty map.
    """
    if not pixels:
        return None
    coords = [parse_grid_key(key) for key in pixels]
    xs = [x for x, _ in coords]
    ys = [y for _, y in coords]
    return min(xs), max(xs), min(ys), max(ys)
