"""
Input/Output Manager
Share-string codec and JSON persistence for pixel maps.

Share format:
    Cells sorted by (y, x), each written as ``"dx,dy,colorIndex;"`` relative
    to the previous cell (the first relative to 0,0), the whole string base64
    encoded. ``colorIndex`` is the position in ``SHARE_COLORS`` or -1.
"""
import base64
import binascii
import json
import logging
from importlib.metadata import version, PackageNotFoundError
from typing import Mapping

from mcpainter.config import SHARE_COLORS, SHARE_FALLBACK_COLOR
from mcpainter.model.pixels import PixelMap
from mcpainter.utils import grid_key, parse_grid_key

logger = logging.getLogger(__name__)

try:
    APP_VERSION = version("mcpainter")
except PackageNotFoundError:
    APP_VERSION = "0.0.0-dev"


def color_to_index(color: str) -> int:
    try:
        return SHARE_COLORS.index(color)
    except ValueError:
        return -1

def index_to_color(index: int) -> str:
    if 0 <= index < len(SHARE_COLORS):
        return SHARE_COLORS[index]
    return SHARE_FALLBACK_COLOR


def encode_pixels(pixels: Mapping[str, str]) -> str:
    """Encode a pixel map as a compact share string. Empty maps give ``""``."""
    if not pixels:
        return ""

    entries = sorted(
        ((parse_grid_key(key), color) for key, color in pixels.items()),
        key=lambda entry: (entry[0][1], entry[0][0]),
    )

    parts: list[str] = []
    prev_x, prev_y = 0, 0
    for (x, y), color in entries:
        parts.append(f"{x - prev_x},{y - prev_y},{color_to_index(color)};")
        prev_x, prev_y = x, y

    return base64.b64encode("".join(parts).encode("ascii")).decode("ascii")


def decode_pixels(encoded: str) -> PixelMap:
    """
    Decode a share string.

    Malformed input is logged; the cells decoded before the error are kept.
    """
    pixels: PixelMap = {}
    if not encoded:
        return pixels

    try:
        decoded = base64.b64decode(encoded, validate=True).decode("ascii")
        x, y = 0, 0
        for entry in filter(None, decoded.split(";")):
            dx, dy, color_index = (int(v) for v in entry.split(","))
            x += dx
            y += dy
            pixels[grid_key(x, y)] = index_to_color(color_index)
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        logger.warning(f"Failed to decode shared pixels: {e}")

    return pixels


def save_pixels(pixels: Mapping[str, str], filepath: str) -> None:
    logger.info(f"Saving {len(pixels)} pixels to: {filepath}")
    with open(filepath, "w", encoding="utf-8") as f:
        json.dump({"version": APP_VERSION, "pixels": dict(pixels)}, f, indent=2)


def load_pixels(filepath: str) -> PixelMap:
    """
    Load a pixel map written by :func:`save_pixels`.

    Raises:
        ValueError: If the file is not a valid pixel map.
    """
    logger.info(f"Loading pixels from: {filepath}")
    with open(filepath, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"'{filepath}' is not valid JSON: {e}") from e

    pixels = data.get("pixels") if isinstance(data, dict) else None
    if not isinstance(pixels, dict):
        raise ValueError(f"'{filepath}' does not contain a pixel map.")

    for key, color in pixels.items():
        parse_grid_key(key)
        if not isinstance(color, str):
            raise ValueError(f"Invalid color for cell '{key}': {color!r}")

    logger.debug(f"Loaded {len(pixels)} pixels (file version {data.get('version', 'unknown')}).")
    return dict(pixels)
