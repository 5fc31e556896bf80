"""
Command-line interface.

Usage:
    $ python -m mcpainter parse "\\frac{x^2}{4}+\\frac{y^2}{9}=1"
    $ python -m mcpainter mark "y=x^2" --x-min -3 --x-max 3 --json
    $ python -m mcpainter share "x^2+y^2=25"
    $ python -m mcpainter export "\\sin(x)*5" -o sine.png
    $ python -m mcpainter mark "y=x" "y=-x" --save cross.json
    $ python -m mcpainter share "x^2+y^2=4" --load cross.json
    $ python -m mcpainter show --from-share MCwwLDA7
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional, Sequence

from mcpainter.config import DEFAULT_GRID_SIZE, DEFAULT_RANGE
from mcpainter.logging_config import setup_logging
from mcpainter.model.equation import parse_function
from mcpainter.model.functions import FunctionList, mark_function
from mcpainter.model.io import decode_pixels, encode_pixels, load_pixels, save_pixels
from mcpainter.model.pixels import PixelMap, merge_pixels
from mcpainter.model.raster import GridRange

logger = logging.getLogger(__name__)


def _add_expression_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "expressions", nargs="*", metavar="expression",
        help="LaTeX-subset expressions, or plain with --plain; later ones overwrite shared cells",
    )
    parser.add_argument("--plain", action="store_true", help="treat the expressions as plain syntax (x^2 + sin(x))")
    parser.add_argument("--x-min", default=str(DEFAULT_RANGE[0]))
    parser.add_argument("--x-max", default=str(DEFAULT_RANGE[1]))
    parser.add_argument("--y-min", default=str(DEFAULT_RANGE[2]))
    parser.add_argument("--y-max", default=str(DEFAULT_RANGE[3]))
    parser.add_argument("--color", help="color of all marked cells (default: one palette color per expression)")

    base = parser.add_mutually_exclusive_group()
    base.add_argument("--load", metavar="FILE", help="start from a saved pixel map")
    base.add_argument("--from-share", metavar="STRING", help="start from a share string")
    parser.add_argument("--save", metavar="FILE", help="save the resulting pixel map")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mcpainter", description="Plot LaTeX-subset functions onto a pixel grid.")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_parse = sub.add_parser("parse", help="classify and normalize an expression")
    p_parse.add_argument("expression")
    p_parse.add_argument("--plain", action="store_true")

    p_mark = sub.add_parser("mark", help="print the grid cells the curves pass through")
    _add_expression_arguments(p_mark)
    p_mark.add_argument("--json", action="store_true", help="print a JSON pixel map")

    p_share = sub.add_parser("share", help="print the share string of the marked cells")
    _add_expression_arguments(p_share)

    p_export = sub.add_parser("export", help="render the marked cells to a PNG")
    _add_expression_arguments(p_export)
    p_export.add_argument("-o", "--output", required=True)
    p_export.add_argument("--grid-size", type=int, default=DEFAULT_GRID_SIZE)

    p_show = sub.add_parser("show", help="open the live canvas")
    _add_expression_arguments(p_show)

    return parser


def _build_functions(args: argparse.Namespace) -> FunctionList:
    functions = FunctionList()
    for expression in args.expressions:
        item = functions.add(is_latex=not args.plain, expression=expression)
        if args.color:
            functions.update(item.id, color=args.color)
    return functions


def _base_pixels(args: argparse.Namespace) -> PixelMap:
    if args.load:
        return load_pixels(args.load)
    if args.from_share:
        return decode_pixels(args.from_share)
    return {}


def _marked_pixels(args: argparse.Namespace) -> tuple[FunctionList, PixelMap]:
    """Mark every expression in order on top of the loaded pixels."""
    functions = _build_functions(args)
    pixels = _base_pixels(args)
    if not functions and not pixels:
        raise ValueError("Nothing to draw: pass an expression, --load or --from-share.")

    grid_range = GridRange.from_inputs(args.x_min, args.x_max, args.y_min, args.y_max)
    for item in functions:
        pixels = merge_pixels(pixels, mark_function(item, grid_range))

    if args.save:
        save_pixels(pixels, args.save)
    return functions, pixels


def _run(args: argparse.Namespace) -> int:
    if args.command == "parse":
        parsed = parse_function(args.expression, not args.plain)
        print(f"{parsed.kind.value}: {parsed.expression}")
        return 0

    functions, pixels = _marked_pixels(args)

    if args.command == "mark":
        if args.json:
            print(json.dumps(pixels, indent=2))
        else:
            for key in pixels:
                print(key)
        return 0

    if args.command == "share":
        print(encode_pixels(pixels))
        return 0

    # Qt is only needed for the graphical commands
    if args.command == "export":
        from PySide6.QtGui import QGuiApplication
        from mcpainter.view.canvas import export_pixels_image

        app = QGuiApplication.instance() or QGuiApplication(sys.argv[:1])
        image = export_pixels_image(pixels, grid_size=args.grid_size)
        if image is None:
            print("ERROR: Nothing to export, no cells were marked.", file=sys.stderr)
            return 1
        if not image.save(args.output, "PNG"):
            print(f"ERROR: Could not write '{args.output}'.", file=sys.stderr)
            return 1
        logger.info(f"Wrote {len(pixels)} cells to {args.output}")
        return 0

    if args.command == "show":
        from PySide6.QtWidgets import QApplication
        from mcpainter.view.canvas import PixelCanvas

        app = QApplication.instance() or QApplication(sys.argv[:1])
        canvas = PixelCanvas(functions=functions.visible(), pixels=pixels)
        canvas.setWindowTitle(f"mcpainter - {', '.join(args.expressions) or 'pixels'}")
        canvas.resize(960, 720)
        canvas.show()
        return app.exec()

    raise ValueError(f"Unknown command '{args.command}'.")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)
    setup_logging(level=logging.DEBUG if args.verbose else logging.WARNING)
    try:
        return _run(args)
    except Exception as e:
        logger.error(f"Command '{args.command}' failed: {e}")
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
