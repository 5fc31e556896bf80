"""
mcpainter
=========
Function plotting core for a pixel-art painter.

Typical use:
    >>> from mcpainter.model.equation import parse_latex
    >>> from mcpainter.model.raster import GridRange, mark_grid_cells
    >>> parsed = parse_latex(r"\\frac{x^2}{4}+\\frac{y^2}{9}=1")
    >>> pixels = mark_grid_cells(parsed, GridRange(), "#e74c3c")
"""
