import numpy as np
import pytest

from mcpainter.model.equation import EquationKind, ParsedEquation, parse_latex
from mcpainter.model.expression import evaluate_implicit
from mcpainter.model import raster
from mcpainter.model.raster import (
    GridRange,
    Viewport,
    check_grid_cell,
    corner_config,
    is_on_implicit_curve,
    mark_grid_cells,
    trace_explicit_curve,
    trace_implicit_curve,
)
from mcpainter.utils import parse_grid_key

UNIT_CIRCLE = "x**2+y**2-1"
RED = "#e74c3c"


# ---- cell classification ----

def test_check_grid_cell_unit_circle():
    assert check_grid_cell(UNIT_CIRCLE, 0, 0, 1)
    assert not check_grid_cell(UNIT_CIRCLE, 5, 5, 1)


def test_check_grid_cell_needs_both_signs():
    # corners 0, 1, 1, 2: touches zero but never goes negative
    assert not check_grid_cell("x+y", 0, 0)


def test_check_grid_cell_skips_non_finite_corners():
    assert not check_grid_cell("sqrt(x)+y-0.5", -1, 0)
    assert not check_grid_cell("1/x+y", 0, 0)


def test_check_grid_cell_cell_size():
    # circle of radius 3 is missed by unit cells near origin but caught by a big cell
    assert not check_grid_cell("x**2+y**2-9", 0, 0, 1)
    assert check_grid_cell("x**2+y**2-9", 0, 0, 4)


def test_is_on_implicit_curve():
    assert is_on_implicit_curve(UNIT_CIRCLE, 1, 0)
    assert is_on_implicit_curve(UNIT_CIRCLE, 1.01, 0)
    assert not is_on_implicit_curve(UNIT_CIRCLE, 0, 0)
    assert not is_on_implicit_curve("undefinedToken", 0, 0)


def test_corner_config():
    assert corner_config(1, 1, 1, 1) == 15
    assert corner_config(-1, -1, -1, -1) == 0
    assert corner_config(1, -1, -1, -1) == 8
    assert corner_config(-1, 1, -1, -1) == 4
    assert corner_config(-1, -1, 1, -1) == 2
    assert corner_config(-1, -1, -1, 1) == 1
    assert corner_config(0, 0, 0, 0) == 0
    np.testing.assert_array_equal(corner_config(np.array([1, -1]), 1, 1, 1), [15, 7])


# ---- grid range ----

def test_grid_range_from_inputs():
    assert GridRange.from_inputs("-5", "5", "-2", "2") == GridRange(-5, 5, -2, 2)
    assert GridRange.from_inputs("abc", "7.9", "", "3px") == GridRange(0, 7, 0, 3)
    assert GridRange.from_inputs(1, 2.0, float("nan"), " +4") == GridRange(1, 2, 0, 4)


def test_grid_range_defaults():
    assert GridRange() == GridRange(-10, 10, -10, 10)
    assert GridRange(1, 0, 0, 0).is_empty


# ---- Mode A ----

def test_mark_identity_line():
    cells = mark_grid_cells(parse_latex("x"), GridRange(-2, 2, -2, 2), RED)
    assert list(cells) == ["-2,-2", "-1,-1", "0,0", "1,1", "2,2"]
    assert set(cells.values()) == {RED}


def test_mark_steep_line_subsamples():
    cells = mark_grid_cells(parse_latex("2x"), GridRange(0, 1, 0, 3), RED)
    assert list(cells) == ["0,0", "0,1", "1,2", "1,3"]


def test_mark_explicit_clips_rows():
    cells = mark_grid_cells(parse_latex("y=x^2"), GridRange(-3, 3, 0, 4), RED)
    rows = [parse_grid_key(key)[1] for key in cells]
    assert "0,0" in cells
    assert min(rows) >= 0 and max(rows) <= 4


def test_mark_explicit_skips_non_finite_samples():
    cells = mark_grid_cells(parse_latex(r"\sqrt{x}"), GridRange(-3, 3, -1, 3), RED)
    assert "0,0" in cells
    assert all(parse_grid_key(key)[0] >= 0 for key in cells)


def test_mark_unit_circle():
    parsed = ParsedEquation(EquationKind.IMPLICIT, UNIT_CIRCLE)
    cells = mark_grid_cells(parsed, GridRange(-2, 1, -2, 1), RED)
    assert list(cells) == ["-1,-1", "-1,0", "0,-1", "0,0"]


def test_mark_implicit_matches_cell_checks():
    parsed = parse_latex("x^2+y^2=25")
    grid_range = GridRange(-7, 7, -7, 7)
    cells = mark_grid_cells(parsed, grid_range, RED)

    expected = {
        f"{x},{y}"
        for x in range(grid_range.x_min, grid_range.x_max + 1)
        for y in range(grid_range.y_min, grid_range.y_max + 1)
        if check_grid_cell(parsed.expression, x, y, 1)
    }
    assert set(cells) == expected
    assert "3,3" in cells
    assert "0,0" not in cells
    # corners (4,3)=0, (5,3)=9, (4,4)=7, (5,4)=16: no negative corner
    assert "4,3" not in cells


@pytest.mark.parametrize("chunk_size", [1, 7, 40])
def test_chunked_marking_matches_single_pass(monkeypatch, chunk_size):
    circle = parse_latex("x^2+y^2=25")
    line = parse_latex("y=2x+1")
    grid_range = GridRange(-7, 7, -7, 7)
    expected_circle = mark_grid_cells(circle, grid_range, RED)
    expected_line = mark_grid_cells(line, grid_range, RED)

    monkeypatch.setattr(raster, "SAMPLE_CHUNK_SIZE", chunk_size)
    assert list(mark_grid_cells(circle, grid_range, RED).items()) == list(expected_circle.items())
    assert list(mark_grid_cells(line, grid_range, RED).items()) == list(expected_line.items())


def test_mark_large_range_in_bounded_blocks(monkeypatch):
    sizes = []
    sample = raster.sample_implicit

    def recording_sample(expression, xs, ys):
        values = sample(expression, xs, ys)
        sizes.append(values.size)
        return values

    monkeypatch.setattr(raster, "sample_implicit", recording_sample)
    parsed = parse_latex("x^2+y^2=25")
    cells = mark_grid_cells(parsed, GridRange(-1000, 1000, -1000, 1000), RED)

    assert len(sizes) > 1
    assert max(sizes) <= 2 * raster.SAMPLE_CHUNK_SIZE
    assert list(cells) == list(mark_grid_cells(parsed, GridRange(-7, 7, -7, 7), RED))



def test_mark_empty_cases():
    assert mark_grid_cells(parse_latex("x"), GridRange(3, 1, 0, 5), RED) == {}
    assert mark_grid_cells(parse_latex(r"\foo{x}"), GridRange(), RED) == {}
    assert mark_grid_cells(parse_latex("y=x=2"), GridRange(), RED) == {}


# ---- Mode B ----

VIEW = Viewport(width=100, height=100, offset_x=50, offset_y=50, grid_size=10)


def test_viewport_transforms():
    assert VIEW.to_math(60, 30) == (1.0, 2.0)
    assert VIEW.to_screen(1.0, 2.0) == (60.0, 30.0)
    assert VIEW.cell_rect(0, 0) == (50, 40, 10, 10)


def test_trace_explicit_single_polyline():
    polylines = trace_explicit_curve("x", VIEW)
    assert len(polylines) == 1
    line = polylines[0]
    assert line.shape == (51, 2)
    np.testing.assert_allclose(line[:, 1], 100 - line[:, 0])


def test_trace_explicit_starts_where_defined():
    polylines = trace_explicit_curve("sqrt(x)", VIEW)
    assert len(polylines) == 1
    assert polylines[0].shape == (26, 2)
    np.testing.assert_allclose(polylines[0][0], [50.0, 50.0])


def test_trace_explicit_breaks_at_pole():
    polylines = trace_explicit_curve("1/x", VIEW)
    assert [p.shape[0] for p in polylines] == [25, 25]
    assert polylines[0][-1, 0] == 48.0
    assert polylines[1][0, 0] == 52.0


def test_trace_explicit_nothing_finite():
    assert trace_explicit_curve("undefinedToken", VIEW) == []


def _brute_force_blocks(expression, viewport, step):
    blocks = set()
    for sx in range(0, viewport.width, step):
        for sy in range(0, viewport.height, step):
            x0, y0 = viewport.to_math(sx, sy)
            x1, y1 = viewport.to_math(sx + step, sy + step)
            v00 = evaluate_implicit(expression, x0, y0)
            v10 = evaluate_implicit(expression, x1, y0)
            v01 = evaluate_implicit(expression, x0, y1)
            v11 = evaluate_implicit(expression, x1, y1)
            if not all(np.isfinite([v00, v10, v01, v11])):
                continue
            if corner_config(v00, v10, v11, v01) in (0, 15):
                continue
            blocks.add((float(sx), float(sy)))
    return blocks


def test_trace_implicit_circle():
    expression = "x*x+y*y-4"
    segments = trace_implicit_curve(expression, VIEW, step=4)

    assert segments.ndim == 3 and segments.shape[1:] == (2, 2)
    assert len(segments) > 0
    np.testing.assert_allclose(segments[:, 1] - segments[:, 0], 4.0)

    starts = {(float(sx), float(sy)) for sx, sy in segments[:, 0]}
    assert starts == _brute_force_blocks(expression, VIEW, 4)
    assert (0.0, 0.0) not in starts


def test_trace_implicit_empty_viewport():
    empty = Viewport(width=0, height=100, offset_x=0, offset_y=0, grid_size=10)
    assert trace_implicit_curve(UNIT_CIRCLE, empty).shape == (0, 2, 2)
    assert trace_implicit_curve("undefinedToken", VIEW).shape == (0, 2, 2)
