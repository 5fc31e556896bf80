import pytest

from mcpainter.config import FUNCTION_COLORS
from mcpainter.model.functions import FunctionItem, FunctionList, mark_function
from mcpainter.model.raster import GridRange


def test_add_assigns_ids_and_cycles_palette():
    functions = FunctionList()
    items = [functions.add() for _ in range(len(FUNCTION_COLORS) + 1)]

    assert [item.id for item in items[:3]] == ["fn-1", "fn-2", "fn-3"]
    assert [item.color for item in items[:-1]] == list(FUNCTION_COLORS)
    assert items[-1].color == FUNCTION_COLORS[0]
    assert len(functions) == len(FUNCTION_COLORS) + 1


def test_color_follows_current_length_after_remove():
    functions = FunctionList(palette=["#111111", "#222222", "#333333"])
    first = functions.add()
    functions.add()
    functions.remove(first.id)

    third = functions.add()
    assert third.id == "fn-3"
    assert third.color == "#222222"
    assert [item.id for item in functions] == ["fn-2", "fn-3"]


def test_update_replaces_item():
    functions = FunctionList()
    item = functions.add(is_latex=True)

    updated = functions.update(item.id, expression=r"\sin(x)")
    assert updated.expression == r"\sin(x)"
    assert updated.is_latex
    assert functions.get(item.id) is updated
    assert item.expression == ""


def test_toggle_visibility():
    functions = FunctionList()
    item = functions.add(expression="x")

    assert not functions.toggle_visibility(item.id).visible
    assert functions.toggle_visibility(item.id).visible


def test_unknown_id_raises():
    functions = FunctionList()
    with pytest.raises(KeyError):
        functions.get("fn-99")
    with pytest.raises(KeyError):
        functions.update("fn-99", expression="x")


def test_visible_skips_hidden_and_blank():
    functions = FunctionList()
    shown = functions.add(expression="x")
    hidden = functions.add(expression="x^2")
    functions.add(expression="   ")
    functions.toggle_visibility(hidden.id)

    assert functions.visible() == [shown]


def test_mark_blank_function():
    assert mark_function(FunctionItem(id="fn-1", expression="  "), GridRange()) == {}


def test_mark_latex_circle_uses_item_color():
    item = FunctionItem(id="fn-1", expression="x^2+y^2=25", color="#3498db", is_latex=True)
    cells = mark_function(item, GridRange())

    assert cells
    assert set(cells.values()) == {"#3498db"}
    assert "3,3" in cells
    assert "0,0" not in cells


def test_mark_plain_parabola():
    item = FunctionItem(id="fn-1", expression="x^2", color="#e74c3c")
    cells = mark_function(item, GridRange(-3, 3, -3, 3))

    assert "0,0" in cells
    assert "1,1" in cells
    assert "-1,0" in cells
    assert "3,3" not in cells
