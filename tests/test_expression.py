import math

import numpy as np
import pytest

from mcpainter.model.expression import (
    BinaryOp,
    ExpressionError,
    FunctionCall,
    Literal,
    UnaryOp,
    Variable,
    compile_expression,
    evaluate_explicit,
    evaluate_implicit,
    parse_expression,
    sample_explicit,
    sample_implicit,
    tokenize,
)


def test_tokenize():
    tokens = tokenize("sin(x)**2.5")
    assert [(t.kind, t.text) for t in tokens] == [
        ("name", "sin"), ("op", "("), ("name", "x"), ("op", ")"),
        ("op", "**"), ("number", "2.5"), ("end", ""),
    ]


def test_tokenize_rejects_unknown_characters():
    with pytest.raises(ExpressionError):
        tokenize("x^2")


def test_parse_precedence():
    assert parse_expression("1+2*3") == BinaryOp(
        "+", Literal(1.0), BinaryOp("*", Literal(2.0), Literal(3.0))
    )
    assert parse_expression("-x**2") == UnaryOp("-", BinaryOp("**", Variable("x"), Literal(2.0)))
    assert parse_expression("pow(x,2)") == FunctionCall("pow", (Variable("x"), Literal(2.0)))


@pytest.mark.parametrize("text", ["", "1+", "(x", "2 3", "sin(1,2)", "foo(1)", "bar", "pow(1)"])
def test_compile_errors(text):
    with pytest.raises(ExpressionError):
        compile_expression(text)


def test_compile_is_memoized():
    assert compile_expression("x+1") is compile_expression("x+1")
    assert compile_expression("x**2+y").variables == frozenset({"x", "y"})


def test_explicit_scenarios():
    assert evaluate_explicit("x**2", 3) == 9.0
    assert evaluate_explicit("((1)/(2))", 123.0) == 0.5
    assert evaluate_explicit("sin(x)", 0) == 0.0
    assert evaluate_explicit("log(e)", 0) == pytest.approx(1.0)
    assert evaluate_explicit("pi", 0) == pytest.approx(math.pi)


@pytest.mark.parametrize("text, x, expected", [
    ("-x**2", 3, -9.0),
    ("2**3**2", 0, 512.0),
    ("2**-1", 0, 0.5),
    ("x**-1", 2, 0.5),
    ("pow(2,10)", 0, 1024.0),
    ("round(2.5)", 0, 3.0),
    ("round(-2.5)", 0, -2.0),
    ("floor(-0.5)+ceil(0.2)", 0, 0.0),
    ("7%3", 0, 1.0),
    ("-7%3", 0, -1.0),
    ("abs(x)", -4, 4.0),
    ("log10(x)", 1000, 3.0),
])
def test_operators_and_functions(text, x, expected):
    assert evaluate_explicit(text, x) == pytest.approx(expected)


def test_failures_become_sentinels():
    assert math.isinf(evaluate_explicit("1/0", 1))
    assert math.isnan(evaluate_explicit("0/0", 1))
    assert math.isnan(evaluate_explicit("sqrt(-1)", 1))
    assert math.isnan(evaluate_explicit("(-8)**(1/3)", 1))
    assert math.isnan(evaluate_implicit("undefinedToken", 1, 1))
    assert math.isnan(evaluate_explicit("x=2", 1))
    assert math.isnan(evaluate_explicit("", 1))


def test_explicit_evaluation_leaves_y_unbound():
    assert math.isnan(evaluate_explicit("x+y", 1))
    assert evaluate_implicit("x+y", 1, 2) == 3.0


def test_sample_explicit_matches_scalar():
    xs = np.linspace(-3, 3, 13)
    values = sample_explicit("x**2-sqrt(x)", xs)
    expected = [evaluate_explicit("x**2-sqrt(x)", x) for x in xs]
    np.testing.assert_allclose(values, expected, equal_nan=True)


def test_sample_constant_and_failure_shapes():
    np.testing.assert_array_equal(sample_explicit("((1)/(2))", np.zeros(4)), np.full(4, 0.5))
    assert np.isnan(sample_explicit("nope", np.zeros(3))).all()


def test_failed_sample_does_not_allocate():
    xs = np.zeros((1_000_000, 1))
    ys = np.zeros((1, 1_000_000))
    values = sample_implicit("undefinedToken", xs, ys)

    assert values.shape == (1_000_000, 1_000_000)
    assert not values.flags.writeable
    assert np.isnan(values[123, 456_789])



def test_sample_implicit_broadcasts():
    xs = np.arange(3.0)[:, None]
    ys = np.arange(4.0)[None, :]
    values = sample_implicit("x*10+y", xs, ys)
    assert values.shape == (3, 4)
    assert values[2, 3] == 23.0
