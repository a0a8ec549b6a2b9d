import math

import pytest

from calcplot.expression import (
    ExpressionEvaluator,
    FUNCTION_NAMES,
    NAME,
    NUMBER,
    OPERATOR,
    check_syntax,
    evaluate,
    evaluate_detailed,
    tokenize,
    uses_y,
    uses_z,
)


def test_tokenize_kinds_and_skips_unknown_characters():
    tokens = list(tokenize("x2 + 3.5*sin(y) $"))
    assert [(t.kind, t.text) for t in tokens] == [
        (NAME, "x2"),
        (OPERATOR, "+"),
        (NUMBER, "3.5"),
        (OPERATOR, "*"),
        (NAME, "sin"),
        (OPERATOR, "("),
        (NAME, "y"),
        (OPERATOR, ")"),
    ]


def test_precedence():
    assert evaluate("2+3*4", 0) == 14
    assert evaluate("(2+3)*4", 0) == 20
    assert evaluate("10-4-3", 0) == 3
    assert evaluate("8/4/2", 0) == 1


def test_power_does_not_chain():
    assert evaluate("2^3^2", 0) == 8
    assert evaluate("2^(3^2)", 0) == 512


def test_variables_are_case_insensitive():
    assert evaluate("x^2", 3) == 9
    assert evaluate("X+Y+Z", 1, 2, 3) == 6


def test_constants():
    assert evaluate("pi", 0) == pytest.approx(math.pi)
    assert evaluate("e", 0) == pytest.approx(math.e)


def test_ieee_results_instead_of_errors():
    assert evaluate("1/0", 0) == math.inf
    assert evaluate("-1/0", 0) == -math.inf
    assert math.isnan(evaluate("0/0", 0))
    assert math.isnan(evaluate("sqrt(x)", -1))
    assert math.isnan(evaluate("log(x)", -1))
    assert evaluate("exp(1000)", 0) == math.inf


@pytest.mark.parametrize(
    "expression, x, expected",
    [
        ("atan2(1)", 0, math.pi / 4),
        ("atan2(1, 0)", 0, math.pi / 2),
        ("min(3)", 0, 3),
        ("max(2, x)", 5, 5),
        ("pow(2)", 0, 2),
        ("pow(2, 10)", 0, 1024),
        ("mod(5.5)", 0, 0.5),
        ("mod(7, 3)", 0, 1),
        ("round(2.5)", 0, 3),
        ("round(-2.5)", 0, -3),
        ("sign(x)", -4, -1),
        ("floor(x)", 1.7, 1),
        ("ceil(x)", 1.2, 2),
        ("log10(x)", 1000, 3),
        ("ln(e)", 0, 1),
        ("abs(x)", -2, 2),
    ],
)
def test_functions(expression, x, expected):
    assert evaluate(expression, x) == pytest.approx(expected)


def test_mod_follows_the_divisor_sign():
    assert evaluate("mod(-1, 3)", 0) == 2


def test_function_table_is_complete():
    for name in ("sin", "cos", "tan", "asin", "acos", "atan", "atan2", "sinh", "cosh", "tanh",
                 "exp", "log", "ln", "log10", "sqrt", "abs", "floor", "ceil", "round", "sign",
                 "min", "max", "pow", "mod"):
        assert name in FUNCTION_NAMES


def test_unknown_names_evaluate_to_zero():
    assert evaluate("foo(2)", 1) == 0
    assert evaluate("q + 1", 1) == 1


@pytest.mark.parametrize("garbage", ["", "@@#", ")(", "sin(", "+*", "1.2.3", "((((", "x^", ",,,"])
def test_evaluate_never_raises(garbage):
    value = evaluate(garbage, 1.0, 2.0, 3.0)
    assert isinstance(value, float)


def test_malformed_number_is_zero():
    result = evaluate_detailed("1.2.3", 0)
    assert result.value == 0
    assert any("malformed number" in issue for issue in result.issues)


def test_missing_closing_parenthesis_is_tolerated():
    assert evaluate("(1+2", 0) == 3


def test_evaluation_reports_indeterminate():
    assert not evaluate_detailed("x+1", 1).indeterminate
    assert evaluate_detailed("1/0", 1).indeterminate
    assert evaluate_detailed("foo", 1).indeterminate


def test_check_syntax():
    assert check_syntax("sin(x)*cos(y)") == []
    assert check_syntax("") == ["empty expression"]
    issues = check_syntax("(1+2")
    assert len(issues) == 1
    assert "unmatched" in issues[0]
    assert any("unknown function" in issue for issue in check_syntax("foo(x)"))
    assert any("unexpected" in issue for issue in check_syntax("2^3^2"))


def test_uses_y_and_z():
    assert uses_y("x^2+y^2")
    assert not uses_y("yx")
    assert not uses_y("sin(x)")
    assert uses_y("Y*2")
    assert uses_z("x+z")
    assert not uses_z("zeta")


def test_evaluator_object():
    fn = ExpressionEvaluator("x*y+z")
    assert fn(2, 3, 4) == 10
    assert fn.evaluate(2) == 0
    assert fn.uses_y and fn.uses_z
    assert "x*y+z" in repr(fn)


def _same(a, b):
    return (math.isnan(a) and math.isnan(b)) or a == b


def test_evaluation_is_idempotent():
    fn = ExpressionEvaluator("sin(x)*y^2/(x-1)")
    points = [(0.5, 2.0), (1.0, 2.0), (1.0, 0.0), (-3.0, 1.5), (2.0, -4.0)]
    first = [fn(x, y) for x, y in points]
    assert math.isinf(first[1])
    assert math.isnan(first[2])
    for _ in range(50):
        assert all(_same(fn(x, y), expected) for (x, y), expected in zip(points, first))
        assert all(_same(evaluate("sin(x)*y^2/(x-1)", x, y), expected) for (x, y), expected in zip(points, first))


def test_interleaved_evaluators_are_independent():
    a = ExpressionEvaluator("sin(x)*y^2/(x-1)")
    b = ExpressionEvaluator("(x+1")
    expected_a = a(2.0, 3.0)
    expected_b = b(2.0)
    for _ in range(20):
        assert b(1.0) == 2
        assert math.isinf(a(1.0, 2.0))
        assert a(2.0, 3.0) == expected_a
        assert b(2.0) == expected_b
    assert evaluate_detailed("(x+1", 2.0).issues == evaluate_detailed("(x+1", 2.0).issues
