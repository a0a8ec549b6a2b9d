import logging

import pytest

from calcplot.vector_field import (
    SurfaceMode,
    VectorField,
    VectorFieldParser,
    is_vector_field,
    parse,
)


def test_constant_field():
    field = parse("3i+4j")
    assert field == VectorField("3", "4", None)
    assert not field.is_3d
    assert field.magnitude(0, 0) == pytest.approx(5)
    assert field.normalized(0, 0) == pytest.approx((0.6, 0.8, 0.0))


def test_rotation_field():
    field = parse("y*i - x*j")
    assert field.x == "y"
    assert field.y == "-x"
    assert field.evaluate(1, 2) == pytest.approx((2, -1, 0))


def test_three_component_field():
    field = parse("x*i + y*j + z*k")
    assert field.is_3d
    assert field.evaluate(1, 2, 3) == pytest.approx((1, 2, 3))


def test_function_coefficients_keep_their_parentheses():
    field = parse("sinh(x)i + cos(y-1)j")
    assert field.x == "sinh(x)"
    assert field.y == "cos(y-1)"


@pytest.mark.parametrize("expression", ["sinh(x)", "pi", "x2i", "2xi", "(x)yi", "axi", "sin(x)*cos(y)", "", "e^x"])
def test_not_vector_fields(expression):
    assert not is_vector_field(expression)
    assert parse(expression) is None


def test_bare_unit_vectors():
    assert parse("i").x == "1"
    assert parse("-j").y == "-1"
    assert parse("2*i").x == "2"


def test_variable_coefficient_without_multiplication():
    field = parse("yi - xj")
    assert field == VectorField("y", "-x", None)
    assert field.evaluate(1, 2) == pytest.approx((2, -1, 0))
    assert parse("Zk").z == "Z"

    e_field = VectorFieldParser("e_xyz").parse("ye_x - xe_y")
    assert e_field == VectorField("y", "-x", None)


def test_e_xyz_convention():
    parser = VectorFieldParser("e_xyz")
    field = parser.parse("3e_x+4e_y")
    assert field == VectorField("3", "4", None)
    assert parser.parse("3i+4j") is None
    assert VectorFieldParser("ijk").parse("3e_x+4e_y") is None


def test_duplicate_axis_keeps_the_last_term(caplog):
    with caplog.at_level(logging.WARNING, logger="calcplot.vector_field"):
        field = parse("i + 2i")
    assert field.x == "2"
    assert "twice" in caplog.text


def test_unknown_convention():
    with pytest.raises(ValueError):
        VectorFieldParser("polar")


def test_component_value():
    field = VectorField("3", "-4")
    assert field.component_value(SurfaceMode.X, 0, 0) == 3
    assert field.component_value("y", 0, 0) == -4
    assert field.component_value("z", 0, 0) == 0
    assert field.component_value("magnitude", 0, 0) == pytest.approx(5)
    assert field.component_value("none", 0, 0) == 0


def test_zero_vector_normalizes_to_zero():
    assert VectorField("0", "0").normalized(1, 1) == (0.0, 0.0, 0.0)
