import math

import numpy as np
import pytest

from calcplot.expression import ExpressionEvaluator
from calcplot.sampling import (
    auto_z_range,
    contour_levels,
    contour_segments,
    field_value_range,
    floor_spacing,
    grid_spacing,
    sample_curve,
    sample_field_magnitudes,
    sample_heatmap,
    sample_scalar_field,
    sample_surface,
    sample_vector_arrows,
    sample_vector_surface,
    sample_window,
    steps_between,
)
from calcplot.vector_field import VectorField


def test_steps_between():
    assert list(steps_between(-2, 2, 1)) == [-2, -1, 0, 1, 2]
    assert list(steps_between(0, 1, 0)) == []
    assert list(steps_between(0, math.inf, 1)) == []


@pytest.mark.parametrize("span, expected", [(10, 2), (100, 20), (1, 0.2), (0, 1), (-3, 1)])
def test_grid_spacing(span, expected):
    assert grid_spacing(span) == pytest.approx(expected)


def test_floor_spacing():
    assert floor_spacing(5) == pytest.approx(2)
    assert floor_spacing(1.5) == pytest.approx(0.5)
    assert floor_spacing(40) == pytest.approx(10)
    assert floor_spacing(0) == 1


def test_curve_breaks_at_asymptotes():
    segments = sample_curve(ExpressionEvaluator("tan(x)"), -5, 5, 10, steps=1000)
    assert len(segments) >= 3
    for segment in segments:
        values = [value for _x, value in segment]
        assert all(abs(b - a) <= 5 for a, b in zip(values, values[1:]))


def test_curve_breaks_at_a_pole():
    segments = sample_curve(ExpressionEvaluator("1/x"), -5, 5, 10, steps=1000)
    assert len(segments) >= 2
    assert all(x != 0 for segment in segments for x, _v in segment)


def test_curve_limit_breaks_the_segment():
    segments = sample_curve(ExpressionEvaluator("x^3"), -10, 10, 1e9, steps=100, limit=100)
    assert all(abs(value) <= 100 for segment in segments for _x, value in segment)


def test_smooth_curve_is_one_segment():
    segments = sample_curve(ExpressionEvaluator("sin(x)"), -5, 5, 10, steps=200)
    assert len(segments) == 1
    assert len(segments[0]) == 201


def test_surface_is_clamped():
    grid = sample_surface(lambda x, y: 100.0, 5, 5, 5, grid_size=4)
    assert grid.grid_size == 4
    assert grid.values.shape == (5, 5)
    assert np.all(grid.values == 5)


def test_surface_undefined_samples_become_zero():
    grid = sample_surface(ExpressionEvaluator("sqrt(x)"), 5, 5, 5, grid_size=4)
    assert not grid.valid[0, 0]
    assert grid.values[0, 0] == 0
    assert grid.valid[-1, 0]
    assert grid.value_range() == pytest.approx((0, math.sqrt(5)))


def test_vector_surface_is_rescaled_to_the_value_range():
    grid = sample_vector_surface(VectorField("x", "0"), "x", 5, 5, 2, grid_size=4)
    assert grid.values.max() == pytest.approx(5)
    assert grid.heights.max() == pytest.approx(2)
    assert grid.heights.min() == pytest.approx(-2)


def test_heatmap_uses_cell_centres_and_nan():
    cells = sample_heatmap(ExpressionEvaluator("log(x)"), -1, 1, -1, 1, cells=2)
    assert cells.shape == (2, 2)
    assert np.isnan(cells[0, 0])
    assert cells[1, 0] == pytest.approx(math.log(0.5))


def test_contour_levels():
    assert contour_levels(0, 10, 4) == pytest.approx([2, 4, 6, 8])
    assert contour_levels(1, 1) == []
    assert contour_levels(0, math.nan) == []


def test_contour_of_a_plane():
    grid = sample_window(lambda x, y: x, -1, 1, -1, 1, grid_size=4)
    segments = contour_segments(grid, 0.25)
    assert len(segments) == 4
    for (x0, _y0), (x1, _y1) in segments:
        assert x0 == pytest.approx(0.25)
        assert x1 == pytest.approx(0.25)


def test_contour_skips_invalid_cells():
    grid = sample_window(ExpressionEvaluator("sqrt(x)"), -1, 1, -1, 1, grid_size=4)
    segments = contour_segments(grid, 0.6)
    assert segments
    assert all(x >= 0 for segment in segments for x, _y in segment)


def test_auto_z_range():
    assert auto_z_range(ExpressionEvaluator("x*y"), 5, 5) == pytest.approx(30)
    assert auto_z_range(ExpressionEvaluator("0"), 5, 5) is None
    assert auto_z_range(ExpressionEvaluator("1/0"), 5, 5) is None


def test_scalar_field_lattice():
    points = sample_scalar_field(lambda x, y, z: 1.0, 1, 1, 1, count=2)
    assert len(points) == 27
    assert field_value_range(points) == (1.0, 1.0)
    assert field_value_range([]) is None


def test_scalar_field_skips_undefined_values():
    points = sample_scalar_field(ExpressionEvaluator("1/x"), 1, 1, 1, count=2)
    assert len(points) == 18


def test_planar_arrows():
    arrows = sample_vector_arrows(VectorField("1"), "magnitude", 5, 5, 5, count=2)
    assert len(arrows) == 25
    assert arrows[0].direction == pytest.approx((1, 0, 0))
    assert all(arrow.start.z == 0 for arrow in arrows)


def test_arrows_skip_zero_vectors():
    arrows = sample_vector_arrows(VectorField("x", "y"), "magnitude", 1, 1, 1, count=1)
    assert len(arrows) == 8


def test_axis_mode_keeps_one_component():
    arrows = sample_vector_arrows(VectorField("3", "-4"), "y", 1, 1, 1, count=1)
    assert arrows[0].direction == pytest.approx((0, -1, 0))
    assert arrows[0].magnitude == pytest.approx(4)
    assert arrows[0].surface_value == pytest.approx(-4)


def test_spatial_arrows_use_a_lattice():
    arrows = sample_vector_arrows(VectorField("1", "0", "1"), "magnitude", 1, 1, 1, count=2)
    assert len(arrows) == 27


def test_field_magnitudes():
    points = sample_field_magnitudes(VectorField("3", "4"), 1, 1, 1, count=1)
    assert len(points) == 9
    assert all(point.value == pytest.approx(5) for point in points)
