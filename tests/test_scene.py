import pytest

from calcplot.camera import View2D, View3D
from calcplot.expression import InvalidExpressionError
from calcplot.sampling import sample_surface
from calcplot.scene import (
    FieldType,
    PlotMode,
    PlotRequest,
    Quad,
    Scene2D,
    Scene3D,
    build_quads,
    build_scene,
    format_number,
    sort_quads,
)
from calcplot.vector_field import SurfaceMode

WIDTH, HEIGHT = 800, 600
FAST = {"surfaceGrid": 10, "fieldLattice": 4, "magnitudeLattice": 3, "arrowCount3d": 3,
        "heatmapGrid": 10, "scalarDots2d": 4, "arrows2d": 4, "curveSteps": 400}


def roles(items):
    return [item.role for item in items]


def assert_lines_inside(items):
    for item in items:
        if item.kind not in ("line", "polyline"):
            continue
        for x, y in item.points:
            assert -1e-6 <= x <= WIDTH + 1e-6
            assert -1e-6 <= y <= HEIGHT + 1e-6


@pytest.mark.parametrize(
    "value, text",
    [(0.0005, "0"), (3.0, "3"), (-2.0, "-2"), (2.5, "2.50"), (12.345, "12.3"),
     (150.7, "150"), (1000.0, "1000"), (float("inf"), "inf")],
)
def test_format_number(value, text):
    assert format_number(value) == text


def test_scalar_classification():
    curve = PlotRequest.from_expression("sin(x)")
    assert curve.field_type is FieldType.SCALAR
    assert not curve.is_3d_function
    assert curve.plot_mode is PlotMode.FUNCTION

    surface = PlotRequest.from_expression("x^2+y^2")
    assert surface.is_3d_function
    assert surface.plot_mode is PlotMode.FUNCTION

    field = PlotRequest.from_expression("x+y+z")
    assert field.is_3d_function
    assert field.plot_mode is PlotMode.FIELD

    forced = PlotRequest.from_expression("sin(x)*y", plot_mode="field")
    assert forced.plot_mode is PlotMode.FIELD


def test_vector_classification():
    planar = PlotRequest.from_expression("y*i - x*j")
    assert planar.field_type is FieldType.VECTOR
    assert planar.surface_mode is SurfaceMode.MAGNITUDE
    assert planar.vector.y == "-x"

    spatial = PlotRequest.from_expression("x*i + y*j + z*k")
    assert spatial.is_3d_function
    assert spatial.surface_mode is SurfaceMode.NONE

    e_style = PlotRequest.from_expression("3e_x+4e_y", convention="e_xyz")
    assert e_style.field_type is FieldType.VECTOR


def test_strict_rejects_only_empty_input():
    with pytest.raises(InvalidExpressionError, match="Please enter a function"):
        PlotRequest.from_expression("   ", strict=True)


@pytest.mark.parametrize("expression, expected", [("(1+2", 3), ("2^3^2", 8), ("x^2^2", 1), ("2x", 2), ("a*x", 0)])
def test_strict_plots_leniently_read_expressions(expression, expected):
    request = PlotRequest.from_expression(expression, strict=True)
    assert request.field_type is FieldType.SCALAR
    assert request.issues
    assert request.function(1, 1) == pytest.approx(expected)


def test_strict_keeps_unmatched_parenthesis_hint():
    request = PlotRequest.from_expression("(1+2", strict=True)
    assert any("unmatched" in issue for issue in request.issues)
    assert PlotRequest.from_expression("sin(x)", strict=True).issues == ()
    assert PlotRequest.from_expression("(1+2").issues == ()


def test_auto_z():
    assert PlotRequest.from_expression("x*y").auto_z(5, 5) == pytest.approx(30)
    assert PlotRequest.from_expression("sin(x)").auto_z(5, 5) is None
    assert PlotRequest.from_expression("3i+4j").auto_z(5, 5) is None


def test_sort_quads_is_stable_far_to_near():
    corners = ()
    quads = [Quad(corners, 1, 0), Quad(corners, 3, 1), Quad(corners, 1, 2), Quad(corners, 2, 3)]
    assert [quad.value for quad in sort_quads(quads)] == [1, 3, 0, 2]


def test_build_quads():
    grid = sample_surface(lambda x, y: x, 5, 5, 5, grid_size=4)
    quads = build_quads(grid, View3D(), WIDTH, HEIGHT)
    assert len(quads) == 16
    assert quads[0].value == pytest.approx(-3.75)


def test_surface_scene_order():
    request = PlotRequest.from_expression("sin(x)*cos(y)")
    items = Scene3D(request, View3D(), sampling=FAST).build(WIDTH, HEIGHT)
    order = roles(items)
    assert "grid" in order and "axis" in order and "boundary" in order
    first_surface = order.index("surface")
    assert order.count("surface") == 100
    for role in ("subgrid", "grid", "axis", "boundary"):
        assert len(order) - 1 - order[::-1].index(role) < first_surface
    depths = [item.depth for item in items if item.role == "surface"]
    assert depths == sorted(depths, reverse=True)
    assert_lines_inside(items)


def test_surface_contours():
    request = PlotRequest.from_expression("x^2+y^2", show_contour=True)
    items = Scene3D(request, View3D(), sampling=FAST).build(WIDTH, HEIGHT)
    assert "contour" in roles(items)


def test_standing_curve_breaks_at_asymptotes():
    request = PlotRequest.from_expression("tan(x)")
    items = Scene3D(request, View3D(), sampling=FAST).build(WIDTH, HEIGHT)
    curves = [item for item in items if item.role == "curve"]
    assert len(curves) >= 3
    assert all(item.kind == "polyline" for item in curves)
    assert "dropline" in roles(items)
    assert "shadow" in roles(items)
    assert_lines_inside(items)


def test_scalar_field_dots_and_colorbar():
    request = PlotRequest.from_expression("x+y+z")
    items = Scene3D(request, View3D(), sampling=FAST).build(WIDTH, HEIGHT)
    dots = [item for item in items if item.role == "field"]
    assert dots and all(item.kind == "circle" for item in dots)
    assert any(item.kind == "colorbar" for item in items)


def test_colorbar_can_be_hidden():
    request = PlotRequest.from_expression("x+y+z", show_colorbar=False)
    items = Scene3D(request, View3D(), sampling=FAST).build(WIDTH, HEIGHT)
    assert "colorbar" not in roles(items)


def test_planar_vector_field_in_3d():
    request = PlotRequest.from_expression("y*i - x*j")
    items = Scene3D(request, View3D(), sampling=FAST).build(WIDTH, HEIGHT)
    order = roles(items)
    assert "surface" in order
    assert "arrow" in order
    assert "colorbar" in order
    assert_lines_inside(items)


def test_spatial_vector_field_in_field_mode():
    request = PlotRequest.from_expression("x*i + y*j + z*k", plot_mode="field")
    items = Scene3D(request, View3D(), sampling=FAST).build(WIDTH, HEIGHT)
    assert "field" in roles(items)
    assert "arrow" not in roles(items)


def test_2d_curve_stays_inside():
    request = PlotRequest.from_expression("x^3")
    items = Scene2D(request, View2D(), sampling=FAST).build(WIDTH, HEIGHT)
    order = roles(items)
    assert "curve" in order
    assert "axis" in order
    assert "label" in order
    assert order.index("grid") < order.index("curve")
    assert_lines_inside(items)


def test_2d_heatmap():
    request = PlotRequest.from_expression("x*y", surface_mode="magnitude", show_contour=True)
    items = Scene2D(request, View2D(), sampling=FAST).build(WIDTH, HEIGHT)
    order = roles(items)
    assert order.count("heatmap") == 100
    assert "contour" in order
    assert "colorbar" in order


def test_2d_vector_field():
    request = PlotRequest.from_expression("y*i - x*j")
    items = Scene2D(request, View2D(), sampling=FAST).build(WIDTH, HEIGHT)
    order = roles(items)
    assert "heatmap" in order
    assert "arrow" in order
    assert_lines_inside(items)


def test_2d_scalar_dots():
    request = PlotRequest.from_expression("x*y", plot_mode="field")
    items = Scene2D(request, View2D(), sampling=FAST).build(WIDTH, HEIGHT)
    assert roles(items).count("field") == 25


def test_build_scene_dispatches_on_view():
    request = PlotRequest.from_expression("sin(x)")
    flat = build_scene(request, View2D(), WIDTH, HEIGHT, sampling=FAST)
    deep = build_scene(request, View3D(), WIDTH, HEIGHT, sampling=FAST)
    assert "boundary" not in roles(flat)
    assert "boundary" in roles(deep)
