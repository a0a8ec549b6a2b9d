import math

import pytest

from calcplot.camera import View2D, View3D, ZoomAxis, detect_zoom_axis


def test_view3d_config_round_trip():
    view = View3D.from_config({"rangeX": 8, "rotationZ": 1.5})
    assert view.range_x == 8
    assert view.rotation_z == 1.5
    assert view.range_y == 5
    assert View3D.from_config(view.to_config()) == view


def test_scales():
    assert View3D(range_x=2, range_y=4, range_z=8).scales == (100, 50, 25)


def test_rotation_clamps_elevation():
    view = View3D()
    view.rotate(100, 100000)
    assert view.rotation_x == pytest.approx(math.pi / 2 - 0.1)
    assert view.rotation_z == pytest.approx(0.8 + 1.0)


def test_free_zoom_without_auto_z_averages_ranges():
    view = View3D(range_x=4, range_y=8, range_z=1)
    view.zoom(2)
    assert (view.range_x, view.range_y, view.range_z) == (2, 4, 3)


def test_zoom_uses_auto_z():
    view = View3D()
    view.zoom(2, "x", auto_z=lambda rx, ry: rx * ry)
    assert view.range_x == 2.5
    assert view.range_y == 5
    assert view.range_z == pytest.approx(12.5)


def test_zoom_z_only_changes_value_range():
    view = View3D()
    view.zoom(0.5, ZoomAxis.Z)
    assert (view.range_x, view.range_y, view.range_z) == (5, 5, 10)


def test_zoom_is_clamped_and_ignores_tiny_factors():
    view = View3D()
    view.zoom(100)
    assert view.range_x == view.min_range
    view.zoom(1.0005)
    assert view.range_x == view.min_range
    view.zoom(0.001)
    assert view.range_x == view.max_range


def test_reset_restores_defaults():
    view = View3D()
    view.pan_by(10, 20)
    view.zoom(2)
    view.reset()
    assert view == View3D.from_config()


def test_view2d_screen_mapping():
    view = View2D()
    assert view.to_screen(0, 0, 800, 600) == (400, 300)
    assert view.to_screen(-5, 5, 800, 600) == (0, 0)
    assert view.to_model(*view.to_screen(1.5, -2, 800, 600), 800, 600) == pytest.approx((1.5, -2))


def test_view2d_pan():
    view = View2D()
    view.pan_by(80, 60, 800, 600)
    assert (view.x_min, view.x_max) == pytest.approx((-6, 4))
    assert (view.y_min, view.y_max) == pytest.approx((-4, 6))


def test_view2d_zoom_around_focus():
    view = View2D()
    view.zoom(2, focus=(5, 5))
    assert (view.x_min, view.x_max) == pytest.approx((0, 5))
    assert (view.y_min, view.y_max) == pytest.approx((0, 5))


def test_view2d_single_axis_zoom():
    view = View2D()
    view.zoom(2, "x")
    assert (view.x_min, view.x_max) == pytest.approx((-2.5, 2.5))
    assert (view.y_min, view.y_max) == (-5, 5)


def test_detect_zoom_axis():
    size = (800, 600)
    assert detect_zoom_axis((400, 590), size) is ZoomAxis.X
    assert detect_zoom_axis((10, 300), size) is ZoomAxis.Y
    assert detect_zoom_axis((10, 590), size) is ZoomAxis.FREE
    assert detect_zoom_axis((400, 300), size) is ZoomAxis.FREE
    assert detect_zoom_axis((400, 590), size, "z") is ZoomAxis.Z
