import math

import pytest

from calcplot.clipping import clip_line, outcode, point_in_rect
from calcplot.geometry import Point2D, Point3D, Rect, clamp, clamp01


def test_clamps():
    assert clamp01(-1) == 0
    assert clamp01(2) == 1
    assert clamp(5, 0, 3) == 3


def test_rotation_about_x_and_z():
    p = Point3D(0, 1, 0).rotate_x(math.pi / 2)
    assert (p.x, p.y, p.z) == pytest.approx((0, 0, 1))
    q = Point3D(1, 0, 0).rotate_z(math.pi / 2)
    assert (q.x, q.y, q.z) == pytest.approx((0, 1, 0))


def test_rotated_applies_elevation_then_azimuth():
    p = Point3D(0, 1, 0).rotated(math.pi / 2, math.pi / 2)
    assert (p.x, p.y, p.z) == pytest.approx((0, 0, 1))


def test_projection():
    assert Point3D(0, 0, 0).project(500, 800, 600).as_tuple() == pytest.approx((400, 300))
    assert Point3D(10, 0, 20).project(500, 800, 600).as_tuple() == pytest.approx((410, 280))
    assert Point3D(0, 0, 0).project(500, 800, 600, 15, -5).as_tuple() == pytest.approx((415, 295))
    far = Point3D(100, 500, 0).project(500, 800, 600)
    assert far.x == pytest.approx(450)


def test_projection_on_the_eye_plane_is_not_finite():
    assert not Point3D(10, -500, 10).project(500, 800, 600).is_finite


RECT = Rect.from_size(100, 100)


def test_outcode_and_point_in_rect():
    assert outcode(50, 50, RECT) == 0
    assert outcode(-1, 50, RECT) != 0
    assert point_in_rect(Point2D(0, 100), RECT)
    assert not point_in_rect(Point2D(math.nan, 10), RECT)


def test_inside_segment_is_returned_unchanged():
    a, b = Point2D(10, 10), Point2D(90, 90)
    clipped = clip_line(a, b, RECT)
    assert clipped[0] is a and clipped[1] is b


def test_crossing_segment_is_shortened():
    a, b = clip_line(Point2D(-50, 50), Point2D(150, 50), RECT)
    assert a.as_tuple() == pytest.approx((0, 50))
    assert b.as_tuple() == pytest.approx((100, 50))


def test_diagonal_through_corner_region():
    a, b = clip_line(Point2D(-10, -10), Point2D(110, 110), RECT)
    assert a.as_tuple() == pytest.approx((0, 0))
    assert b.as_tuple() == pytest.approx((100, 100))


def test_outside_segments_are_rejected():
    assert clip_line(Point2D(-10, -10), Point2D(-5, 200), RECT) is None
    assert clip_line(Point2D(-10, 120), Point2D(20, 250), RECT) is None


def test_non_finite_endpoints_are_rejected():
    assert clip_line(Point2D(math.nan, 0), Point2D(10, 10), RECT) is None
    assert clip_line(Point2D(0, 0), Point2D(math.inf, 10), RECT) is None
