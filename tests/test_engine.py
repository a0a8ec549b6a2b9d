import logging

import pytest

from calcplot.engine import PlotEngine


@pytest.fixture
def engine():
    e = PlotEngine()
    e.set_params({"sampling": {"surfaceGrid": 8, "curveSteps": 200}})
    return e


def test_defaults(engine):
    assert engine.error is None
    assert engine.is_3d
    assert engine.request.expression == "sin(x)*cos(y)"
    assert engine.step(640, 480)


def test_empty_expression_sets_error(engine):
    engine.set_params({"plot": {"expression": ""}})
    assert engine.request is None
    assert engine.error == "Please enter a function"
    assert engine.step(640, 480) == []

    engine.set_params({"plot": {"expression": "x^2"}})
    assert engine.error is None
    assert engine.request.expression == "x^2"


def test_malformed_expression_is_plotted_with_warning(engine, caplog):
    with caplog.at_level(logging.WARNING, logger="calcplot.scene"):
        engine.set_params({"plot": {"expression": "(1+2"}})
    assert engine.error is None
    assert engine.request.function(0, 0) == 3
    assert "leniently" in caplog.text


def test_switch_to_2d(engine):
    engine.set_params({"plot": {"expression": "sin(x)", "dimension": "2d"}})
    assert not engine.is_3d
    items = engine.step(640, 480)
    assert any(item.role == "curve" for item in items)


def test_gestures_survive_partial_updates(engine):
    engine.rotate(10, 0)
    engine.set_params({"plot": {"showContour": True}})
    assert engine.view3d.rotation_z == pytest.approx(0.9)
    engine.set_params({"view3d": {"rangeX": 8}})
    assert engine.view3d.range_x == 8
    assert engine.view3d.rotation_z == pytest.approx(0.9)


def test_3d_zoom_recomputes_value_range(engine):
    engine.zoom(2, (320, 240), (640, 480))
    assert engine.view3d.range_x == pytest.approx(2.5)
    assert engine.view3d.range_z <= 1.2


def test_2d_zoom_and_pan(engine):
    engine.set_params({"plot": {"dimension": "2d"}})
    engine.zoom(2, (400, 300), (800, 600))
    assert (engine.view2d.x_min, engine.view2d.x_max) == pytest.approx((-2.5, 2.5))
    engine.pan(80, 0, 800, 600)
    assert engine.view2d.x_min == pytest.approx(-3.0)
    engine.reset_view()
    assert (engine.view2d.x_min, engine.view2d.x_max) == (-5, 5)


def test_view_config(engine):
    engine.pan(10, -5, 640, 480)
    cfg = engine.view_config()
    assert cfg["view3d"]["panX"] == 10
    assert cfg["view3d"]["panY"] == -5
    assert cfg["view2d"]["xMin"] == -5
