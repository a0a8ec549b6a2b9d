import logging

from calcplot.control.config import DEFAULTS, PLOT_MODES, SURFACE_MODES, default_state, merge_state
from calcplot.logging_config import setup_logging


def test_default_state_is_a_copy():
    state = default_state()
    state["plot"]["expression"] = "x"
    assert DEFAULTS["plot"]["expression"] == "sin(x)*cos(y)"


def test_merge_state_updates_sections_in_place():
    state = default_state()
    merged = merge_state(state, {"plot": {"dimension": "2d"}, "extra": 3})
    assert merged is state
    assert state["plot"]["dimension"] == "2d"
    assert state["plot"]["expression"] == "sin(x)*cos(y)"
    assert state["extra"] == 3


def test_auto_choices_lead_the_combos():
    assert PLOT_MODES[0] == "auto"
    assert SURFACE_MODES[0] == "auto"
    assert DEFAULTS["field"]["surfaceMode"] in SURFACE_MODES


def test_setup_logging_does_not_stack_handlers(tmp_path):
    log_file = tmp_path / "calcplot.log"
    setup_logging(logging.DEBUG, str(log_file))
    logger = setup_logging(logging.INFO)
    assert logger.name == "calcplot"
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    logger.handlers.clear()
