"""Plot state holder driving the view widget.

The engine owns the merged configuration, the current :class:`PlotRequest`
and both view states.  It never touches Qt: the widget forwards parameters
and mouse gestures to it and paints whatever :meth:`PlotEngine.step` returns.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Tuple

from .camera import View2D, View3D, detect_zoom_axis
from .control.config import default_state, merge_state
from .expression import InvalidExpressionError
from .scene import PlotRequest, RenderItem, build_scene

__all__ = ["PlotEngine"]

logger = logging.getLogger(__name__)


class PlotEngine:
    """Turns the plot state into display lists and applies view gestures."""

    def __init__(self) -> None:
        self.state: Dict[str, dict] = default_state()
        self.view3d = View3D.from_config(self.state["view3d"])
        self.view2d = View2D.from_config(self.state["view2d"])
        self.request: Optional[PlotRequest] = None
        self.error: Optional[str] = None
        self._last_item_count = -1
        self._last_note = ""
        self._rebuild_request()

    # ------------------------------------------------------------------ state
    @property
    def is_3d(self) -> bool:
        return str(self.state["plot"].get("dimension", "3d")).lower() == "3d"

    def merge_state(self, payload: Mapping[str, object]) -> None:
        # Gestures mutate the view objects directly; fold them back first so a
        # partial payload does not rewind them.
        self.state["view3d"].update(self.view3d.to_config())
        self.state["view2d"].update(self.view2d.to_config())
        merge_state(self.state, payload)

    def set_params(self, payload: Mapping[str, object]) -> None:
        if not isinstance(payload, Mapping):
            return
        self.merge_state(payload)
        if "view3d" in payload:
            self.view3d = View3D.from_config(self.state["view3d"])
        if "view2d" in payload:
            self.view2d = View2D.from_config(self.state["view2d"])
        if any(key in payload for key in ("plot", "field")):
            self._rebuild_request()

    def _rebuild_request(self) -> None:
        plot = self.state["plot"]
        field = self.state["field"]
        plot_mode = plot.get("plotMode", "auto")
        surface_mode = field.get("surfaceMode", "auto")
        try:
            self.request = PlotRequest.from_expression(
                str(plot.get("expression", "")),
                plot_mode=None if plot_mode == "auto" else plot_mode,
                surface_mode=None if surface_mode == "auto" else surface_mode,
                show_contour=bool(plot.get("showContour", False)),
                show_colorbar=bool(plot.get("showColorbar", True)),
                convention=field.get("unitConvention"),
                strict=True,
            )
        except InvalidExpressionError as exc:
            self.request = None
            self.error = str(exc)
            return
        self.error = None
        logger.info(
            "Plotting %r as %s (%s, surface=%s)",
            self.request.expression,
            self.request.field_type.value,
            self.request.plot_mode.value,
            self.request.surface_mode.value,
        )

    def view_config(self) -> Dict[str, Dict[str, float]]:
        return {"view3d": self.view3d.to_config(), "view2d": self.view2d.to_config()}

    # ------------------------------------------------------------------ gestures
    def rotate(self, dx: float, dy: float) -> None:
        if self.is_3d:
            self.view3d.rotate(dx, dy)

    def pan(self, dx: float, dy: float, width: float, height: float) -> None:
        if self.is_3d:
            self.view3d.pan_by(dx, dy)
        else:
            self.view2d.pan_by(dx, dy, max(1.0, width), max(1.0, height))

    def zoom(self, factor: float, pos: Tuple[float, float], size: Tuple[float, float]) -> None:
        if self.is_3d:
            auto_z = self.request.auto_z if self.request is not None else None
            self.view3d.zoom(factor, self.state["view3d"].get("zoomAxis", "free"), auto_z)
            return
        cfg = self.state["view2d"]
        axis = detect_zoom_axis(pos, size, cfg.get("zoomAxis", "free"), float(cfg.get("axisZonePx", 60.0)))
        width, height = max(1.0, size[0]), max(1.0, size[1])
        focus = self.view2d.to_model(pos[0], pos[1], width, height)
        self.view2d.zoom(factor, axis, focus)

    def reset_view(self) -> None:
        if self.is_3d:
            self.view3d.reset()
        else:
            self.view2d.reset()

    # ------------------------------------------------------------------ frame
    def step(self, width: int, height: int) -> List[RenderItem]:
        if self.request is None:
            items: List[RenderItem] = []
        else:
            view = self.view3d if self.is_3d else self.view2d
            items = build_scene(self.request, view, width, height, self.state["appearance"], self.state["sampling"])

        if len(items) != self._last_item_count:
            self._last_item_count = len(items)
            logger.debug("items=%d size=%dx%d", len(items), width, height)
        note = "3d" if self.is_3d else "2d"
        if self.request is not None:
            note = f"{note}:{self.request.field_type.value}:{self.request.plot_mode.value}"
        if note != self._last_note:
            self._last_note = note
            logger.debug("scene=%s", note)
        return items
