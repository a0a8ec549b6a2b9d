"""Qt widget painting the plot display lists.

The heavy lifting happens in :mod:`calcplot.scene`; this module only walks
the :class:`~calcplot.scene.RenderItem` list with a ``QPainter`` and routes
mouse gestures to the :class:`~calcplot.engine.PlotEngine`.

Two backends share the same behaviour through :class:`_ViewWidgetBase`: a
``QOpenGLWidget`` when the platform offers one and a plain raster
``QWidget`` otherwise.  :func:`PlotViewWidget` picks between them.
"""

from __future__ import annotations

import logging
import os
from typing import Mapping, Optional, Tuple

from PyQt5 import QtCore, QtGui, QtWidgets

from ..colormap import parse_gradient_stops
from ..engine import PlotEngine
from ..geometry import clamp01
from ..scene import RenderItem

__all__ = ["PlotViewWidget"]

logger = logging.getLogger(__name__)

ZOOM_STEP = 1.1


# ---------------------------------------------------------------------------
# OpenGL helpers


def _create_opengl_functions() -> Tuple[Optional[object], Optional[BaseException]]:
    """Instantiate ``QOpenGLFunctions`` when the bindings provide them.

    Returns ``(functions, error)``; ``error`` holds whatever went wrong so the
    caller can log it.
    """

    factory = getattr(QtGui, "QOpenGLFunctions", None)
    if factory is None:
        return None, AttributeError("PyQt5.QtGui has no attribute 'QOpenGLFunctions'")
    try:
        functions = factory()
        functions.initializeOpenGLFunctions()
    except Exception as exc:  # pragma: no cover - depends on bindings and GL state
        return None, exc
    return functions, None


def _qcolor(value: str, alpha: float) -> QtGui.QColor:
    color = QtGui.QColor(value)
    color.setAlphaF(clamp01(alpha))
    return color


# ---------------------------------------------------------------------------
# Painting


def _paint_item(painter: QtGui.QPainter, item: RenderItem) -> None:
    if item.kind == "line":
        (x1, y1), (x2, y2) = item.points
        painter.setPen(QtGui.QPen(_qcolor(item.color, item.alpha), item.width))
        painter.drawLine(QtCore.QLineF(x1, y1, x2, y2))
    elif item.kind == "polyline":
        pen = QtGui.QPen(_qcolor(item.color, item.alpha), item.width)
        pen.setJoinStyle(QtCore.Qt.RoundJoin)
        pen.setCapStyle(QtCore.Qt.RoundCap)
        painter.setPen(pen)
        painter.setBrush(QtCore.Qt.NoBrush)
        painter.drawPolyline(QtGui.QPolygonF([QtCore.QPointF(x, y) for x, y in item.points]))
    elif item.kind == "polygon":
        if item.width > 0 and item.alpha > 0:
            painter.setPen(QtGui.QPen(_qcolor(item.color, item.alpha), item.width))
        else:
            painter.setPen(QtCore.Qt.NoPen)
        painter.setBrush(_qcolor(item.fill or item.color, item.fill_alpha))
        painter.drawPolygon(QtGui.QPolygonF([QtCore.QPointF(x, y) for x, y in item.points]))
    elif item.kind == "circle":
        (cx, cy), = item.points
        painter.setPen(QtCore.Qt.NoPen)
        painter.setBrush(_qcolor(item.fill or item.color, item.fill_alpha))
        painter.drawEllipse(QtCore.QPointF(cx, cy), item.radius, item.radius)
    elif item.kind == "text":
        _paint_text(painter, item)
    elif item.kind == "colorbar":
        _paint_colorbar(painter, item)
    else:
        logger.debug("Skipping unknown render item kind %r", item.kind)


def _paint_text(painter: QtGui.QPainter, item: RenderItem) -> None:
    font = QtGui.QFont(painter.font())
    font.setPointSizeF(max(1.0, item.font_size))
    font.setBold(item.bold)
    painter.setFont(font)
    painter.setPen(_qcolor(item.color, item.alpha))
    metrics = QtGui.QFontMetricsF(font)
    width = metrics.horizontalAdvance(item.text)
    (x, y), = item.points
    if item.anchor == "center":
        x -= width / 2
        y += metrics.ascent() / 2 - metrics.descent() / 2
    elif item.anchor == "top":
        x -= width / 2
        y += metrics.ascent()
    elif item.anchor == "right":
        x -= width
        y += metrics.ascent() / 2 - metrics.descent() / 2
    painter.drawText(QtCore.QPointF(x, y), item.text)


def _paint_colorbar(painter: QtGui.QPainter, item: RenderItem) -> None:
    (left, top), (right, bottom) = item.points
    gradient = QtGui.QLinearGradient(QtCore.QPointF(left, bottom), QtCore.QPointF(left, top))
    for color, position in parse_gradient_stops(item.gradient):
        gradient.setColorAt(position, _qcolor(color, item.fill_alpha))
    painter.setPen(QtGui.QPen(_qcolor(item.color, item.alpha), item.width))
    painter.setBrush(QtGui.QBrush(gradient))
    painter.drawRect(QtCore.QRectF(left, top, right - left, bottom - top))


# ---------------------------------------------------------------------------
# Widgets


class _ViewWidgetBase:
    """Common behaviour shared by both the OpenGL and raster backends."""

    def _init_view_widget(self) -> None:
        self.setAttribute(QtCore.Qt.WA_OpaquePaintEvent, False)
        self.setAutoFillBackground(False)
        self.setMouseTracking(False)
        self.setFocusPolicy(QtCore.Qt.StrongFocus)
        self.setMinimumSize(320, 240)
        self._gl: Optional[object] = None
        self.engine = PlotEngine()
        self._transparent = False
        self._drag_button = QtCore.Qt.NoButton
        self._last_pos: Optional[QtCore.QPoint] = None

    # ------------------------------------------------------------------ OpenGL hooks
    def _apply_clear_color(self) -> None:
        if self._gl is None:
            return
        color = QtGui.QColor(str(self.engine.state["appearance"]["background"]))
        alpha = 0.0 if self._transparent else 1.0
        self._gl.glClearColor(color.redF(), color.greenF(), color.blueF(), alpha)

    # ------------------------------------------------------------------ API
    def set_params(self, payload: Mapping[str, object]) -> None:
        self.engine.set_params(payload)
        system = self.engine.state.get("system", {})
        transparent = bool(system.get("transparent", False))
        if transparent != self._transparent:
            self.set_transparent(transparent)
        self._apply_clear_color()
        self.update()

    @property
    def error(self) -> Optional[str]:
        return self.engine.error

    def set_transparent(self, enabled: bool) -> None:  # pragma: no cover - simple setter
        self._transparent = bool(enabled)
        self.setAttribute(QtCore.Qt.WA_NoSystemBackground, enabled)
        self.setAttribute(QtCore.Qt.WA_TranslucentBackground, enabled)
        self._apply_clear_color()
        self.update()

    def reset_view(self) -> None:
        self.engine.reset_view()
        self.update()

    # ------------------------------------------------------------------ gestures
    def mousePressEvent(self, event: QtGui.QMouseEvent) -> None:  # type: ignore[override]
        self._drag_button = event.button()
        self._last_pos = event.pos()
        event.accept()

    def mouseMoveEvent(self, event: QtGui.QMouseEvent) -> None:  # type: ignore[override]
        if self._last_pos is None:
            return
        pos = event.pos()
        dx = pos.x() - self._last_pos.x()
        dy = pos.y() - self._last_pos.y()
        self._last_pos = pos
        if self._drag_button == QtCore.Qt.LeftButton and self.engine.is_3d:
            self.engine.rotate(dx, dy)
        else:
            self.engine.pan(dx, dy, self.width(), self.height())
        self.update()

    def mouseReleaseEvent(self, event: QtGui.QMouseEvent) -> None:  # type: ignore[override]
        del event
        self._drag_button = QtCore.Qt.NoButton
        self._last_pos = None

    def mouseDoubleClickEvent(self, event: QtGui.QMouseEvent) -> None:  # type: ignore[override]
        del event
        self.reset_view()

    def wheelEvent(self, event: QtGui.QWheelEvent) -> None:  # type: ignore[override]
        delta = event.angleDelta().y()
        if delta == 0:
            return
        factor = ZOOM_STEP if delta > 0 else 1.0 / ZOOM_STEP
        pos = event.pos()
        self.engine.zoom(factor, (float(pos.x()), float(pos.y())), (float(self.width()), float(self.height())))
        self.update()
        event.accept()

    # ------------------------------------------------------------------ rendering
    def _render_with_painter(self, painter: QtGui.QPainter) -> None:
        painter.setRenderHint(QtGui.QPainter.Antialiasing, True)
        if self._transparent:
            painter.setCompositionMode(QtGui.QPainter.CompositionMode_Source)
            painter.fillRect(self.rect(), QtCore.Qt.transparent)
            painter.setCompositionMode(QtGui.QPainter.CompositionMode_SourceOver)
        else:
            painter.fillRect(self.rect(), QtGui.QColor(str(self.engine.state["appearance"]["background"])))
        width = max(1, self.width())
        height = max(1, self.height())
        for item in self.engine.step(width, height):
            _paint_item(painter, item)
        if self.engine.error:
            painter.setPen(QtGui.QColor(str(self.engine.state["appearance"]["label"])))
            painter.drawText(self.rect(), QtCore.Qt.AlignCenter, self.engine.error)


class _OpenGLViewWidget(QtWidgets.QOpenGLWidget, _ViewWidgetBase):
    """OpenGL-backed renderer when the system can create a GL context."""

    def __init__(self, parent: Optional[QtWidgets.QWidget] = None) -> None:
        QtWidgets.QOpenGLWidget.__init__(self, parent)
        self._init_view_widget()

    def initializeGL(self) -> None:  # pragma: no cover - requires GUI context
        self._gl, error = _create_opengl_functions()
        if error is not None:
            logger.warning("OpenGL initialisation failed: %s. Falling back to raster clear handling.", error)
        self._apply_clear_color()

    def resizeGL(self, width: int, height: int) -> None:  # pragma: no cover - requires GUI context
        del width, height

    def set_transparent(self, enabled: bool) -> None:  # pragma: no cover - trivial wrapper
        super().set_transparent(enabled)
        self._apply_clear_color()

    def paintGL(self) -> None:  # pragma: no cover - requires GUI context
        if self._gl is not None:
            # GL_COLOR_BUFFER_BIT
            self._gl.glClear(0x00004000)
        painter = QtGui.QPainter(self)
        try:
            self._render_with_painter(painter)
        finally:
            painter.end()

    def resizeEvent(self, event: QtGui.QResizeEvent) -> None:  # type: ignore[override]
        super().resizeEvent(event)
        self.update()


class _RasterViewWidget(QtWidgets.QWidget, _ViewWidgetBase):
    """Fallback renderer using the traditional raster ``QWidget`` backend."""

    def __init__(self, parent: Optional[QtWidgets.QWidget] = None) -> None:
        QtWidgets.QWidget.__init__(self, parent)
        self._init_view_widget()

    def paintEvent(self, event: QtGui.QPaintEvent) -> None:  # type: ignore[override]
        del event
        painter = QtGui.QPainter(self)
        try:
            self._render_with_painter(painter)
        finally:
            painter.end()

    def resizeEvent(self, event: QtGui.QResizeEvent) -> None:  # type: ignore[override]
        super().resizeEvent(event)
        self.update()


def _should_use_opengl(force_backend: Optional[str]) -> bool:
    backend = (force_backend or os.environ.get("CALCPLOT_FORCE_BACKEND", "")).strip().lower()
    if backend == "raster":
        return False
    if backend == "opengl":
        return True
    return hasattr(QtWidgets, "QOpenGLWidget")


def PlotViewWidget(
    parent: Optional[QtWidgets.QWidget] = None,
    *,
    force_backend: Optional[str] = None,
) -> QtWidgets.QWidget:
    """Factory returning the best available plot widget.

    Parameters
    ----------
    parent:
        Parent widget used by Qt for ownership.
    force_backend:
        ``"opengl"`` or ``"raster"``; ``None`` or ``"auto"`` consults
        ``CALCPLOT_FORCE_BACKEND`` and then the bindings.

    Returns
    -------
    QtWidgets.QWidget
        A widget exposing ``set_params``, ``set_transparent`` and
        ``reset_view`` regardless of the backend.
    """

    if force_backend == "auto":
        force_backend = None
    if _should_use_opengl(force_backend):
        try:
            widget = _OpenGLViewWidget(parent)
            setattr(widget, "backend_name", "opengl")
            setattr(widget, "uses_opengl", True)
            return widget
        except Exception as exc:
            logger.warning("Unable to initialise OpenGL backend (%r). Using raster widget instead.", exc)
    widget = _RasterViewWidget(parent)
    setattr(widget, "backend_name", "raster")
    setattr(widget, "uses_opengl", False)
    logger.debug("Using %s view backend", widget.backend_name)
    return widget
