"""Display lists for the 2D and 3D plots.

A scene turns a :class:`PlotRequest` plus a view state into an ordered list
of :class:`RenderItem` entries.  Items are painted in list order, so the list
already encodes the painter's algorithm: floor grid, axes and boundary first,
then content sorted from far to near.  Nothing here touches Qt; the view
widget only walks the list with a ``QPainter``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .camera import View2D, View3D
from .clipping import clip_line, point_in_rect
from .colormap import jet_colormap, surface_gradient_color
from .control.config import DEFAULTS
from .expression import ExpressionEvaluator, InvalidExpressionError, check_syntax, evaluate, uses_y, uses_z
from .geometry import Point2D, Point3D, Rect, clamp01
from .sampling import (
    SurfaceGrid,
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
from .vector_field import SurfaceMode, VectorField, VectorFieldParser

__all__ = [
    "FieldType",
    "PlotMode",
    "PlotRequest",
    "Quad",
    "RenderItem",
    "Scene2D",
    "Scene3D",
    "build_quads",
    "build_scene",
    "format_number",
    "sort_quads",
]

logger = logging.getLogger(__name__)

Pixel = Tuple[float, float]


class FieldType(str, Enum):
    SCALAR = "scalar"
    VECTOR = "vector"


class PlotMode(str, Enum):
    FUNCTION = "function"
    FIELD = "field"


# ---------------------------------------------------------------------------
# Data structures


@dataclass
class RenderItem:
    """One paint operation in screen pixels.

    ``kind`` is ``line``, ``polyline``, ``polygon``, ``circle``, ``text`` or
    ``colorbar``.  Stroke colour and alpha apply to outlines and text, ``fill``
    and ``fill_alpha`` to polygons, circles and the colorbar.
    """

    kind: str
    points: Tuple[Pixel, ...]
    color: str = "#FFFFFF"
    alpha: float = 1.0
    width: float = 1.0
    fill: Optional[str] = None
    fill_alpha: float = 0.0
    radius: float = 0.0
    text: str = ""
    font_size: float = 10.0
    bold: bool = False
    anchor: str = "topleft"
    gradient: Optional[str] = None
    role: str = "content"
    depth: float = 0.0


@dataclass
class Quad:
    """Projected surface cell with its painter's depth and mean sample value."""

    corners: Tuple[Point2D, Point2D, Point2D, Point2D]
    depth: float
    value: float


@dataclass
class PlotRequest:
    """What to plot, decided once when the user submits an expression."""

    expression: str
    field_type: FieldType = FieldType.SCALAR
    vector: Optional[VectorField] = None
    is_3d_function: bool = False
    plot_mode: PlotMode = PlotMode.FUNCTION
    surface_mode: SurfaceMode = SurfaceMode.NONE
    show_contour: bool = False
    show_colorbar: bool = True
    issues: Tuple[str, ...] = ()

    @classmethod
    def from_expression(
        cls,
        expression: str,
        *,
        plot_mode: Optional[PlotMode | str] = None,
        surface_mode: Optional[SurfaceMode | str] = None,
        show_contour: bool = False,
        show_colorbar: bool = True,
        convention: Optional[str] = None,
        strict: bool = False,
    ) -> "PlotRequest":
        """Classify ``expression`` as a scalar function or a vector field.

        With ``strict`` an empty expression, or one whose trial evaluation at
        ``(1, 1, 1)`` raises, is rejected with :class:`InvalidExpressionError`.
        Anything else is plotted the way the lenient evaluator reads it; the
        places where it had to skip over input are kept in ``issues``.
        """

        expression = expression.strip()
        if strict and not expression:
            raise InvalidExpressionError("Please enter a function", ("empty expression",))

        parser = VectorFieldParser(convention or DEFAULTS["field"]["unitConvention"])
        vector = parser.parse(expression)
        if vector is not None:
            if surface_mode is None:
                surface_mode = SurfaceMode.NONE if vector.is_3d else SurfaceMode.MAGNITUDE
            return cls(
                expression,
                FieldType.VECTOR,
                vector,
                is_3d_function=vector.is_3d,
                plot_mode=PlotMode(plot_mode or PlotMode.FUNCTION),
                surface_mode=SurfaceMode(surface_mode),
                show_contour=show_contour,
                show_colorbar=show_colorbar,
            )

        issues: Tuple[str, ...] = ()
        if strict:
            try:
                evaluate(expression, 1.0, 1.0, 1.0)
            except Exception as exc:
                logger.warning("Rejected expression %r: %s", expression, exc)
                raise InvalidExpressionError("Invalid function syntax", (str(exc),)) from exc
            issues = tuple(check_syntax(expression))
            if issues:
                logger.warning("Plotting %r leniently: %s", expression, "; ".join(issues))

        has_z = uses_z(expression)
        if plot_mode is None:
            plot_mode = PlotMode.FIELD if has_z else PlotMode.FUNCTION
        return cls(
            expression,
            FieldType.SCALAR,
            None,
            is_3d_function=uses_y(expression) or has_z,
            plot_mode=PlotMode(plot_mode),
            surface_mode=SurfaceMode(surface_mode or SurfaceMode.NONE),
            show_contour=show_contour,
            show_colorbar=show_colorbar,
            issues=issues,
        )

    @property
    def function(self) -> ExpressionEvaluator:
        return ExpressionEvaluator(self.expression)

    def auto_z(self, range_x: float, range_y: float) -> Optional[float]:
        if self.field_type is not FieldType.SCALAR or not self.is_3d_function:
            return None
        return auto_z_range(self.function, range_x, range_y, DEFAULTS["sampling"]["autoZSamples"])


# ---------------------------------------------------------------------------
# Helpers


def format_number(n: float) -> str:
    if not math.isfinite(n):
        return str(n)
    if abs(n) < 0.001:
        return "0"
    if n == round(n) and abs(n) < 1000:
        return str(int(n))
    if abs(n) >= 100:
        return str(int(n))
    if abs(n) >= 10:
        return f"{n:.1f}"
    return f"{n:.2f}"


def sort_quads(quads: Sequence[Quad]) -> List[Quad]:
    """Farthest first; equal depths keep their grid order."""

    return sorted(quads, key=lambda quad: quad.depth, reverse=True)


def build_quads(
    grid: SurfaceGrid,
    view: View3D,
    width: float,
    height: float,
) -> List[Quad]:
    """Rotate and project every vertex of ``grid`` and emit one quad per cell."""

    sx, sy, sz = view.scales
    n = grid.grid_size
    rotated: List[List[Point3D]] = []
    projected: List[List[Point2D]] = []
    for i in range(n + 1):
        rot_row: List[Point3D] = []
        proj_row: List[Point2D] = []
        for j in range(n + 1):
            point = Point3D(
                float(grid.xs[i]) * sx, float(grid.ys[j]) * sy, float(grid.heights[i, j]) * sz
            ).rotated(view.rotation_x, view.rotation_z)
            rot_row.append(point)
            proj_row.append(point.project(view.focal_length, width, height, view.pan_x, view.pan_y))
        rotated.append(rot_row)
        projected.append(proj_row)

    quads: List[Quad] = []
    for i in range(n):
        for j in range(n):
            corners = (projected[i][j], projected[i + 1][j], projected[i + 1][j + 1], projected[i][j + 1])
            if not all(corner.is_finite for corner in corners):
                continue
            depth = (rotated[i][j].y + rotated[i + 1][j].y + rotated[i + 1][j + 1].y + rotated[i][j + 1].y) / 4
            value = float(
                grid.values[i, j] + grid.values[i + 1, j] + grid.values[i + 1, j + 1] + grid.values[i, j + 1]
            ) / 4
            quads.append(Quad(corners, depth, value))
    return quads


def _normalise(value: float, lo: float, hi: float) -> float:
    if hi == lo:
        return 0.0
    return clamp01((value - lo) / (hi - lo))


class _SceneBase:
    """Shared item emitters; subclasses fill ``self.items`` in paint order."""

    def __init__(self, request: PlotRequest, appearance: Optional[Mapping[str, object]] = None) -> None:
        self.request = request
        self.appearance: Dict[str, object] = dict(DEFAULTS["appearance"])
        self.appearance.update(appearance or {})
        self.items: List[RenderItem] = []
        self.width = 1.0
        self.height = 1.0
        self.rect = Rect.from_size(1.0, 1.0)

    def _start(self, width: int, height: int) -> None:
        self.width = float(max(1, width))
        self.height = float(max(1, height))
        self.rect = Rect.from_size(self.width, self.height)
        self.items = []

    def _colour(self, key: str) -> str:
        return str(self.appearance[key])

    def _jet(self, t: float) -> str:
        return jet_colormap(t, self._colour("jetColors"))

    def _emit_line(
        self,
        p1: Point2D,
        p2: Point2D,
        color: str,
        *,
        alpha: float = 1.0,
        width: float = 1.0,
        role: str = "content",
        depth: float = 0.0,
    ) -> None:
        clipped = clip_line(p1, p2, self.rect)
        if clipped is None:
            return
        a, b = clipped
        self.items.append(
            RenderItem("line", (a.as_tuple(), b.as_tuple()), color, alpha, width, role=role, depth=depth)
        )

    def _emit_polyline(self, points: Sequence[Point2D], color: str, *, alpha: float, width: float, role: str) -> None:
        """Clip every segment and emit the visible stretches as separate polylines."""

        runs: List[List[Pixel]] = []
        run: List[Pixel] = []
        for a, b in zip(points, points[1:]):
            clipped = clip_line(a, b, self.rect)
            if clipped is None:
                run = []
                continue
            start, end = clipped
            if not run or run[-1] != start.as_tuple():
                run = [start.as_tuple()]
                runs.append(run)
            run.append(end.as_tuple())
        for stretch in runs:
            self.items.append(RenderItem("polyline", tuple(stretch), color, alpha, width, role=role))

    def _emit_text(self, pos: Pixel, text: str, color: str, *, size: float = 10.0, bold: bool = False,
                   anchor: str = "topleft", alpha: float = 1.0, role: str = "label") -> None:
        self.items.append(
            RenderItem("text", (pos,), color, alpha, text=text, font_size=size, bold=bold, anchor=anchor, role=role)
        )

    def _emit_arrow_head(self, end: Pixel, angle: float, length: float, spread: float, color: str,
                         *, width: float = 2.0, depth: float = 0.0) -> None:
        ex, ey = end
        for sign in (1.0, -1.0):
            tip = Point2D(ex - length * math.cos(angle + sign * spread), ey - length * math.sin(angle + sign * spread))
            self._emit_line(Point2D(ex, ey), tip, color, width=width, role="arrow", depth=depth)

    def _emit_colorbar(self, lo: float, hi: float) -> None:
        if not self.request.show_colorbar or not (math.isfinite(lo) and math.isfinite(hi)):
            return
        bar_w, bar_h, margin = 15.0, 100.0, 10.0
        left = margin
        top = self.height / 2 - bar_h / 2
        right, bottom = left + bar_w, top + bar_h
        self.items.append(
            RenderItem(
                "colorbar",
                ((left, top), (right, bottom)),
                self._colour("label"),
                0.6,
                1.0,
                fill_alpha=1.0,
                gradient=self._colour("jetColors"),
                role="colorbar",
            )
        )
        label = self._colour("label")
        self._emit_text((right + 4, top - 4), format_number(hi), label, role="colorbar")
        self._emit_text((right + 4, bottom - 6), format_number(lo), label, role="colorbar")


# ---------------------------------------------------------------------------
# 3D


class Scene3D(_SceneBase):
    """Perspective scene: floor grid, axes, boundary, then the plotted content."""

    def __init__(
        self,
        request: PlotRequest,
        view: Optional[View3D] = None,
        appearance: Optional[Mapping[str, object]] = None,
        sampling: Optional[Mapping[str, object]] = None,
    ) -> None:
        super().__init__(request, appearance)
        self.view = view or View3D.from_config()
        self.sampling: Dict[str, object] = dict(DEFAULTS["sampling"])
        self.sampling.update(sampling or {})

    # ------------------------------------------------------------------ transforms
    def _scene_point(self, x: float, y: float, z: float) -> Point3D:
        """Model units to rotated scene units."""

        sx, sy, sz = self.view.scales
        return Point3D(x * sx, y * sy, z * sz).rotated(self.view.rotation_x, self.view.rotation_z)

    def _project(self, point: Point3D) -> Point2D:
        v = self.view
        return point.project(v.focal_length, self.width, self.height, v.pan_x, v.pan_y)

    def _line3d(self, a: Point3D, b: Point3D, color: str, **kwargs) -> None:
        self._emit_line(self._project(a), self._project(b), color, **kwargs)

    # ------------------------------------------------------------------ build
    def build(self, width: int, height: int) -> List[RenderItem]:
        self._start(width, height)
        self._floor_grid()
        self._axes()
        self._floor_boundary()
        self._content()
        return self.items

    def _floor_grid(self) -> None:
        v = self.view
        rx, ry = v.range_x, v.range_y
        color = self._colour("grid")
        spacing_x = floor_spacing(rx)
        spacing_y = floor_spacing(ry)
        for divisor, alpha, width, role in ((5.0, 0.12, 0.8, "subgrid"), (1.0, 0.25, 1.2, "grid")):
            for x in steps_between(-rx, rx, spacing_x / divisor):
                self._line3d(self._scene_point(x, -ry, 0), self._scene_point(x, ry, 0), color,
                             alpha=alpha, width=width, role=role)
            for y in steps_between(-ry, ry, spacing_y / divisor):
                self._line3d(self._scene_point(-rx, y, 0), self._scene_point(rx, y, 0), color,
                             alpha=alpha, width=width, role=role)

    def _axes(self) -> None:
        v = self.view
        sx, sy, sz = v.scales
        origin = self._project(self._scene_point(0, 0, 0))
        label_color = self._colour("label")
        near = Rect(-20.0, -20.0, self.width + 20.0, self.height + 20.0)
        axes = (
            ("X", self._colour("axisX"), (1.0, 0.0, 0.0), v.range_x, sx),
            ("Y", self._colour("axisY"), (0.0, 1.0, 0.0), v.range_y, sy),
            ("Z", self._colour("axisZ"), (0.0, 0.0, 1.0), v.range_z, sz),
        )
        rx_, rz_ = v.rotation_x, v.rotation_z
        for label, color, (dx, dy, dz), extent, scale in axes:
            far = extent * 2 * scale
            neg = Point3D(-dx * far, -dy * far, -dz * far).rotated(rx_, rz_)
            pos = Point3D(dx * far, dy * far, dz * far).rotated(rx_, rz_)
            self._line3d(neg, pos, color, alpha=0.35, width=6.0, role="axis-glow")
            self._line3d(neg, pos, color, alpha=0.8, width=2.0, role="axis")

            tip_at = extent * 0.9 * scale
            tip = self._project(Point3D(dx * tip_at, dy * tip_at, dz * tip_at).rotated(rx_, rz_))
            if point_in_rect(tip, near) and origin.is_finite:
                ux, uy = tip.x - origin.x, tip.y - origin.y
                length = math.hypot(ux, uy)
                if length > 0:
                    ux, uy = ux / length, uy / length
                    size = 10.0
                    px, py = -uy, ux
                    head = [
                        Point2D(tip.x - ux * size + px * size / 2, tip.y - uy * size + py * size / 2),
                        tip,
                        Point2D(tip.x - ux * size - px * size / 2, tip.y - uy * size - py * size / 2),
                    ]
                    self._emit_polyline(head, color, alpha=0.8, width=2.0, role="axis")
                self._emit_text((tip.x + 8, tip.y - 8), label, color, size=16.0, bold=True, role="axis-label")

            spacing = floor_spacing(extent)
            for t in steps_between(-extent, extent, spacing):
                if abs(t) < spacing * 0.1:
                    continue
                at = t * scale
                mark = Point3D(dx * at, dy * at, dz * at)
                tick = self._project(mark.rotated(rx_, rz_))
                if not point_in_rect(tick, self.rect):
                    continue
                for end in self._tick_ends(label, at):
                    self._emit_line(tick, self._project(end.rotated(rx_, rz_)), label_color,
                                    alpha=0.5, role="tick")
                text_at = self._project(self._tick_label_point(label, at).rotated(rx_, rz_))
                if point_in_rect(text_at, self.rect):
                    self._emit_text(text_at.as_tuple(), format_number(t), label_color, anchor="center")

    @staticmethod
    def _tick_ends(label: str, at: float) -> Tuple[Point3D, Point3D]:
        length = 5.0
        if label == "X":
            return Point3D(at, length, 0), Point3D(at, 0, length)
        if label == "Y":
            return Point3D(length, at, 0), Point3D(0, at, length)
        return Point3D(length, 0, at), Point3D(0, length, at)

    @staticmethod
    def _tick_label_point(label: str, at: float) -> Point3D:
        if label == "X":
            return Point3D(at, -15, -10)
        if label == "Y":
            return Point3D(-15, at, -10)
        return Point3D(-15, -15, at)

    def _floor_boundary(self) -> None:
        rx, ry = self.view.range_x, self.view.range_y
        corners = [
            self._scene_point(-rx, -ry, 0),
            self._scene_point(rx, -ry, 0),
            self._scene_point(rx, ry, 0),
            self._scene_point(-rx, ry, 0),
        ]
        color = self._colour("label")
        for idx in range(4):
            self._line3d(corners[idx], corners[(idx + 1) % 4], color, alpha=0.5, width=2.0, role="boundary")

    # ------------------------------------------------------------------ content
    def _content(self) -> None:
        req = self.request
        show_surface = req.surface_mode is not SurfaceMode.NONE
        if req.field_type is FieldType.VECTOR and req.vector is not None:
            if show_surface and not req.vector.is_3d:
                grid = self._vector_surface(req.vector)
                if req.show_contour:
                    self._contours(grid, on_surface=True, count=12, width=1.5, alpha=0.8)
                if req.plot_mode is PlotMode.FUNCTION:
                    self._vector_arrows(req.vector)
            elif req.plot_mode is PlotMode.FIELD:
                self._magnitude_field(req.vector)
            else:
                self._vector_arrows(req.vector)
        elif req.is_3d_function:
            if req.plot_mode is PlotMode.FIELD and not show_surface:
                self._scalar_field()
                if req.show_contour:
                    self._contours(self._scalar_grid(), on_surface=False, count=12, width=1.5, alpha=0.8)
                return
            grid = self._scalar_grid()
            self._surface(grid, jet=show_surface)
            if req.show_contour:
                self._contours(grid, on_surface=True, count=int(self.sampling["contourLevels"]))
        else:
            self._standing_curve()

    def _scalar_grid(self) -> SurfaceGrid:
        v = self.view
        return sample_surface(self.request.function, v.range_x, v.range_y, v.range_z,
                              int(self.sampling["surfaceGrid"]))

    def _paint_quads(self, quads: List[Quad], lo: float, hi: float, *, jet: bool) -> None:
        rz = self.view.range_z
        wire = self._colour("grid")
        alpha = float(self.appearance["jetSurfaceAlpha" if jet else "surfaceAlpha"])
        for quad in sort_quads(quads):
            if jet:
                fill = self._jet(_normalise(quad.value, lo, hi))
            else:
                fill = surface_gradient_color(clamp01((quad.value + rz) / (2 * rz)), self._colour("surfaceColors"))
            self.items.append(
                RenderItem(
                    "polygon",
                    tuple(corner.as_tuple() for corner in quad.corners),
                    wire,
                    0.15,
                    0.5,
                    fill=fill,
                    fill_alpha=alpha,
                    role="surface",
                    depth=quad.depth,
                )
            )

    def _surface(self, grid: SurfaceGrid, *, jet: bool) -> None:
        quads = build_quads(grid, self.view, self.width, self.height)
        lo, hi = grid.value_range() or (0.0, 1.0)
        if hi == lo:
            hi = lo + 1
        self._paint_quads(quads, lo, hi, jet=jet)
        if jet:
            self._emit_colorbar(lo, hi)

    def _vector_surface(self, vector: VectorField) -> SurfaceGrid:
        v = self.view
        grid = sample_vector_surface(vector, self.request.surface_mode, v.range_x, v.range_y, v.range_z,
                                     int(self.sampling["surfaceGrid"]))
        lo, hi = grid.value_range() or (0.0, 1.0)
        if self.request.surface_mode is SurfaceMode.MAGNITUDE:
            lo = 0.0
        if hi == lo:
            hi = lo + 1
        self._paint_quads(build_quads(grid, v, self.width, self.height), lo, hi, jet=True)
        self._emit_colorbar(lo, hi)
        return grid

    def _contours(
        self, grid: SurfaceGrid, *, on_surface: bool, count: int, width: float = 2.0, alpha: float = 1.0
    ) -> None:
        span = grid.value_range()
        if span is None:
            return
        lo, hi = span
        levels = contour_levels(lo, hi, count)
        scale = 1.0
        if on_surface and grid.values.size:
            peak = float(np.abs(grid.values).max())
            peak_height = float(np.abs(grid.heights).max())
            scale = peak_height / peak if peak > 0 else 1.0
        for threshold in levels:
            color = self._jet(_normalise(threshold, lo, hi))
            z = threshold * scale if on_surface else 0.0
            for (x0, y0), (x1, y1) in contour_segments(grid, threshold):
                self._line3d(self._scene_point(x0, y0, z), self._scene_point(x1, y1, z), color,
                             alpha=alpha, width=width, role="contour")

    def _standing_curve(self) -> None:
        v = self.view
        steps = int(self.sampling["standingCurveSteps"])
        every = int(self.sampling["dropLineEvery"])
        color = self._colour("curve")
        segments = sample_curve(self.request.function, -v.range_x, v.range_x, v.range_z, steps, limit=v.range_z)
        span = 2 * v.range_x
        for segment in segments:
            for x, value in segment:
                index = int(round((x + v.range_x) / span * steps))
                if index % every == 0:
                    self._line3d(self._scene_point(x, 0, value), self._scene_point(x, 0, 0), color,
                                 alpha=0.12, role="dropline")
        for segment in segments:
            shadow = [self._project(self._scene_point(x, 0, 0)) for x, _value in segment]
            self._emit_polyline(shadow, color, alpha=0.2, width=2.0, role="shadow")
        for segment in segments:
            curve = [self._project(self._scene_point(x, 0, value)) for x, value in segment]
            self._emit_polyline(curve, color, alpha=1.0, width=3.0, role="curve")

    def _dots(self, points, lo: float, hi: float) -> None:
        v = self.view
        label = self._colour("label")
        lifted = [(self._scene_point(p.position.x, p.position.y, p.position.z), p.value) for p in points]
        lifted.sort(key=lambda entry: entry[0].y, reverse=True)
        for point, value in lifted:
            centre = self._project(point)
            if not point_in_rect(centre, self.rect):
                continue
            radius = 6.0 * v.focal_length / (v.focal_length + point.y)
            color = self._jet(_normalise(value, lo, hi))
            self.items.append(RenderItem("circle", (centre.as_tuple(),), color, 0.0, 0.0, fill=color,
                                         fill_alpha=0.8, radius=radius, role="field", depth=point.y))
            shine = (centre.x - radius * 0.3, centre.y - radius * 0.3)
            self.items.append(RenderItem("circle", (shine,), label, 0.0, 0.0, fill=label, fill_alpha=0.25,
                                         radius=radius * 0.3, role="field", depth=point.y))

    def _scalar_field(self) -> None:
        v = self.view
        points = sample_scalar_field(self.request.function, v.range_x, v.range_y, v.range_z,
                                     int(self.sampling["fieldLattice"]))
        span = field_value_range(points)
        if span is None:
            return
        lo, hi = span
        if hi == lo:
            hi = lo + 1
        self._dots(points, lo, hi)
        self._emit_colorbar(lo, hi)

    def _magnitude_field(self, vector: VectorField) -> None:
        v = self.view
        points = sample_field_magnitudes(vector, v.range_x, v.range_y, v.range_z,
                                         int(self.sampling["magnitudeLattice"]))
        span = field_value_range(points)
        if span is None or span[1] == 0:
            return
        self._dots(points, 0.0, span[1])
        self._emit_colorbar(0.0, span[1])

    def _vector_arrows(self, vector: VectorField) -> None:
        v = self.view
        req = self.request
        arrows = sample_vector_arrows(vector, req.surface_mode, v.range_x, v.range_y, v.range_z,
                                      int(self.sampling["arrowCount3d"]))
        if not arrows:
            return
        max_mag = max(arrow.magnitude for arrow in arrows)
        on_surface = req.surface_mode is not SurfaceMode.NONE and not vector.is_3d
        peak = max(abs(arrow.surface_value) for arrow in arrows)
        z_scale = v.range_z / peak if on_surface and peak > 0 else 0.0
        sx, sy, sz = v.scales
        near = Rect(-50.0, -50.0, self.width + 50.0, self.height + 50.0)
        length = 15.0

        placed = []
        for arrow in arrows:
            z = arrow.surface_value * z_scale if on_surface else arrow.start.z
            start = Point3D(arrow.start.x * sx, arrow.start.y * sy, z * sz)
            placed.append((start.rotated(v.rotation_x, v.rotation_z), start, arrow))
        placed.sort(key=lambda entry: entry[0].y, reverse=True)

        for start_rot, start, arrow in placed:
            start_px = self._project(start_rot)
            if not point_in_rect(start_px, near):
                continue
            dx, dy, dz = arrow.direction
            end = Point3D(start.x + dx * length, start.y + dy * length, start.z + dz * length)
            end_px = self._project(end.rotated(v.rotation_x, v.rotation_z))
            color = self._jet(arrow.magnitude / max_mag)
            self._emit_line(start_px, end_px, color, width=2.0, role="arrow", depth=start_rot.y)
            if not end_px.is_finite:
                continue
            ux, uy = end_px.x - start_px.x, end_px.y - start_px.y
            if math.hypot(ux, uy) > 0:
                self._emit_arrow_head(end_px.as_tuple(), math.atan2(uy, ux), 5.0, 0.5, color, depth=start_rot.y)

        if req.surface_mode is SurfaceMode.NONE:
            self._emit_colorbar(0.0, max_mag)


# ---------------------------------------------------------------------------
# 2D


class Scene2D(_SceneBase):
    """Flat cartesian plot of a curve, heatmap, scalar dots or field arrows."""

    def __init__(
        self,
        request: PlotRequest,
        view: Optional[View2D] = None,
        appearance: Optional[Mapping[str, object]] = None,
        sampling: Optional[Mapping[str, object]] = None,
    ) -> None:
        super().__init__(request, appearance)
        self.view = view or View2D.from_config()
        self.sampling: Dict[str, object] = dict(DEFAULTS["sampling"])
        self.sampling.update(sampling or {})

    def _px(self, x: float, y: float) -> Point2D:
        sx, sy = self.view.to_screen(x, y, self.width, self.height)
        return Point2D(sx, sy)

    def build(self, width: int, height: int) -> List[RenderItem]:
        self._start(width, height)
        req = self.request
        self._grid()
        self._axes()
        if req.surface_mode is not SurfaceMode.NONE:
            self._heatmap()
        if req.plot_mode is PlotMode.FIELD:
            if req.vector is not None:
                self._magnitude_dots(req.vector)
            else:
                self._scalar_dots()
        elif req.vector is not None:
            self._arrows(req.vector)
        else:
            self._curve()
        if req.show_contour:
            self._contours()
        self._labels()
        return self.items

    def _spacing(self) -> Tuple[float, float]:
        v = self.view
        return grid_spacing(abs(v.x_max - v.x_min), 8), grid_spacing(abs(v.y_max - v.y_min), 8)

    def _grid(self) -> None:
        v = self.view
        color = self._colour("grid")
        spacing_x, spacing_y = self._spacing()
        span_x, span_y = abs(v.x_max - v.x_min) or 1.0, abs(v.y_max - v.y_min) or 1.0
        start_x = math.floor(v.x_min / spacing_x) * spacing_x
        start_y = math.floor(v.y_min / spacing_y) * spacing_y
        sub_x, sub_y = spacing_x / 5, spacing_y / 5
        if sub_x * self.width / span_x >= 12:
            for x in steps_between(start_x, v.x_max, sub_x):
                self._emit_line(self._px(x, v.y_min), self._px(x, v.y_max), color, alpha=0.12, width=0.8, role="subgrid")
        if sub_y * self.height / span_y >= 12:
            for y in steps_between(start_y, v.y_max, sub_y):
                self._emit_line(self._px(v.x_min, y), self._px(v.x_max, y), color, alpha=0.12, width=0.8, role="subgrid")
        for x in steps_between(start_x, v.x_max, spacing_x):
            self._emit_line(self._px(x, v.y_min), self._px(x, v.y_max), color, alpha=0.25, width=1.2, role="grid")
        for y in steps_between(start_y, v.y_max, spacing_y):
            self._emit_line(self._px(v.x_min, y), self._px(v.x_max, y), color, alpha=0.25, width=1.2, role="grid")

    def _axes(self) -> None:
        v = self.view
        color = self._colour("label")
        tick_color = self._colour("label")
        if v.y_min <= 0 <= v.y_max:
            a, b = self._px(v.x_min, 0), self._px(v.x_max, 0)
            self._emit_line(a, b, color, alpha=0.35, width=6.0, role="axis-glow")
            self._emit_line(a, b, color, alpha=0.6, width=2.0, role="axis")
        if v.x_min <= 0 <= v.x_max:
            a, b = self._px(0, v.y_min), self._px(0, v.y_max)
            self._emit_line(a, b, color, alpha=0.35, width=6.0, role="axis-glow")
            self._emit_line(a, b, color, alpha=0.6, width=2.0, role="axis")

        spacing_x, spacing_y = self._spacing()
        if v.y_min <= 0 <= v.y_max:
            y0 = min(max(self._px(0, 0).y, 10.0), self.height - 10)
            for x in steps_between(math.ceil(v.x_min / spacing_x) * spacing_x, v.x_max, spacing_x):
                if abs(x) > 0.001:
                    sx = self._px(x, 0).x
                    self._emit_line(Point2D(sx, y0 - 5), Point2D(sx, y0 + 5), tick_color, alpha=0.5, role="tick")
        if v.x_min <= 0 <= v.x_max:
            x0 = min(max(self._px(0, 0).x, 10.0), self.width - 10)
            for y in steps_between(math.ceil(v.y_min / spacing_y) * spacing_y, v.y_max, spacing_y):
                if abs(y) > 0.001:
                    sy = self._px(0, y).y
                    self._emit_line(Point2D(x0 - 5, sy), Point2D(x0 + 5, sy), tick_color, alpha=0.5, role="tick")

    def _labels(self) -> None:
        v = self.view
        color = self._colour("label")
        spacing_x, spacing_y = self._spacing()
        if v.y_min <= 0 <= v.y_max:
            y0 = min(max(self._px(0, 0).y, 20.0), self.height - 20)
            for x in steps_between(math.ceil(v.x_min / spacing_x) * spacing_x, v.x_max, spacing_x):
                if abs(x) > 0.001:
                    self._emit_text((self._px(x, 0).x, y0 + 8), format_number(x), color, size=12, anchor="top")
        if v.x_min <= 0 <= v.x_max:
            x0 = min(max(self._px(0, 0).x, 30.0), self.width - 30)
            for y in steps_between(math.ceil(v.y_min / spacing_y) * spacing_y, v.y_max, spacing_y):
                if abs(y) > 0.001:
                    self._emit_text((x0 - 8, self._px(0, y).y), format_number(y), color, size=12, anchor="right")

    def _scalar_of(self):
        req = self.request
        if req.vector is not None:
            vector, mode = req.vector, req.surface_mode
            return lambda x, y: vector.component_value(mode, x, y)
        return req.function

    def _heatmap(self) -> None:
        req = self.request
        if req.vector is None and not uses_y(req.expression):
            return
        v = self.view
        cells = int(self.sampling["heatmapGrid"])
        values = sample_heatmap(self._scalar_of(), v.x_min, v.x_max, v.y_min, v.y_max, cells)
        finite = values[np.isfinite(values)]
        if finite.size == 0:
            return
        lo, hi = float(finite.min()), float(finite.max())
        if req.vector is not None and req.surface_mode is SurfaceMode.MAGNITUDE:
            lo = 0.0
        if hi == lo:
            hi = lo + 1
        cw, ch = self.width / cells, self.height / cells
        alpha = float(self.appearance["heatmapAlpha"])
        for i in range(cells):
            for j in range(cells):
                value = float(values[i, j])
                if not math.isfinite(value):
                    continue
                left, top = i * cw, self.height - (j + 1) * ch
                corners = ((left, top), (left + cw + 1, top), (left + cw + 1, top + ch + 1), (left, top + ch + 1))
                color = self._jet(_normalise(value, lo, hi))
                self.items.append(RenderItem("polygon", corners, color, 0.0, 0.0, fill=color,
                                             fill_alpha=alpha, role="heatmap"))
        self._emit_colorbar(lo, hi)

    def _curve(self) -> None:
        v = self.view
        color = self._colour("curve")
        segments = sample_curve(self.request.function, v.x_min, v.x_max, v.y_max - v.y_min,
                                int(self.sampling["curveSteps"]), limit=1e6)
        for segment in segments:
            self._emit_polyline([self._px(x, y) for x, y in segment], color, alpha=1.0, width=3.0, role="curve")

    def _grid_sites(self, count: int):
        v = self.view
        for i in range(count + 1):
            for j in range(count + 1):
                yield (v.x_min + (v.x_max - v.x_min) * i / count, v.y_min + (v.y_max - v.y_min) * j / count)

    def _emit_dots(self, samples: List[Tuple[float, float, float]], lo: float, hi: float, count: int) -> None:
        radius = min(self.width, self.height) / count / 3
        for x, y, value in samples:
            color = self._jet(_normalise(value, lo, hi))
            self.items.append(RenderItem("circle", (self._px(x, y).as_tuple(),), color, 0.0, 0.0, fill=color,
                                         fill_alpha=0.8, radius=radius, role="field"))
        if self.request.surface_mode is SurfaceMode.NONE:
            self._emit_colorbar(lo, hi)

    def _scalar_dots(self) -> None:
        count = int(self.sampling["scalarDots2d"])
        fn = self.request.function
        samples = [(x, y, fn(x, y)) for x, y in self._grid_sites(count)]
        samples = [s for s in samples if math.isfinite(s[2])]
        if not samples:
            return
        lo = min(s[2] for s in samples)
        hi = max(s[2] for s in samples)
        if hi == lo:
            hi = lo + 1
        self._emit_dots(samples, lo, hi, count)

    def _magnitude_dots(self, vector: VectorField) -> None:
        count = int(self.sampling["scalarDots2d"])
        samples = [(x, y, vector.magnitude(x, y)) for x, y in self._grid_sites(count)]
        samples = [s for s in samples if math.isfinite(s[2])]
        if not samples:
            return
        hi = max(s[2] for s in samples) or 1.0
        self._emit_dots(samples, 0.0, hi, count)

    def _arrows(self, vector: VectorField) -> None:
        count = int(self.sampling["arrows2d"])
        mode = self.request.surface_mode
        length = min(self.width, self.height) / count
        sites = list(self._grid_sites(count))
        magnitudes = [vector.magnitude(x, y) for x, y in sites]
        max_mag = max((m for m in magnitudes if math.isfinite(m)), default=0.0) or 1.0
        for x, y in sites:
            fx, fy, fz = vector.evaluate(x, y)
            vx, vy = fx, fy
            mag = math.sqrt(fx * fx + fy * fy + fz * fz)
            if mode is SurfaceMode.X:
                vx, vy, mag = fx, 0.0, abs(fx)
            elif mode is SurfaceMode.Y:
                vx, vy, mag = 0.0, fy, abs(fy)
            elif mode is SurfaceMode.Z:
                vx, vy, mag = 0.0, 0.0, abs(fz)
            if not math.isfinite(mag) or mag < 1e-10:
                continue
            color = self._jet(mag / max_mag)
            start = self._px(x, y)
            end = Point2D(start.x + vx / mag * length, start.y - vy / mag * length)
            self._emit_line(start, end, color, width=2.0, role="arrow")
            if end.x != start.x or end.y != start.y:
                angle = math.atan2(end.y - start.y, end.x - start.x)
                self._emit_arrow_head(end.as_tuple(), angle, 6.0, 0.5, color)
        if mode is SurfaceMode.NONE:
            self._emit_colorbar(0.0, max_mag)

    def _contours(self) -> None:
        req = self.request
        if req.vector is not None and req.surface_mode is SurfaceMode.NONE:
            return
        if req.vector is None and not uses_y(req.expression):
            return
        v = self.view
        grid = sample_window(self._scalar_of(), v.x_min, v.x_max, v.y_min, v.y_max,
                             int(self.sampling["surfaceGrid"]))
        span = grid.value_range()
        if span is None:
            return
        lo, hi = span
        for threshold in contour_levels(lo, hi, int(self.sampling["contourLevels"])):
            color = self._jet(_normalise(threshold, lo, hi))
            for (x0, y0), (x1, y1) in contour_segments(grid, threshold):
                self._emit_line(self._px(x0, y0), self._px(x1, y1), color, alpha=0.8, width=1.5, role="contour")


def build_scene(
    request: PlotRequest,
    view: View2D | View3D,
    width: int,
    height: int,
    appearance: Optional[Mapping[str, object]] = None,
    sampling: Optional[Mapping[str, object]] = None,
) -> List[RenderItem]:
    if isinstance(view, View3D):
        return Scene3D(request, view, appearance, sampling).build(width, height)
    return Scene2D(request, view, appearance, sampling).build(width, height)
