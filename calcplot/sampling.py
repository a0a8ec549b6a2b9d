"""Evaluation of expressions and vector fields over the visible domain.

Everything here works in *model* units (the numbers the user typed ranges
in); the scenes apply the per-axis scale, rotation and projection afterwards.
Samplers never raise on bad values: non-finite samples either break a curve,
are zeroed on a surface or are left out of a field.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .geometry import Point3D
from .vector_field import SurfaceMode, VectorField

__all__ = [
    "Arrow3D",
    "FieldPoint",
    "SurfaceGrid",
    "auto_z_range",
    "contour_levels",
    "contour_segments",
    "floor_spacing",
    "grid_spacing",
    "sample_curve",
    "field_value_range",
    "sample_field_magnitudes",
    "sample_heatmap",
    "sample_scalar_field",
    "sample_surface",
    "sample_vector_arrows",
    "sample_vector_surface",
    "sample_window",
    "steps_between",
]

ScalarFunction = Callable[..., float]
CurvePoint = Tuple[float, float]
Segment2D = Tuple[Tuple[float, float], Tuple[float, float]]


# ---------------------------------------------------------------------------
# Containers


@dataclass
class SurfaceGrid:
    """Vertex grid of a height field.

    ``values[i, j]`` is the sample at ``(xs[i], ys[j])`` after non-finite
    samples were replaced by 0; ``valid`` keeps track of which samples were
    finite.  ``heights`` is what the mesh is drawn at: the clamped value for a
    scalar surface, a rescaled value for vector-field surfaces.
    """

    xs: np.ndarray
    ys: np.ndarray
    values: np.ndarray
    heights: np.ndarray
    valid: np.ndarray

    @property
    def grid_size(self) -> int:
        return len(self.xs) - 1

    def value_range(self) -> Optional[Tuple[float, float]]:
        if not self.valid.any():
            return None
        picked = self.values[self.valid]
        return float(picked.min()), float(picked.max())


@dataclass(frozen=True)
class FieldPoint:
    position: Point3D
    value: float


@dataclass(frozen=True)
class Arrow3D:
    """Field arrow anchored at ``start`` (model units) pointing along a unit vector."""

    start: Point3D
    direction: Tuple[float, float, float]
    magnitude: float
    surface_value: float


# ---------------------------------------------------------------------------
# Helpers


def steps_between(start: float, stop: float, step: float) -> Iterator[float]:
    """Yield ``start, start + step, ...`` up to ``stop`` inclusive."""

    if not (step > 0 and math.isfinite(start) and math.isfinite(stop)):
        return
    count = int(math.floor((stop - start) / step + 1e-9))
    for k in range(count + 1):
        yield start + k * step


def _axis(extent: float, count: int) -> np.ndarray:
    return np.linspace(-extent, extent, count + 1)


def _finite(value: float) -> bool:
    return math.isfinite(value)


def grid_spacing(span: float, max_lines: int = 8) -> float:
    """"Nice" 1, 2 or 5 times a power of ten giving at most ``max_lines`` lines."""

    if not span > 0 or not math.isfinite(span):
        return 1.0
    rough = span / max_lines
    magnitude = 10.0 ** math.floor(math.log10(rough))
    normalized = rough / magnitude
    if normalized <= 1:
        nice = 1.0
    elif normalized <= 2:
        nice = 2.0
    elif normalized <= 5:
        nice = 5.0
    else:
        nice = 10.0
    return nice * magnitude


def floor_spacing(half_range: float) -> float:
    """Main line spacing of the 3D floor grid and axis ticks."""

    span = 2.0 * half_range
    if not span > 0 or not math.isfinite(span):
        return 1.0
    magnitude = 10.0 ** math.floor(math.log10(span))
    normalized = span / magnitude
    if normalized < 2:
        return magnitude / 5
    if normalized < 5:
        return magnitude / 2
    return magnitude


# ---------------------------------------------------------------------------
# Curves and surfaces


def sample_curve(
    fn: ScalarFunction,
    x_min: float,
    x_max: float,
    value_range: float,
    steps: int = 1000,
    limit: Optional[float] = None,
) -> List[List[CurvePoint]]:
    """Sample ``fn(x, 0)`` at ``steps + 1`` points and split it into segments.

    A segment ends at a non-finite sample, at a sample beyond ``limit`` and
    before a jump larger than half of ``value_range`` so asymptotes are never
    bridged.
    """

    segments: List[List[CurvePoint]] = []
    current: List[CurvePoint] = []
    last: Optional[float] = None
    jump = value_range * 0.5
    for i in range(steps + 1):
        x = x_min + (x_max - x_min) * i / steps
        value = fn(x, 0.0)
        if not _finite(value) or (limit is not None and abs(value) > limit):
            if current:
                segments.append(current)
            current = []
            last = None
            continue
        if last is not None and abs(value - last) > jump and current:
            segments.append(current)
            current = []
        current.append((x, value))
        last = value
    if current:
        segments.append(current)
    return segments


def sample_surface(
    fn: ScalarFunction,
    range_x: float,
    range_y: float,
    range_z: float,
    grid_size: int = 50,
) -> SurfaceGrid:
    """Evaluate ``fn(x, y)`` on a ``(grid_size + 1)²`` vertex grid."""

    xs = _axis(range_x, grid_size)
    ys = _axis(range_y, grid_size)
    raw = np.array([[fn(float(x), float(y)) for y in ys] for x in xs], dtype=float)
    valid = np.isfinite(raw)
    values = np.clip(np.where(valid, raw, 0.0), -range_z, range_z)
    return SurfaceGrid(xs, ys, values, values.copy(), valid)


def sample_vector_surface(
    field: VectorField,
    mode: SurfaceMode | str,
    range_x: float,
    range_y: float,
    range_z: float,
    grid_size: int = 50,
) -> SurfaceGrid:
    """Surface of a derived scalar of a planar field, scaled to fill ``range_z``."""

    xs = _axis(range_x, grid_size)
    ys = _axis(range_y, grid_size)
    raw = np.array(
        [[field.component_value(mode, float(x), float(y)) for y in ys] for x in xs], dtype=float
    )
    valid = np.isfinite(raw)
    values = np.where(valid, raw, 0.0)
    peak = float(np.abs(values).max()) if values.size else 0.0
    scale = range_z / peak if peak > 0 else 1.0
    heights = np.clip(values * scale, -range_z, range_z)
    return SurfaceGrid(xs, ys, values, heights, valid)


def sample_window(
    fn: ScalarFunction,
    x_min: float,
    x_max: float,
    y_min: float,
    y_max: float,
    grid_size: int = 50,
) -> SurfaceGrid:
    """Unclamped vertex grid over an arbitrary window, used for 2D contours."""

    xs = np.linspace(x_min, x_max, grid_size + 1)
    ys = np.linspace(y_min, y_max, grid_size + 1)
    raw = np.array([[fn(float(x), float(y)) for y in ys] for x in xs], dtype=float)
    valid = np.isfinite(raw)
    values = np.where(valid, raw, 0.0)
    return SurfaceGrid(xs, ys, values, values.copy(), valid)


def sample_heatmap(
    fn: ScalarFunction,
    x_min: float,
    x_max: float,
    y_min: float,
    y_max: float,
    cells: int = 40,
) -> np.ndarray:
    """Cell-centre samples for a 2D heatmap, shape ``(cells, cells)``; NaN where undefined."""

    xs = x_min + (x_max - x_min) * (np.arange(cells) + 0.5) / cells
    ys = y_min + (y_max - y_min) * (np.arange(cells) + 0.5) / cells
    raw = np.array([[fn(float(x), float(y)) for y in ys] for x in xs], dtype=float)
    return np.where(np.isfinite(raw), raw, np.nan)


# ---------------------------------------------------------------------------
# Fields


def sample_scalar_field(
    fn: ScalarFunction,
    range_x: float,
    range_y: float,
    range_z: float,
    count: int = 12,
) -> List[FieldPoint]:
    points: List[FieldPoint] = []
    for x in _axis(range_x, count):
        for y in _axis(range_y, count):
            for z in _axis(range_z, count):
                value = fn(float(x), float(y), float(z))
                if _finite(value):
                    points.append(FieldPoint(Point3D(float(x), float(y), float(z)), value))
    return points


def _field_sites(
    field: VectorField, range_x: float, range_y: float, range_z: float, count: int
) -> Iterator[Tuple[float, float, float]]:
    if field.is_3d:
        for x in _axis(range_x, count):
            for y in _axis(range_y, count):
                for z in _axis(range_z, count):
                    yield float(x), float(y), float(z)
    else:
        for x in _axis(range_x, count * 2):
            for y in _axis(range_y, count * 2):
                yield float(x), float(y), 0.0


def sample_field_magnitudes(
    field: VectorField,
    range_x: float,
    range_y: float,
    range_z: float,
    count: int = 10,
) -> List[FieldPoint]:
    points: List[FieldPoint] = []
    for x, y, z in _field_sites(field, range_x, range_y, range_z, count):
        magnitude = field.magnitude(x, y, z)
        if _finite(magnitude):
            points.append(FieldPoint(Point3D(x, y, z), magnitude))
    return points


def _project_on_mode(
    mode: SurfaceMode, vector: Tuple[float, float, float]
) -> Tuple[Tuple[float, float, float], float, float]:
    fx, fy, fz = vector
    if mode is SurfaceMode.X:
        return (fx, 0.0, 0.0), abs(fx), fx
    if mode is SurfaceMode.Y:
        return (0.0, fy, 0.0), abs(fy), fy
    if mode is SurfaceMode.Z:
        return (0.0, 0.0, fz), abs(fz), fz
    magnitude = math.sqrt(fx * fx + fy * fy + fz * fz)
    return (fx, fy, fz), magnitude, magnitude


def sample_vector_arrows(
    field: VectorField,
    mode: SurfaceMode | str,
    range_x: float,
    range_y: float,
    range_z: float,
    count: int = 8,
) -> List[Arrow3D]:
    """Arrows on a ``(2·count+1)²`` floor grid, or a ``(count+1)³`` lattice for 3D fields.

    With an axis ``mode`` only that component is drawn and its absolute value
    is the arrow magnitude.  Zero and non-finite magnitudes are skipped.
    """

    mode = SurfaceMode(mode)
    arrows: List[Arrow3D] = []
    for x, y, z in _field_sites(field, range_x, range_y, range_z, count):
        (vx, vy, vz), magnitude, surface_value = _project_on_mode(mode, field.evaluate(x, y, z))
        if not _finite(magnitude) or magnitude < 1e-10:
            continue
        inv = 1.0 / magnitude
        arrows.append(Arrow3D(Point3D(x, y, z), (vx * inv, vy * inv, vz * inv), magnitude, surface_value))
    return arrows


def auto_z_range(fn: ScalarFunction, range_x: float, range_y: float, samples: int = 6) -> Optional[float]:
    """``1.2 * max|f|`` over a coarse grid, or ``None`` when nothing finite and non-zero was seen."""

    peak = 0.0
    for x in _axis(range_x, samples):
        for y in _axis(range_y, samples):
            value = fn(float(x), float(y), 0.0)
            if _finite(value):
                peak = max(peak, abs(value))
    if peak <= 0:
        return None
    return peak * 1.2


# ---------------------------------------------------------------------------
# Contours


def contour_levels(lo: float, hi: float, count: int = 10) -> List[float]:
    if not (math.isfinite(lo) and math.isfinite(hi)) or lo == hi:
        return []
    return [lo + (hi - lo) * (level + 1) / (count + 1) for level in range(count)]


def contour_segments(grid: SurfaceGrid, threshold: float) -> List[Segment2D]:
    """Marching-squares iso-line segments of ``grid.values`` at ``threshold``.

    Cells with an invalid corner are skipped.  Segments are returned in model
    ``(x, y)`` coordinates; the caller lifts them to the height it needs.
    """

    xs, ys, values, valid = grid.xs, grid.ys, grid.values, grid.valid
    segments: List[Segment2D] = []
    for i in range(len(xs) - 1):
        x0, x1 = float(xs[i]), float(xs[i + 1])
        for j in range(len(ys) - 1):
            if not (valid[i, j] and valid[i + 1, j] and valid[i + 1, j + 1] and valid[i, j + 1]):
                continue
            v0 = float(values[i, j])
            v1 = float(values[i + 1, j])
            v2 = float(values[i + 1, j + 1])
            v3 = float(values[i, j + 1])
            above = (v0 >= threshold, v1 >= threshold, v2 >= threshold, v3 >= threshold)
            if all(above) or not any(above):
                continue
            y0, y1 = float(ys[j]), float(ys[j + 1])
            crossings: List[Tuple[float, float]] = []
            if above[0] != above[1]:
                t = (threshold - v0) / (v1 - v0)
                crossings.append((x0 + t * (x1 - x0), y0))
            if above[1] != above[2]:
                t = (threshold - v1) / (v2 - v1)
                crossings.append((x1, y0 + t * (y1 - y0)))
            if above[2] != above[3]:
                t = (threshold - v3) / (v2 - v3)
                crossings.append((x0 + t * (x1 - x0), y1))
            if above[3] != above[0]:
                t = (threshold - v0) / (v3 - v0)
                crossings.append((x0, y0 + t * (y1 - y0)))
            if len(crossings) >= 2:
                segments.append((crossings[0], crossings[1]))
            if len(crossings) >= 4:
                segments.append((crossings[2], crossings[3]))
    return segments


def field_value_range(points: Sequence[FieldPoint]) -> Optional[Tuple[float, float]]:
    if not points:
        return None
    values = [point.value for point in points]
    return min(values), max(values)
