"""View state of the 2D and 3D plots and the gestures that change it.

Both views are plain mutable objects updated synchronously by the widget's
mouse handlers; a repaint follows every change.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Mapping, Optional, Tuple

from .control.config import DEFAULTS
from .geometry import clamp

__all__ = ["View2D", "View3D", "ZoomAxis", "detect_zoom_axis"]

AutoZ = Callable[[float, float], Optional[float]]

MAX_ELEVATION = math.pi / 2 - 0.1


class ZoomAxis(str, Enum):
    FREE = "free"
    X = "x"
    Y = "y"
    Z = "z"


@dataclass
class View3D:
    rotation_x: float = 0.6
    rotation_z: float = 0.8
    range_x: float = 5.0
    range_y: float = 5.0
    range_z: float = 5.0
    pan_x: float = 0.0
    pan_y: float = 0.0
    focal_length: float = 500.0
    min_range: float = 1.0
    max_range: float = 50.0
    rotate_speed: float = 0.01

    @classmethod
    def from_config(cls, cfg: Optional[Mapping[str, object]] = None) -> "View3D":
        d = dict(DEFAULTS["view3d"])
        d.update(cfg or {})
        return cls(
            rotation_x=float(d["rotationX"]),
            rotation_z=float(d["rotationZ"]),
            range_x=float(d["rangeX"]),
            range_y=float(d["rangeY"]),
            range_z=float(d["rangeZ"]),
            pan_x=float(d["panX"]),
            pan_y=float(d["panY"]),
            focal_length=float(d["focalLength"]),
            min_range=float(d["minRange"]),
            max_range=float(d["maxRange"]),
            rotate_speed=float(d["rotateSpeed"]),
        )

    def to_config(self) -> Dict[str, float]:
        return dict(
            rotationX=self.rotation_x,
            rotationZ=self.rotation_z,
            rangeX=self.range_x,
            rangeY=self.range_y,
            rangeZ=self.range_z,
            panX=self.pan_x,
            panY=self.pan_y,
        )

    @property
    def scales(self) -> Tuple[float, float, float]:
        """Model to scene units per axis: every range maps to 200 scene units."""

        return 200.0 / self.range_x, 200.0 / self.range_y, 200.0 / self.range_z

    def rotate(self, dx: float, dy: float) -> None:
        self.rotation_z += dx * self.rotate_speed
        self.rotation_x = clamp(self.rotation_x + dy * self.rotate_speed, -MAX_ELEVATION, MAX_ELEVATION)

    def pan_by(self, dx: float, dy: float) -> None:
        self.pan_x += dx
        self.pan_y += dy

    def _clamp_range(self, value: float) -> float:
        return clamp(value, self.min_range, self.max_range)

    def zoom(self, factor: float, axis: ZoomAxis | str = ZoomAxis.FREE, auto_z: Optional[AutoZ] = None) -> None:
        """Zoom in by ``factor`` (> 1) or out (< 1) along ``axis``.

        ``auto_z`` recomputes the value range from the new x/y ranges; without
        it a free zoom keeps ``range_z`` at the mean of the other two.
        """

        if not factor > 0 or abs(factor - 1.0) <= 1e-3:
            return
        axis = ZoomAxis(axis)
        if axis is ZoomAxis.Z:
            self.range_z = self._clamp_range(self.range_z / factor)
            return
        if axis in (ZoomAxis.FREE, ZoomAxis.X):
            self.range_x = self._clamp_range(self.range_x / factor)
        if axis in (ZoomAxis.FREE, ZoomAxis.Y):
            self.range_y = self._clamp_range(self.range_y / factor)
        new_z = auto_z(self.range_x, self.range_y) if auto_z is not None else None
        if new_z is not None:
            self.range_z = new_z
        elif axis is ZoomAxis.FREE:
            self.range_z = (self.range_x + self.range_y) / 2

    def reset(self) -> None:
        fresh = View3D.from_config()
        self.__dict__.update(fresh.__dict__)


@dataclass
class View2D:
    x_min: float = -5.0
    x_max: float = 5.0
    y_min: float = -5.0
    y_max: float = 5.0

    @classmethod
    def from_config(cls, cfg: Optional[Mapping[str, object]] = None) -> "View2D":
        d = dict(DEFAULTS["view2d"])
        d.update(cfg or {})
        return cls(float(d["xMin"]), float(d["xMax"]), float(d["yMin"]), float(d["yMax"]))

    def to_config(self) -> Dict[str, float]:
        return dict(xMin=self.x_min, xMax=self.x_max, yMin=self.y_min, yMax=self.y_max)

    def to_screen(self, x: float, y: float, width: float, height: float) -> Tuple[float, float]:
        sx = (x - self.x_min) / (self.x_max - self.x_min) * width
        sy = height - (y - self.y_min) / (self.y_max - self.y_min) * height
        return sx, sy

    def to_model(self, sx: float, sy: float, width: float, height: float) -> Tuple[float, float]:
        x = self.x_min + sx / width * (self.x_max - self.x_min)
        y = self.y_max - sy / height * (self.y_max - self.y_min)
        return x, y

    def pan_by(self, dx: float, dy: float, width: float, height: float) -> None:
        """Drag the window by ``(dx, dy)`` pixels."""

        x_shift = -dx * (self.x_max - self.x_min) / width
        y_shift = dy * (self.y_max - self.y_min) / height
        self.x_min += x_shift
        self.x_max += x_shift
        self.y_min += y_shift
        self.y_max += y_shift

    def zoom(
        self,
        factor: float,
        axis: ZoomAxis | str = ZoomAxis.FREE,
        focus: Optional[Tuple[float, float]] = None,
    ) -> None:
        if not factor > 0 or abs(factor - 1.0) <= 1e-3:
            return
        axis = ZoomAxis(axis)
        if focus is None:
            focus = ((self.x_min + self.x_max) / 2, (self.y_min + self.y_max) / 2)
        fx, fy = focus
        if axis in (ZoomAxis.FREE, ZoomAxis.X):
            self.x_min = fx - (fx - self.x_min) / factor
            self.x_max = fx + (self.x_max - fx) / factor
        # In the plane the value axis is y.
        if axis in (ZoomAxis.FREE, ZoomAxis.Y, ZoomAxis.Z):
            self.y_min = fy - (fy - self.y_min) / factor
            self.y_max = fy + (self.y_max - fy) / factor

    def reset(self) -> None:
        fresh = View2D.from_config()
        self.__dict__.update(fresh.__dict__)


def detect_zoom_axis(
    pos: Tuple[float, float],
    size: Tuple[float, float],
    selected: ZoomAxis | str = ZoomAxis.FREE,
    zone: float = 60.0,
) -> ZoomAxis:
    """Pick the 2D zoom axis: the selected one, else by closeness to the axis margins."""

    selected = ZoomAxis(selected)
    if selected is not ZoomAxis.FREE:
        return selected
    x, y = pos
    _width, height = size
    near_x_axis = y > height - zone
    near_y_axis = x < zone
    if near_x_axis and not near_y_axis:
        return ZoomAxis.X
    if near_y_axis and not near_x_axis:
        return ZoomAxis.Y
    return ZoomAxis.FREE
