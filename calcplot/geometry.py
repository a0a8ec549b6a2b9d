"""Model space points, rotations and the perspective projection onto the canvas."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

__all__ = ["Point2D", "Point3D", "Rect", "clamp", "clamp01"]


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def clamp(value: float, minimum: float, maximum: float) -> float:
    return max(minimum, min(maximum, value))


@dataclass(frozen=True)
class Point2D:
    """Screen-space position in pixels, y growing downwards."""

    x: float
    y: float

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)

    def as_tuple(self) -> Tuple[float, float]:
        return self.x, self.y


@dataclass(frozen=True)
class Rect:
    left: float
    top: float
    right: float
    bottom: float

    @classmethod
    def from_size(cls, width: float, height: float) -> "Rect":
        return cls(0.0, 0.0, float(width), float(height))

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top


@dataclass(frozen=True)
class Point3D:
    """Model space point: x and y span the floor, z is the function value.

    After rotation the y coordinate is the distance into the screen and is
    used both for the perspective divide and as the painter's depth key.
    """

    x: float
    y: float
    z: float

    def rotate_x(self, angle: float) -> "Point3D":
        c = math.cos(angle)
        s = math.sin(angle)
        return Point3D(self.x, self.y * c - self.z * s, self.y * s + self.z * c)

    def rotate_z(self, angle: float) -> "Point3D":
        c = math.cos(angle)
        s = math.sin(angle)
        return Point3D(self.x * c - self.y * s, self.x * s + self.y * c, self.z)

    def rotated(self, rotation_x: float, rotation_z: float) -> "Point3D":
        # Elevation first, then azimuth.
        return self.rotate_x(rotation_x).rotate_z(rotation_z)

    def project(
        self,
        focal_length: float,
        width: float,
        height: float,
        pan_x: float = 0.0,
        pan_y: float = 0.0,
    ) -> Point2D:
        """Perspective projection; a point on the eye plane maps to inf/nan."""

        with np.errstate(all="ignore"):
            scale = np.float64(focal_length) / (np.float64(focal_length) + np.float64(self.y))
            sx = width / 2.0 + self.x * scale + pan_x
            sy = height / 2.0 - self.z * scale + pan_y
        return Point2D(float(sx), float(sy))
