"""Cohen-Sutherland clipping of screen-space segments against the canvas."""

from __future__ import annotations

from typing import Optional, Tuple

from .geometry import Point2D, Rect

__all__ = ["clip_line", "outcode", "point_in_rect"]

INSIDE = 0
LEFT = 1
RIGHT = 2
BOTTOM = 4
TOP = 8


def outcode(x: float, y: float, rect: Rect) -> int:
    code = INSIDE
    if x < rect.left:
        code |= LEFT
    elif x > rect.right:
        code |= RIGHT
    if y < rect.top:
        code |= TOP
    elif y > rect.bottom:
        code |= BOTTOM
    return code


def point_in_rect(point: Point2D, rect: Rect) -> bool:
    return point.is_finite and outcode(point.x, point.y, rect) == INSIDE


def clip_line(p1: Point2D, p2: Point2D, rect: Rect) -> Optional[Tuple[Point2D, Point2D]]:
    """Clip the segment ``p1``-``p2`` to ``rect``.

    Returns the visible part, the original endpoints when the segment is fully
    inside, or ``None`` when nothing is visible.  Segments with an infinite or
    NaN endpoint are rejected.
    """

    if not (p1.is_finite and p2.is_finite):
        return None

    x1, y1 = p1.x, p1.y
    x2, y2 = p2.x, p2.y
    code1 = outcode(x1, y1, rect)
    code2 = outcode(x2, y2, rect)

    while True:
        if not (code1 | code2):
            if (x1, y1, x2, y2) == (p1.x, p1.y, p2.x, p2.y):
                return p1, p2
            return Point2D(x1, y1), Point2D(x2, y2)
        if code1 & code2:
            return None

        code_out = code1 if code1 else code2
        if code_out & TOP:
            x = x1 + (x2 - x1) * (rect.top - y1) / (y2 - y1)
            y = rect.top
        elif code_out & BOTTOM:
            x = x1 + (x2 - x1) * (rect.bottom - y1) / (y2 - y1)
            y = rect.bottom
        elif code_out & RIGHT:
            y = y1 + (y2 - y1) * (rect.right - x1) / (x2 - x1)
            x = rect.right
        else:
            y = y1 + (y2 - y1) * (rect.left - x1) / (x2 - x1)
            x = rect.left

        if code_out == code1:
            x1, y1 = x, y
            code1 = outcode(x1, y1, rect)
        else:
            x2, y2 = x, y
            code2 = outcode(x2, y2, rect)
