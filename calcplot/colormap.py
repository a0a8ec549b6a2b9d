"""Colour gradients used for surfaces, heatmaps, field arrows and colorbars.

Gradients are written as ``"#RRGGBB@pos,#RRGGBB@pos,..."``; stops without a
position are spread evenly.  Sampling interpolates linearly in RGB between the
two stops bracketing ``t``.
"""

from __future__ import annotations

import math
from functools import lru_cache
from typing import List, Optional, Sequence, Tuple

from .control.config import DEFAULTS
from .geometry import clamp01

__all__ = [
    "hex_to_rgb",
    "jet_colormap",
    "mix_hex",
    "parse_gradient_stops",
    "rgb_to_hex",
    "sample_gradient",
    "surface_gradient_color",
]

Stop = Tuple[str, float]


def hex_to_rgb(value: str) -> Tuple[int, int, int]:
    value = value.strip().lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    try:
        number = int(value, 16)
    except ValueError:
        return 0, 0, 0
    return (number >> 16) & 255, (number >> 8) & 255, number & 255


def rgb_to_hex(r: int, g: int, b: int) -> str:
    return f"#{r:02X}{g:02X}{b:02X}"


def mix_hex(color_a: str, color_b: str, t: float) -> str:
    r1, g1, b1 = hex_to_rgb(color_a)
    r2, g2, b2 = hex_to_rgb(color_b)
    return rgb_to_hex(
        int(round(r1 + (r2 - r1) * t)),
        int(round(g1 + (g2 - g1) * t)),
        int(round(b1 + (b2 - b1) * t)),
    )


@lru_cache(maxsize=32)
def parse_gradient_stops(value: Optional[str]) -> Tuple[Stop, ...]:
    if not value:
        return (("#000000", 0.0), ("#FFFFFF", 1.0))
    parts = [part.strip() for part in value.split(",") if part.strip()]
    raw: List[Tuple[str, Optional[float]]] = []
    for part in parts:
        if "@" in part:
            color, pos = part.split("@", 1)
            try:
                t: Optional[float] = float(pos)
            except ValueError:
                t = None
            raw.append((color.strip(), t))
        else:
            raw.append((part, None))
    unspecified = [idx for idx, item in enumerate(raw) if item[1] is None]
    for order, idx in enumerate(unspecified):
        raw[idx] = (raw[idx][0], order / max(1, len(unspecified) - 1))
    stops = sorted(((color, clamp01(pos or 0.0)) for color, pos in raw), key=lambda entry: entry[1])
    if stops[0][1] > 0:
        stops.insert(0, (stops[0][0], 0.0))
    if stops[-1][1] < 1:
        stops.append((stops[-1][0], 1.0))
    return tuple(stops)


def sample_gradient(stops: Sequence[Stop], t: float) -> str:
    if not math.isfinite(t):
        t = 0.0
    t = clamp01(t)
    for idx in range(len(stops) - 1):
        color_a, pos_a = stops[idx]
        color_b, pos_b = stops[idx + 1]
        if pos_a <= t <= pos_b:
            local = (t - pos_a) / max(1e-6, pos_b - pos_a)
            return mix_hex(color_a, color_b, local)
    return stops[-1][0]


def surface_gradient_color(t: float, colors: Optional[str] = None) -> str:
    """Blue, cyan, teal, green, yellow surface gradient for ``t`` in [0, 1]."""

    return sample_gradient(parse_gradient_stops(colors or DEFAULTS["appearance"]["surfaceColors"]), t)


def jet_colormap(t: float, colors: Optional[str] = None) -> str:
    return sample_gradient(parse_gradient_stops(colors or DEFAULTS["appearance"]["jetColors"]), t)
