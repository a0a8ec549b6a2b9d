"""Decomposition of vector-field expressions into per-axis scalar components.

A vector field is typed as a sum of terms, each ending in a unit vector
marker: ``3i + 4j``, ``y*i - x*j``, ``sin(x)e_x + cos(y)e_y``.  Which markers
are recognised depends on the active :class:`UnitConvention`; a parser only
ever uses one convention so the two notations are never mixed.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .control.config import DEFAULTS
from .expression import NUMBER, evaluate, tokenize

__all__ = [
    "CONVENTIONS",
    "SurfaceMode",
    "UnitConvention",
    "VectorField",
    "VectorFieldParser",
    "default_parser",
    "is_vector_field",
    "parse",
]

logger = logging.getLogger(__name__)

_NO_SPLIT_AFTER = frozenset("*/^(,")


class SurfaceMode(str, Enum):
    """Scalar derived from a vector field for surfaces, heatmaps and colours."""

    NONE = "none"
    X = "x"
    Y = "y"
    Z = "z"
    MAGNITUDE = "magnitude"


# ---------------------------------------------------------------------------
# Conventions


@dataclass(frozen=True)
class UnitConvention:
    """Unit vector spelling: marker suffix for each axis."""

    name: str
    markers: Tuple[Tuple[str, str], ...]

    def detection_pattern(self) -> "re.Pattern[str]":
        alternatives = "|".join(re.escape(marker) for marker, _axis in self.markers)
        return re.compile(rf"(?<![a-z_])[xyz]?(?:{alternatives})(?=[+\-]|$)")

    def split_term(self, term: str) -> Optional[Tuple[str, str]]:
        """Return ``(coefficient, axis)`` when ``term`` ends in a unit marker."""

        lowered = term.lower()
        for marker, axis in self.markers:
            if not lowered.endswith(marker):
                continue
            prefix = term[: len(term) - len(marker)]
            if _starts_new_token(prefix):
                return prefix, axis
        return None


def _starts_new_token(prefix: str) -> bool:
    # The marker must not be glued onto an identifier: ``sinh``, ``pi``, ``x2i``.
    # A lone variable is a coefficient: ``yi``, ``-xe_y``.
    if not prefix:
        return True
    last = prefix[-1]
    if last.isalpha() or last == "_":
        before = prefix[-2] if len(prefix) > 1 else ""
        return last.lower() in "xyz" and not (before.isalnum() or before in ("_", ".", ")"))
    if last.isdigit() or last == ".":
        tokens = list(tokenize(prefix))
        return bool(tokens) and tokens[-1].kind == NUMBER
    return True


IJK = UnitConvention("ijk", (("i", "x"), ("j", "y"), ("k", "z")))
E_XYZ = UnitConvention("e_xyz", (("e_x", "x"), ("e_y", "y"), ("e_z", "z")))

CONVENTIONS: Dict[str, UnitConvention] = {IJK.name: IJK, E_XYZ.name: E_XYZ}


# ---------------------------------------------------------------------------
# Vector field


@dataclass(frozen=True)
class VectorField:
    """Up to three component expressions; a missing component evaluates to 0."""

    x: Optional[str] = None
    y: Optional[str] = None
    z: Optional[str] = None

    @property
    def is_3d(self) -> bool:
        return self.z is not None

    def evaluate(self, x: float, y: float, z: float = 0.0) -> Tuple[float, float, float]:
        fx = evaluate(self.x, x, y, z) if self.x is not None else 0.0
        fy = evaluate(self.y, x, y, z) if self.y is not None else 0.0
        fz = evaluate(self.z, x, y, z) if self.z is not None else 0.0
        return fx, fy, fz

    def magnitude(self, x: float, y: float, z: float = 0.0) -> float:
        fx, fy, fz = self.evaluate(x, y, z)
        return math.sqrt(fx * fx + fy * fy + fz * fz)

    def normalized(self, x: float, y: float, z: float = 0.0) -> Tuple[float, float, float]:
        fx, fy, fz = self.evaluate(x, y, z)
        mag = math.sqrt(fx * fx + fy * fy + fz * fz)
        if not mag >= 1e-10:
            return 0.0, 0.0, 0.0
        return fx / mag, fy / mag, fz / mag

    def component_value(self, mode: SurfaceMode | str, x: float, y: float, z: float = 0.0) -> float:
        mode = SurfaceMode(mode)
        fx, fy, fz = self.evaluate(x, y, z)
        if mode is SurfaceMode.X:
            return fx
        if mode is SurfaceMode.Y:
            return fy
        if mode is SurfaceMode.Z:
            return fz
        if mode is SurfaceMode.MAGNITUDE:
            return math.sqrt(fx * fx + fy * fy + fz * fz)
        return 0.0

    def __str__(self) -> str:
        return f"Vector(x: {self.x}, y: {self.y}, z: {self.z})"


# ---------------------------------------------------------------------------
# Parser


def _split_terms(expression: str) -> List[str]:
    terms: List[str] = []
    current = ""
    depth = 0
    previous = ""
    for idx, char in enumerate(expression):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char in "+-" and idx > 0 and depth == 0 and previous not in _NO_SPLIT_AFTER:
            if current:
                terms.append(current)
            current = "-" if char == "-" else ""
        else:
            current += char
        previous = char
    if current:
        terms.append(current)
    return terms


def _normalise_coefficient(coefficient: str) -> str:
    coefficient = coefficient.strip()
    if coefficient in ("", "+"):
        return "1"
    if coefficient == "-":
        return "-1"
    if coefficient.endswith(("*", "·")):
        return coefficient[:-1]
    return coefficient


class VectorFieldParser:
    """Recognises and decomposes vector fields written in one unit convention."""

    def __init__(self, convention: str | UnitConvention = "ijk") -> None:
        if isinstance(convention, str):
            try:
                convention = CONVENTIONS[convention]
            except KeyError:
                raise ValueError(
                    f"unknown unit convention {convention!r}, expected one of {sorted(CONVENTIONS)}"
                ) from None
        self.convention = convention
        self._detect = convention.detection_pattern()

    def is_vector_field(self, expression: str) -> bool:
        return self.parse(expression) is not None

    def parse(self, expression: str) -> Optional[VectorField]:
        normalized = expression.replace(" ", "")
        if not self._detect.search(normalized.lower()):
            return None

        components: Dict[str, str] = {}
        for term in _split_terms(normalized):
            split = self.convention.split_term(term)
            if split is None:
                continue
            coefficient, axis = split
            if axis in components:
                logger.warning(
                    "Vector field %r sets the %s component twice; keeping %r",
                    expression,
                    axis,
                    _normalise_coefficient(coefficient),
                )
            components[axis] = _normalise_coefficient(coefficient)

        if not components:
            return None
        return VectorField(components.get("x"), components.get("y"), components.get("z"))


def default_parser() -> VectorFieldParser:
    return VectorFieldParser(DEFAULTS["field"]["unitConvention"])


def is_vector_field(expression: str) -> bool:
    return default_parser().is_vector_field(expression)


def parse(expression: str) -> Optional[VectorField]:
    return default_parser().parse(expression)
