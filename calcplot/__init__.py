"""Interactive 2D/3D plotter for scalar expressions and vector fields."""

from .expression import ExpressionEvaluator, InvalidExpressionError, check_syntax, evaluate, uses_y, uses_z
from .vector_field import VectorField, VectorFieldParser, is_vector_field, parse

__version__ = "0.1.0"

__all__ = [
    "ExpressionEvaluator",
    "InvalidExpressionError",
    "VectorField",
    "VectorFieldParser",
    "check_syntax",
    "evaluate",
    "is_vector_field",
    "parse",
    "uses_y",
    "uses_z",
]
