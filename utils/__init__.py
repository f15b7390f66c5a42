"""Utility functions for the beacon map pipeline."""

from .geometry import (
    Facing,
    Point,
    ORIENTATIONS,
    rotate_point,
    rotation_matrix,
    rotate_points,
    validate_rotation,
)
from .validation import (
    validate_report,
    validate_resolution,
)

__all__ = [
    "Facing",
    "Point",
    "ORIENTATIONS",
    "rotate_point",
    "rotation_matrix",
    "rotate_points",
    "validate_rotation",
    "validate_report",
    "validate_resolution",
]
