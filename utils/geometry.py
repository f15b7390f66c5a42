"""Integer point and discrete rotation utilities for scanner alignment."""

from enum import Enum
from typing import Iterable, List, NamedTuple, Tuple

import numpy as np


class Facing(Enum):
    """Direction the local +x axis is turned to before the in-plane rotation."""
    X_POS = "x+"
    X_NEG = "x-"
    Y_POS = "y+"
    Y_NEG = "y-"
    Z_POS = "z+"
    Z_NEG = "z-"


RIGHT_ANGLES = (0, 90, 180, 270)


class Point(NamedTuple):
    """Immutable integer 3D point (or offset)."""
    x: int
    y: int
    z: int

    def translate(self, other: "Point") -> "Point":
        return Point(self.x + other.x, self.y + other.y, self.z + other.z)

    def offset_to(self, other: "Point") -> "Point":
        """Vector from this point to ``other``."""
        return Point(other.x - self.x, other.y - self.y, other.z - self.z)

    def manhattan(self, other: "Point") -> int:
        return abs(self.x - other.x) + abs(self.y - other.y) + abs(self.z - other.z)

    def rotate(self, facing: Facing, rotation: int) -> "Point":
        return rotate_point(self, facing, rotation)

    def __str__(self) -> str:
        return f"{self.x},{self.y},{self.z}"


ORIGIN = Point(0, 0, 0)


def _face(point: Point, facing: Facing) -> Point:
    x, y, z = point
    if facing is Facing.X_POS:
        return Point(x, y, z)
    if facing is Facing.X_NEG:
        return Point(-x, -y, z)
    if facing is Facing.Y_POS:
        return Point(y, -x, z)
    if facing is Facing.Y_NEG:
        return Point(-y, x, z)
    if facing is Facing.Z_POS:
        return Point(z, y, -x)
    if facing is Facing.Z_NEG:
        return Point(-z, y, x)
    raise ValueError(f"Invalid facing: {facing}")


def _turn(point: Point, rotation: int) -> Point:
    x, y, z = point
    if rotation == 0:
        return Point(x, y, z)
    if rotation == 90:
        return Point(x, -z, y)
    if rotation == 180:
        return Point(x, -y, -z)
    if rotation == 270:
        return Point(x, z, -y)
    raise ValueError(f"Invalid rotation {rotation}, expected one of {RIGHT_ANGLES}")


def rotate_point(point: Point, facing: Facing, rotation: int) -> Point:
    """
    Apply one of the 24 proper rotations to a point.

    The facing is applied first, then the quarter-turn about the x axis.
    """
    return _turn(_face(point, facing), rotation)


ORIENTATIONS: List[Tuple[Facing, int]] = [
    (facing, rotation) for facing in Facing for rotation in RIGHT_ANGLES
]


def rotation_matrix(facing: Facing, rotation: int) -> np.ndarray:
    """3x3 integer matrix equivalent to ``rotate_point(_, facing, rotation)``."""
    columns = [
        rotate_point(basis, facing, rotation)
        for basis in (Point(1, 0, 0), Point(0, 1, 0), Point(0, 0, 1))
    ]
    return np.array(columns, dtype=np.int64).T


# One matrix per orientation
_MATRICES = {orientation: rotation_matrix(*orientation) for orientation in ORIENTATIONS}


def rotate_points(points: np.ndarray, facing: Facing, rotation: int) -> np.ndarray:
    """Rotate an (N, 3) integer array of points."""
    if points.size == 0:
        return points.reshape(0, 3)
    return points @ _MATRICES[(facing, rotation)].T


def inverse_orientation(facing: Facing, rotation: int) -> Tuple[Facing, int]:
    """Find the orientation that undoes ``(facing, rotation)``."""
    target = _MATRICES[(facing, rotation)].T
    for orientation, matrix in _MATRICES.items():
        if np.array_equal(matrix, target):
            return orientation
    raise ValueError(f"No inverse for orientation ({facing}, {rotation})")


def validate_rotation(matrix: np.ndarray) -> bool:
    """
    Validate that a 3x3 matrix is a proper rotation.

    Checks:
    - Shape is (3, 3)
    - Rows are orthonormal
    - Determinant is 1 (not -1, which would indicate reflection)
    """
    if matrix.shape != (3, 3):
        return False

    if not np.allclose(matrix @ matrix.T, np.eye(3), atol=1e-9):
        return False

    return bool(np.isclose(np.linalg.det(matrix), 1.0, atol=1e-9))


def points_to_array(points: Iterable[Point]) -> np.ndarray:
    """Convert points to an (N, 3) int64 array."""
    return np.array([tuple(p) for p in points], dtype=np.int64).reshape(-1, 3)


def array_to_points(array: np.ndarray) -> Tuple[Point, ...]:
    """Convert an (N, 3) array back to a tuple of points."""
    return tuple(Point(int(x), int(y), int(z)) for x, y, z in array.tolist())
