"""Scanner report data model."""

from dataclasses import dataclass, replace
from typing import Optional, Tuple

import numpy as np

from utils.geometry import (
    Facing,
    Point,
    ORIGIN,
    points_to_array,
    rotate_point,
)


@dataclass(frozen=True)
class Scanner:
    """
    A named set of beacons.

    Before resolution ``points`` are in the scanner's own frame and ``pose``
    is None. A resolved scanner has its points in the global frame, its
    position in ``pose`` and the orientation that was applied to its points.
    """
    name: str
    points: Tuple[Point, ...]
    pose: Optional[Point] = None
    orientation: Optional[Tuple[Facing, int]] = None

    @property
    def is_resolved(self) -> bool:
        return self.pose is not None

    def anchored(self) -> "Scanner":
        """Resolve this scanner as the one defining the global frame."""
        return replace(self, pose=ORIGIN, orientation=(Facing.X_POS, 0))

    def rotate(self, facing: Facing, rotation: int) -> "Scanner":
        return replace(
            self,
            points=tuple(rotate_point(p, facing, rotation) for p in self.points),
            pose=rotate_point(self.pose, facing, rotation) if self.pose is not None else None,
        )

    def translate(self, by: Point) -> "Scanner":
        return replace(
            self,
            points=tuple(p.translate(by) for p in self.points),
            pose=self.pose.translate(by) if self.pose is not None else by,
        )

    def as_array(self) -> np.ndarray:
        return points_to_array(self.points)

    def __len__(self) -> int:
        return len(self.points)
