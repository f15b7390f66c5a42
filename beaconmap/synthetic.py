"""
Synthetic scanner scenarios with known poses.

Used to exercise the stitcher without real sensor data.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from utils.geometry import (
    Facing,
    ORIENTATIONS,
    Point,
    array_to_points,
    inverse_orientation,
    points_to_array,
    rotate_points,
)

from .scanner import Scanner


@dataclass
class Scenario:
    """Local-frame scanners plus the ground truth they were generated from."""
    scanners: List[Scanner]
    poses: List[Point]
    beacons: List[Point]


def observe(
    name: str,
    global_points: Sequence[Point],
    pose: Point,
    facing: Facing,
    rotation: int,
) -> Scanner:
    """
    Express global points in the frame of a scanner at ``pose``.

    Resolving the returned scanner applies ``(facing, rotation)`` and then
    translates by ``pose``, giving back ``global_points``.
    """
    inverse = inverse_orientation(facing, rotation)
    relative = points_to_array(global_points) - np.array(pose, dtype=np.int64)
    return Scanner(name=name, points=array_to_points(rotate_points(relative, *inverse)))


def _unique_points(rng: np.random.Generator, count: int, spread: int, taken: set) -> List[Point]:
    points: List[Point] = []
    while len(points) < count:
        candidate = Point(*(int(v) for v in rng.integers(-spread, spread + 1, size=3)))
        if candidate not in taken:
            taken.add(candidate)
            points.append(candidate)
    return points


def generate_scenario(
    num_scanners: int = 4,
    beacons_per_scanner: int = 25,
    shared: int = 12,
    seed: Optional[int] = 0,
    spread: int = 1000,
) -> Scenario:
    """
    Build a chain of scanners where each consecutive pair shares ``shared`` beacons.

    Scanner poses are spaced along the x axis; beacons are random integer
    points around each pose. Orientations are drawn at random, except for the
    first scanner which defines the global frame.
    """
    if shared > beacons_per_scanner:
        raise ValueError("shared cannot exceed beacons_per_scanner")
    if num_scanners > 1 and 2 * shared > beacons_per_scanner:
        raise ValueError("a middle scanner needs room for shared beacons on both sides")

    rng = np.random.default_rng(seed)
    taken: set = set()
    poses = [Point(i * spread, 0, 0) for i in range(num_scanners)]

    views: List[List[Point]] = [[] for _ in range(num_scanners)]
    for i in range(num_scanners - 1):
        # Shared beacons sit between the two scanners
        midpoint = Point(i * spread + spread // 2, 0, 0)
        common = [p.translate(midpoint) for p in _unique_points(rng, shared, spread // 4, taken)]
        views[i].extend(common)
        views[i + 1].extend(common)

    for i, view in enumerate(views):
        extra = _unique_points(rng, beacons_per_scanner - len(view), spread // 4, taken)
        # Offset far off-axis so private beacons never collide with another scanner's
        offset = Point(i * spread, 10 * spread, (i + 1) * 10 * spread)
        view.extend(p.translate(offset) for p in extra)

    scanners = []
    for i, (view, pose) in enumerate(zip(views, poses)):
        facing, rotation = (Facing.X_POS, 0) if i == 0 else ORIENTATIONS[int(rng.integers(len(ORIENTATIONS)))]
        scanners.append(observe(str(i), view, pose, facing, rotation))

    beacons = sorted({p for view in views for p in view})
    return Scenario(scanners=scanners, poses=poses, beacons=beacons)


def format_report(scanners: Sequence[Scanner]) -> str:
    """Render scanners in the text report format."""
    blocks = []
    for scanner in scanners:
        lines = [f"--- scanner {scanner.name} ---"]
        lines.extend(str(p) for p in scanner.points)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) + "\n"
