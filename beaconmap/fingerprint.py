"""
Distance fingerprints.

A fingerprint is the multiset of manhattan distances from one beacon to every
beacon of the same scanner (itself included). Two beacons seen by different
scanners can only be the same physical beacon if their fingerprints share at
least as many distances as the required overlap. This is only a pre-filter:
manhattan distance is not preserved by every rotation, so a pass still has to
be confirmed by the orientation search.
"""

from collections import Counter
from typing import List

import numpy as np

from .scanner import Scanner


def manhattan_distances(points: np.ndarray, index: int) -> np.ndarray:
    """Manhattan distance from ``points[index]`` to every point."""
    return np.abs(points - points[index]).sum(axis=1)


def relative_vectors(points: np.ndarray, index: int) -> np.ndarray:
    """Offsets from ``points[index]`` to every point, as an (N, 3) array."""
    return points - points[index]


def fingerprint(scanner: Scanner, index: int) -> Counter:
    if not 0 <= index < len(scanner.points):
        raise IndexError(f"Scanner {scanner.name} has no beacon {index}")
    return Counter(manhattan_distances(scanner.as_array(), index).tolist())


def fingerprints(scanner: Scanner) -> List[Counter]:
    """Fingerprints of every beacon in the scanner, computed in one pass."""
    points = scanner.as_array()
    return [
        Counter(manhattan_distances(points, i).tolist())
        for i in range(len(points))
    ]


def shared_distances(left: Counter, right: Counter) -> int:
    """Number of distances two fingerprints have in common."""
    return sum((left & right).values())
