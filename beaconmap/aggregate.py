"""Merging resolved scanners into one beacon map."""

from dataclasses import dataclass
from itertools import combinations
from typing import Dict, FrozenSet, Sequence, Tuple

from utils.geometry import Point

from .scanner import Scanner


def aggregate(resolved: Sequence[Scanner]) -> FrozenSet[Point]:
    """Union of all resolved beacons, deduplicated by coordinate."""
    return frozenset(p for scanner in resolved for p in scanner.points)


def max_pose_distance(resolved: Sequence[Scanner]) -> int:
    """Largest manhattan distance between any two scanner poses."""
    unresolved = [s.name for s in resolved if not s.is_resolved]
    if unresolved:
        raise ValueError(f"Scanners without a pose: {', '.join(unresolved)}")
    return max(
        (a.pose.manhattan(b.pose) for a, b in combinations(resolved, 2)),
        default=0,
    )


@dataclass(frozen=True)
class ScanMap:
    """Resolved scanners and the merged beacon set."""
    scanners: Tuple[Scanner, ...]
    beacons: FrozenSet[Point]

    @classmethod
    def from_resolved(cls, resolved: Sequence[Scanner]) -> "ScanMap":
        return cls(scanners=tuple(resolved), beacons=aggregate(resolved))

    @property
    def beacon_count(self) -> int:
        return len(self.beacons)

    @property
    def max_distance(self) -> int:
        return max_pose_distance(self.scanners)

    def to_dict(self) -> Dict:
        return {
            "beacon_count": self.beacon_count,
            "max_scanner_distance": self.max_distance,
            "scanners": [
                {
                    "name": s.name,
                    "pose": list(s.pose),
                    "facing": s.orientation[0].value if s.orientation else None,
                    "rotation": s.orientation[1] if s.orientation else None,
                    "beacon_count": len(s.points),
                }
                for s in self.scanners
            ],
            "beacons": [list(p) for p in sorted(self.beacons)],
        }
