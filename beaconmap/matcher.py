"""
Pairwise scanner matching.

Finds a rotation and translation that place an unresolved scanner so that at
least ``min_overlap`` of its beacons coincide with beacons of a resolved one.

Search order: base beacon, then candidate scanner, then candidate beacon,
then the 24 orientations. The first alignment found wins.
"""

from collections import Counter
from dataclasses import dataclass, replace
from typing import FrozenSet, Iterable, Iterator, List, Optional, Sequence, Tuple, TypeVar

import numpy as np

from utils.geometry import (
    Facing,
    ORIENTATIONS,
    Point,
    array_to_points,
    rotate_points,
)

from .fingerprint import fingerprints, relative_vectors, shared_distances
from .scanner import Scanner

DEFAULT_MIN_OVERLAP = 12

T = TypeVar("T")


class MatchError(Exception):
    """Error during scanner matching."""
    pass


class AmbiguousMatchError(MatchError):
    """A scanner aligns with the same base in more than one way."""

    def __init__(self, scanner_name: str, base_name: str, poses: Sequence[Point]):
        self.scanner_name = scanner_name
        self.base_name = base_name
        self.poses = list(poses)
        super().__init__(
            f"Scanner {scanner_name} has conflicting alignments against {base_name}: "
            + ", ".join(str(p) for p in self.poses)
        )


@dataclass(frozen=True)
class Match:
    """A resolved candidate and how it was placed."""
    base_name: str
    scanner: Scanner
    facing: Facing
    rotation: int
    translation: Point
    overlap: int
    base_index: int
    candidate_index: int
    # All poses the candidate fits at, when it has more than one placement
    alternative_poses: Tuple[Point, ...] = ()

    @property
    def ambiguous(self) -> bool:
        return bool(self.alternative_poses)


def first(results: Iterable[Optional[T]]) -> Optional[T]:
    """Return the first non-None result, stopping the iteration there."""
    return next((r for r in results if r is not None), None)


def _vector_set(vectors: np.ndarray) -> FrozenSet[Tuple[int, int, int]]:
    return frozenset(map(tuple, vectors.tolist()))


class _Prepared:
    """Per-scanner values reused across every alignment attempt."""

    def __init__(self, scanner: Scanner):
        self.scanner = scanner
        self.points = scanner.as_array()
        self.prints: List[Counter] = fingerprints(scanner)
        self._oriented: dict = {}

    def oriented(self, facing: Facing, rotation: int) -> np.ndarray:
        key = (facing, rotation)
        if key not in self._oriented:
            self._oriented[key] = rotate_points(self.points, facing, rotation)
        return self._oriented[key]


def align_orientation(
    base_vectors: FrozenSet[Tuple[int, int, int]],
    base_point: np.ndarray,
    candidate: _Prepared,
    candidate_index: int,
    facing: Facing,
    rotation: int,
    min_overlap: int,
) -> Optional[Tuple[np.ndarray, int]]:
    """
    Try one orientation for a (base beacon, candidate beacon) pairing.

    Returns the translation and the overlap size, or None.
    """
    rotated = candidate.oriented(facing, rotation)
    overlap = len(base_vectors & _vector_set(relative_vectors(rotated, candidate_index)))
    if overlap < min_overlap:
        return None
    return base_point - rotated[candidate_index], overlap


def align_pair(
    base: _Prepared,
    base_index: int,
    base_vectors: FrozenSet[Tuple[int, int, int]],
    candidate: _Prepared,
    candidate_index: int,
    min_overlap: int,
) -> Iterator[Match]:
    """Yield every orientation that aligns ``candidate_index`` onto ``base_index``."""
    base_point = base.points[base_index]
    for facing, rotation in ORIENTATIONS:
        aligned = align_orientation(
            base_vectors, base_point, candidate, candidate_index, facing, rotation, min_overlap
        )
        if aligned is None:
            continue
        translation, overlap = aligned
        pose = Point(*(int(v) for v in translation))
        placed = candidate.oriented(facing, rotation) + translation
        yield Match(
            base_name=base.scanner.name,
            scanner=Scanner(
                name=candidate.scanner.name,
                points=array_to_points(placed),
                pose=pose,
                orientation=(facing, rotation),
            ),
            facing=facing,
            rotation=rotation,
            translation=pose,
            overlap=overlap,
            base_index=base_index,
            candidate_index=candidate_index,
        )


def _alignments(
    base: _Prepared,
    candidates: Sequence[_Prepared],
    min_overlap: int,
) -> Iterator[Match]:
    for base_index, base_print in enumerate(base.prints):
        base_vectors: Optional[FrozenSet[Tuple[int, int, int]]] = None
        for candidate in candidates:
            for candidate_index, candidate_print in enumerate(candidate.prints):
                if shared_distances(base_print, candidate_print) < min_overlap:
                    continue
                if base_vectors is None:
                    base_vectors = _vector_set(relative_vectors(base.points, base_index))
                yield from align_pair(
                    base, base_index, base_vectors, candidate, candidate_index, min_overlap
                )


def _alternative_poses(
    match: Match, base: _Prepared, candidate: _Prepared, min_overlap: int
) -> Tuple[Point, ...]:
    """
    Every pose the candidate could take against ``base``.

    Empty when ``match`` is the only placement. A single pose reached with
    two orientations also counts as ambiguous.
    """
    poses = {match.translation}
    orientations = {(match.facing, match.rotation)}
    for other in _alignments(base, [candidate], min_overlap):
        poses.add(other.translation)
        orientations.add((other.facing, other.rotation))
    if len(poses) > 1 or len(orientations) > 1:
        return tuple(sorted(poses))
    return ()


def find_match_detail(
    base: Scanner,
    candidates: Sequence[Scanner],
    min_overlap: int = DEFAULT_MIN_OVERLAP,
    strict: bool = False,
) -> Optional[Match]:
    """
    Find the first candidate that overlaps ``base`` by at least ``min_overlap`` beacons.

    The matched candidate is always checked for other placements against the
    same base. Non-strict matches carry them in ``alternative_poses``.

    Args:
        base: Resolved scanner, points in the global frame
        candidates: Unresolved scanners, points in their local frames
        min_overlap: Number of beacons two scanners must share
        strict: Raise AmbiguousMatchError instead of flagging the match

    Returns:
        Match with the candidate's global pose and points, or None
    """
    if min_overlap < 1:
        raise MatchError(f"min_overlap must be positive, got {min_overlap}")

    prepared_base = _Prepared(base)
    prepared = [_Prepared(c) for c in candidates]

    match = first(_alignments(prepared_base, prepared, min_overlap))
    if match is None:
        return None

    candidate = next(p for p in prepared if p.scanner.name == match.scanner.name)
    alternatives = _alternative_poses(match, prepared_base, candidate, min_overlap)
    if alternatives and strict:
        raise AmbiguousMatchError(match.scanner.name, base.name, alternatives)
    return replace(match, alternative_poses=alternatives)


def find_match(
    base: Scanner,
    candidates: Sequence[Scanner],
    min_overlap: int = DEFAULT_MIN_OVERLAP,
    strict: bool = False,
) -> Optional[Scanner]:
    """Resolve the first candidate overlapping ``base``, or return None."""
    match = find_match_detail(base, candidates, min_overlap, strict)
    return match.scanner if match is not None else None


def match_candidate(
    base: Scanner,
    candidate: Scanner,
    min_overlap: int = DEFAULT_MIN_OVERLAP,
    strict: bool = False,
) -> Optional[Match]:
    """Match a single candidate against ``base``."""
    return find_match_detail(base, [candidate], min_overlap, strict)
