"""
Stitching Pipeline Stage

Grows the set of resolved scanners from the anchor (the first scanner) until
every scanner has a pose in the anchor's frame.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from .matcher import DEFAULT_MIN_OVERLAP, Match, find_match_detail, match_candidate
from .scanner import Scanner


class StitchError(Exception):
    """Error during stitching."""
    pass


class UnresolvableGraphError(StitchError):
    """Some scanners could not be placed relative to the anchor."""

    def __init__(self, unresolved: Sequence[str], reason: str = "no overlap found"):
        self.unresolved = list(unresolved)
        super().__init__(
            f"Could not resolve {len(self.unresolved)} scanner(s) ({reason}): "
            + ", ".join(self.unresolved)
        )


@dataclass
class StitchConfig:
    """Configuration for stitching."""
    min_overlap: int = DEFAULT_MIN_OVERLAP
    workers: int = 1  # >1 evaluates base/candidate pairs on a thread pool
    # Seconds. Checked before each round; with workers > 1 a round already
    # running is allowed to finish, so a slow round can overrun it.
    timeout: Optional[float] = None
    strict: bool = False  # raise on ambiguous alignments instead of flagging them


class _Deadline:
    def __init__(self, timeout: Optional[float]):
        self.expires = time.monotonic() + timeout if timeout is not None else None

    def check(self, unresolved: List[Scanner]):
        if self.expires is not None and time.monotonic() >= self.expires:
            raise UnresolvableGraphError([s.name for s in unresolved], reason="timed out")


def _check_scanners(scanners: Sequence[Scanner]):
    if not scanners:
        raise StitchError("No scanners to stitch")

    seen: Set[str] = set()
    for scanner in scanners:
        if scanner.name in seen:
            raise StitchError(f"Duplicate scanner name: {scanner.name}")
        seen.add(scanner.name)


def _stitch_serial(
    resolved: List[Scanner],
    unresolved: List[Scanner],
    config: StitchConfig,
    deadline: _Deadline,
    on_resolved: Optional[Callable[[Match], None]],
):
    # base name -> candidate names that are known not to overlap it
    failed: Dict[str, Set[str]] = {}

    while unresolved:
        deadline.check(unresolved)
        match = None
        # Newest first only shortens the search; any order gives the same result.
        for base in reversed(resolved):
            known_bad = failed.setdefault(base.name, set())
            candidates = [s for s in unresolved if s.name not in known_bad]
            if not candidates:
                continue
            match = find_match_detail(base, candidates, config.min_overlap, config.strict)
            if match is not None:
                break
            known_bad.update(s.name for s in candidates)

        if match is None:
            raise UnresolvableGraphError([s.name for s in unresolved])

        unresolved[:] = [s for s in unresolved if s.name != match.scanner.name]
        resolved.append(match.scanner)
        if on_resolved:
            on_resolved(match)


def _stitch_parallel(
    resolved: List[Scanner],
    unresolved: List[Scanner],
    config: StitchConfig,
    deadline: _Deadline,
    on_resolved: Optional[Callable[[Match], None]],
):
    attempted: Set[Tuple[str, str]] = set()

    with ThreadPoolExecutor(max_workers=config.workers) as executor:
        while unresolved:
            deadline.check(unresolved)
            pairs = [
                (base, candidate)
                for base in reversed(resolved)
                for candidate in unresolved
                if (base.name, candidate.name) not in attempted
            ]
            futures = [
                executor.submit(match_candidate, base, candidate, config.min_overlap, config.strict)
                for base, candidate in pairs
            ]
            attempted.update((base.name, candidate.name) for base, candidate in pairs)

            # Commits are serial, in submission order; the first claim on a scanner wins.
            claimed: Set[str] = set()
            for future in futures:
                match = future.result()
                if match is None or match.scanner.name in claimed:
                    continue
                claimed.add(match.scanner.name)
                resolved.append(match.scanner)
                if on_resolved:
                    on_resolved(match)

            if not claimed:
                raise UnresolvableGraphError([s.name for s in unresolved])
            unresolved[:] = [s for s in unresolved if s.name not in claimed]


def stitch(
    scanners: Sequence[Scanner],
    config: Optional[StitchConfig] = None,
    on_resolved: Optional[Callable[[Match], None]] = None,
) -> List[Scanner]:
    """
    Resolve every scanner into the frame of the first one.

    Args:
        scanners: Scanners in their local frames; the first is the anchor
        config: Stitching configuration
        on_resolved: Called with each Match as it is committed

    Returns:
        Resolved scanners in resolution order, anchor first

    Raises:
        StitchError: on invalid input or configuration
        UnresolvableGraphError: if the overlap graph is disconnected or the
            timeout expires
    """
    config = config or StitchConfig()
    _check_scanners(scanners)
    if config.workers < 1:
        raise StitchError(f"workers must be at least 1, got {config.workers}")
    if config.min_overlap < 1:
        raise StitchError(f"min_overlap must be at least 1, got {config.min_overlap}")

    resolved = [scanners[0].anchored()]
    unresolved = list(scanners[1:])
    deadline = _Deadline(config.timeout)

    if config.workers > 1:
        _stitch_parallel(resolved, unresolved, config, deadline, on_resolved)
    else:
        _stitch_serial(resolved, unresolved, config, deadline, on_resolved)

    return resolved
