"""Validation utilities for scanner reports and stitching results."""

import json
from collections import Counter
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field, field_validator

from .geometry import Point


# Pydantic models for JSON scanner reports


class ScannerReport(BaseModel):
    name: str = Field(..., min_length=1)
    beacons: List[Tuple[int, int, int]] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("Scanner name must not be blank")
        return v.strip()

    @field_validator("beacons")
    @classmethod
    def validate_beacons(cls, v):
        # Overlaps are counted over distinct beacons
        duplicates = sorted(b for b, n in Counter(map(tuple, v)).items() if n > 1)
        if duplicates:
            raise ValueError(
                "Duplicate beacons: " + ", ".join(",".join(map(str, b)) for b in duplicates)
            )
        return v

    def points(self) -> Tuple[Point, ...]:
        return tuple(Point(*b) for b in self.beacons)


class ScanReport(BaseModel):
    """Pydantic model for a complete batch of scanner reports."""

    scanners: List[ScannerReport]

    @field_validator("scanners")
    @classmethod
    def validate_scanners(cls, v):
        if not v:
            raise ValueError("At least one scanner required")
        duplicates = sorted(name for name, n in Counter(s.name for s in v).items() if n > 1)
        if duplicates:
            raise ValueError(f"Duplicate scanner names: {', '.join(duplicates)}")
        return v


def validate_report(report_path: Path) -> Tuple[bool, Optional[ScanReport], List[str]]:
    """
    Validate a JSON scanner report file.

    Args:
        report_path: Path to the report JSON

    Returns:
        Tuple of (is_valid, parsed_report, list_of_errors)
    """
    if not report_path.exists():
        return False, None, ["Report file does not exist"]

    try:
        with open(report_path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        return False, None, [f"Invalid JSON: {e}"]

    try:
        report = ScanReport(**data)
        return True, report, []
    except Exception as e:
        return False, None, [str(e)]


def validate_resolution(resolved: Sequence, min_overlap: int = 12) -> List[str]:
    """
    Audit a stitched result.

    Checks:
    - Every scanner has a pose
    - Every scanner after the anchor shares at least ``min_overlap`` global
      beacons with some other resolved scanner

    Returns:
        List of problems (empty when the result is consistent)
    """
    errors = []

    for scanner in resolved:
        if scanner.pose is None:
            errors.append(f"Scanner {scanner.name} has no pose")

    beacon_sets = [set(s.points) for s in resolved]
    for i, scanner in enumerate(resolved[1:], start=1):
        best = max(
            (len(beacon_sets[i] & beacon_sets[j]) for j in range(len(resolved)) if j != i),
            default=0,
        )
        if best < min_overlap:
            errors.append(
                f"Scanner {scanner.name} shares only {best} beacons with any other scanner "
                f"(need {min_overlap})"
            )

    return errors
