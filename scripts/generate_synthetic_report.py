#!/usr/bin/env python3
"""
Generate a synthetic scanner report with known scanner poses.

Creates a chain of scanners where each consecutive pair shares a fixed
number of beacons, each scanner reporting in its own random orientation.
Use this to verify the stitcher independently of real input.

Usage:
    python scripts/generate_synthetic_report.py [output_path] [num_scanners] [seed]

Then run the pipeline:
    python -m beaconmap.process run synthetic_report.txt
"""

import json
from pathlib import Path
import sys

# Add parent directory to path to import beaconmap
sys.path.append(str(Path(__file__).parent.parent))

from beaconmap.synthetic import format_report, generate_scenario


def main():
    out = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("synthetic_report.txt")
    num_scanners = int(sys.argv[2]) if len(sys.argv) > 2 else 5
    seed = int(sys.argv[3]) if len(sys.argv) > 3 else 0

    scenario = generate_scenario(num_scanners=num_scanners, seed=seed)
    print(f"Generating {num_scanners} synthetic scanners (seed {seed}) …")

    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(format_report(scenario.scanners))

    # Ground truth next to the report
    truth_path = out.with_suffix(".truth.json")
    with open(truth_path, "w") as f:
        json.dump({
            "poses": {s.name: list(p) for s, p in zip(scenario.scanners, scenario.poses)},
            "beacon_count": len(scenario.beacons),
        }, f, indent=2)

    # ── Summary ──
    print(f"\nSynthetic report: {out}")
    print(f"  {num_scanners} scanners  |  {len(scenario.beacons)} unique beacons")
    print(f"  Ground truth: {truth_path}")
    print(f"Run pipeline:  python -m beaconmap.process run {out}")


if __name__ == "__main__":
    main()
