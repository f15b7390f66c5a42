"""
Beacon Map Pipeline

Reconstructs one global frame from scanners that each report beacons in
their own unknown orientation, given that overlapping scanners share at
least 12 beacons.

Pipeline stages:
1. Ingest - Parse the scanner report
2. Stitch - Place every scanner relative to the first one
3. Aggregate - Merge resolved beacons into one deduplicated set
4. Verify - Audit that every scanner overlaps the map
"""

__version__ = "0.1.0"
