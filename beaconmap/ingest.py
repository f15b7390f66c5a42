"""
Ingestion Pipeline Stage

Parses scanner reports into local-frame scanners.

Text reports are blocks separated by blank lines. Each block starts with a
``--- scanner <name> ---`` header followed by one ``x,y,z`` beacon per line.
JSON reports hold ``{"scanners": [{"name": ..., "beacons": [[x, y, z], ...]}]}``.
"""

import json
import re
from pathlib import Path
from typing import List, Tuple

from pydantic import ValidationError
from rich.console import Console

from utils.geometry import Point
from utils.validation import ScanReport

from .scanner import Scanner

console = Console()

HEADER_PATTERN = re.compile(r"^--- scanner (.+) ---$")


class IngestError(Exception):
    """Error during ingestion process."""
    pass


def parse_beacon(line: str, line_number: int) -> Point:
    """Parse an ``x,y,z`` line."""
    parts = line.split(",")
    if len(parts) != 3:
        raise IngestError(
            f"Line {line_number}: expected three coordinates, got {len(parts)}: {line!r}"
        )
    try:
        return Point(*(int(p.strip()) for p in parts))
    except ValueError:
        raise IngestError(f"Line {line_number}: invalid coordinate in {line!r}")


def parse_header(line: str, line_number: int) -> str:
    match = HEADER_PATTERN.match(line)
    if match is None or not match.group(1).strip():
        raise IngestError(f"Line {line_number}: expected '--- scanner <name> ---', got {line!r}")
    return match.group(1).strip()


def _blocks(text: str) -> List[List[Tuple[int, str]]]:
    """Split into blank-line separated blocks of (line_number, line)."""
    blocks: List[List[Tuple[int, str]]] = []
    current: List[Tuple[int, str]] = []
    for number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line:
            if current:
                blocks.append(current)
                current = []
            continue
        current.append((number, line))
    if current:
        blocks.append(current)
    return blocks


def parse_report(text: str) -> List[Scanner]:
    """
    Parse a text scanner report.

    Args:
        text: Whole report document

    Returns:
        Scanners in input order, unresolved
    """
    blocks = _blocks(text)
    if not blocks:
        raise IngestError("Report contains no scanners")

    scanners = []
    for block in blocks:
        header_number, header = block[0]
        name = parse_header(header, header_number)
        points = tuple(parse_beacon(line, number) for number, line in block[1:])
        scanners.append(Scanner(name=name, points=points))

    try:
        ScanReport(scanners=[{"name": s.name, "beacons": s.points} for s in scanners])
    except ValidationError as e:
        raise IngestError(f"Invalid report: {e}")

    return scanners


def parse_json_report(data: dict) -> List[Scanner]:
    try:
        report = ScanReport(**data)
    except (ValidationError, TypeError) as e:
        raise IngestError(f"Invalid report: {e}")
    return [Scanner(name=s.name, points=s.points()) for s in report.scanners]


def load_report(report_path: Path) -> List[Scanner]:
    """
    Load a scanner report from disk.

    Args:
        report_path: ``.json`` report, or any other file as a text report

    Returns:
        Scanners in input order, unresolved
    """
    if not report_path.exists():
        raise IngestError(f"Report not found: {report_path}")

    if report_path.suffix.lower() == ".json":
        try:
            with open(report_path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise IngestError(f"Invalid JSON in report: {e}")
        if not isinstance(data, dict):
            raise IngestError("JSON report must be an object with a 'scanners' list")
        scanners = parse_json_report(data)
    else:
        scanners = parse_report(report_path.read_text())

    console.print(
        f"[green]Loaded {len(scanners)} scanners, "
        f"{sum(len(s) for s in scanners)} beacon reports from {report_path.name}[/green]"
    )
    return scanners


# CLI entry point
if __name__ == "__main__":
    import typer

    app = typer.Typer()

    @app.command()
    def main(
        report_path: Path = typer.Argument(..., help="Path to scanner report (.txt or .json)"),
    ):
        """Parse and summarise a scanner report."""
        try:
            scanners = load_report(report_path)
            console.print(f"\n[bold green]Ingestion complete![/bold green]")
            for scanner in scanners:
                console.print(f"  {scanner.name}: {len(scanner)} beacons")
        except IngestError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(1)

    app()
