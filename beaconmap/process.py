"""
Main Processing Pipeline Orchestrator

Coordinates the full pipeline from a scanner report to a merged beacon map.
"""

import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from utils.validation import validate_resolution

from .aggregate import ScanMap
from .ingest import IngestError, load_report
from .matcher import DEFAULT_MIN_OVERLAP, MatchError
from .stitch import StitchConfig, StitchError, stitch

console = Console()
app = typer.Typer(help="Beacon map reconstruction from overlapping scanner reports")


@dataclass
class PipelineConfig:
    """Configuration for the processing pipeline."""
    stitch: StitchConfig = field(default_factory=StitchConfig)

    # Audit the stitched result before aggregating
    verify: bool = True

    # Output
    output_path: Optional[Path] = None


@dataclass
class PipelineStats:
    """Statistics collected during pipeline execution."""
    start_time: float = 0
    end_time: float = 0
    stages: Dict = field(default_factory=dict)

    def start(self):
        self.start_time = time.time()

    def stop(self):
        self.end_time = time.time()

    def record_stage(self, name: str, duration: float, **kwargs):
        self.stages[name] = {"duration_seconds": duration, **kwargs}

    @property
    def total_duration(self) -> float:
        return self.end_time - self.start_time

    def to_dict(self) -> Dict:
        return {
            "total_duration_seconds": self.total_duration,
            "stages": self.stages,
        }


def write_result(scan_map: ScanMap, output_path: Path, stats: PipelineStats) -> Path:
    """Write the beacon map and scanner poses as JSON."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    result = scan_map.to_dict()
    result["processing"] = stats.to_dict()
    with open(output_path, "w") as f:
        json.dump(result, f, indent=2)
    return output_path


def run_pipeline(
    input_path: Path,
    config: Optional[PipelineConfig] = None
) -> ScanMap:
    """
    Run the complete processing pipeline.

    Args:
        input_path: Path to scanner report (.txt or .json)
        config: Pipeline configuration

    Returns:
        ScanMap with resolved scanners and merged beacons
    """
    config = config or PipelineConfig()
    stats = PipelineStats()
    stats.start()

    console.print(Panel.fit(
        "[bold blue]Beacon Map Pipeline[/bold blue]\n"
        f"Input: {input_path}",
        border_style="blue"
    ))

    # Stage 1: Ingest
    console.print("\n[bold]Stage 1: Ingest[/bold]")
    stage_start = time.time()
    try:
        scanners = load_report(input_path)
    except IngestError as e:
        console.print(f"[bold red]Ingestion failed:[/bold red] {e}")
        raise
    stats.record_stage("ingest", time.time() - stage_start, scanner_count=len(scanners))

    # Stage 2: Stitch
    console.print("\n[bold]Stage 2: Stitch Scanners[/bold]")
    stage_start = time.time()
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            TimeElapsedColumn(),
            console=console,
        ) as progress:
            task = progress.add_task(
                f"Resolved 1/{len(scanners)}", total=len(scanners), completed=1
            )
            done = 1
            ambiguous = []

            def on_resolved(match):
                nonlocal done
                done += 1
                progress.update(
                    task, completed=done, description=f"Resolved {done}/{len(scanners)}"
                )
                progress.console.print(
                    f"  [green]{match.scanner.name}[/green] at {match.translation} "
                    f"via {match.base_name} ({match.overlap} shared)"
                )
                if match.ambiguous:
                    ambiguous.append(match.scanner.name)
                    progress.console.print(
                        f"  [yellow]Ambiguous: {match.scanner.name} fits against "
                        f"{match.base_name} at "
                        + ", ".join(str(p) for p in match.alternative_poses)
                        + f"; kept {match.translation}[/yellow]"
                    )

            resolved = stitch(scanners, config.stitch, on_resolved=on_resolved)
    except (StitchError, MatchError) as e:
        console.print(f"[bold red]Stitching failed:[/bold red] {e}")
        raise
    stats.record_stage("stitch", time.time() - stage_start,
                      resolved=len(resolved), ambiguous=ambiguous)

    # Stage 3: Aggregate
    console.print("\n[bold]Stage 3: Aggregate Beacons[/bold]")
    stage_start = time.time()
    scan_map = ScanMap.from_resolved(resolved)
    console.print(f"[green]{scan_map.beacon_count} unique beacons[/green]")
    stats.record_stage("aggregate", time.time() - stage_start, beacon_count=scan_map.beacon_count)

    # Stage 4: Verify
    if config.verify:
        console.print("\n[bold]Stage 4: Verify[/bold]")
        stage_start = time.time()
        problems = validate_resolution(resolved, config.stitch.min_overlap)
        for problem in problems:
            console.print(f"  [yellow]• {problem}[/yellow]")
        if not problems:
            console.print("[green]Every scanner overlaps the map[/green]")
        stats.record_stage("verify", time.time() - stage_start, problems=len(problems))
    else:
        console.print("\n[bold]Stage 4: Verify (SKIPPED)[/bold]")

    stats.stop()

    # Stage 5: Write result
    if config.output_path is not None:
        console.print("\n[bold]Stage 5: Write Result[/bold]")
        write_result(scan_map, config.output_path, stats)
        console.print(f"[green]Wrote {config.output_path}[/green]")

    console.print(Panel.fit(
        f"[bold green]Pipeline Complete![/bold green]\n\n"
        f"Scanners: {len(scan_map.scanners)}\n"
        f"Beacons: {scan_map.beacon_count}\n"
        f"Max scanner distance: {scan_map.max_distance}\n"
        f"Total time: {stats.total_duration:.1f}s",
        border_style="green"
    ))

    return scan_map


@app.command("run")
def main(
    input_path: Path = typer.Argument(..., help="Path to scanner report (.txt or .json)"),
    min_overlap: int = typer.Option(DEFAULT_MIN_OVERLAP, help="Beacons two scanners must share"),
    workers: int = typer.Option(1, help="Threads used to evaluate scanner pairs"),
    timeout: Optional[float] = typer.Option(None, help="Give up stitching after this many seconds"),
    strict: bool = typer.Option(False, "--strict", help="Fail on ambiguous alignments"),
    no_verify: bool = typer.Option(False, "--no-verify", help="Skip the overlap audit"),
    output: Optional[Path] = typer.Option(None, help="Write the beacon map as JSON"),
):
    """
    Reconstruct the beacon map from a scanner report.

    Prints the number of unique beacons and the largest manhattan distance
    between any two scanners.
    """
    config = PipelineConfig(
        stitch=StitchConfig(
            min_overlap=min_overlap,
            workers=workers,
            timeout=timeout,
            strict=strict,
        ),
        verify=not no_verify,
        output_path=output,
    )

    try:
        scan_map = run_pipeline(input_path, config)
    except (IngestError, StitchError, MatchError) as e:
        console.print(f"[bold red]Pipeline failed:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"Beacons: {scan_map.beacon_count}")
    console.print(f"Max scanner distance: {scan_map.max_distance}")


@app.command("stages")
def list_stages():
    """List all pipeline stages."""
    stages = [
        ("1. Ingest", "Parse the scanner report"),
        ("2. Stitch", "Place every scanner in the first scanner's frame"),
        ("3. Aggregate", "Merge and deduplicate global beacons"),
        ("4. Verify", "Audit that every scanner overlaps the map"),
        ("5. Write", "Write the beacon map as JSON (optional)"),
    ]

    console.print("[bold]Pipeline Stages:[/bold]\n")
    for name, desc in stages:
        console.print(f"  [blue]{name}[/blue]: {desc}")


if __name__ == "__main__":
    app()
