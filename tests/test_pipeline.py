"""Integration tests for the processing pipeline."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

FIXTURES = Path(__file__).parent / "fixtures"


def create_test_report(output_dir: Path, scanners=None) -> Path:
    """Create a small JSON scanner report."""
    if scanners is None:
        scanners = [
            {"name": "alpha", "beacons": [[1, 2, 3], [-4, 5, -6]]},
            {"name": "beta", "beacons": [[7, 8, 9]]},
        ]

    report_path = output_dir / "report.json"
    with open(report_path, "w") as f:
        json.dump({"scanners": scanners}, f, indent=2)

    return report_path


class TestParseReport:
    """Tests for the text report format."""

    def test_parse_example(self):
        from beaconmap.ingest import parse_report

        scanners = parse_report((FIXTURES / "example_report.txt").read_text())

        assert [s.name for s in scanners] == ["0", "1", "2", "3", "4"]
        assert [len(s) for s in scanners] == [25, 25, 26, 25, 26]
        assert scanners[0].points[0] == (404, -588, -901)
        assert not any(s.is_resolved for s in scanners)

    def test_crlf_and_extra_blank_lines(self):
        """Windows line endings and repeated blank lines are accepted."""
        from beaconmap.ingest import parse_report

        text = "--- scanner a ---\r\n1,2,3\r\n\r\n\r\n--- scanner b ---\r\n-1,-2,-3\r\n"
        scanners = parse_report(text)

        assert [s.name for s in scanners] == ["a", "b"]
        assert scanners[1].points == ((-1, -2, -3),)

    def test_named_scanner(self):
        """Scanner names are free text."""
        from beaconmap.ingest import parse_report

        scanners = parse_report("--- scanner north east ---\n0,0,0\n")

        assert scanners[0].name == "north east"

    def test_malformed_header(self):
        from beaconmap.ingest import IngestError, parse_report

        with pytest.raises(IngestError, match="Line 1"):
            parse_report("scanner 0\n1,2,3\n")

    def test_wrong_arity(self):
        from beaconmap.ingest import IngestError, parse_report

        with pytest.raises(IngestError, match="Line 3: expected three coordinates, got 2"):
            parse_report("--- scanner 0 ---\n1,2,3\n4,5\n")

    def test_non_integer_coordinate(self):
        from beaconmap.ingest import IngestError, parse_report

        with pytest.raises(IngestError, match="Line 2: invalid coordinate"):
            parse_report("--- scanner 0 ---\n1,two,3\n")

    def test_empty_report(self):
        from beaconmap.ingest import IngestError, parse_report

        with pytest.raises(IngestError, match="no scanners"):
            parse_report("\n\n")

    def test_duplicate_names(self):
        from beaconmap.ingest import IngestError, parse_report

        with pytest.raises(IngestError, match="Duplicate scanner names"):
            parse_report("--- scanner 0 ---\n1,2,3\n\n--- scanner 0 ---\n4,5,6\n")

    def test_duplicate_beacons(self):
        """A scanner cannot report the same beacon twice."""
        from beaconmap.ingest import IngestError, parse_report

        with pytest.raises(IngestError, match="Duplicate beacons: 1,2,3"):
            parse_report("--- scanner 0 ---\n1,2,3\n4,5,6\n1,2,3\n")

    def test_format_report_roundtrip(self):
        """Synthetic reports are valid text reports."""
        from beaconmap.ingest import parse_report
        from beaconmap.synthetic import format_report, generate_scenario

        scenario = generate_scenario(num_scanners=3, seed=5)

        assert parse_report(format_report(scenario.scanners)) == scenario.scanners


class TestLoadReport:
    """Tests for loading reports from disk."""

    def test_load_text(self):
        from beaconmap.ingest import load_report

        scanners = load_report(FIXTURES / "example_report.txt")

        assert len(scanners) == 5

    def test_load_json(self, tmp_path):
        from beaconmap.ingest import load_report

        scanners = load_report(create_test_report(tmp_path))

        assert [s.name for s in scanners] == ["alpha", "beta"]
        assert scanners[0].points == ((1, 2, 3), (-4, 5, -6))

    def test_json_duplicate_beacons(self, tmp_path):
        from beaconmap.ingest import IngestError, load_report

        report_path = create_test_report(
            tmp_path, [{"name": "alpha", "beacons": [[1, 2, 3], [1, 2, 3]]}]
        )

        with pytest.raises(IngestError, match="Duplicate beacons"):
            load_report(report_path)

    def test_missing_file(self, tmp_path):
        from beaconmap.ingest import IngestError, load_report

        with pytest.raises(IngestError, match="not found"):
            load_report(tmp_path / "nonexistent.txt")

    def test_invalid_json(self, tmp_path):
        from beaconmap.ingest import IngestError, load_report

        report_path = tmp_path / "report.json"
        report_path.write_text("{not json")

        with pytest.raises(IngestError, match="Invalid JSON"):
            load_report(report_path)

    def test_json_wrong_arity(self, tmp_path):
        from beaconmap.ingest import IngestError, load_report

        report_path = create_test_report(tmp_path, [{"name": "a", "beacons": [[1, 2]]}])

        with pytest.raises(IngestError, match="Invalid report"):
            load_report(report_path)


class TestValidation:
    """Tests for validation utilities."""

    def test_validate_valid_report(self, tmp_path):
        from utils.validation import validate_report

        is_valid, report, errors = validate_report(create_test_report(tmp_path))

        assert is_valid
        assert report is not None
        assert len(errors) == 0
        assert report.scanners[1].name == "beta"

    def test_validate_missing_report(self, tmp_path):
        from utils.validation import validate_report

        is_valid, report, errors = validate_report(tmp_path / "nonexistent.json")

        assert not is_valid
        assert report is None
        assert len(errors) > 0

    def test_validate_no_scanners(self, tmp_path):
        from utils.validation import validate_report

        is_valid, report, errors = validate_report(create_test_report(tmp_path, []))

        assert not is_valid
        assert "At least one scanner" in str(errors)

    def test_validate_blank_name(self, tmp_path):
        from utils.validation import validate_report

        report_path = create_test_report(tmp_path, [{"name": "  ", "beacons": []}])
        is_valid, report, errors = validate_report(report_path)

        assert not is_valid

    def test_resolution_audit_flags_isolated_scanner(self):
        """A scanner that shares nothing with the map is reported."""
        from beaconmap.scanner import Scanner
        from utils.geometry import Point
        from utils.validation import validate_resolution

        a = Scanner("a", tuple(Point(i, 0, 0) for i in range(12))).anchored()
        b = Scanner("b", tuple(Point(i, 0, 0) for i in range(12)), pose=Point(3, 0, 0))
        c = Scanner("c", tuple(Point(0, i, 0) for i in range(1, 5)), pose=Point(9, 9, 9))

        errors = validate_resolution([a, b, c])

        assert len(errors) == 1
        assert "Scanner c shares only" in errors[0]

    def test_resolution_audit_flags_missing_pose(self):
        from beaconmap.scanner import Scanner
        from utils.geometry import Point
        from utils.validation import validate_resolution

        a = Scanner("a", (Point(0, 0, 0),)).anchored()
        b = Scanner("b", (Point(0, 0, 0),))

        errors = validate_resolution([a, b], min_overlap=1)

        assert errors == ["Scanner b has no pose"]


class TestRunPipeline:
    """Tests for the pipeline orchestrator."""

    def test_example(self, tmp_path):
        from beaconmap.process import PipelineConfig, run_pipeline

        output_path = tmp_path / "out" / "beacon_map.json"
        scan_map = run_pipeline(
            FIXTURES / "example_report.txt",
            PipelineConfig(output_path=output_path),
        )

        assert scan_map.beacon_count == 79
        assert scan_map.max_distance == 3621

        with open(output_path) as f:
            data = json.load(f)

        assert data["beacon_count"] == 79
        assert data["max_scanner_distance"] == 3621
        assert len(data["scanners"]) == 5
        assert set(data["processing"]["stages"]) == {"ingest", "stitch", "aggregate", "verify"}
        assert data["processing"]["stages"]["stitch"]["ambiguous"] == []

    def test_ingest_failure_propagates(self, tmp_path):
        from beaconmap.ingest import IngestError
        from beaconmap.process import run_pipeline

        report_path = tmp_path / "bad.txt"
        report_path.write_text("--- scanner 0 ---\n1,2\n")

        with pytest.raises(IngestError):
            run_pipeline(report_path)

    def test_unresolvable_propagates(self, tmp_path):
        from beaconmap.process import run_pipeline
        from beaconmap.stitch import UnresolvableGraphError

        report_path = tmp_path / "split.txt"
        report_path.write_text("--- scanner 0 ---\n1,2,3\n\n--- scanner 1 ---\n4,5,6\n")

        with pytest.raises(UnresolvableGraphError):
            run_pipeline(report_path)


class TestCli:
    """Tests for the command line interface."""

    def test_run(self):
        from beaconmap.process import app

        result = CliRunner().invoke(app, ["run", str(FIXTURES / "example_report.txt")])

        assert result.exit_code == 0
        assert "Beacons: 79" in result.output
        assert "Max scanner distance: 3621" in result.output

    def test_run_failure_exits_1(self, tmp_path):
        from beaconmap.process import app

        report_path = tmp_path / "bad.txt"
        report_path.write_text("not a report\n")

        result = CliRunner().invoke(app, ["run", str(report_path)])

        assert result.exit_code == 1

    def test_run_invalid_min_overlap(self):
        """A bad threshold is reported without a traceback."""
        from beaconmap.process import app

        result = CliRunner().invoke(
            app, ["run", str(FIXTURES / "example_report.txt"), "--min-overlap", "0"]
        )

        assert result.exit_code == 1
        assert "min_overlap must be at least 1" in result.output
        assert "Traceback" not in result.output

    def test_stages(self):
        from beaconmap.process import app

        result = CliRunner().invoke(app, ["stages"])

        assert result.exit_code == 0
        assert "Stitch" in result.output
