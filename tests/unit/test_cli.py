"""Tests for the hrrecon command line."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from hrrecon.cli import EXIT_FAILURES, EXIT_FATAL, EXIT_OK, build_parser, main

MAPPINGS = str(Path(__file__).resolve().parents[2] / "config" / "organizations.json")


@pytest.fixture
def export_dir(tmp_path):
    directory = tmp_path / "exports"
    directory.mkdir()
    (directory / "LTCM_staff.csv").write_text(
        "Employee No.,,,AB12,,Mobile,,,0123456789\nDepartment,,,SALES,,,,,\n", encoding="utf-8"
    )
    (directory / "LTCM_staff.txt").write_text(
        "Employee No. : AB12      Name : AHMAD BIN ALI\nDepartment : OPERATIONS\n", encoding="utf-8"
    )
    return directory


def _run(capsys, *argv: str) -> tuple[int, dict]:
    code = main(list(argv))
    out = capsys.readouterr().out
    return code, json.loads(out) if out.strip() else {}


class TestParser:
    def test_requires_command(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_common_options(self):
        args = build_parser().parse_args(["process-org", "dir", "LTCM", "--persist", "--report-dir", "out"])
        assert args.persist is True
        assert args.report_dir == "out"
        assert args.code == "LTCM"


class TestParseFile:
    def test_prints_fragments(self, capsys, export_dir):
        code, payload = _run(capsys, "parse-file", str(export_dir / "LTCM_staff.txt"))
        assert code == EXIT_OK
        assert payload["file"]["source_grammar"] == "narrative"
        assert payload["fragments"][0]["employee_no"] == "AB12"
        assert payload["fragments"][0]["fields"]["department"]["value"] == "OPERATIONS"

    def test_unclassifiable_file(self, capsys, tmp_path):
        path = tmp_path / "notes.csv"
        path.write_text("x", encoding="utf-8")
        code, _ = _run(capsys, "parse-file", str(path))
        assert code == EXIT_FAILURES

    def test_missing_file(self, capsys, tmp_path):
        code, _ = _run(capsys, "parse-file", str(tmp_path / "LTCM_absent.csv"))
        assert code == EXIT_FATAL


class TestProcess:
    def test_process_org(self, capsys, export_dir, tmp_path):
        reports = tmp_path / "reports"
        code, summary = _run(
            capsys, "process-org", str(export_dir), "LTCM",
            "--org-mapping", MAPPINGS, "--report-dir", str(reports),
        )
        assert code == EXIT_OK
        assert summary["records"] == 1
        assert summary["conflicts"] == 1
        assert summary["unmapped_codes"] == []
        assert Path(summary["report_path"]).is_file()

    def test_process_all_with_unclassified_file(self, capsys, export_dir, tmp_path):
        (export_dir / "readme.txt").write_text("hello", encoding="utf-8")
        code, summary = _run(
            capsys, "process-all", str(export_dir),
            "--org-mapping", MAPPINGS, "--report-dir", str(tmp_path / "reports"),
        )
        assert code == EXIT_FAILURES
        assert summary["failed_files"] == 1

    def test_unreadable_directory_is_fatal(self, capsys, tmp_path):
        code, _ = _run(
            capsys, "process-all", str(tmp_path / "absent"),
            "--org-mapping", MAPPINGS, "--report-dir", str(tmp_path / "reports"),
        )
        assert code == EXIT_FATAL

    def test_bad_mapping_file_is_fatal(self, capsys, export_dir, tmp_path):
        code, _ = _run(
            capsys, "process-all", str(export_dir),
            "--org-mapping", str(tmp_path / "absent.json"), "--report-dir", str(tmp_path / "reports"),
        )
        assert code == EXIT_FATAL
