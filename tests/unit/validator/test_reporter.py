"""Tests for the discrepancy reporter."""

from __future__ import annotations

import json
from datetime import date

from hrrecon.models.employee_record import (
    CanonicalEmployeeRecord,
    EmploymentSection,
    FieldProvenance,
    PersonalSection,
)
from hrrecon.models.fields import SourceGrammar
from hrrecon.models.issues import MergeConflict
from hrrecon.models.pipeline import BatchOutcome, BatchStatus, FileParseStats, UnclassifiedFile
from hrrecon.validator.identity_validator import IdentityValidator
from hrrecon.validator.reporter import (
    build_report,
    duplicate_identities,
    field_completeness,
    report_summary,
    write_report,
)
from tests.fakes import MemoryFileStore


def _record(code: str, no: str, ic: str | None = None, passport: str | None = None, **employment) -> CanonicalEmployeeRecord:
    return CanonicalEmployeeRecord(
        organization_code=code,
        employee_no=no,
        personal=PersonalSection(ic_new=ic, passport_no=passport),
        employment=EmploymentSection(**employment),
    )


class TestFieldCompleteness:
    def test_fraction_per_field(self):
        records = [
            _record("LTCM", "A1", ic="830211-14-5678"),
            _record("LTCM", "A2"),
            _record("TTK", "A3", ic="900101-10-1111"),
        ]
        completeness = field_completeness(records)
        assert completeness["ic_new"].populated == 2
        assert completeness["ic_new"].fraction == 0.6667
        assert completeness["spouse_name"].fraction == 0.0
        assert completeness["organization_id"].total == 3

    def test_empty_run(self):
        assert field_completeness([])["name"].fraction == 0.0


class TestDuplicateIdentities:
    def test_reported_once_regardless_of_order(self):
        a = _record("LTCM", "A1", ic="830211-14-5678")
        b = _record("TTK", "B7", ic="830211145678")
        c = _record("LTCM", "A2", ic="900101-10-1111")
        for records in ([a, b, c], [c, b, a]):
            duplicates = duplicate_identities(records)
            assert len(duplicates) == 1
            assert duplicates[0].identity_field == "ic_new"
            assert duplicates[0].keys == [("LTCM", "A1"), ("TTK", "B7")]

    def test_passport_numbers_compared_without_spaces(self):
        records = [_record("LTCM", "A1", passport="a 123"), _record("LTCM", "A2", passport="A123")]
        assert duplicate_identities(records)[0].identity_value == "A123"

    def test_same_key_twice_is_not_a_duplicate(self):
        records = [_record("LTCM", "A1", ic="830211-14-5678"), _record("LTCM", "A1", ic="830211-14-5678")]
        assert duplicate_identities(records) == []


class TestBuildReport:
    def test_collects_everything(self):
        conflict = MergeConflict(
            field="birth_date",
            chosen_source=SourceGrammar.GRID,
            chosen_value="1983-02-11",
            rejected_source=SourceGrammar.NARRATIVE,
            rejected_value="1983-02-12",
            resolution="first_processed",
            needs_review=True,
        )
        flagged = CanonicalEmployeeRecord(
            organization_code="LTCM",
            employee_no="A1",
            personal=PersonalSection(
                birth_date=date(1983, 2, 11),
                provenance={"birth_date": FieldProvenance(source=SourceGrammar.GRID, conflicts=[conflict])},
            ),
        )
        resigned = _record("ZZZ", "A2", resign_date=date(2020, 1, 31))

        report = build_report(
            [resigned, flagged],
            run_id="run-1",
            unmapped_codes=["ZZZ", "ZZZ"],
            file_stats=[FileParseStats(source_file="b.txt", organization_code="LTCM",
                                       source_grammar=SourceGrammar.NARRATIVE, error="boom")],
            unclassified_files=[UnclassifiedFile(path="readme.txt", reason="no organization prefix")],
            persistence=[BatchOutcome(batch_index=0, status=BatchStatus.FAILED, keys=[("LTCM", "A1")])],
            identity_validator=IdentityValidator(date(2026, 1, 1)),
        )

        assert report.total_records == 2
        assert report.active_records == 1
        assert report.unmapped_codes == ["ZZZ"]
        assert len(report.conflicts_needing_review) == 1
        assert report.merge_conflicts[0].employee_no == "A1"
        assert report.has_file_failures

        summary = report_summary(report)
        assert summary["failed_files"] == 2
        assert summary["failed_batches"] == 1
        assert summary["conflicts_needing_review"] == 1

    def test_written_as_json(self):
        store = MemoryFileStore()
        report = build_report([_record("LTCM", "A1")], run_id="run-2")
        path = write_report(report, store, "run-2.json")
        payload = json.loads(store.read(path))
        assert payload["run_id"] == "run-2"
        assert payload["total_records"] == 1
        assert "field_completeness" in payload
