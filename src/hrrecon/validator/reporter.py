"""Discrepancy report assembly and output."""

from __future__ import annotations

import re
from collections import defaultdict
from typing import Any, Iterable, Optional

from hrrecon.core.logging_config import get_logger
from hrrecon.core.protocols import IFileStore
from hrrecon.models.employee_record import CanonicalEmployeeRecord
from hrrecon.models.fields import FIELD_CATALOGUE, IDENTITY_NUMBER_FIELDS
from hrrecon.models.issues import FieldNormalizationFailure
from hrrecon.models.pipeline import BatchOutcome, BatchStatus, FileParseStats, UnclassifiedFile
from hrrecon.models.report import ConflictEntry, DiscrepancyReport, DuplicateIdentity, FieldCompleteness
from hrrecon.validator.identity_validator import IdentityValidator

logger = get_logger(__name__)

EXTRA_COMPLETENESS_FIELDS = ("organization_id", "allowances", "deductions")


def _identity_value(field: str, value: str) -> str:
    if field == "ic_new":
        return re.sub(r"\D", "", value)
    return re.sub(r"\s+", "", value).upper()


def field_completeness(records: list[CanonicalEmployeeRecord]) -> dict[str, FieldCompleteness]:
    total = len(records)
    counts: dict[str, int] = {}
    for field in FIELD_CATALOGUE:
        counts[field] = sum(1 for r in records if r.get_field(field) is not None)
    counts["organization_id"] = sum(1 for r in records if r.organization_id is not None)
    counts["allowances"] = sum(1 for r in records if r.compensation.allowances)
    counts["deductions"] = sum(1 for r in records if r.compensation.deductions)
    return {
        field: FieldCompleteness(
            populated=n,
            total=total,
            fraction=round(n / total, 4) if total else 0.0,
        )
        for field, n in counts.items()
    }


def duplicate_identities(records: Iterable[CanonicalEmployeeRecord]) -> list[DuplicateIdentity]:
    """Identity numbers shared by more than one key; one entry per value."""
    seen: dict[tuple[str, str], set[tuple[str, str]]] = defaultdict(set)
    for record in records:
        for field in IDENTITY_NUMBER_FIELDS:
            value = record.get_field(field)
            if value:
                seen[(field, _identity_value(field, value))].add(record.key)
    return [
        DuplicateIdentity(identity_field=field, identity_value=value, keys=sorted(keys))
        for (field, value), keys in sorted(seen.items())
        if len(keys) > 1
    ]


def merge_conflicts(records: Iterable[CanonicalEmployeeRecord]) -> list[ConflictEntry]:
    entries: list[ConflictEntry] = []
    for record in sorted(records, key=lambda r: r.key):
        for conflict in record.conflicts():
            entries.append(
                ConflictEntry(
                    organization_code=record.organization_code,
                    employee_no=record.employee_no,
                    conflict=conflict,
                )
            )
    return entries


def build_report(
    records: list[CanonicalEmployeeRecord],
    *,
    run_id: str,
    unmapped_codes: Iterable[str] = (),
    file_stats: Iterable[FileParseStats] = (),
    unclassified_files: Iterable[UnclassifiedFile] = (),
    normalization_failures: Iterable[FieldNormalizationFailure] = (),
    persistence: Iterable[BatchOutcome] = (),
    identity_validator: Optional[IdentityValidator] = None,
) -> DiscrepancyReport:
    """Assemble the run report. Output order never depends on input order."""
    ordered = sorted(records, key=lambda r: r.key)
    validator = identity_validator or IdentityValidator()
    report = DiscrepancyReport(
        run_id=run_id,
        total_records=len(ordered),
        active_records=sum(1 for r in ordered if r.employment.is_active),
        field_completeness=field_completeness(ordered),
        duplicate_identities=duplicate_identities(ordered),
        unmapped_codes=sorted(set(unmapped_codes)),
        merge_conflicts=merge_conflicts(ordered),
        normalization_failures=sorted(
            normalization_failures,
            key=lambda f: (f.organization_code, f.employee_no, f.source_grammar, f.field),
        ),
        identity_issues=validator.validate_all(ordered),
        files=sorted(file_stats, key=lambda s: s.source_file),
        unclassified_files=sorted(unclassified_files, key=lambda u: u.path),
        persistence=sorted(persistence, key=lambda b: b.batch_index),
    )
    logger.info("report_built", **report_summary(report))
    return report


def report_summary(report: DiscrepancyReport) -> dict[str, Any]:
    """Headline counts for logs and the CLI."""
    return {
        "run_id": report.run_id,
        "records": report.total_records,
        "active": report.active_records,
        "duplicates": len(report.duplicate_identities),
        "unmapped_codes": report.unmapped_codes,
        "conflicts": len(report.merge_conflicts),
        "conflicts_needing_review": len(report.conflicts_needing_review),
        "normalization_failures": len(report.normalization_failures),
        "identity_issues": len(report.identity_issues),
        "failed_files": sum(1 for f in report.files if f.failed) + len(report.unclassified_files),
        "failed_batches": sum(1 for b in report.persistence if b.status == BatchStatus.FAILED),
    }


def write_report(report: DiscrepancyReport, file_store: IFileStore, key: str) -> str:
    """Serialize the report as JSON through any IFileStore. Returns the stored path."""
    data = report.model_dump_json(indent=2).encode("utf-8")
    path = file_store.write(key, data, content_type="application/json")
    logger.info("report_written", path=path, bytes=len(data))
    return path
