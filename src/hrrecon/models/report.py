"""Discrepancy report models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from hrrecon.models.issues import FieldNormalizationFailure, IdentityIssue, MergeConflict
from hrrecon.models.pipeline import BatchOutcome, FileParseStats, UnclassifiedFile


class FieldCompleteness(BaseModel):
    populated: int = 0
    total: int = 0
    fraction: float = 0.0


class DuplicateIdentity(BaseModel):
    """One identity number shared by more than one employee key."""

    identity_field: str
    identity_value: str
    keys: list[tuple[str, str]]


class ConflictEntry(BaseModel):
    """A merge conflict attributed to its employee key."""

    organization_code: str
    employee_no: str
    conflict: MergeConflict


class DiscrepancyReport(BaseModel):
    """Serializable outcome of one reconciliation run."""

    run_id: str
    total_records: int = 0
    active_records: int = 0
    field_completeness: dict[str, FieldCompleteness] = Field(default_factory=dict)
    duplicate_identities: list[DuplicateIdentity] = Field(default_factory=list)
    unmapped_codes: list[str] = Field(default_factory=list)
    merge_conflicts: list[ConflictEntry] = Field(default_factory=list)
    normalization_failures: list[FieldNormalizationFailure] = Field(default_factory=list)
    identity_issues: list[IdentityIssue] = Field(default_factory=list)
    files: list[FileParseStats] = Field(default_factory=list)
    unclassified_files: list[UnclassifiedFile] = Field(default_factory=list)
    persistence: list[BatchOutcome] = Field(default_factory=list)

    @property
    def conflicts_needing_review(self) -> list[ConflictEntry]:
        return [c for c in self.merge_conflicts if c.conflict.needs_review]

    @property
    def has_file_failures(self) -> bool:
        return bool(self.unclassified_files) or any(f.failed for f in self.files)
