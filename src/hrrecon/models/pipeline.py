"""Classification, parse, persistence and run result models."""

from __future__ import annotations

from collections import defaultdict
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, Field

from hrrecon.models.fields import SourceGrammar
from hrrecon.models.fragments import RawFragment
from hrrecon.models.issues import MalformedLine


class ClassifiedFile(BaseModel):
    """A source file with its organization code and grammar."""

    organization_code: str
    source_grammar: SourceGrammar
    path: str

    model_config = {"frozen": True}


class UnclassifiedFile(BaseModel):
    path: str
    reason: str

    model_config = {"frozen": True}


class ClassificationResult(BaseModel):
    """Output of directory classification."""

    directory: str
    classified: list[ClassifiedFile] = Field(default_factory=list)
    unclassified: list[UnclassifiedFile] = Field(default_factory=list)

    def by_organization(self) -> dict[str, list[ClassifiedFile]]:
        grouped: dict[str, list[ClassifiedFile]] = defaultdict(list)
        for item in self.classified:
            grouped[item.organization_code].append(item)
        return dict(sorted(grouped.items()))

    @property
    def organization_codes(self) -> list[str]:
        return sorted({item.organization_code for item in self.classified})


class FileParseStats(BaseModel):
    """Per-file parse counters for the report."""

    source_file: str
    organization_code: str
    source_grammar: SourceGrammar
    records: int = 0
    dropped_records: int = 0
    discarded_lines: int = 0  # non-blank lines outside any identified record
    malformed_lines: list[MalformedLine] = Field(default_factory=list)
    unrecognized_labels: list[str] = Field(default_factory=list)
    error: Optional[str] = None  # file-level failure (unreadable, undecodable)

    @property
    def failed(self) -> bool:
        return self.error is not None


class ParseResult(BaseModel):
    """Fragments and stats from one parser pass over one file."""

    fragments: list[RawFragment] = Field(default_factory=list)
    stats: FileParseStats


class UpsertResult(BaseModel):
    """Persistence adapter response for one record."""

    organization_code: str
    employee_no: str
    accepted: bool
    rejected_reason: Optional[str] = None


class BatchStatus(StrEnum):
    ACCEPTED = "ACCEPTED"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"


class BatchOutcome(BaseModel):
    """Result of persisting one batch, after retries."""

    batch_index: int
    keys: list[tuple[str, str]] = Field(default_factory=list)
    status: BatchStatus
    attempts: int = 0
    rejected: list[UpsertResult] = Field(default_factory=list)
    error: str = ""
