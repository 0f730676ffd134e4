"""ReconciliationPipeline: classify -> parse -> normalize -> merge -> resolve -> report -> persist.

Files are parsed concurrently, one task per file; each task returns its own
fragments and stats, and results are concatenated in path order so the run's
output does not depend on scheduling. Merging starts only after every parse
task has finished.
"""

from __future__ import annotations

import csv
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from pydantic import BaseModel, Field

from hrrecon.core.config import AppSettings
from hrrecon.core.exceptions import HRReconError, NoFilesClassifiedError
from hrrecon.core.logging_config import get_logger
from hrrecon.core.protocols import IEmployeeStore, IFileStore
from hrrecon.ingest.classifier import FormatClassifier
from hrrecon.ingest.grid_parser import GridParser
from hrrecon.ingest.narrative_parser import NarrativeParser
from hrrecon.ingest.narrative_rules import NarrativeRuleset
from hrrecon.models.employee_record import CanonicalEmployeeRecord
from hrrecon.models.fields import SourceGrammar
from hrrecon.models.fragments import NormalizedFragment
from hrrecon.models.pipeline import (
    BatchOutcome,
    BatchStatus,
    ClassificationResult,
    ClassifiedFile,
    FileParseStats,
    UnclassifiedFile,
)
from hrrecon.models.report import DiscrepancyReport
from hrrecon.normalize.field_normalizer import normalize_fragment
from hrrecon.orchestrator.batch_persister import BatchPersister
from hrrecon.transform.org_resolver import OrganizationResolver
from hrrecon.transform.record_merger import RecordMerger
from hrrecon.validator.reporter import build_report, write_report

logger = get_logger(__name__)


def new_run_id() -> str:
    return f"{datetime.now(timezone.utc):%Y%m%dT%H%M%SZ}-{uuid.uuid4().hex[:8]}"


class FileOutcome(BaseModel):
    """Normalized fragments and stats for one parsed file."""

    fragments: list[NormalizedFragment] = Field(default_factory=list)
    stats: FileParseStats


class RunResult(BaseModel):
    run_id: str
    records: list[CanonicalEmployeeRecord] = Field(default_factory=list)
    report: DiscrepancyReport
    report_path: Optional[str] = None
    cancelled: bool = False

    @property
    def persistence_failed(self) -> bool:
        return any(b.status == BatchStatus.FAILED for b in self.report.persistence)

    @property
    def succeeded(self) -> bool:
        return not (self.cancelled or self.report.has_file_failures or self.persistence_failed)


class ReconciliationPipeline:
    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        resolver: OrganizationResolver | None = None,
        employee_store: IEmployeeStore | None = None,
        report_store: IFileStore | None = None,
        ruleset: NarrativeRuleset | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings or AppSettings()
        self._resolver = resolver or OrganizationResolver()
        self._employee_store = employee_store
        self._report_store = report_store
        self._classifier = FormatClassifier(self._settings.classifier, self._settings.parser)
        self._parsers = {
            SourceGrammar.GRID: GridParser(self._settings.parser),
            SourceGrammar.NARRATIVE: NarrativeParser(self._settings.parser, ruleset),
        }
        self._merger = RecordMerger(self._settings.merge)
        self._sleep = sleep
        self._cancel = threading.Event()

    def cancel(self) -> None:
        """Stop parsing further files; files already running finish."""
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    # ---- parsing ----

    def parse_one_file(self, item: ClassifiedFile) -> FileOutcome:
        """Parse and normalize one file. A file-level failure is recorded, not raised."""
        parser = self._parsers[item.source_grammar]
        try:
            result = parser.parse_file(item.path, item.organization_code, self._settings.classifier.encoding)
        except (OSError, csv.Error) as exc:
            logger.error("file_parse_failed", file=item.path, error=str(exc))
            return FileOutcome(
                stats=FileParseStats(
                    source_file=item.path,
                    organization_code=item.organization_code,
                    source_grammar=item.source_grammar,
                    error=str(exc),
                )
            )
        fragments = [normalize_fragment(f) for f in result.fragments]
        return FileOutcome(fragments=fragments, stats=result.stats)

    def parse_files(self, files: list[ClassifiedFile]) -> list[FileOutcome]:
        ordered = sorted(files, key=lambda f: f.path)

        def task(item: ClassifiedFile) -> Optional[FileOutcome]:
            if self._cancel.is_set():
                return None
            return self.parse_one_file(item)

        workers = max(1, min(self._settings.pipeline.max_workers, len(ordered) or 1))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="hrrecon-parse") as pool:
            futures = [pool.submit(task, item) for item in ordered]
            results = [f.result() for f in futures]
        return [r for r in results if r is not None]

    # ---- runs ----

    def process_all(self, directory: str | Path, *, persist: bool = False) -> RunResult:
        classification = self._classifier.classify(directory)
        return self.reconcile(classification.classified, classification.unclassified, persist=persist)

    def process_organization(self, directory: str | Path, code: str, *, persist: bool = False) -> RunResult:
        """Reconcile only the files whose prefix is ``code``.

        Raises:
            NoFilesClassifiedError: the directory has no files for this code.
        """
        classification: ClassificationResult = self._classifier.classify(directory)
        files = classification.by_organization().get(code.upper(), [])
        if not files:
            raise NoFilesClassifiedError(f"{directory} (organization {code.upper()})")
        return self.reconcile(files, [], persist=persist)

    def reconcile(
        self,
        files: list[ClassifiedFile],
        unclassified: list[UnclassifiedFile],
        *,
        persist: bool = False,
    ) -> RunResult:
        run_id = new_run_id()
        log = logger.bind(run_id=run_id)
        log.info("run_started", files=len(files), unclassified=len(unclassified), persist=persist)

        outcomes = self.parse_files(files)
        fragments = [frag for outcome in outcomes for frag in outcome.fragments]
        failures = [fail for frag in fragments for fail in frag.failures]

        merged = self._merger.merge(fragments)
        records, _ = self._resolver.apply_all(merged)
        unmapped = self._resolver.unmapped(f.organization_code for f in files)

        batches: list[BatchOutcome] = []
        if persist and not self.cancelled:
            if self._employee_store is None:
                raise HRReconError("Persistence requested but no employee store is configured")
            persister = BatchPersister(self._employee_store, self._settings.pipeline, sleep=self._sleep)
            batches = persister.persist(records)

        report = build_report(
            records,
            run_id=run_id,
            unmapped_codes=unmapped,
            file_stats=[o.stats for o in outcomes],
            unclassified_files=unclassified,
            normalization_failures=failures,
            persistence=batches,
        )

        report_path = None
        if self._report_store is not None:
            report_path = write_report(report, self._report_store, f"{run_id}.json")

        log.info("run_finished", records=len(records), cancelled=self.cancelled, report=report_path)
        return RunResult(
            run_id=run_id,
            records=records,
            report=report,
            report_path=report_path,
            cancelled=self.cancelled,
        )
