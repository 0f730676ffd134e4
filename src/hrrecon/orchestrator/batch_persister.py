"""BatchPersister: batched upserts with retry and exponential backoff."""

from __future__ import annotations

import time
from typing import Callable, Sequence

from hrrecon.core.config import PipelineConfig
from hrrecon.core.exceptions import PersistenceError
from hrrecon.core.logging_config import get_logger
from hrrecon.core.protocols import IEmployeeStore
from hrrecon.models.employee_record import CanonicalEmployeeRecord
from hrrecon.models.pipeline import BatchOutcome, BatchStatus

logger = get_logger(__name__)


class BatchPersister:
    """Writes records in fixed-size batches.

    A transient PersistenceError is retried up to ``max_attempts`` times with
    ``backoff_seconds * backoff_multiplier ** (attempt - 1)`` between tries.
    An exhausted or non-transient batch is reported FAILED with its keys and
    the remaining batches still run. Upserts are keyed, so a retried batch
    cannot duplicate records.
    """

    def __init__(
        self,
        store: IEmployeeStore,
        config: PipelineConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._config = config or PipelineConfig()
        self._sleep = sleep

    def backoff_delay(self, attempt: int) -> float:
        return self._config.backoff_seconds * self._config.backoff_multiplier ** (attempt - 1)

    def persist(self, records: Sequence[CanonicalEmployeeRecord]) -> list[BatchOutcome]:
        size = max(1, self._config.batch_size)
        outcomes = [
            self._persist_batch(index, list(records[start:start + size]))
            for index, start in enumerate(range(0, len(records), size))
        ]
        logger.info(
            "persistence_finished",
            records=len(records),
            batches=len(outcomes),
            failed=sum(1 for o in outcomes if o.status == BatchStatus.FAILED),
        )
        return outcomes

    def _persist_batch(self, index: int, batch: list[CanonicalEmployeeRecord]) -> BatchOutcome:
        keys = [r.key for r in batch]
        max_attempts = max(1, self._config.max_attempts)
        attempt = 0
        while True:
            attempt += 1
            try:
                results = self._store.upsert_batch(batch)
            except PersistenceError as exc:
                if exc.transient and attempt < max_attempts:
                    delay = self.backoff_delay(attempt)
                    logger.warning("batch_retry", batch=index, attempt=attempt, delay=delay, error=str(exc))
                    self._sleep(delay)
                    continue
                logger.error("batch_failed", batch=index, attempts=attempt, keys=len(keys), error=str(exc))
                return BatchOutcome(
                    batch_index=index,
                    keys=keys,
                    status=BatchStatus.FAILED,
                    attempts=attempt,
                    error=str(exc),
                )

            rejected = [r for r in results if not r.accepted]
            return BatchOutcome(
                batch_index=index,
                keys=keys,
                status=BatchStatus.PARTIAL if rejected else BatchStatus.ACCEPTED,
                attempts=attempt,
                rejected=rejected,
            )
