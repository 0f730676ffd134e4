"""In-memory backends for unit tests and dry runs."""

from __future__ import annotations

from hrrecon.core.exceptions import PersistenceError
from hrrecon.models.employee_record import CanonicalEmployeeRecord
from hrrecon.models.organization import OrganizationMapping
from hrrecon.models.pipeline import UpsertResult


class MemoryEmployeeStore:
    """Dict-backed IEmployeeStore.

    ``fail_batches`` makes the next N ``upsert_batch`` calls raise
    PersistenceError (transient unless ``transient=False``); ``reject`` lists
    employee numbers refused as invalid records.
    """

    def __init__(self, *, fail_batches: int = 0, transient: bool = True,
                 reject: set[str] | None = None) -> None:
        self._records: dict[tuple[str, str], CanonicalEmployeeRecord] = {}
        self._fail_batches = fail_batches
        self._transient = transient
        self._reject = set(reject or ())
        self.batch_calls = 0

    @property
    def records(self) -> dict[tuple[str, str], CanonicalEmployeeRecord]:
        return dict(self._records)

    def upsert_employee(self, record: CanonicalEmployeeRecord) -> UpsertResult:
        if record.employee_no in self._reject:
            return UpsertResult(
                organization_code=record.organization_code,
                employee_no=record.employee_no,
                accepted=False,
                rejected_reason="rejected by store",
            )
        self._records[record.key] = record
        return UpsertResult(
            organization_code=record.organization_code,
            employee_no=record.employee_no,
            accepted=True,
        )

    def upsert_batch(self, records: list[CanonicalEmployeeRecord]) -> list[UpsertResult]:
        self.batch_calls += 1
        if self._fail_batches > 0:
            self._fail_batches -= 1
            raise PersistenceError("simulated store failure", transient=self._transient)
        return [self.upsert_employee(r) for r in records]

    def get_employee(self, organization_code: str, employee_no: str) -> CanonicalEmployeeRecord | None:
        return self._records.get((organization_code, employee_no))


class MemoryOrganizationStore:
    """Dict-backed IOrganizationStore."""

    def __init__(self, mappings: list[OrganizationMapping] | None = None) -> None:
        self._mappings: dict[str, OrganizationMapping] = {m.code: m for m in mappings or []}

    def get_mapping(self, code: str) -> OrganizationMapping | None:
        return self._mappings.get(code.upper())

    def list_mappings(self) -> list[OrganizationMapping]:
        return [self._mappings[c] for c in sorted(self._mappings)]

    def put_mapping(self, mapping: OrganizationMapping) -> None:
        self._mappings[mapping.code] = mapping


class MemoryCacheBackend:
    """Dict-backed ICacheBackend for unit tests."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._store.get(key)

    def setex(self, key: str, ttl: int, value: str) -> None:
        self._store[key] = value

    def delete(self, key: str) -> None:
        self._store.pop(key, None)


class MemoryFileStore:
    """Dict-backed IFileStore for unit tests."""

    def __init__(self) -> None:
        self._files: dict[str, bytes] = {}

    def read(self, path: str) -> bytes:
        return self._files[path]

    def write(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        self._files[path] = data
        return path

    def list_files(self, prefix: str) -> list[str]:
        return sorted(k for k in self._files if k.startswith(prefix))
