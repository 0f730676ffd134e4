"""Protocol interfaces for hrrecon's pluggable backends.

Structural typing, no inheritance required; production backends and the
in-memory test doubles both satisfy these with isinstance().
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from hrrecon.models.employee_record import CanonicalEmployeeRecord
    from hrrecon.models.organization import OrganizationMapping
    from hrrecon.models.pipeline import UpsertResult


# ---------------------------------------------------------------------------
# Persistence: Employee Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IEmployeeStore(Protocol):
    """Downstream store for canonical employee records, keyed by composite key.

    ``upsert_batch`` raises ``PersistenceError`` for whole-call failures; a
    record the store refuses comes back as an UpsertResult with
    ``accepted=False``.
    """

    def upsert_employee(self, record: CanonicalEmployeeRecord) -> UpsertResult: ...

    def upsert_batch(self, records: list[CanonicalEmployeeRecord]) -> list[UpsertResult]: ...

    def get_employee(self, organization_code: str, employee_no: str) -> CanonicalEmployeeRecord | None: ...


# ---------------------------------------------------------------------------
# Persistence: Organization Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IOrganizationStore(Protocol):
    """Organization code -> canonical identifier lookups."""

    def get_mapping(self, code: str) -> OrganizationMapping | None: ...

    def list_mappings(self) -> list[OrganizationMapping]: ...

    def put_mapping(self, mapping: OrganizationMapping) -> None: ...


# ---------------------------------------------------------------------------
# Persistence: Cache Backend
# ---------------------------------------------------------------------------

@runtime_checkable
class ICacheBackend(Protocol):
    """Redis-compatible cache interface."""

    def get(self, key: str) -> str | None: ...

    def setex(self, key: str, ttl: int, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


# ---------------------------------------------------------------------------
# Persistence: File Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IFileStore(Protocol):
    """Report storage (local directory or S3)."""

    def read(self, path: str) -> bytes: ...

    def write(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str: ...

    def list_files(self, prefix: str) -> list[str]: ...
