"""OrganizationResolver: file-prefix code -> canonical organization identifier."""

from __future__ import annotations

import json
from collections import Counter
from pathlib import Path
from typing import Iterable, Optional

from pydantic import ValidationError

from hrrecon.core.exceptions import OrganizationMappingError
from hrrecon.core.logging_config import get_logger
from hrrecon.core.protocols import IOrganizationStore
from hrrecon.models.employee_record import CanonicalEmployeeRecord
from hrrecon.models.issues import UnresolvedOrganization
from hrrecon.models.organization import OrganizationMapping

logger = get_logger(__name__)


def load_organization_mappings(path: str | Path) -> list[OrganizationMapping]:
    """Read ``{"organizations": [...]}`` from a JSON file.

    Raises:
        OrganizationMappingError: file missing, not JSON, or an entry is invalid.
    """
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise OrganizationMappingError(f"Cannot load organization mappings from {path}: {exc}") from exc
    entries = payload.get("organizations") if isinstance(payload, dict) else None
    if not isinstance(entries, list):
        raise OrganizationMappingError(f"{path}: expected an 'organizations' list")
    try:
        return [OrganizationMapping.model_validate(entry) for entry in entries]
    except ValidationError as exc:
        raise OrganizationMappingError(f"{path}: invalid organization entry: {exc}") from exc


class OrganizationResolver:
    """Resolves codes from an explicit mapping table. Never guesses from names.

    With a ``store``, codes missing from the table are looked up one at a time
    through ``store.get_mapping`` (cached by the store where it has a cache)
    and remembered for the life of the resolver, misses included.
    """

    def __init__(
        self,
        mappings: Iterable[OrganizationMapping] = (),
        store: IOrganizationStore | None = None,
    ) -> None:
        self._store = store
        self._misses: set[str] = set()
        self._mappings: dict[str, OrganizationMapping] = {}
        for mapping in mappings:
            if mapping.code in self._mappings:
                raise OrganizationMappingError(f"Duplicate organization code {mapping.code!r}")
            self._mappings[mapping.code] = mapping

    @classmethod
    def from_file(cls, path: str | Path) -> OrganizationResolver:
        return cls(load_organization_mappings(path))

    @classmethod
    def from_store(cls, store: IOrganizationStore) -> OrganizationResolver:
        return cls(store=store)

    @property
    def codes(self) -> list[str]:
        """Codes known so far."""
        return sorted(self._mappings)

    def resolve(self, code: str) -> Optional[OrganizationMapping]:
        """Mapping for a code, or None when neither the table nor the store has one.

        Raises:
            PersistenceError: the store lookup failed.
        """
        key = code.upper()
        mapping = self._mappings.get(key)
        if mapping is None and self._store is not None and key not in self._misses:
            mapping = self._store.get_mapping(key)
            if mapping is None:
                self._misses.add(key)
            else:
                self._mappings[key] = mapping
        return mapping

    def canonical_id(self, code: str) -> Optional[str]:
        mapping = self.resolve(code)
        return mapping.canonical_id if mapping is not None else None

    def apply(self, record: CanonicalEmployeeRecord) -> CanonicalEmployeeRecord:
        """Copy of the record with organization_id/name filled where known."""
        mapping = self.resolve(record.organization_code)
        if mapping is None:
            return record.model_copy(update={"organization_id": None})
        return record.model_copy(
            update={
                "organization_id": mapping.canonical_id,
                "organization_name": mapping.display_name or None,
            }
        )

    def apply_all(
        self, records: Iterable[CanonicalEmployeeRecord]
    ) -> tuple[list[CanonicalEmployeeRecord], list[UnresolvedOrganization]]:
        """Resolve every record; unresolved codes are reported once each."""
        resolved: list[CanonicalEmployeeRecord] = []
        missing: Counter[str] = Counter()
        for record in records:
            updated = self.apply(record)
            if updated.organization_id is None:
                missing[record.organization_code] += 1
            resolved.append(updated)
        unresolved = [UnresolvedOrganization(code=code, employee_count=missing[code]) for code in sorted(missing)]
        for item in unresolved:
            logger.warning("organization_unresolved", code=item.code, employees=item.employee_count)
        return resolved, unresolved

    def unmapped(self, codes: Iterable[str]) -> list[str]:
        """Codes with no canonical identifier, sorted and de-duplicated."""
        return sorted({c.upper() for c in codes if self.canonical_id(c) is None})
