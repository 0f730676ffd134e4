"""Tests for OrganizationResolver and the mapping loader."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from hrrecon.core.exceptions import OrganizationMappingError, PersistenceError
from hrrecon.models.employee_record import CanonicalEmployeeRecord
from hrrecon.models.organization import OrganizationMapping
from hrrecon.transform.org_resolver import OrganizationResolver, load_organization_mappings
from tests.fakes import MemoryOrganizationStore

SHIPPED_MAPPINGS = Path(__file__).resolve().parents[3] / "config" / "organizations.json"


@pytest.fixture
def resolver():
    return OrganizationResolver([
        OrganizationMapping(code="LTCM", canonical_id="org-ltcm", display_name="Lan Todak"),
        OrganizationMapping(code="HSB", canonical_id=None, display_name="Hyleen Sdn. Bhd."),
    ])


def _record(code: str, employee_no: str) -> CanonicalEmployeeRecord:
    return CanonicalEmployeeRecord(organization_code=code, employee_no=employee_no)


class TestLoadMappings:
    def test_shipped_table_loads(self):
        mappings = load_organization_mappings(SHIPPED_MAPPINGS)
        codes = {m.code for m in mappings}
        assert {"LTCM", "TTK", "HSB"} <= codes
        assert all(m.display_name for m in mappings)

    def test_missing_file(self, tmp_path):
        with pytest.raises(OrganizationMappingError):
            load_organization_mappings(tmp_path / "absent.json")

    def test_wrong_shape(self, tmp_path):
        path = tmp_path / "orgs.json"
        path.write_text(json.dumps([{"code": "X"}]))
        with pytest.raises(OrganizationMappingError):
            load_organization_mappings(path)

    def test_duplicate_codes_rejected(self):
        with pytest.raises(OrganizationMappingError):
            OrganizationResolver([OrganizationMapping(code="a"), OrganizationMapping(code="A")])


class TestResolve:
    def test_case_insensitive(self, resolver):
        assert resolver.canonical_id("ltcm") == "org-ltcm"

    def test_known_but_unprovisioned(self, resolver):
        assert resolver.resolve("HSB") is not None
        assert resolver.canonical_id("HSB") is None

    def test_unknown(self, resolver):
        assert resolver.resolve("ZZZ") is None


class TestStoreLookup:
    @pytest.fixture
    def store(self):
        return MagicMock(wraps=MemoryOrganizationStore([
            OrganizationMapping(code="TTK", canonical_id="org-ttk"),
            OrganizationMapping(code="LTCM", canonical_id="org-ltcm"),
        ]))

    def test_looks_up_observed_codes_only(self, store):
        resolver = OrganizationResolver.from_store(store)
        assert resolver.canonical_id("ttk") == "org-ttk"
        store.get_mapping.assert_called_once_with("TTK")
        store.list_mappings.assert_not_called()
        assert resolver.codes == ["TTK"]

    def test_each_code_fetched_once(self, store):
        resolver = OrganizationResolver.from_store(store)
        records, unresolved = resolver.apply_all([
            _record("TTK", "A1"), _record("TTK", "A2"), _record("ZZZ", "A3"), _record("ZZZ", "A4"),
        ])
        assert resolver.unmapped(["TTK", "ZZZ"]) == ["ZZZ"]
        assert [r.organization_id for r in records] == ["org-ttk", "org-ttk", None, None]
        assert [(u.code, u.employee_count) for u in unresolved] == [("ZZZ", 2)]
        assert sorted(c.args[0] for c in store.get_mapping.call_args_list) == ["TTK", "ZZZ"]

    def test_table_entries_win_over_store(self, store):
        resolver = OrganizationResolver([OrganizationMapping(code="TTK", canonical_id="local")], store=store)
        assert resolver.canonical_id("TTK") == "local"
        store.get_mapping.assert_not_called()

    def test_store_failure_propagates(self, store):
        store.get_mapping.side_effect = PersistenceError("down", transient=True)
        with pytest.raises(PersistenceError):
            OrganizationResolver.from_store(store).resolve("TTK")


class TestApply:
    def test_fills_identifier_and_name(self, resolver):
        record = resolver.apply(_record("LTCM", "A1"))
        assert record.organization_id == "org-ltcm"
        assert record.organization_name == "Lan Todak"

    def test_unmapped_code_still_produces_record(self, resolver):
        records, unresolved = resolver.apply_all([_record("ZZZ", "A1"), _record("ZZZ", "A2"), _record("LTCM", "A3")])
        assert [r.organization_id for r in records] == [None, None, "org-ltcm"]
        assert [(u.code, u.employee_count) for u in unresolved] == [("ZZZ", 2)]

    def test_unmapped_listed_once(self, resolver):
        assert resolver.unmapped(["ZZZ", "zzz", "LTCM", "HSB", "ZZZ"]) == ["HSB", "ZZZ"]
