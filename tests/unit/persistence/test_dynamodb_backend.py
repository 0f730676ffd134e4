"""Unit tests for the DynamoDB stores using moto."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from unittest.mock import patch

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from hrrecon.core.exceptions import PersistenceError
from hrrecon.models.employee_record import (
    CanonicalEmployeeRecord,
    CompensationSection,
    EmploymentSection,
    PersonalSection,
)
from hrrecon.models.fragments import LineItem
from hrrecon.models.organization import OrganizationMapping
from hrrecon.persistence.dynamodb_backend import (
    EMPLOYEES_TABLE,
    ORGANIZATIONS_TABLE,
    DynamoDBEmployeeStore,
    DynamoDBOrganizationStore,
)
from hrrecon.persistence.memory_backend import MemoryCacheBackend
from hrrecon.transform.org_resolver import OrganizationResolver

TABLE_SUFFIX = "-test"
REGION = "ap-southeast-1"

# ---------- helpers ----------

def _create_table(client, name: str, pk: str = "PK", sk: str = "SK"):
    """Create a DynamoDB table with PK/SK key schema."""
    client.create_table(
        TableName=name,
        KeySchema=[
            {"AttributeName": pk, "KeyType": "HASH"},
            {"AttributeName": sk, "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": pk, "AttributeType": "S"},
            {"AttributeName": sk, "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )


def _record(employee_no: str = "AB12", **personal) -> CanonicalEmployeeRecord:
    return CanonicalEmployeeRecord(
        organization_code="LTCM",
        employee_no=employee_no,
        organization_id="org-ltcm",
        personal=PersonalSection(**personal),
        employment=EmploymentSection(hire_date=date(2019, 3, 1)),
        compensation=CompensationSection(
            current_basic=Decimal("3500.00"),
            allowances=[LineItem(code="T.ALLOW", amount=Decimal("200.00"))],
        ),
    )


def _client_error(code: str, status: int = 400) -> ClientError:
    return ClientError(
        {"Error": {"Code": code, "Message": code}, "ResponseMetadata": {"HTTPStatusCode": status}},
        "PutItem",
    )


# ---------- fixtures ----------

@pytest.fixture
def aws():
    with mock_aws():
        ddb = boto3.resource("dynamodb", region_name=REGION)
        client = boto3.client("dynamodb", region_name=REGION)
        for name in (EMPLOYEES_TABLE, ORGANIZATIONS_TABLE):
            _create_table(client, f"{name}{TABLE_SUFFIX}")
        yield ddb


@pytest.fixture
def employees(aws):
    return DynamoDBEmployeeStore(table_suffix=TABLE_SUFFIX, region=REGION)


@pytest.fixture
def organizations(aws):
    return DynamoDBOrganizationStore(table_suffix=TABLE_SUFFIX, region=REGION)


@pytest.fixture
def cached_organizations(aws):
    cache = MemoryCacheBackend()
    return DynamoDBOrganizationStore(table_suffix=TABLE_SUFFIX, region=REGION, cache=cache), cache


# ---------- employee store ----------

class TestUpsertEmployee:
    def test_round_trip(self, employees):
        record = _record(name="AHMAD BIN ALI")
        result = employees.upsert_employee(record)
        assert result.accepted
        assert employees.get_employee("LTCM", "AB12") == record

    def test_item_keys(self, employees, aws):
        employees.upsert_employee(_record(name="AHMAD BIN ALI"))
        item = aws.Table(f"{EMPLOYEES_TABLE}{TABLE_SUFFIX}").get_item(
            Key={"PK": "ORG#LTCM", "SK": "EMP#AB12"}
        )["Item"]
        assert item["organizationId"] == "org-ltcm"
        assert item["name"] == "AHMAD BIN ALI"
        assert item["active"] is True

    def test_upsert_is_keyed(self, employees):
        employees.upsert_employee(_record(name="OLD"))
        employees.upsert_employee(_record(name="NEW"))
        stored = employees.list_employees("LTCM")
        assert len(stored) == 1
        assert stored[0].personal.name == "NEW"

    def test_missing_employee(self, employees):
        assert employees.get_employee("LTCM", "NOPE") is None

    def test_batch(self, employees):
        results = employees.upsert_batch([_record("A1"), _record("A2")])
        assert [r.accepted for r in results] == [True, True]
        assert [r.employee_no for r in employees.list_employees("LTCM")] == ["A1", "A2"]


class TestUpsertErrors:
    def test_record_error_rejects(self, employees):
        with patch.object(employees, "_table") as table:
            table.return_value.put_item.side_effect = _client_error("ValidationException")
            result = employees.upsert_employee(_record())
        assert not result.accepted
        assert result.rejected_reason.startswith("ValidationException")

    def test_throttling_is_transient(self, employees):
        with patch.object(employees, "_table") as table:
            table.return_value.put_item.side_effect = _client_error("ThrottlingException")
            with pytest.raises(PersistenceError) as exc_info:
                employees.upsert_employee(_record())
        assert exc_info.value.transient

    def test_access_denied_is_not_transient(self, employees):
        with patch.object(employees, "_table") as table:
            table.return_value.put_item.side_effect = _client_error("AccessDeniedException")
            with pytest.raises(PersistenceError) as exc_info:
                employees.upsert_employee(_record())
        assert not exc_info.value.transient

    def test_server_error_is_transient(self, employees):
        with patch.object(employees, "_table") as table:
            table.return_value.put_item.side_effect = _client_error("InternalFailure", status=503)
            with pytest.raises(PersistenceError) as exc_info:
                employees.upsert_employee(_record())
        assert exc_info.value.transient


# ---------- organization store ----------

class TestOrganizationStore:
    def test_put_and_get(self, organizations):
        organizations.put_mapping(OrganizationMapping(code="ltcm", canonical_id="org-ltcm", display_name="Lan Todak"))
        mapping = organizations.get_mapping("LTCM")
        assert mapping.canonical_id == "org-ltcm"
        assert mapping.display_name == "Lan Todak"

    def test_item_attributes(self):
        item = DynamoDBOrganizationStore.to_item(
            OrganizationMapping(code="LTCM", canonical_id="org-ltcm", display_name="Lan Todak")
        )
        assert item == {
            "PK": "ORG#LTCM",
            "SK": "MAPPING",
            "code": "LTCM",
            "displayName": "Lan Todak",
            "canonicalId": "org-ltcm",
        }

    def test_unprovisioned_mapping(self, organizations):
        organizations.put_mapping(OrganizationMapping(code="HSB", display_name="Hyleen Sdn. Bhd."))
        assert organizations.get_mapping("HSB").canonical_id is None

    def test_missing(self, organizations):
        assert organizations.get_mapping("ZZZ") is None

    def test_list_sorted(self, organizations):
        for code in ("TTK", "LTCM", "HSB"):
            organizations.put_mapping(OrganizationMapping(code=code))
        assert [m.code for m in organizations.list_mappings()] == ["HSB", "LTCM", "TTK"]


class TestOrganizationCache:
    def test_get_populates_cache(self, cached_organizations):
        store, cache = cached_organizations
        store.put_mapping(OrganizationMapping(code="LTCM", canonical_id="org-ltcm"))
        store.get_mapping("LTCM")
        assert cache.get("org_mapping:LTCM") is not None

    def test_cached_value_served(self, cached_organizations):
        store, cache = cached_organizations
        cache.setex("org_mapping:TTK", 60, OrganizationMapping(code="TTK", canonical_id="cached").model_dump_json())
        assert store.get_mapping("ttk").canonical_id == "cached"

    def test_put_invalidates_cache(self, cached_organizations):
        store, cache = cached_organizations
        store.put_mapping(OrganizationMapping(code="LTCM", canonical_id="old"))
        store.get_mapping("LTCM")
        store.put_mapping(OrganizationMapping(code="LTCM", canonical_id="new"))
        assert cache.get("org_mapping:LTCM") is None
        assert store.get_mapping("LTCM").canonical_id == "new"

    def test_resolver_reads_through_cache(self, cached_organizations):
        store, cache = cached_organizations
        store.put_mapping(OrganizationMapping(code="LTCM", canonical_id="org-ltcm"))
        resolver = OrganizationResolver.from_store(store)

        assert resolver.canonical_id("LTCM") == "org-ltcm"
        assert cache.get("org_mapping:LTCM") is not None
