"""DynamoDB backends: IEmployeeStore and IOrganizationStore (with Redis caching)."""

from __future__ import annotations

import json
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from hrrecon.core.exceptions import PersistenceError
from hrrecon.core.logging_config import get_logger
from hrrecon.models.employee_record import CanonicalEmployeeRecord
from hrrecon.models.organization import OrganizationMapping
from hrrecon.models.pipeline import UpsertResult

logger = get_logger(__name__)

EMPLOYEES_TABLE = "hrrecon-employees"
ORGANIZATIONS_TABLE = "hrrecon-organizations"

# Errors worth retrying: the request was fine, the service was not.
TRANSIENT_ERROR_CODES = frozenset({
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "RequestLimitExceeded",
    "InternalServerError",
    "ServiceUnavailable",
    "TransactionConflictException",
})
# Errors caused by the item itself: reject the record, keep the batch.
RECORD_ERROR_CODES = frozenset({
    "ValidationException",
    "ItemCollectionSizeLimitExceededException",
    "ConditionalCheckFailedException",
})


def employee_pk(organization_code: str) -> str:
    return f"ORG#{organization_code}"


def employee_sk(employee_no: str) -> str:
    return f"EMP#{employee_no}"


def _is_transient(exc: ClientError) -> bool:
    code = exc.response.get("Error", {}).get("Code", "")
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
    return code in TRANSIENT_ERROR_CODES or status >= 500


def _ddb_resource(region: str, endpoint_url: str | None) -> Any:
    kwargs: dict = {"region_name": region}
    if endpoint_url:
        kwargs["endpoint_url"] = endpoint_url
    return boto3.resource("dynamodb", **kwargs)


class DynamoDBEmployeeStore:
    """Production IEmployeeStore. One item per employee, upserted by composite key."""

    def __init__(self, table_suffix: str = "", region: str = "ap-southeast-1",
                 endpoint_url: str | None = None) -> None:
        self._table_suffix = table_suffix
        self._region = region
        self._endpoint_url = endpoint_url
        self._ddb = _ddb_resource(region, endpoint_url)

    @property
    def table_name(self) -> str:
        return f"{EMPLOYEES_TABLE}{self._table_suffix}"

    def _table(self):
        return self._ddb.Table(self.table_name)

    @staticmethod
    def to_item(record: CanonicalEmployeeRecord) -> dict[str, Any]:
        item: dict[str, Any] = {
            "PK": employee_pk(record.organization_code),
            "SK": employee_sk(record.employee_no),
            "organizationCode": record.organization_code,
            "employeeNo": record.employee_no,
            "active": record.employment.is_active,
            "record": record.model_dump(mode="json"),
        }
        if record.organization_id is not None:
            item["organizationId"] = record.organization_id
        if record.personal.name is not None:
            item["name"] = record.personal.name
        return item

    # ---- IEmployeeStore methods ----

    def upsert_employee(self, record: CanonicalEmployeeRecord) -> UpsertResult:
        """Put one record.

        Raises:
            PersistenceError: call failed; ``transient`` marks retryable failures.
        """
        try:
            self._table().put_item(Item=self.to_item(record))
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code in RECORD_ERROR_CODES:
                logger.warning(
                    "employee_rejected",
                    organization_code=record.organization_code,
                    employee_no=record.employee_no,
                    error_code=code,
                )
                return UpsertResult(
                    organization_code=record.organization_code,
                    employee_no=record.employee_no,
                    accepted=False,
                    rejected_reason=f"{code}: {exc}",
                )
            raise PersistenceError(
                f"DynamoDB put failed for {record.key}: {exc}", transient=_is_transient(exc)
            ) from exc
        except BotoCoreError as exc:
            raise PersistenceError(f"DynamoDB unreachable for {record.key}: {exc}", transient=True) from exc
        return UpsertResult(
            organization_code=record.organization_code,
            employee_no=record.employee_no,
            accepted=True,
        )

    def upsert_batch(self, records: list[CanonicalEmployeeRecord]) -> list[UpsertResult]:
        return [self.upsert_employee(record) for record in records]

    def get_employee(self, organization_code: str, employee_no: str) -> CanonicalEmployeeRecord | None:
        try:
            resp = self._table().get_item(
                Key={"PK": employee_pk(organization_code), "SK": employee_sk(employee_no)}
            )
        except ClientError as exc:
            raise PersistenceError(
                f"DynamoDB get failed for {(organization_code, employee_no)}: {exc}",
                transient=_is_transient(exc),
            ) from exc
        item = resp.get("Item")
        return CanonicalEmployeeRecord.model_validate(item["record"]) if item else None

    def list_employees(self, organization_code: str) -> list[CanonicalEmployeeRecord]:
        """All stored records for one organization."""
        records: list[CanonicalEmployeeRecord] = []
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": "PK = :pk",
            "ExpressionAttributeValues": {":pk": employee_pk(organization_code)},
        }
        while True:
            resp = self._table().query(**kwargs)
            records.extend(CanonicalEmployeeRecord.model_validate(i["record"]) for i in resp.get("Items", []))
            if "LastEvaluatedKey" not in resp:
                return records
            kwargs["ExclusiveStartKey"] = resp["LastEvaluatedKey"]


class DynamoDBOrganizationStore:
    """Production IOrganizationStore backed by DynamoDB + optional Redis cache."""

    CACHE_TTL = 3600  # 1 hour

    def __init__(self, table_suffix: str = "", region: str = "ap-southeast-1",
                 endpoint_url: str | None = None, cache: Any = None,
                 cache_ttl: int | None = None) -> None:
        self._table_suffix = table_suffix
        self._cache = cache
        self._cache_ttl = cache_ttl or self.CACHE_TTL
        self._ddb = _ddb_resource(region, endpoint_url)

    def _table(self):
        return self._ddb.Table(f"{ORGANIZATIONS_TABLE}{self._table_suffix}")

    @staticmethod
    def _cache_key(code: str) -> str:
        return f"org_mapping:{code.upper()}"

    @staticmethod
    def _from_item(item: dict[str, Any]) -> OrganizationMapping:
        return OrganizationMapping(
            code=item["code"],
            canonical_id=item.get("canonicalId"),
            display_name=item.get("displayName", ""),
        )

    @staticmethod
    def to_item(mapping: OrganizationMapping) -> dict[str, Any]:
        item: dict[str, Any] = {
            "PK": f"ORG#{mapping.code}",
            "SK": "MAPPING",
            "code": mapping.code,
            "displayName": mapping.display_name,
        }
        if mapping.canonical_id is not None:
            item["canonicalId"] = mapping.canonical_id
        return item

    # ---- IOrganizationStore methods ----

    def get_mapping(self, code: str) -> OrganizationMapping | None:
        cache_key = self._cache_key(code)

        # Check cache first
        if self._cache is not None:
            cached = self._cache.get(cache_key)
            if cached is not None:
                return OrganizationMapping.model_validate(json.loads(cached))

        try:
            resp = self._table().get_item(Key={"PK": f"ORG#{code.upper()}", "SK": "MAPPING"})
        except ClientError as exc:
            raise PersistenceError(f"DynamoDB get failed for organization {code!r}: {exc}",
                                   transient=_is_transient(exc)) from exc
        item = resp.get("Item")
        if item is None:
            return None
        mapping = self._from_item(item)

        # Write to cache
        if self._cache is not None:
            self._cache.setex(cache_key, self._cache_ttl, mapping.model_dump_json())
        return mapping

    def list_mappings(self) -> list[OrganizationMapping]:
        mappings: list[OrganizationMapping] = []
        kwargs: dict[str, Any] = {}
        try:
            while True:
                resp = self._table().scan(**kwargs)
                mappings.extend(self._from_item(i) for i in resp.get("Items", []) if i.get("SK") == "MAPPING")
                if "LastEvaluatedKey" not in resp:
                    break
                kwargs["ExclusiveStartKey"] = resp["LastEvaluatedKey"]
        except ClientError as exc:
            raise PersistenceError(f"DynamoDB scan failed for organizations: {exc}",
                                   transient=_is_transient(exc)) from exc
        return sorted(mappings, key=lambda m: m.code)

    def put_mapping(self, mapping: OrganizationMapping) -> None:
        try:
            self._table().put_item(Item=self.to_item(mapping))
        except ClientError as exc:
            raise PersistenceError(f"DynamoDB put failed for organization {mapping.code!r}: {exc}",
                                   transient=_is_transient(exc)) from exc
        if self._cache is not None:
            self._cache.delete(self._cache_key(mapping.code))
