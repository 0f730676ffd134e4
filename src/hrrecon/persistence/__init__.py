"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from typing import NamedTuple, Optional

from hrrecon.core.config import AppSettings
from hrrecon.core.protocols import ICacheBackend, IEmployeeStore, IFileStore, IOrganizationStore
from hrrecon.persistence.dynamodb_backend import DynamoDBEmployeeStore, DynamoDBOrganizationStore
from hrrecon.persistence.local_backend import LocalFileStore
from hrrecon.persistence.redis_backend import RedisCacheBackend
from hrrecon.persistence.s3_backend import S3FileStore


class Persistence(NamedTuple):
    employee_store: IEmployeeStore
    organization_store: IOrganizationStore
    cache: Optional[ICacheBackend]
    file_store: IFileStore


def create_report_store(settings: AppSettings) -> IFileStore:
    if settings.report.target == "s3":
        return S3FileStore(
            bucket=settings.s3.bucket,
            prefix=settings.s3.prefix,
            region=settings.s3.region,
            endpoint_url=settings.s3.endpoint_url,
        )
    return LocalFileStore(settings.report.local_dir)


def create_persistence(settings: AppSettings | None = None) -> Persistence:
    """Create wired-up persistence backends from application settings."""
    if settings is None:
        settings = AppSettings()

    cache: Optional[ICacheBackend] = None
    if settings.redis.enabled:
        cache = RedisCacheBackend(
            host=settings.redis.host,
            port=settings.redis.port,
            db=settings.redis.db,
        )

    employee_store = DynamoDBEmployeeStore(
        table_suffix=settings.dynamodb.table_suffix,
        region=settings.dynamodb.region,
        endpoint_url=settings.dynamodb.endpoint_url,
    )

    organization_store = DynamoDBOrganizationStore(
        table_suffix=settings.dynamodb.table_suffix,
        region=settings.dynamodb.region,
        endpoint_url=settings.dynamodb.endpoint_url,
        cache=cache,
        cache_ttl=settings.redis.mapping_ttl,
    )

    return Persistence(employee_store, organization_store, cache, create_report_store(settings))
