"""S3 file storage backend implementing IFileStore (run reports)."""

from __future__ import annotations

import boto3
from botocore.exceptions import ClientError

from hrrecon.core.exceptions import FileStoreError


class S3FileStore:
    """Production IFileStore backed by S3. Paths are relative to ``prefix``."""

    def __init__(self, bucket: str, prefix: str = "", region: str = "ap-southeast-1",
                 endpoint_url: str | None = None) -> None:
        self._bucket = bucket
        self._prefix = prefix.strip("/")
        self._region = region
        self._endpoint_url = endpoint_url
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._client = boto3.client("s3", **kwargs)

    def _key(self, path: str) -> str:
        path = path.lstrip("/")
        return f"{self._prefix}/{path}" if self._prefix else path

    def read(self, path: str) -> bytes:
        try:
            resp = self._client.get_object(Bucket=self._bucket, Key=self._key(path))
            return resp["Body"].read()
        except ClientError as exc:
            raise FileStoreError(f"S3 read failed for {path!r}: {exc}") from exc

    def write(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        key = self._key(path)
        try:
            self._client.put_object(
                Bucket=self._bucket, Key=key, Body=data, ContentType=content_type,
            )
            return f"s3://{self._bucket}/{key}"
        except ClientError as exc:
            raise FileStoreError(f"S3 write failed for {path!r}: {exc}") from exc

    def list_files(self, prefix: str) -> list[str]:
        try:
            keys: list[str] = []
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self._bucket, Prefix=self._key(prefix)):
                for obj in page.get("Contents", []):
                    keys.append(obj["Key"])
            return keys
        except ClientError as exc:
            raise FileStoreError(f"S3 list failed for prefix={prefix!r}: {exc}") from exc
