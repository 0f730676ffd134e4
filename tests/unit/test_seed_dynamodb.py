"""Tests for DynamoDB seed script."""

from __future__ import annotations

import sys
from pathlib import Path

import boto3
import pytest
from moto import mock_aws

# Make scripts/ importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent / "scripts"))

from seed_dynamodb import create_tables, seed_organizations  # noqa: E402

REGION = "ap-southeast-1"


@pytest.fixture
def ddb():
    with mock_aws():
        yield boto3.resource("dynamodb", region_name=REGION)


class TestCreateTables:
    def test_creates_both_tables(self, ddb):
        create_tables(ddb, suffix="-test")
        client = boto3.client("dynamodb", region_name=REGION)
        tables = client.list_tables()["TableNames"]
        assert sorted(tables) == ["hrrecon-employees-test", "hrrecon-organizations-test"]

    def test_idempotent_skips_existing(self, ddb):
        create_tables(ddb, suffix="-test")
        create_tables(ddb, suffix="-test")  # should not raise
        client = boto3.client("dynamodb", region_name=REGION)
        assert len(client.list_tables()["TableNames"]) == 2


class TestSeedOrganizations:
    def test_seeds_all_shipped_mappings(self, ddb):
        create_tables(ddb, suffix="-test")
        count = seed_organizations(ddb, suffix="-test")
        assert count == 14
        items = ddb.Table("hrrecon-organizations-test").scan()["Items"]
        assert len(items) == 14

    def test_unprovisioned_codes_kept(self, ddb):
        create_tables(ddb, suffix="-test")
        seed_organizations(ddb, suffix="-test")
        item = ddb.Table("hrrecon-organizations-test").get_item(Key={"PK": "ORG#HSB", "SK": "MAPPING"}).get("Item")
        assert item is not None
        assert item.get("canonicalId") is None
