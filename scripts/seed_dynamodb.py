"""Create hrrecon DynamoDB tables and seed organization mappings.

Usage:
    python scripts/seed_dynamodb.py --endpoint-url http://localhost:4566
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any

import boto3

from hrrecon.persistence.dynamodb_backend import (
    EMPLOYEES_TABLE,
    ORGANIZATIONS_TABLE,
    DynamoDBOrganizationStore,
)
from hrrecon.transform.org_resolver import load_organization_mappings

TABLE_DEFINITIONS: list[dict[str, Any]] = [
    {"name": EMPLOYEES_TABLE},
    {"name": ORGANIZATIONS_TABLE},
]

DEFAULT_MAPPINGS = Path(__file__).resolve().parent.parent / "config" / "organizations.json"


def create_tables(ddb: Any, suffix: str = "") -> None:
    """Create the employee and organization tables. Skips tables that exist."""
    client = ddb.meta.client
    existing = client.list_tables().get("TableNames", [])

    for defn in TABLE_DEFINITIONS:
        table_name = f"{defn['name']}{suffix}"
        if table_name in existing:
            print(f"  Table {table_name} already exists, skipping")
            continue
        client.create_table(
            TableName=table_name,
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        print(f"  Created table {table_name}")


def seed_organizations(ddb: Any, suffix: str = "", mapping_path: Path = DEFAULT_MAPPINGS) -> int:
    """Load the organization mapping table into DynamoDB. Returns the item count."""
    mappings = load_organization_mappings(mapping_path)
    tbl = ddb.Table(f"{ORGANIZATIONS_TABLE}{suffix}")
    with tbl.batch_writer() as batch:
        for mapping in mappings:
            batch.put_item(Item=DynamoDBOrganizationStore.to_item(mapping))
    unresolved = sum(1 for m in mappings if not m.is_resolved)
    print(f"  Seeded {len(mappings)} organization mappings ({unresolved} without canonical id)")
    return len(mappings)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed DynamoDB tables for hrrecon")
    parser.add_argument("--endpoint-url", default=None, help="DynamoDB endpoint (e.g. http://localhost:4566)")
    parser.add_argument("--table-suffix", default="", help="Table name suffix (e.g. -dev)")
    parser.add_argument("--region", default="ap-southeast-1", help="AWS region")
    parser.add_argument("--mappings", default=str(DEFAULT_MAPPINGS), help="Organization mapping JSON")
    args = parser.parse_args()

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url

    ddb = boto3.resource("dynamodb", **kwargs)

    print("Creating tables...")
    create_tables(ddb, suffix=args.table_suffix)

    print("Seeding organizations...")
    seed_organizations(ddb, suffix=args.table_suffix, mapping_path=Path(args.mappings))

    print("Done!")


if __name__ == "__main__":
    main()
