"""Unit tests for RedisCacheBackend using fakeredis."""

from __future__ import annotations

from unittest.mock import patch

import fakeredis
import pytest
import redis

from hrrecon.core.exceptions import CacheError
from hrrecon.models.organization import OrganizationMapping
from hrrecon.persistence.redis_backend import RedisCacheBackend


@pytest.fixture
def fake_server():
    return fakeredis.FakeServer()


@pytest.fixture
def fake_client(fake_server):
    return fakeredis.FakeRedis(server=fake_server, decode_responses=True)


@pytest.fixture
def backend(fake_client):
    with patch("redis.Redis", return_value=fake_client):
        return RedisCacheBackend(host="localhost", port=6379, db=0)


class TestGet:
    def test_returns_none_on_miss(self, backend):
        assert backend.get("nonexistent") is None

    def test_returns_stored_mapping(self, backend):
        payload = OrganizationMapping(code="LTCM", canonical_id="org-ltcm").model_dump_json()
        backend.setex("org_mapping:LTCM", 300, payload)
        assert OrganizationMapping.model_validate_json(backend.get("org_mapping:LTCM")).canonical_id == "org-ltcm"


class TestSetex:
    def test_stores_value_with_ttl(self, backend, fake_client):
        backend.setex("mykey", 60, "value")
        assert fake_client.ttl("hrrecon:mykey") > 0

    def test_overwrites_existing_value(self, backend):
        backend.setex("k", 60, "old")
        backend.setex("k", 60, "new")
        assert backend.get("k") == "new"


class TestNamespace:
    def test_keys_prefixed(self, backend, fake_client):
        backend.setex("k", 60, "v")
        assert fake_client.get("hrrecon:k") == "v"
        assert fake_client.get("k") is None


class TestDelete:
    def test_removes_existing_key(self, backend):
        backend.setex("del_me", 60, "val")
        backend.delete("del_me")
        assert backend.get("del_me") is None

    def test_noop_on_missing_key(self, backend):
        backend.delete("never_existed")  # should not raise


class TestErrorWrapping:
    def test_connection_error_wrapped(self, backend, fake_client):
        with patch.object(fake_client, "get", side_effect=redis.ConnectionError("down")):
            with pytest.raises(CacheError):
                backend.get("k")
