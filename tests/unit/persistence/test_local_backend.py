"""Unit tests for LocalFileStore and the persistence factory."""

from __future__ import annotations

import pytest

from hrrecon.core.config import AppSettings, ReportConfig
from hrrecon.core.exceptions import FileStoreError
from hrrecon.core.protocols import IFileStore
from hrrecon.persistence import create_report_store
from hrrecon.persistence.local_backend import LocalFileStore
from hrrecon.persistence.s3_backend import S3FileStore


@pytest.fixture
def store(tmp_path):
    return LocalFileStore(tmp_path / "reports")


class TestLocalFileStore:
    def test_write_creates_directories(self, store, tmp_path):
        path = store.write("2024/run-1.json", b"{}")
        assert path == str((tmp_path / "reports" / "2024" / "run-1.json").resolve())
        assert store.read("2024/run-1.json") == b"{}"

    def test_list_files(self, store):
        store.write("a/1.json", b"1")
        store.write("a/2.json", b"2")
        store.write("b/3.json", b"3")
        assert store.list_files("a/") == ["a/1.json", "a/2.json"]

    def test_list_missing_root(self, tmp_path):
        assert LocalFileStore(tmp_path / "absent").list_files("") == []

    def test_read_missing(self, store):
        with pytest.raises(FileStoreError):
            store.read("nope.json")

    def test_path_escape_rejected(self, store):
        with pytest.raises(FileStoreError):
            store.write("../outside.json", b"x")

    def test_satisfies_protocol(self, store):
        assert isinstance(store, IFileStore)


class TestCreateReportStore:
    def test_local_by_default(self, tmp_path):
        settings = AppSettings(report=ReportConfig(local_dir=str(tmp_path)))
        assert isinstance(create_report_store(settings), LocalFileStore)

    def test_s3_target(self):
        settings = AppSettings(report=ReportConfig(target="s3"))
        assert isinstance(create_report_store(settings), S3FileStore)
