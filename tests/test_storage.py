"""Tests for the artifact store."""

from pathlib import Path

import pytest

from colorvision_dashboard.exceptions import StorageError
from colorvision_dashboard.storage import (
    FileArtifactStore,
    create_artifact_store,
    safe_filename,
)


class TestSafeFilename:
    def test_strips_directories(self):
        assert safe_filename("../../etc/passwd") == "passwd"

    def test_replaces_unsafe_characters(self):
        assert safe_filename("my scan (1).png") == "my_scan_1_.png"

    def test_empty_name_falls_back(self):
        assert safe_filename("") == "upload"


class TestFileArtifactStore:
    def test_put_and_delete(self, tmp_path):
        store = FileArtifactStore(tmp_path)

        url = store.put("fundus/patient-1", "eye.png", b"\x89PNG")

        assert url.startswith("file://")
        assert store.owns(url)
        path = next((tmp_path / "fundus" / "patient-1").iterdir())
        assert path.read_bytes() == b"\x89PNG"
        assert path.name.endswith("-eye.png")

        assert store.delete(url) is True
        assert not path.exists()
        assert store.delete(url) is False

    def test_same_filename_gets_distinct_urls(self, tmp_path):
        store = FileArtifactStore(tmp_path)
        assert store.put("erg/p", "a.csv", b"1") != store.put("erg/p", "a.csv", b"2")

    def test_urls_outside_root_are_rejected(self, tmp_path):
        store = FileArtifactStore(tmp_path / "root")
        outside = (tmp_path / "elsewhere.txt").as_uri()

        assert not store.owns(outside)
        with pytest.raises(StorageError):
            store.delete(outside)

    def test_non_file_urls_are_rejected(self, tmp_path):
        store = FileArtifactStore(tmp_path)
        assert not store.owns("https://blob.example.com/eye.png")
        with pytest.raises(StorageError):
            store.delete("https://blob.example.com/eye.png")


class TestCreateArtifactStore:
    def test_absolute_file_uri(self, tmp_path):
        store = create_artifact_store(tmp_path.as_uri())
        assert isinstance(store, FileArtifactStore)
        assert store.root == tmp_path.resolve()

    def test_relative_file_uri(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        store = create_artifact_store("file://./artifacts")
        assert store.root == Path(tmp_path / "artifacts").resolve()

    def test_unsupported_scheme(self):
        with pytest.raises(ValueError, match="Unsupported storage scheme"):
            create_artifact_store("s3://bucket/prefix")
