"""
Tests for the content-addressed artifact store.
"""

import hashlib
from concurrent.futures import ThreadPoolExecutor

import pytest

from prover_mock.errors import NotFound, ResourceExhaustion
from prover_mock.services.artifact_store import ArtifactStore


class TestArtifactStore:

    def test_put_returns_sha256_digest(self):
        store = ArtifactStore()
        digest = store.put(b"hello")
        assert digest == hashlib.sha256(b"hello").hexdigest()
        assert store.get(digest) == b"hello"

    def test_identical_bytes_share_a_digest(self):
        store = ArtifactStore()
        first, created_first = store.put_new(b"same bytes")
        second, created_second = store.put_new(b"same bytes")
        assert first == second
        assert created_first is True
        assert created_second is False
        assert store.usage()["artifacts"] == 1
        assert store.usage()["total_bytes"] == len(b"same bytes")

    def test_empty_blob_is_storable(self):
        store = ArtifactStore()
        digest = store.put(b"")
        assert store.get(digest) == b""
        assert store.stat(digest).size_bytes == 0

    def test_unknown_digest(self):
        store = ArtifactStore()
        with pytest.raises(NotFound):
            store.get("00" * 32)
        with pytest.raises(NotFound):
            store.stat("00" * 32)
        assert not store.contains("00" * 32)

    def test_stat_reports_size(self):
        store = ArtifactStore()
        digest = store.put(b"x" * 100)
        info = store.stat(digest)
        assert info.digest == digest
        assert info.size_bytes == 100

    def test_oversized_artifact_is_rejected(self):
        store = ArtifactStore(max_artifact_bytes=4)
        with pytest.raises(ResourceExhaustion) as excinfo:
            store.put(b"12345")
        assert excinfo.value.status_code == 413
        assert store.usage()["artifacts"] == 0

    def test_store_capacity(self):
        store = ArtifactStore(max_total_bytes=10)
        digest = store.put(b"123456")
        with pytest.raises(ResourceExhaustion) as excinfo:
            store.put(b"abcdef")
        assert excinfo.value.status_code == 507
        # Re-storing existing content never needs more room
        assert store.put(b"123456") == digest

    def test_concurrent_puts_keep_entries_intact(self):
        store = ArtifactStore()
        blobs = [f"blob-{i % 50}".encode() for i in range(500)]
        with ThreadPoolExecutor(max_workers=8) as pool:
            digests = list(pool.map(store.put, blobs))

        assert store.usage()["artifacts"] == 50
        for blob, digest in zip(blobs, digests):
            assert store.get(digest) == blob
