"""Tests for the Disk KV store."""

import shutil
import tempfile

import pytest

from gitsim.kv.disk import Disk


@pytest.fixture
def disk_store():
    tmpdir = tempfile.mkdtemp()
    store = Disk(tmpdir)
    yield store, tmpdir
    store.close()
    shutil.rmtree(tmpdir, ignore_errors=True)


class TestDiskBasic:
    def test_set_get(self, disk_store):
        store, _ = disk_store
        store.set("k", b"v")
        assert store.get("k") == b"v"

    def test_get_missing(self, disk_store):
        store, _ = disk_store
        assert store.get("nope") is None

    def test_contains(self, disk_store):
        store, _ = disk_store
        store.set("k", b"v")
        assert "k" in store
        assert "nope" not in store

    def test_keys(self, disk_store):
        store, _ = disk_store
        store.set_many(a=b"1", b=b"2")
        assert set(store.keys()) == {"a", "b"}

    def test_set_many(self, disk_store):
        store, _ = disk_store
        store.set_many(a=b"1", b=b"2", c=b"3")
        assert store.get("a") == b"1"
        assert store.get("c") == b"3"

    def test_type_error_on_non_bytes(self, disk_store):
        store, _ = disk_store
        with pytest.raises(TypeError, match="Expected bytes"):
            store.set("k", "not bytes")  # type: ignore

    def test_clear(self, disk_store):
        store, _ = disk_store
        store.set_many(a=b"1", b=b"2")
        store.clear()
        assert store.get("a") is None


class TestDiskPersistence:
    def test_survives_reload(self, disk_store):
        store, tmpdir = disk_store
        store.set("k", b"persistent")
        store2 = Disk(tmpdir)
        assert store2.get("k") == b"persistent"
        store2.close()


class TestDiskRemove:
    def test_remove(self, disk_store):
        store, _ = disk_store
        store.set("k", b"v")
        store.remove("k")
        assert store.get("k") is None

    def test_remove_missing(self, disk_store):
        store, _ = disk_store
        store.remove("nope")
