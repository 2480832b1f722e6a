"""Unit tests for placeholder_service.core.store."""

import sqlite3
import threading

import pytest

from placeholder_service.core.store import CacheEntry, ImageStore
from placeholder_service.errors import StorageError


def test_get_missing_returns_none(store):
    assert store.get(b"missing") is None


def test_put_then_get_round_trip(store):
    entry = CacheEntry(key=b"k1", data=b"\x89PNG...", content_type="image/png")
    store.put(entry)
    assert store.get(b"k1") == entry


def test_put_overwrites(store):
    store.put(CacheEntry(key=b"k", data=b"old", content_type="image/png"))
    store.put(CacheEntry(key=b"k", data=b"new", content_type="image/jpeg"))
    entry = store.get(b"k")
    assert entry.data == b"new"
    assert entry.content_type == "image/jpeg"
    assert store.count() == 1


def test_survives_reopen(tmp_path):
    path = tmp_path / "images.db"
    ImageStore(path).put(CacheEntry(key=b"durable", data=b"bytes", content_type="image/png"))
    assert ImageStore(path).get(b"durable").data == b"bytes"


def test_count_size_delete_clear(store):
    store.put(CacheEntry(key=b"a", data=b"123", content_type="image/png"))
    store.put(CacheEntry(key=b"b", data=b"4567", content_type="image/png"))
    assert store.count() == 2
    assert store.size_bytes() == 7
    assert store.delete(b"a") is True
    assert store.delete(b"a") is False
    assert store.clear() == 1
    assert store.count() == 0


def test_sqlite_errors_become_storage_errors(store, monkeypatch):
    def broken_connect():
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(store, "_connect", broken_connect)
    with pytest.raises(StorageError):
        store.get(b"k")
    with pytest.raises(StorageError):
        store.put(CacheEntry(key=b"k", data=b"x", content_type="image/png"))


def test_lookups_reuse_the_thread_connection(store, monkeypatch):
    opened = []
    real_connect = store._connect

    def counting_connect():
        conn = real_connect()
        opened.append(conn)
        return conn

    monkeypatch.setattr(store, "_connect", counting_connect)
    for _ in range(5):
        assert store.get(b"missing") is None
    assert len(opened) == 1


def test_each_thread_gets_its_own_reader(store):
    store.put(CacheEntry(key=b"k", data=b"shared", content_type="image/png"))
    seen = {}

    def read(name):
        seen[name] = (store.get(b"k").data, id(store._reader()))

    threads = [threading.Thread(target=read, args=(idx,)) for idx in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert {data for data, _ in seen.values()} == {b"shared"}
    assert len({conn for _, conn in seen.values()}) == 3


def test_reader_sees_writes_made_after_it_opened(store):
    assert store.get(b"late") is None
    store.put(CacheEntry(key=b"late", data=b"now", content_type="image/png"))
    assert store.get(b"late").data == b"now"


def test_close_then_lookup_reconnects(store):
    store.put(CacheEntry(key=b"k", data=b"v", content_type="image/png"))
    first = store._reader()
    store.close()
    with pytest.raises(sqlite3.ProgrammingError):
        first.execute("SELECT 1")
    assert store.get(b"k").data == b"v"
    assert store._reader() is not first


def test_release_thread_reader_closes_only_the_caller(store):
    store.get(b"k")
    mine = store._reader()
    store.release_thread_reader()
    with pytest.raises(sqlite3.ProgrammingError):
        mine.execute("SELECT 1")
    assert store._readers == []
    assert store.get(b"k") is None
    store.release_thread_reader()
    store.release_thread_reader()
