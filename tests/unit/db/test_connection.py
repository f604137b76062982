"""Tests for Database connection layer."""

from __future__ import annotations

from pathlib import Path

import pytest

from mnemo.db.connection import Database
from mnemo.errors import StorageUnavailable


def test_connect_creates_file(tmp_path):
    db_path = tmp_path / "vector_store.db"
    conn = Database(db_path).connect()
    conn.close()
    assert db_path.exists()


def test_connect_creates_parent_dirs(tmp_path):
    db_path = tmp_path / "a" / "b" / "vector_store.db"
    conn = Database(db_path).connect()
    conn.close()
    assert db_path.exists()


def test_sqlite_vec_loads(tmp_path):
    conn = Database(tmp_path / "vector_store.db").connect()
    version = conn.execute("SELECT vec_version()").fetchone()[0]
    conn.close()
    assert version.startswith("v")


def test_foreign_keys_enabled(tmp_path):
    conn = Database(tmp_path / "vector_store.db").connect()
    result = conn.execute("PRAGMA foreign_keys").fetchone()[0]
    conn.close()
    assert result == 1


def test_wal_journal_mode(tmp_path):
    conn = Database(tmp_path / "vector_store.db").connect()
    mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
    conn.close()
    assert mode == "wal"


def test_row_factory_set(tmp_path):
    conn = Database(tmp_path / "vector_store.db").connect()
    conn.execute("CREATE TABLE t (x INTEGER)")
    conn.execute("INSERT INTO t VALUES (42)")
    row = conn.execute("SELECT x FROM t").fetchone()
    conn.close()
    assert row["x"] == 42


def test_connection_usable_from_other_thread(tmp_path):
    import threading

    conn = Database(tmp_path / "vector_store.db").connect()
    results = []
    t = threading.Thread(target=lambda: results.append(conn.execute("SELECT 1").fetchone()[0]))
    t.start()
    t.join()
    conn.close()
    assert results == [1]


def test_unopenable_path_raises_storage_unavailable(tmp_path):
    # A directory where the database file should be
    db_path = tmp_path / "vector_store.db"
    db_path.mkdir()
    with pytest.raises(StorageUnavailable, match="Cannot open vector store"):
        Database(db_path).connect()


def test_context_manager_closes_connection(tmp_path):
    db = Database(tmp_path / "vector_store.db")
    with db as conn:
        conn.execute("CREATE TABLE t (x INTEGER)")
    with pytest.raises(Exception):
        conn.execute("SELECT 1")


def test_context_manager_accepts_path_str(tmp_path):
    db = Database(str(tmp_path / "vector_store.db"))
    assert isinstance(db.db_path, Path)
    with db as conn:
        result = conn.execute("SELECT 1").fetchone()[0]
    assert result == 1
