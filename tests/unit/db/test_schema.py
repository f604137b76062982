"""Tests for schema initialization."""

from __future__ import annotations

from mnemo.db.schema import CURRENT_VERSION, initialize


def test_initialize_is_idempotent(tmp_db):
    initialize(tmp_db)
    version = tmp_db.execute("SELECT MAX(version) FROM schema_version").fetchone()[0]
    assert version == CURRENT_VERSION


def test_current_version_is_positive():
    assert CURRENT_VERSION >= 1
