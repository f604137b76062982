"""Tests for mnemo index."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from mnemo.cli.main import app
from mnemo.config import MnemoConfig, StoreCfg, finalize
from mnemo.db.connection import Database
from mnemo.db.repository import EmbeddingStore
from mnemo.db.vectors import project_collection

runner = CliRunner()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "app"
    (root / ".git").mkdir(parents=True)
    (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n", encoding="utf-8")
    (root / ".gitignore").write_text("*.log\n", encoding="utf-8")
    (root / "main.go").write_text("package main", encoding="utf-8")
    (root / "debug.log").write_text("noise", encoding="utf-8")
    (root / "src").mkdir()
    (root / "src" / "lib.py").write_text("def f(): pass", encoding="utf-8")
    return root


def _indexed_ids(home: Path, root: Path) -> list[str]:
    cfg = finalize(MnemoConfig(store=StoreCfg(home=home)))
    conn = Database(cfg.db_path).connect()
    try:
        store = EmbeddingStore(conn)
        collection = store.open_or_create_collection(project_collection(str(root.resolve())))
        return sorted(doc.id for doc in collection.list_documents())
    finally:
        conn.close()


def test_index_git_checkout(cli_home: Path, project: Path) -> None:
    result = runner.invoke(app, ["--home", str(cli_home), "index", str(project)])

    assert result.exit_code == 0, result.output
    assert "Indexed 3 file(s)" in result.output
    root = project.resolve()
    assert _indexed_ids(cli_home, project) == sorted(
        [str(root / ".gitignore"), str(root / "main.go"), str(root / "src" / "lib.py")]
    )


def test_index_twice_is_idempotent(cli_home: Path, project: Path) -> None:
    runner.invoke(app, ["--home", str(cli_home), "index", str(project)])
    result = runner.invoke(app, ["--home", str(cli_home), "index", str(project)])

    assert result.exit_code == 0
    assert len(_indexed_ids(cli_home, project)) == 3


def test_index_registers_project(cli_home: Path, project: Path) -> None:
    runner.invoke(app, ["--home", str(cli_home), "index", str(project)])

    result = runner.invoke(app, ["--home", str(cli_home), "projects"])
    assert result.exit_code == 0
    assert str(project.resolve()) in result.output.replace("\n", "")


def test_index_non_git_directory_exits_1(cli_home: Path, tmp_path: Path) -> None:
    plain = tmp_path / "plain"
    plain.mkdir()

    result = runner.invoke(app, ["--home", str(cli_home), "index", str(plain)])
    assert result.exit_code == 1
    assert "Cannot index" in result.output

    projects = runner.invoke(app, ["--home", str(cli_home), "projects"])
    assert "No indexed projects" in projects.output


def test_index_missing_path_exits_2(cli_home: Path, tmp_path: Path) -> None:
    result = runner.invoke(app, ["--home", str(cli_home), "index", str(tmp_path / "nope")])
    assert result.exit_code == 2


def test_index_watch_stops_on_interrupt(cli_home: Path, project: Path) -> None:
    with patch(
        "mnemo.cli.index.ProjectIndexer.watch_forever", side_effect=KeyboardInterrupt
    ) as watch_forever:
        result = runner.invoke(app, ["--home", str(cli_home), "index", str(project), "--watch"])

    assert result.exit_code == 0, result.output
    assert "Watching for changes" in result.output
    assert "Stopped" in result.output
    watch_forever.assert_called_once()


def test_index_provider_failure_exits_1(cli_home: Path, project: Path, fake_llm) -> None:
    fake_llm.fail_embed = True

    result = runner.invoke(app, ["--home", str(cli_home), "index", str(project)])
    assert result.exit_code == 1
    assert "provider failed" in result.output
