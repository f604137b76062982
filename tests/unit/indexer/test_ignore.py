"""Tests for gitignore rule loading and matching."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from mnemo.errors import IndexPrecondition
from mnemo.indexer.ignore import IgnoreRules


def _rules(tmp_path, text=None):
    if text is not None:
        (tmp_path / ".gitignore").write_text(text, encoding="utf-8")
    return IgnoreRules.load(tmp_path)


def test_missing_gitignore_means_no_rules(tmp_path):
    rules = _rules(tmp_path)
    assert not rules.is_ignored(tmp_path / "main.go")


def test_git_dir_always_ignored(tmp_path):
    rules = _rules(tmp_path, "!.git\n")
    assert rules.is_ignored(tmp_path / ".git", is_dir=True)
    assert rules.is_ignored(tmp_path / ".git" / "HEAD")
    assert rules.is_ignored(tmp_path / "sub" / ".git" / "config")


def test_path_outside_root_ignored(tmp_path):
    project = tmp_path / "proj"
    project.mkdir()
    rules = IgnoreRules.load(project)
    assert rules.is_ignored(tmp_path / "elsewhere.txt")


def test_root_itself_not_ignored(tmp_path):
    assert not _rules(tmp_path, "*\n").is_ignored(tmp_path, is_dir=True)


def test_glob_patterns(tmp_path):
    rules = _rules(tmp_path, "*.log\nbuild/\n/secret.txt\n")
    assert rules.is_ignored(tmp_path / "debug.log")
    assert rules.is_ignored(tmp_path / "deep" / "trace.log")
    assert rules.is_ignored(tmp_path / "secret.txt")
    assert not rules.is_ignored(tmp_path / "sub" / "secret.txt")
    assert not rules.is_ignored(tmp_path / "notes.txt")


def test_directory_patterns_need_trailing_slash(tmp_path):
    rules = _rules(tmp_path, "build/\n")
    assert rules.is_ignored(tmp_path / "build", is_dir=True)
    assert not rules.is_ignored(tmp_path / "build", is_dir=False)
    assert rules.is_ignored(tmp_path / "build" / "out.txt")


def test_negation(tmp_path):
    rules = _rules(tmp_path, "*.txt\n!keep.txt\n")
    assert rules.is_ignored(tmp_path / "drop.txt")
    assert not rules.is_ignored(tmp_path / "keep.txt")


def test_comments_and_blank_lines(tmp_path):
    rules = _rules(tmp_path, "# comment\n\n*.tmp\n")
    assert rules.is_ignored(tmp_path / "a.tmp")
    assert not rules.is_ignored(tmp_path / "# comment")


def test_unreadable_gitignore_is_precondition_failure(tmp_path):
    (tmp_path / ".gitignore").mkdir()
    with pytest.raises(IndexPrecondition, match="Cannot read"):
        IgnoreRules.load(tmp_path)


def test_non_utf8_gitignore_is_precondition_failure(tmp_path):
    (tmp_path / ".gitignore").write_bytes(b"\xff\xfe*.log\n")
    with pytest.raises(IndexPrecondition):
        IgnoreRules.load(tmp_path)


def test_invalid_pattern_is_precondition_failure(tmp_path):
    (tmp_path / ".gitignore").write_text("*.log\n", encoding="utf-8")
    with patch(
        "mnemo.indexer.ignore.GitIgnoreSpec.from_lines",
        side_effect=ValueError("Invalid git pattern: '!'"),
    ):
        with pytest.raises(IndexPrecondition, match="Invalid pattern"):
            IgnoreRules.load(tmp_path)
