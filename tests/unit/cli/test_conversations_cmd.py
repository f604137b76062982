"""Tests for the mnemo conversations commands."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from mnemo.cli.main import app
from mnemo.config import MnemoConfig, StoreCfg, finalize
from mnemo.ledger.conversation import ASSISTANT, SYSTEM, YOU, Message
from mnemo.session import Session

runner = CliRunner()


@pytest.fixture
def saved(cli_home: Path, fake_llm) -> str:
    """UUID of one conversation saved in the default box."""
    cfg = finalize(MnemoConfig(store=StoreCfg(home=cli_home)))
    with Session(cfg, fake_llm) as session:
        conv = session.new_conversation()
        conv.add_message(Message(SYSTEM, "internal bootstrap note"))
        conv.add_message(Message(YOU, "how do I vacuum sqlite"))
        conv.add_message(Message(ASSISTANT, "run VACUUM"))
        assert session.save_async(conv).result(timeout=5) == []
    return conv.uuid


def test_list_empty_box(cli_home: Path) -> None:
    result = runner.invoke(app, ["--home", str(cli_home), "conversations", "list"])
    assert result.exit_code == 0
    assert "No conversations saved" in result.output


def test_list_shows_summary(cli_home: Path, saved: str) -> None:
    result = runner.invoke(app, ["--home", str(cli_home), "conversations", "list"])
    assert result.exit_code == 0
    assert "Conversations" in result.output
    assert "No conversations saved" not in result.output


def test_show_prints_visible_transcript(cli_home: Path, saved: str) -> None:
    result = runner.invoke(app, ["--home", str(cli_home), "conversations", "show", saved])
    assert result.exit_code == 0, result.output
    assert "A short summary." in result.output
    assert "how do I vacuum sqlite" in result.output
    assert "run VACUUM" in result.output
    assert "internal bootstrap note" not in result.output


def test_show_all_includes_system_messages(cli_home: Path, saved: str) -> None:
    result = runner.invoke(
        app, ["--home", str(cli_home), "conversations", "show", saved, "--all"]
    )
    assert result.exit_code == 0
    assert "internal bootstrap note" in result.output


def test_show_unknown_uuid_exits_1(cli_home: Path) -> None:
    result = runner.invoke(
        app, ["--home", str(cli_home), "conversations", "show", "no-such-uuid"]
    )
    assert result.exit_code == 1
    assert "No conversation with UUID" in result.output


def test_conversations_are_isolated_per_box(cli_home: Path, saved: str) -> None:
    result = runner.invoke(
        app, ["--home", str(cli_home), "--box", "other", "conversations", "show", saved]
    )
    assert result.exit_code == 1
