"""Tests for mnemo rich error messages."""

from __future__ import annotations

import pytest

from mnemo.cli.errors import (
    err_config,
    err_conversation_not_found,
    err_corrupt,
    err_fact_not_found,
    err_no_api_key,
    err_no_project,
    err_not_indexable,
    err_provider,
    err_storage,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _has_what_and_action(msg: str) -> bool:
    """Every error must contain a cause AND an actionable instruction."""
    lower = msg.lower()
    return any(
        kw in lower
        for kw in ["run:", "set:", "check", "pass --", "export ", "mnemo ", "retry", ".bak"]
    )


# ---------------------------------------------------------------------------
# err_no_api_key
# ---------------------------------------------------------------------------


def test_err_no_api_key_contains_provider() -> None:
    msg = err_no_api_key("openai")
    assert "openai" in msg.lower()


def test_err_no_api_key_unknown_provider_fallback() -> None:
    msg = err_no_api_key("myprovider")
    assert "MYPROVIDER_API_KEY" in msg


@pytest.mark.parametrize(
    "provider,expected_env",
    [
        ("openai", "OPENAI_API_KEY"),
        ("anthropic", "ANTHROPIC_API_KEY"),
        ("voyage", "VOYAGE_API_KEY"),
        ("Gemini", "GEMINI_API_KEY"),
    ],
)
def test_err_no_api_key_known_providers(provider: str, expected_env: str) -> None:
    msg = err_no_api_key(provider)
    assert expected_env in msg


# ---------------------------------------------------------------------------
# Not-found errors
# ---------------------------------------------------------------------------


def test_err_fact_not_found_names_id_and_list_command() -> None:
    msg = err_fact_not_found("abc-123")
    assert "abc-123" in msg
    assert "mnemo facts list" in msg


def test_err_conversation_not_found_names_uuid() -> None:
    msg = err_conversation_not_found("0f0f")
    assert "0f0f" in msg
    assert "mnemo conversations list" in msg


def test_err_not_indexable_mentions_git_checkout() -> None:
    msg = err_not_indexable("/src/app", "no .git directory")
    assert "/src/app" in msg
    assert "no .git directory" in msg
    assert "git checkout" in msg


def test_err_no_project_suggests_index() -> None:
    msg = err_no_project()
    assert "--project" in msg
    assert "mnemo index" in msg


# ---------------------------------------------------------------------------
# Every message is actionable
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "msg",
    [
        err_no_api_key("openai"),
        err_config("bad box"),
        err_storage("disk full"),
        err_provider("timeout"),
        err_corrupt("bad json"),
        err_fact_not_found("x"),
        err_conversation_not_found("y"),
        err_not_indexable("/p", "why"),
        err_no_project(),
    ],
)
def test_every_error_has_action(msg: str) -> None:
    assert _has_what_and_action(msg)


@pytest.mark.parametrize(
    "msg",
    [
        err_config("bad box"),
        err_storage("disk full"),
        err_provider("timeout"),
        err_corrupt("bad json"),
    ],
)
def test_errors_start_with_red_marker(msg: str) -> None:
    assert msg.startswith("[red]Error:[/]")
