"""Tests for mnemo.logging_config."""

from __future__ import annotations

import logging
import sys

import pytest

from mnemo.logging_config import configure_ops_log, configure_quiet_mode, enable_debug_mode


@pytest.fixture
def mnemo_logger():
    logger = logging.getLogger("mnemo")
    handlers = list(logger.handlers)
    level = logger.level
    yield logger
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)


def test_configure_quiet_mode_raises_third_party_levels():
    configure_quiet_mode()
    for name in ("litellm", "LiteLLM", "httpx", "watchdog"):
        assert logging.getLogger(name).level == logging.WARNING


def test_enable_debug_mode_adds_single_stderr_handler(mnemo_logger):
    enable_debug_mode()
    enable_debug_mode()

    stderr_handlers = [
        h for h in mnemo_logger.handlers
        if isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stderr
    ]
    assert len(stderr_handlers) == 1
    assert mnemo_logger.level == logging.DEBUG


def test_configure_ops_log_writes_to_home(tmp_path, mnemo_logger):
    handler = configure_ops_log(tmp_path)
    logging.getLogger("mnemo.test").info("indexed %d file(s)", 3)
    handler.flush()

    text = (tmp_path / "mnemo.log").read_text(encoding="utf-8")
    assert "INFO mnemo.test: indexed 3 file(s)" in text


def test_configure_ops_log_skips_debug_records(tmp_path, mnemo_logger):
    handler = configure_ops_log(tmp_path)
    logging.getLogger("mnemo.test").debug("noisy detail")
    handler.flush()

    assert "noisy detail" not in (tmp_path / "mnemo.log").read_text(encoding="utf-8")


def test_configure_ops_log_keeps_more_verbose_level(tmp_path, mnemo_logger):
    mnemo_logger.setLevel(logging.DEBUG)
    configure_ops_log(tmp_path)
    assert mnemo_logger.level == logging.DEBUG
