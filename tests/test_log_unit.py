#!/usr/bin/env python3
"""Unit tests for utils/log.py (level selection + handler setup)."""

from __future__ import annotations

import logging

import pytest


@pytest.mark.parametrize(
    "verbosity,expected",
    [(-1, logging.ERROR), (0, logging.WARNING), (1, logging.INFO), (3, logging.DEBUG)],
)
def test_level_from_verbosity(verbosity, expected) -> None:
    from kcd.utils.log import level_for

    assert level_for(verbosity, env={}) == expected


def test_env_overrides_verbosity() -> None:
    from kcd.utils.log import level_for

    assert level_for(0, env={"KCD_LOG_LEVEL": "debug"}) == logging.DEBUG
    assert level_for(2, env={"KCD_LOG_LEVEL": "40"}) == 40
    # Unknown names fall back to the flag-derived level.
    assert level_for(1, env={"KCD_LOG_LEVEL": "chatty"}) == logging.INFO


def test_setup_logging_writes_file_once(tmp_path, monkeypatch) -> None:
    from kcd.utils import log as kcd_log

    root = logging.getLogger()
    monkeypatch.setattr(kcd_log, "_LOGGER_CONFIGURED", False)
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)

    kcd_log.setup_logging(logging.WARNING, tmp_path / "logs")
    kcd_log.setup_logging(logging.WARNING, tmp_path / "logs")
    assert len(root.handlers) == 2

    kcd_log.get_logger("kcd.test").info("hello file")
    for h in root.handlers:
        h.flush()
    assert "hello file" in (tmp_path / "logs" / "kcd.log").read_text(encoding="utf-8")
    for h in list(root.handlers):
        h.close()
