# File: kcd/utils/log.py
# Project: KeycapDraw (KCD)
# Version: 0.1.0
# Status: stable
# Date: 2026-10-19
# Purpose: Centralised logging for the CLI (stderr console + optional run log file).
# Notes:
#   - Library modules only use module loggers; nothing below runs on import.
#   - KCD_LOG_LEVEL (name or number) overrides the level picked from -v/-q.
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

LOG_FILE_NAME = "kcd.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_LOGGER_CONFIGURED = False


def level_for(verbosity: int = 0, env: Optional[Mapping[str, str]] = None) -> int:
    """Map -v/-q counts to a logging level. 0 -> WARNING, 1 -> INFO, 2+ -> DEBUG."""
    src = os.environ if env is None else env
    raw = (src.get("KCD_LOG_LEVEL") or "").strip()
    if raw:
        if raw.isdigit():
            return int(raw)
        named = logging.getLevelName(raw.upper())
        if isinstance(named, int):
            return named

    if verbosity <= -1:
        return logging.ERROR
    if verbosity == 0:
        return logging.WARNING
    if verbosity == 1:
        return logging.INFO
    return logging.DEBUG


def setup_logging(level: int = logging.WARNING, log_dir: str | os.PathLike | None = None) -> None:
    """Install the root handlers once per process.

    The console handler writes to stderr so stdout stays free for `verify:` lines.
    A file handler is added only when `log_dir` is given; if the directory
    cannot be written the run continues with the console alone.
    """
    global _LOGGER_CONFIGURED
    if _LOGGER_CONFIGURED:
        return

    root = logging.getLogger()
    root.setLevel(level)
    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(fmt)
    root.addHandler(console)

    if log_dir is not None:
        try:
            d = Path(log_dir)
            d.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(d / LOG_FILE_NAME, encoding="utf-8")
            # The file always gets the full INFO trail.
            fh.setLevel(min(level, logging.INFO))
            fh.setFormatter(fmt)
            root.setLevel(min(level, logging.INFO))
            root.addHandler(fh)
        except OSError as e:
            logging.getLogger(__name__).warning("Could not open log file in %s: %s", log_dir, e)

    _LOGGER_CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
