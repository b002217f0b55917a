# File: kcd/core/settings.py
# Project: KeycapDraw (KCD)
# Version: 0.1.0
# Status: stable
# Date: 2026-10-19
# Purpose: Render/export defaults: repo-local JSON (kcd_settings.json) + env overrides.
# Notes:
#   - File is found by walking up from the CWD (or an explicit start dir).
#   - Env vars win over the file when set. Bad values are clamped or ignored.
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from kcd.core.version import DEFAULT_OUTLINE_WIDTH_MM, DEFAULT_PPI

log = logging.getLogger(__name__)

PROJECT_SETTINGS_FILENAME = "kcd_settings.json"

MAX_WORKERS = 64


def find_project_settings_path(start: Path | None = None) -> Path | None:
    """Look for kcd_settings.json in `start` (or the CWD) and its parents."""
    start = (start or Path.cwd()).resolve()
    for p in (start, *start.parents):
        candidate = p / PROJECT_SETTINGS_FILENAME
        if candidate.is_file():
            return candidate
    return None


def load_project_settings(start: Path | None = None, *, logger: logging.Logger | None = None) -> Dict[str, Any]:
    """Raw JSON settings. {} if there is no file or it is invalid."""
    _log = logger or log
    p = find_project_settings_path(start)
    if not p:
        return {}
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        _log.warning("Could not read %s: %s", p, e)
        return {}
    if not isinstance(data, dict):
        _log.warning("Ignoring %s: root is not a JSON object", p)
        return {}
    return data


def _deep_get(d: Dict[str, Any], path: str, default: Any = None) -> Any:
    cur: Any = d
    for part in path.split("."):
        if not isinstance(cur, dict) or part not in cur:
            return default
        cur = cur[part]
    return cur


@dataclass(frozen=True)
class RenderSettings:
    """Defaults for DrawOptions and the encoders."""

    outline_width_mm: float = DEFAULT_OUTLINE_WIDTH_MM
    show_keys: bool = True
    show_margin: bool = False
    workers: int = 1
    scale: float = 1.0
    ppi: float = DEFAULT_PPI
    profile_path: Optional[str] = None
    font_path: Optional[str] = None

    @property
    def px_per_mm(self) -> float:
        return self.ppi / 25.4

    @classmethod
    def load(
        cls,
        start: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
        logger: logging.Logger | None = None,
    ) -> "RenderSettings":
        data = load_project_settings(start, logger=logger)
        env = os.environ if env is None else env
        d = cls()

        def pick(key: str, env_name: str) -> Any:
            v = env.get(env_name)
            if v is not None and str(v).strip() != "":
                return v
            return _deep_get(data, key)

        out = cls(
            outline_width_mm=_coerce_float(
                pick("render.outline_width_mm", "KCD_OUTLINE_WIDTH_MM"), 0.0, 10.0, d.outline_width_mm
            ),
            show_keys=_coerce_bool(pick("render.show_keys", "KCD_SHOW_KEYS"), d.show_keys),
            show_margin=_coerce_bool(pick("render.show_margin", "KCD_SHOW_MARGIN"), d.show_margin),
            workers=_coerce_int(pick("render.workers", "KCD_WORKERS"), 1, MAX_WORKERS, d.workers),
            scale=_coerce_float(pick("export.scale", "KCD_SCALE"), 0.01, 100.0, d.scale),
            ppi=_coerce_float(pick("export.ppi", "KCD_PPI"), 1.0, 4800.0, d.ppi),
            profile_path=_coerce_path(pick("paths.profile", "KCD_PROFILE")),
            font_path=_coerce_path(pick("paths.font", "KCD_FONT")),
        )
        if out != d:
            (logger or log).debug("Render settings: %s", out)
        return out


def _coerce_int(v: Any, min_v: int, max_v: int, default: int) -> int:
    if v is None or isinstance(v, bool):
        return int(default)
    try:
        n = int(float(v))
    except (TypeError, ValueError):
        return int(default)
    return max(min_v, min(max_v, n))


def _coerce_float(v: Any, min_v: float, max_v: float, default: float) -> float:
    if v is None or isinstance(v, bool):
        return float(default)
    try:
        n = float(v)
    except (TypeError, ValueError):
        return float(default)
    if n != n:  # NaN
        return float(default)
    return max(min_v, min(max_v, n))


def _coerce_bool(v: Any, default: bool) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    s = str(v or "").strip().lower()
    if s in ("1", "true", "yes", "on"):
        return True
    if s in ("0", "false", "no", "off"):
        return False
    return default


def _coerce_path(v: Any) -> Optional[str]:
    s = str(v or "").strip()
    return s or None
