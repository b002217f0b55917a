# File: kcd/core/profile_io.py
# Project: KeycapDraw (KCD)
# Version: 0.1.0
# Status: stable
# Date: 2026-10-19
# Purpose: Load keycap profiles from TOML / JSON (kebab-case keys, mm units).
# Notes:
#   - [bottom] and [top] are mandatory; everything else has defaults.
#   - [legend.<n>] boxes are given for a 1u key and stored as side offsets.
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Tuple

import toml

from kcd.core.models import coerce_homing_kind
from kcd.core.profile import (
    BottomSurface,
    HomingProps,
    LegendClass,
    Profile,
    SculptType,
    TopAnchor,
    TopSurface,
    default_legend_table,
)
from kcd.utils.errors import KcdIOError, KcdSchemaError, KcdValidationError

log = logging.getLogger(__name__)


def load_profile(path: str | Path) -> Profile:
    """Read a .toml or .json profile file."""
    p = Path(path)
    try:
        raw = p.read_text(encoding="utf-8")
    except OSError as e:
        raise KcdIOError(f"Could not read profile: {p}") from e

    if p.suffix.lower() == ".json":
        data = profile_data_from_json(raw)
    else:
        data = profile_data_from_toml(raw)
    prof = profile_from_dict(data, name=p.stem)
    log.info("Profile loaded: %s (%d legend classes)", p, len(prof.legends))
    return prof


def profile_data_from_toml(text: str) -> Dict[str, Any]:
    try:
        return toml.loads(text)
    except toml.TomlDecodeError as e:
        raise KcdSchemaError(f"Invalid profile TOML: {e}") from e


def profile_data_from_json(text: str) -> Dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise KcdSchemaError(f"Invalid profile JSON: {e}") from e
    if not isinstance(data, dict):
        raise KcdSchemaError("Invalid profile: root is not an object")
    return data


def profile_from_dict(d: Dict[str, Any], *, name: str = "") -> Profile:
    if not isinstance(d, dict):
        raise KcdSchemaError("Invalid profile: root is not an object")

    sculpt = _sculpt_type(d.get("type", SculptType.CYLINDRICAL.value))
    depth = 0.0 if sculpt == SculptType.FLAT else _num(d, "depth", "profile", default=1.0)

    bottom_d = _section(d, "bottom", required=True)
    bottom = BottomSurface(
        width=_num(bottom_d, "width", "bottom"),
        height=_num(bottom_d, "height", "bottom"),
        radius=_num(bottom_d, "radius", "bottom"),
    )

    top_d = _section(d, "top", required=True)
    top = TopSurface(
        width=_num(top_d, "width", "top"),
        height=_num(top_d, "height", "top"),
        radius=_num(top_d, "radius", "top"),
        y_offset=_num(top_d, "y-offset", "top", default=0.0),
    )

    legends = _legend_table(_section(d, "legend"), top)
    homing = _homing(_section(d, "homing"))
    anchor = _top_anchor(d.get("top-anchor", d.get("top_anchor", TopAnchor.LARGER.value)))

    try:
        return Profile(
            bottom=bottom,
            top=top,
            sculpt=sculpt,
            sculpt_depth=depth,
            legends=legends,
            homing=homing,
            top_anchor=anchor,
            name=str(d.get("name") or name or "profile"),
        )
    except KcdValidationError as e:
        if isinstance(e, KcdSchemaError):
            raise
        raise KcdSchemaError(str(e)) from e


# ------------------------------
# Sections
# ------------------------------

def _legend_table(sec: Dict[str, Any], top: TopSurface) -> Tuple[Tuple[int, LegendClass], ...]:
    if not sec:
        return default_legend_table()
    out: List[Tuple[int, LegendClass]] = []
    for k, v in sec.items():
        try:
            idx = int(str(k).strip())
        except ValueError as e:
            raise KcdSchemaError(f"legend size class must be an integer: {k!r}") from e
        if idx < 0:
            raise KcdSchemaError(f"legend size class must be >= 0: {idx}")
        if not isinstance(v, dict):
            raise KcdSchemaError(f"legend.{idx}: expected a table")
        where = f"legend.{idx}"
        out.append(
            (
                idx,
                LegendClass.from_box(
                    text_height=_num(v, "size", where),
                    width=_num(v, "width", where),
                    height=_num(v, "height", where),
                    y_offset=_num(v, "y-offset", where, default=0.0),
                    top=top,
                ),
            )
        )
    out.sort(key=lambda t: t[0])
    return tuple(out)


def _homing(sec: Dict[str, Any]) -> HomingProps:
    base = HomingProps()
    if not sec:
        return base

    default = base.default
    if "default" in sec:
        kind = coerce_homing_kind(sec.get("default"))
        if kind is None:
            raise KcdSchemaError(f"homing.default: unknown kind {sec.get('default')!r}")
        default = kind

    scoop = _section(sec, "scoop", where="homing")
    bar = _section(sec, "bar", where="homing")
    bump = _section(sec, "bump", where="homing")

    return HomingProps(
        default=default,
        scoop_depth=_num(scoop, "depth", "homing.scoop", default=base.scoop_depth),
        bar_width=_num(bar, "width", "homing.bar", default=base.bar_width),
        bar_height=_num(bar, "height", "homing.bar", default=base.bar_height),
        bar_y_offset=_num(bar, "y-offset", "homing.bar", default=base.bar_y_offset),
        bump_diameter=_num(bump, "diameter", "homing.bump", default=base.bump_diameter),
        bump_y_offset=_num(bump, "y-offset", "homing.bump", default=base.bump_y_offset),
    )


# ------------------------------
# Coercion helpers
# ------------------------------
_MISSING = object()


def _section(d: Dict[str, Any], key: str, *, required: bool = False, where: str = "") -> Dict[str, Any]:
    label = f"{where}.{key}" if where else key
    v = d.get(key)
    if v is None:
        if required:
            raise KcdSchemaError(f"Profile is missing the mandatory [{label}] table")
        return {}
    if not isinstance(v, dict):
        raise KcdSchemaError(f"[{label}] must be a table")
    return v


def _num(d: Dict[str, Any], key: str, where: str, default: Any = _MISSING) -> float:
    v = d.get(key, d.get(key.replace("-", "_"), _MISSING))
    if v is _MISSING:
        if default is _MISSING:
            raise KcdSchemaError(f"{where}: missing mandatory field {key!r}")
        return float(default)
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise KcdSchemaError(f"{where}.{key}: expected a number, got {v!r}")
    return float(v)


def _sculpt_type(v: Any) -> SculptType:
    s = str(v or "").strip().lower()
    for t in SculptType:
        if t.value == s:
            return t
    raise KcdSchemaError(f"Unknown profile type: {v!r}")


def _top_anchor(v: Any) -> TopAnchor:
    s = str(v or "").strip().lower()
    for a in TopAnchor:
        if a.value == s:
            return a
    raise KcdSchemaError(f"Unknown top-anchor: {v!r}")
