# File: kcd/core/kle.py
# Project: KeycapDraw (KCD)
# Version: 0.1.0
# Status: stable
# Date: 2026-10-19
# Purpose: Layout files -> list[Key]: keyboard-layout-editor (KLE) raw JSON or native JSON.
# Notes:
#   - Rows carry a running "current key" state; property dicts mutate it and
#     every label string emits a key, then x advances by the key width.
#   - KLE has 12 label slots; the 3 front-face ones (9..11) are not drawn.
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

from kcd.core.color import DEFAULT_KEY_COLOR, DEFAULT_LEGEND_COLOR, Color
from kcd.core.models import LEGEND_SLOTS, HomingKind, Key, Legend, layout_from_dict
from kcd.utils.errors import KcdIOError, KcdSchemaError, KcdValidationError

log = logging.getLogger(__name__)

KLE_MAX_LABELS = 12
DEFAULT_TEXT_SIZE = 3
DEFAULT_ALIGN = 4

# Serialized label position -> normalized position, per alignment flag.
# fmt: off
LABEL_MAP: List[List[int]] = [
    # 0  1  2  3  4  5  6  7  8  9 10 11   # align flags
    [ 0, 6, 2, 8, 9,11, 3, 5, 1, 4, 7,10], # 0 = no centering
    [ 1, 7,-1,-1, 9,11, 4,-1,-1,-1,-1,10], # 1 = center x
    [ 3,-1, 5,-1, 9,11,-1,-1, 4,-1,-1,10], # 2 = center y
    [ 4,-1,-1,-1, 9,11,-1,-1,-1,-1,-1,10], # 3 = center x & y
    [ 0, 6, 2, 8,10,-1, 3, 5, 1, 4, 7,-1], # 4 = center front (default)
    [ 1, 7,-1,-1,10,-1, 4,-1,-1,-1,-1,-1], # 5 = center front & x
    [ 3,-1, 5,-1,10,-1,-1,-1, 4,-1,-1,-1], # 6 = center front & y
    [ 4,-1,-1,-1,10,-1,-1,-1,-1,-1,-1,-1], # 7 = center front & x & y
]
# fmt: on


def reorder_items(items: List[Any], align: int) -> List[Any]:
    """Map serialized label order to normalized order for alignment `align`."""
    ret: List[Any] = [None] * KLE_MAX_LABELS
    for i, item in enumerate(items[:KLE_MAX_LABELS]):
        if item is None or item == "":
            continue
        index = LABEL_MAP[align][i]
        if index >= 0:
            ret[index] = item
    return ret


@dataclass
class _State:
    x: float = 0.0
    y: float = 0.0
    width: float = 1.0
    height: float = 1.0
    x2: float = 0.0
    y2: float = 0.0
    width2: float = 0.0
    height2: float = 0.0
    rotation: float = 0.0
    rotation_x: float = 0.0
    rotation_y: float = 0.0
    color: str = "#cccccc"
    text_color: List[Optional[str]] = field(default_factory=list)
    default_text_color: str = "#000000"
    text_size: List[Optional[int]] = field(default_factory=list)
    default_text_size: int = DEFAULT_TEXT_SIZE
    profile: str = ""
    nub: bool = False
    stepped: bool = False
    decal: bool = False
    ghost: bool = False
    cluster_x: float = 0.0
    cluster_y: float = 0.0

    def reset_after_key(self) -> None:
        self.x = round(self.x + self.width, 6)
        self.width = self.height = 1.0
        self.x2 = self.y2 = 0.0
        self.width2 = self.height2 = 0.0
        self.nub = self.stepped = self.decal = False


def load_layout(path: str | Path) -> List[Key]:
    """Read a layout file: KLE raw data (a list) or the native {"keys": [...]} object."""
    p = Path(path)
    try:
        raw = p.read_text(encoding="utf-8")
    except OSError as e:
        raise KcdIOError(f"Could not read layout: {p}") from e
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise KcdSchemaError(f"Invalid layout JSON {p}: {e}") from e
    if isinstance(data, dict) and "keys" in data:
        keys = layout_from_dict(data)
    else:
        keys = parse_kle(data)
    log.info("Layout loaded: %s (%d keys)", p, len(keys))
    return keys


def parse_kle(rows: Any) -> List[Key]:
    """Parse KLE raw data (optional metadata dict first, then rows)."""
    if not isinstance(rows, list):
        raise KcdSchemaError("KLE layout: expected a list of rows")

    cur = _State()
    align = DEFAULT_ALIGN
    keys: List[Key] = []

    for r, row in enumerate(rows):
        if isinstance(row, dict):
            if r != 0:
                raise KcdSchemaError("KLE layout: metadata is only allowed as the first item")
            continue
        if not isinstance(row, list):
            raise KcdSchemaError(f"KLE layout: row {r} is not a list")

        for k, item in enumerate(row):
            if isinstance(item, str):
                if not cur.ghost:
                    keys.append(_make_key(cur, item, align, r, k))
                cur.reset_after_key()
            elif isinstance(item, dict):
                if k != 0 and any(p in item for p in ("r", "rx", "ry")):
                    raise KcdSchemaError(
                        f"KLE layout: rotation can only be set on the first key of a row (row {r})"
                    )
                align = _apply_props(cur, item, align, r)
            else:
                raise KcdSchemaError(f"KLE layout: unexpected item in row {r}: {item!r}")

        cur.y = round(cur.y + 1.0, 6)
        cur.x = cur.rotation_x

    return keys


def _apply_props(cur: _State, item: dict, align: int, r: int) -> int:
    def num(name: str) -> float:
        v = item[name]
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise KcdSchemaError(f"KLE layout: property {name!r} must be a number (row {r})")
        return float(v)

    if "r" in item:
        cur.rotation = num("r")
    # A new rotation origin restarts the cluster before any x/y offset.
    if "rx" in item:
        cur.rotation_x = cur.cluster_x = num("rx")
        cur.x, cur.y = cur.cluster_x, cur.cluster_y
    if "ry" in item:
        cur.rotation_y = cur.cluster_y = num("ry")
        cur.x, cur.y = cur.cluster_x, cur.cluster_y
    if "a" in item:
        a = int(num("a"))
        if not 0 <= a < len(LABEL_MAP):
            raise KcdSchemaError(f"KLE layout: alignment flag out of range: {a}")
        align = a
    if "f" in item:
        cur.default_text_size = int(num("f"))
        cur.text_size = []
    if "f2" in item:
        f2 = int(num("f2"))
        first = cur.text_size[0] if cur.text_size else None
        cur.text_size = [first] + [f2] * (KLE_MAX_LABELS - 1)
    if "fa" in item:
        fa = item["fa"]
        if not isinstance(fa, list):
            raise KcdSchemaError(f"KLE layout: 'fa' must be a list (row {r})")
        cur.text_size = [int(v) if isinstance(v, (int, float)) and v else None for v in fa]
    if "p" in item:
        cur.profile = str(item["p"] or "")
    if "c" in item:
        cur.color = str(item["c"] or "#cccccc")
    if "t" in item:
        split = str(item["t"] or "").split("\n")
        if split[0]:
            cur.default_text_color = split[0]
        cur.text_color = reorder_items(split, align)
    if "x" in item:
        cur.x = round(cur.x + num("x"), 6)
    if "y" in item:
        cur.y = round(cur.y + num("y"), 6)
    if "w" in item:
        cur.width = cur.width2 = num("w")
    if "h" in item:
        cur.height = cur.height2 = num("h")
    if "x2" in item:
        cur.x2 = num("x2")
    if "y2" in item:
        cur.y2 = num("y2")
    if "w2" in item:
        cur.width2 = num("w2")
    if "h2" in item:
        cur.height2 = num("h2")
    if "n" in item:
        cur.nub = bool(item["n"])
    if "l" in item:
        cur.stepped = bool(item["l"])
    if "d" in item:
        cur.decal = bool(item["d"])
    if "g" in item:
        cur.ghost = bool(item["g"])
    return align


def _make_key(cur: _State, text: str, align: int, r: int, k: int) -> Key:
    items = text.split("\n")
    if len(items) > KLE_MAX_LABELS:
        log.warning("KLE key at row %d/%d has more than %d labels; extra ignored", r, k, KLE_MAX_LABELS)
        items = items[:KLE_MAX_LABELS]
    labels = reorder_items(items, align)
    sizes = reorder_items(cur.text_size, align) if cur.text_size else []
    colors = cur.text_color

    if any(labels[LEGEND_SLOTS:]):
        log.debug("KLE key at row %d/%d: front legends are not drawn", r, k)

    legends: List[Optional[Legend]] = []
    for i in range(LEGEND_SLOTS):
        label = labels[i]
        if not label:
            legends.append(None)
            continue
        size = sizes[i] if i < len(sizes) and sizes[i] else cur.default_text_size
        color_s = colors[i] if i < len(colors) and colors[i] else cur.default_text_color
        legends.append(Legend(text=str(label), size=int(size), color=_color(color_s, DEFAULT_LEGEND_COLOR)))

    w2 = cur.width if cur.width2 == 0 else cur.width2
    h2 = cur.height if cur.height2 == 0 else cur.height2
    has_secondary = not (
        abs(cur.x2) < 1e-6 and abs(cur.y2) < 1e-6 and abs(w2 - cur.width) < 1e-6 and abs(h2 - cur.height) < 1e-6
    )

    kind = _homing_from_profile(cur.profile)
    homing = kind is not None or cur.nub

    return Key(
        x=cur.x,
        y=cur.y,
        width=cur.width,
        height=cur.height,
        width2=w2 if has_secondary else None,
        height2=h2 if has_secondary else None,
        x2=cur.x2 if has_secondary else 0.0,
        y2=cur.y2 if has_secondary else 0.0,
        rotation=cur.rotation,
        rotation_x=cur.rotation_x,
        rotation_y=cur.rotation_y,
        color=_color(cur.color, DEFAULT_KEY_COLOR),
        legends=tuple(legends),
        homing=homing,
        homing_kind=kind,
        decal=cur.decal,
        stepped=cur.stepped,
    )


def _homing_from_profile(profile: str) -> Optional[HomingKind]:
    p = profile.lower()
    if "scoop" in p or "dish" in p:
        return HomingKind.SCOOP
    if "bar" in p:
        return HomingKind.BAR
    if "bump" in p or "dot" in p:
        return HomingKind.BUMP
    return None


def _color(s: str, default: Color) -> Color:
    try:
        return Color.from_hex(s)
    except KcdValidationError:
        log.warning("Invalid KLE colour %r; using %s", s, default.to_hex())
        return default
