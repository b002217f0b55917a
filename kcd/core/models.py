# File: kcd/core/models.py
# Project: KeycapDraw (KCD)
# Version: 0.1.0
# Status: stable
# Date: 2026-10-19
# Purpose: Key / Legend data model (immutable) + native layout dict schema.
# Notes:
#   - Positions and footprints are in key units (1u = UNIT_MM).
#   - legends is row-major 3x3: top-left ... bottom-right, centre included.
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple

from kcd.core.color import DEFAULT_KEY_COLOR, DEFAULT_LEGEND_COLOR, Color, coerce_color
from kcd.geom.primitives import Rect
from kcd.utils.errors import KcdSchemaError, KcdValidationError

LEGEND_SLOTS = 9
DEFAULT_LEGEND_SIZE = 3
LAYOUT_SCHEMA_VERSION = 1


class HomingKind(str, Enum):
    """Tactile locating feature on a homing key's top face."""

    SCOOP = "scoop"
    BAR = "bar"
    BUMP = "bump"


HOMING_ALIASES = {
    "scoop": HomingKind.SCOOP,
    "dish": HomingKind.SCOOP,
    "deep-dish": HomingKind.SCOOP,
    "bar": HomingKind.BAR,
    "line": HomingKind.BAR,
    "bump": HomingKind.BUMP,
    "nub": HomingKind.BUMP,
    "dot": HomingKind.BUMP,
    "nipple": HomingKind.BUMP,
}


def coerce_homing_kind(v: object) -> Optional[HomingKind]:
    """Parse a homing kind or one of its aliases. None if unrecognised."""
    if isinstance(v, HomingKind):
        return v
    s = str(v or "").strip().lower().replace("_", "-").replace(" ", "-")
    return HOMING_ALIASES.get(s)


@dataclass(frozen=True)
class Legend:
    text: str
    size: int = DEFAULT_LEGEND_SIZE
    color: Color = DEFAULT_LEGEND_COLOR

    def lines(self) -> List[str]:
        """Text split on line breaks (``\\n`` or ``<br>``)."""
        t = self.text.replace("\r\n", "\n").replace("<br>", "\n").replace("<BR>", "\n")
        return t.split("\n")

    def is_blank(self) -> bool:
        return not any(line.strip() for line in self.lines())


def _empty_legends() -> Tuple[Optional[Legend], ...]:
    return (None,) * LEGEND_SLOTS


@dataclass(frozen=True)
class Key:
    x: float = 0.0
    y: float = 0.0
    width: float = 1.0
    height: float = 1.0
    # Secondary footprint relative to (x, y); all four set or all None.
    width2: Optional[float] = None
    height2: Optional[float] = None
    x2: float = 0.0
    y2: float = 0.0
    rotation: float = 0.0  # degrees, clockwise
    rotation_x: float = 0.0
    rotation_y: float = 0.0
    color: Color = DEFAULT_KEY_COLOR
    legends: Tuple[Optional[Legend], ...] = field(default_factory=_empty_legends)
    homing: bool = False
    homing_kind: Optional[HomingKind] = None
    decal: bool = False
    # Raised face over the smaller footprint, lower step over the rest.
    stepped: bool = False

    @property
    def has_secondary(self) -> bool:
        return self.width2 is not None or self.height2 is not None

    def primary_rect(self) -> Rect:
        return Rect(0.0, 0.0, self.width, self.height)

    def secondary_rect(self) -> Optional[Rect]:
        if not self.has_secondary:
            return None
        w2 = self.width if self.width2 is None else self.width2
        h2 = self.height if self.height2 is None else self.height2
        return Rect(self.x2, self.y2, self.x2 + w2, self.y2 + h2)

    def footprints(self) -> List[Rect]:
        """Footprint rects in key units, relative to the key position."""
        out = [self.primary_rect()]
        sec = self.secondary_rect()
        if sec is not None and not sec.is_close(out[0]):
            out.append(sec)
        return out

    def populated_legends(self) -> List[Tuple[int, Legend]]:
        return [(i, lg) for i, lg in enumerate(self.legends) if lg is not None and not lg.is_blank()]

    def validate(self) -> None:
        """Raise KcdValidationError for degenerate or non-finite geometry."""
        for name in ("x", "y", "width", "height", "x2", "y2", "rotation", "rotation_x", "rotation_y"):
            v = getattr(self, name)
            if not isinstance(v, (int, float)) or not math.isfinite(v):
                raise KcdValidationError(f"Key.{name} must be a finite number: {v!r}")
        if self.width <= 0 or self.height <= 0:
            raise KcdValidationError(f"Key footprint must be > 0: {self.width}x{self.height}")
        for name in ("width2", "height2"):
            v = getattr(self, name)
            if v is None:
                continue
            if not isinstance(v, (int, float)) or not math.isfinite(v) or v <= 0:
                raise KcdValidationError(f"Key.{name} must be > 0 when set: {v!r}")
        if len(self.legends) != LEGEND_SLOTS:
            raise KcdValidationError(f"Key.legends must have {LEGEND_SLOTS} slots, got {len(self.legends)}")
        for lg in self.legends:
            if lg is not None and (not isinstance(lg.size, int) or lg.size < 0):
                raise KcdValidationError(f"Legend size class must be an int >= 0: {lg.size!r}")

    # ------------------------------
    # Native layout schema
    # ------------------------------
    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "x": float(self.x),
            "y": float(self.y),
            "width": float(self.width),
            "height": float(self.height),
            "color": self.color.to_hex(),
        }
        if self.has_secondary:
            d.update(
                {
                    "width2": self.width2,
                    "height2": self.height2,
                    "x2": float(self.x2),
                    "y2": float(self.y2),
                }
            )
        if self.rotation:
            d.update(
                {
                    "rotation": float(self.rotation),
                    "rotation_x": float(self.rotation_x),
                    "rotation_y": float(self.rotation_y),
                }
            )
        d["legends"] = [
            None if lg is None else {"text": lg.text, "size": lg.size, "color": lg.color.to_hex()}
            for lg in self.legends
        ]
        if self.homing:
            d["homing"] = True
            if self.homing_kind is not None:
                d["homing_kind"] = self.homing_kind.value
        if self.decal:
            d["decal"] = True
        if self.stepped:
            d["stepped"] = True
        return d

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "Key":
        if not isinstance(d, dict):
            raise KcdSchemaError("Invalid key: expected object")
        raw_legends = d.get("legends") or []
        if not isinstance(raw_legends, list) or len(raw_legends) > LEGEND_SLOTS:
            raise KcdSchemaError(f"Invalid legends: expected a list of up to {LEGEND_SLOTS}")
        legends: List[Optional[Legend]] = []
        for i, ld in enumerate(raw_legends):
            if ld is None or ld == "":
                legends.append(None)
            elif isinstance(ld, str):
                legends.append(Legend(ld))
            elif isinstance(ld, dict):
                legends.append(
                    Legend(
                        text=str(ld.get("text", "")),
                        size=_as_int(ld.get("size", DEFAULT_LEGEND_SIZE), f"legends[{i}].size"),
                        color=_as_color(ld.get("color"), DEFAULT_LEGEND_COLOR, f"legends[{i}].color"),
                    )
                )
            else:
                raise KcdSchemaError(f"Invalid legends[{i}]: {ld!r}")
        legends.extend([None] * (LEGEND_SLOTS - len(legends)))

        kind = None
        if d.get("homing_kind") is not None:
            kind = coerce_homing_kind(d.get("homing_kind"))
            if kind is None:
                raise KcdSchemaError(f"Invalid homing_kind: {d.get('homing_kind')!r}")

        return Key(
            x=_as_float(d.get("x", 0.0), "x"),
            y=_as_float(d.get("y", 0.0), "y"),
            width=_as_float(d.get("width", 1.0), "width"),
            height=_as_float(d.get("height", 1.0), "height"),
            width2=_opt_float(d.get("width2"), "width2"),
            height2=_opt_float(d.get("height2"), "height2"),
            x2=_as_float(d.get("x2", 0.0), "x2"),
            y2=_as_float(d.get("y2", 0.0), "y2"),
            rotation=_as_float(d.get("rotation", 0.0), "rotation"),
            rotation_x=_as_float(d.get("rotation_x", 0.0), "rotation_x"),
            rotation_y=_as_float(d.get("rotation_y", 0.0), "rotation_y"),
            color=_as_color(d.get("color"), DEFAULT_KEY_COLOR, "color"),
            legends=tuple(legends),
            homing=bool(d.get("homing", False) or kind is not None),
            homing_kind=kind,
            decal=bool(d.get("decal", False)),
            stepped=bool(d.get("stepped", False)),
        )


def layout_to_dict(keys: List[Key]) -> dict[str, Any]:
    return {"schema_version": LAYOUT_SCHEMA_VERSION, "keys": [k.to_dict() for k in keys]}


def layout_from_dict(d: dict[str, Any]) -> List[Key]:
    if not isinstance(d, dict):
        raise KcdSchemaError("Invalid layout: root is not a JSON object")
    sv = d.get("schema_version", LAYOUT_SCHEMA_VERSION)
    if sv != LAYOUT_SCHEMA_VERSION:
        raise KcdSchemaError(f"Unsupported layout schema_version: {sv!r}")
    keys = d.get("keys")
    if not isinstance(keys, list):
        raise KcdSchemaError("Invalid layout: 'keys' must be a list")
    return [Key.from_dict(k) for k in keys]


def _as_float(value: Any, field_name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise KcdSchemaError(f"Field {field_name} invalid (float): {value!r}") from e


def _opt_float(value: Any, field_name: str) -> Optional[float]:
    return None if value is None else _as_float(value, field_name)


def _as_int(value: Any, field_name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise KcdSchemaError(f"Field {field_name} invalid (int): {value!r}") from e


def _as_color(value: Any, default: Color, field_name: str) -> Color:
    try:
        return coerce_color(value, default)
    except KcdValidationError as e:
        raise KcdSchemaError(f"Field {field_name} invalid (colour): {value!r}") from e
