"""Drawing result model: per-key records of role-tagged paths + bounds + warnings.

Everything here is immutable. Paths are absolute millimetre coordinates with
key rotation/translation already applied, so encoders never look at Keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Tuple

from kcd.core.color import Color
from kcd.geom.path import Path
from kcd.geom.primitives import Rect, union_all


class PathRole(str, Enum):
    KEY_BOTTOM = "key-bottom"
    KEY_TOP = "key-top"
    STEP = "key-step"
    HOMING = "homing-feature"
    LEGEND = "legend-glyph-run"
    MARGIN = "legend-margin"


# Paint order inside one record (back to front).
ROLE_ORDER = {
    PathRole.KEY_BOTTOM: 0,
    PathRole.KEY_TOP: 1,
    PathRole.STEP: 2,
    PathRole.HOMING: 3,
    PathRole.LEGEND: 4,
    PathRole.MARGIN: 5,
}


class WarningKind(str, Enum):
    LEGEND_SHRUNK = "legend-shrunk"
    SIZE_CLASS_FALLBACK = "size-class-fallback"
    MISSING_GLYPH = "missing-glyph"


@dataclass(frozen=True)
class Outline:
    color: Color
    width: float


@dataclass(frozen=True)
class KeyPath:
    role: PathRole
    path: Path
    fill: Optional[Color] = None
    outline: Optional[Outline] = None


@dataclass(frozen=True)
class KeyDrawing:
    key_index: int
    paths: Tuple[KeyPath, ...] = ()

    def ordered_paths(self) -> Tuple[KeyPath, ...]:
        # sorted() is stable: several legends keep their slot order.
        return tuple(sorted(self.paths, key=lambda kp: ROLE_ORDER[kp.role]))

    def bounds(self) -> Optional[Rect]:
        return union_all(kp.path.bounds for kp in self.paths)

    def count(self, role: PathRole) -> int:
        return sum(1 for kp in self.paths if kp.role == role)


@dataclass(frozen=True)
class DrawWarning:
    kind: WarningKind
    key_index: int
    message: str
    slot: Optional[int] = None
    text: Optional[str] = None
    factor: Optional[float] = None


@dataclass(frozen=True)
class Drawing:
    records: Tuple[KeyDrawing, ...] = ()
    bounds: Optional[Rect] = None
    warnings: Tuple[DrawWarning, ...] = field(default_factory=tuple)

    def is_empty(self) -> bool:
        return self.bounds is None

    def iter_paths(self) -> Iterator[Tuple[KeyDrawing, KeyPath]]:
        """Every path in paint order: records in layout order, roles back to front."""
        for rec in self.records:
            for kp in rec.ordered_paths():
                yield rec, kp

    def count(self, role: PathRole) -> int:
        return sum(rec.count(role) for rec in self.records)

    def warnings_of(self, kind: WarningKind) -> Tuple[DrawWarning, ...]:
        return tuple(w for w in self.warnings if w.kind == kind)

    def stroke_pad(self) -> float:
        """Half the widest outline: how far strokes reach past `bounds`."""
        widths = [kp.outline.width for _, kp in self.iter_paths() if kp.outline is not None]
        return max(widths, default=0.0) / 2.0

    def canvas_bounds(self) -> Optional[Rect]:
        """`bounds` grown by the stroke pad; what encoders size their canvas to."""
        if self.bounds is None:
            return None
        pad = self.stroke_pad()
        return self.bounds.inset(-pad, -pad, -pad, -pad)
