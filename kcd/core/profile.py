# File: kcd/core/profile.py
# Project: KeycapDraw (KCD)
# Version: 0.1.0
# Status: stable
# Date: 2026-10-19
# Purpose: Keycap profile: face geometry per footprint, legend boxes, homing features.
# Notes:
#   - All lengths in mm. Surfaces are defined for a 1u key centred in its
#     unit cell; bigger keys grow the max corner, radii stay constant.
#   - Shapes are returned in key-local coordinates (key position at 0,0).
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from kcd.core.models import HomingKind, Key
from kcd.core.version import UNIT_MM
from kcd.geom.path import Path, circle_path, rect_path, round_rect_path, rounded_union_path, step_path
from kcd.geom.primitives import Rect
from kcd.utils.errors import KcdValidationError

log = logging.getLogger(__name__)


class SculptType(str, Enum):
    CYLINDRICAL = "cylindrical"
    SPHERICAL = "spherical"
    FLAT = "flat"


class TopAnchor(str, Enum):
    """Where the top face goes on a two-footprint key.

    - larger: over the footprint with the larger area (ties go to the primary)
    - primary: always over the primary footprint
    - union: rounded outline of both top-inset footprints
    """

    LARGER = "larger"
    PRIMARY = "primary"
    UNION = "union"


@dataclass(frozen=True)
class BottomSurface:
    width: float = 0.95 * UNIT_MM
    height: float = 0.95 * UNIT_MM
    radius: float = 0.065 * UNIT_MM

    def rect(self) -> Rect:
        return Rect.from_center(UNIT_MM / 2.0, UNIT_MM / 2.0, self.width, self.height)


@dataclass(frozen=True)
class TopSurface:
    width: float = 0.660 * UNIT_MM
    height: float = 0.735 * UNIT_MM
    radius: float = 0.065 * UNIT_MM
    y_offset: float = -0.0775 * UNIT_MM

    def rect(self) -> Rect:
        return Rect.from_center(UNIT_MM / 2.0, UNIT_MM / 2.0 + self.y_offset, self.width, self.height)


@dataclass(frozen=True)
class LegendClass:
    """One size class: text (cap) height and margin side offsets from the top face."""

    text_height: float
    left: float
    top: float
    right: float
    bottom: float

    @staticmethod
    def uniform(text_height: float, margin: float) -> "LegendClass":
        return LegendClass(text_height, margin, margin, margin, margin)

    @staticmethod
    def from_box(text_height: float, width: float, height: float, y_offset: float, top: TopSurface) -> "LegendClass":
        """Side offsets of a 1u legend box centred on the top face (+ y_offset)."""
        tr = top.rect()
        cx, cy = tr.center
        lr = Rect.from_center(cx, cy + y_offset, width, height)
        return LegendClass(
            text_height=float(text_height),
            left=lr.x0 - tr.x0,
            top=lr.y0 - tr.y0,
            right=tr.x1 - lr.x1,
            bottom=tr.y1 - lr.y1,
        )


def default_legend_table() -> Tuple[Tuple[int, LegendClass], ...]:
    """KLE sizes 0..9: cap height (6 + 2i)/72 u, 0.05u margin on every side."""
    return tuple(
        (i, LegendClass.uniform((6.0 + 2.0 * i) / 72.0 * UNIT_MM, 0.05 * UNIT_MM))
        for i in range(10)
    )


# Used when a size class has no defined class at or below it.
MINIMAL_LEGEND_CLASS = LegendClass.uniform(6.0 / 72.0 * UNIT_MM, 0.05 * UNIT_MM)


@dataclass(frozen=True)
class HomingProps:
    default: HomingKind = HomingKind.BAR
    scoop_depth: float = 2.0
    bar_width: float = 3.81
    bar_height: float = 0.51
    bar_y_offset: float = 6.35
    bump_diameter: float = 0.51
    bump_y_offset: float = 0.0


@dataclass(frozen=True)
class KeyShape:
    bottom: Path
    top: Path
    depth: float
    top_rect: Rect
    bottom_rect: Rect
    step: Optional[Path] = None


@dataclass(frozen=True)
class LegendBox:
    margin: Rect
    text_height: float
    resolved_class: Optional[int]
    fell_back: bool


@dataclass(frozen=True)
class Profile:
    bottom: BottomSurface = field(default_factory=BottomSurface)
    top: TopSurface = field(default_factory=TopSurface)
    sculpt: SculptType = SculptType.CYLINDRICAL
    sculpt_depth: float = 1.0
    legends: Tuple[Tuple[int, LegendClass], ...] = field(default_factory=default_legend_table)
    homing: HomingProps = field(default_factory=HomingProps)
    top_anchor: TopAnchor = TopAnchor.LARGER
    name: str = "default"

    def __post_init__(self) -> None:
        for label, v in (
            ("bottom.width", self.bottom.width),
            ("bottom.height", self.bottom.height),
            ("top.width", self.top.width),
            ("top.height", self.top.height),
        ):
            if not math.isfinite(v) or v <= 0:
                raise KcdValidationError(f"Profile {label} must be > 0: {v!r}")
        for label, v in (("bottom.radius", self.bottom.radius), ("top.radius", self.top.radius)):
            if not math.isfinite(v) or v < 0:
                raise KcdValidationError(f"Profile {label} must be >= 0: {v!r}")
        seen = set()
        for idx, lc in self.legends:
            if idx in seen:
                raise KcdValidationError(f"Duplicate legend size class: {idx}")
            seen.add(idx)
            if not math.isfinite(lc.text_height) or lc.text_height <= 0:
                raise KcdValidationError(f"Legend class {idx}: text height must be > 0")

    @classmethod
    def default(cls) -> "Profile":
        return cls()

    @property
    def depth(self) -> float:
        return 0.0 if self.sculpt == SculptType.FLAT else float(self.sculpt_depth)

    def legend_classes(self) -> Dict[int, LegendClass]:
        return dict(self.legends)

    # ------------------------------
    # Shapes
    # ------------------------------
    def homing_kind_for(self, key: Key) -> Optional[HomingKind]:
        if not key.homing:
            return None
        return key.homing_kind or self.homing.default

    def shape_for(self, key: Key) -> KeyShape:
        """Bottom/top face paths + sculpt depth for one key (key-local mm)."""
        fps = key.footprints()
        bottom_1u = self.bottom.rect()
        top_1u = self.top.rect()

        kind = self.homing_kind_for(key)
        depth = self.homing.scoop_depth if kind == HomingKind.SCOOP else self.depth

        if key.stepped and len(fps) == 2:
            return self._stepped_shape(fps, depth)

        if len(fps) == 1:
            b = _grow_for(bottom_1u, fps[0])
            t = _grow_for(top_1u, fps[0])
            return KeyShape(
                bottom=round_rect_path(b, self.bottom.radius),
                top=round_rect_path(t, self.top.radius),
                depth=depth,
                top_rect=t,
                bottom_rect=b,
            )

        bottoms = [_grow_for(bottom_1u, fp) for fp in fps]
        tops = [_grow_for(top_1u, fp) for fp in fps]
        bottom_path = rounded_union_path(bottoms, self.bottom.radius)

        if self.top_anchor == TopAnchor.PRIMARY:
            anchor = 0
        else:
            anchor = _larger_index(fps)
        top_rect = tops[anchor]

        if self.top_anchor == TopAnchor.UNION:
            top_path = rounded_union_path(tops, self.top.radius)
        else:
            top_path = round_rect_path(top_rect, self.top.radius)

        return KeyShape(
            bottom=bottom_path,
            top=top_path,
            depth=depth,
            top_rect=top_rect,
            bottom_rect=bottom_path.bounds or bottoms[0],
        )

    def _stepped_shape(self, fps: List[Rect], depth: float) -> KeyShape:
        # The smaller footprint is the raised part; the bottom spans both.
        raised = fps[1] if fps[1].area < fps[0].area - 1e-9 else fps[0]
        full = fps[0].union(fps[1])
        b = _grow_for(self.bottom.rect(), full)
        t = _grow_for(self.top.rect(), raised)

        step = None
        if full.x1 > raised.x1 + 1e-6:
            # Halfway between the top and bottom faces.
            t1, b1 = self.top.rect(), self.bottom.rect()
            ax0, ay0 = (t1.x0 + b1.x0) / 2.0, (t1.y0 + b1.y0) / 2.0
            ax1, ay1 = (t1.x1 + b1.x1) / 2.0, (t1.y1 + b1.y1) / 2.0
            r = (self.top.radius + self.bottom.radius) / 2.0
            sr = Rect(
                raised.x1 * UNIT_MM - ax0,
                ay0 + full.y0 * UNIT_MM,
                full.x1 * UNIT_MM - (UNIT_MM - ax1),
                ay1 + (full.y1 - 1.0) * UNIT_MM,
            )
            if sr.w > 0 and sr.h > 0:
                step = step_path(sr, r)
        else:
            log.debug("Stepped key has no room for a step on the right: %s / %s", raised.as_list(), full.as_list())

        return KeyShape(
            bottom=round_rect_path(b, self.bottom.radius),
            top=round_rect_path(t, self.top.radius),
            depth=depth,
            top_rect=t,
            bottom_rect=b,
            step=step,
        )

    def legend_box_for(self, size_class: int, top_rect: Optional[Rect] = None) -> LegendBox:
        """Margin box for a size class on a top face. Never raises."""
        classes = self.legend_classes()
        resolved: Optional[int]
        if size_class in classes:
            resolved, fell_back = size_class, False
            lc = classes[size_class]
        else:
            smaller = [c for c in classes if c < size_class]
            fell_back = True
            if smaller:
                resolved = max(smaller)
                lc = classes[resolved]
            else:
                resolved = None
                lc = MINIMAL_LEGEND_CLASS

        tr = top_rect if top_rect is not None else self.top.rect()
        margin = _clamp_rect(tr.inset(lc.left, lc.top, lc.right, lc.bottom))
        return LegendBox(
            margin=margin,
            text_height=lc.text_height,
            resolved_class=resolved,
            fell_back=fell_back,
        )

    def homing_feature_for(
        self,
        is_homing: bool,
        kind: Optional[HomingKind] = None,
        top_rect: Optional[Rect] = None,
    ) -> Optional[Path]:
        """Homing feature centred on the origin (the top-face centre)."""
        if not is_homing:
            return None
        kind = kind or self.homing.default
        h = self.homing

        if kind == HomingKind.BAR:
            return rect_path(Rect.from_center(0.0, h.bar_y_offset, h.bar_width, h.bar_height))
        if kind == HomingKind.BUMP:
            return circle_path(0.0, h.bump_y_offset, h.bump_diameter / 2.0)

        # Scoop: dish outline, the top face inset by the scoop depth.
        tw, th = (top_rect.w, top_rect.h) if top_rect is not None else (self.top.width, self.top.height)
        inset = max(h.scoop_depth, 0.0)
        if 2.0 * inset >= min(tw, th):
            log.warning("Scoop depth %.3f leaves no dish on a %.3fx%.3f top face", h.scoop_depth, tw, th)
            inset = min(tw, th) / 4.0
        return round_rect_path(Rect.from_center(0.0, 0.0, tw - 2.0 * inset, th - 2.0 * inset), self.top.radius)


def _grow_for(rect_1u: Rect, fp: Rect) -> Rect:
    """Place a 1u face rect over a footprint given in key units."""
    return Rect(
        rect_1u.x0 + fp.x0 * UNIT_MM,
        rect_1u.y0 + fp.y0 * UNIT_MM,
        rect_1u.x1 + (fp.x1 - 1.0) * UNIT_MM,
        rect_1u.y1 + (fp.y1 - 1.0) * UNIT_MM,
    )


def _larger_index(fps: List[Rect]) -> int:
    best = 0
    for i, fp in enumerate(fps[1:], start=1):
        if fp.area > fps[best].area + 1e-9:
            best = i
    return best


def _clamp_rect(r: Rect) -> Rect:
    # Oversized margins collapse to the centre line instead of inverting.
    x0, x1 = (r.x0, r.x1) if r.x1 >= r.x0 else ((r.x0 + r.x1) / 2.0,) * 2
    y0, y1 = (r.y0, r.y1) if r.y1 >= r.y0 else ((r.y0 + r.y1) / 2.0,) * 2
    return Rect(x0, y0, x1, y1)
