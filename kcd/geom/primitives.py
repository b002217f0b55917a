"""Point / rect / affine primitives.

Coordinates are y-down (SVG / Qt convention). Encoders with a rising y axis
(PDF) flip at the boundary, never here.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

Point = Tuple[float, float]

EPS = 1e-9


def is_close(a: float, b: float, tol: float = 1e-6) -> bool:
    return abs(float(a) - float(b)) <= tol


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle stored as (x0, y0, x1, y1) with x0 <= x1, y0 <= y1."""

    x0: float
    y0: float
    x1: float
    y1: float

    @staticmethod
    def from_center(cx: float, cy: float, w: float, h: float) -> "Rect":
        return Rect(cx - w / 2.0, cy - h / 2.0, cx + w / 2.0, cy + h / 2.0)

    @property
    def w(self) -> float:
        return float(self.x1 - self.x0)

    @property
    def h(self) -> float:
        return float(self.y1 - self.y0)

    @property
    def center(self) -> Point:
        return ((self.x0 + self.x1) / 2.0, (self.y0 + self.y1) / 2.0)

    @property
    def area(self) -> float:
        return self.w * self.h

    def is_degenerate(self) -> bool:
        return self.w <= EPS or self.h <= EPS

    def union(self, other: Optional["Rect"]) -> "Rect":
        if other is None:
            return self
        return Rect(
            min(self.x0, other.x0),
            min(self.y0, other.y0),
            max(self.x1, other.x1),
            max(self.y1, other.y1),
        )

    def translate(self, dx: float, dy: float) -> "Rect":
        return Rect(self.x0 + dx, self.y0 + dy, self.x1 + dx, self.y1 + dy)

    def inset(self, left: float, top: float, right: float, bottom: float) -> "Rect":
        """Shrink by side offsets. Negative offsets grow the rect."""
        return Rect(self.x0 + left, self.y0 + top, self.x1 - right, self.y1 - bottom)

    def contains(self, other: "Rect", tol: float = 1e-6) -> bool:
        return (
            other.x0 >= self.x0 - tol
            and other.y0 >= self.y0 - tol
            and other.x1 <= self.x1 + tol
            and other.y1 <= self.y1 + tol
        )

    def is_close(self, other: "Rect", tol: float = 1e-6) -> bool:
        return (
            is_close(self.x0, other.x0, tol)
            and is_close(self.y0, other.y0, tol)
            and is_close(self.x1, other.x1, tol)
            and is_close(self.y1, other.y1, tol)
        )

    def corners(self) -> List[Point]:
        return [(self.x0, self.y0), (self.x1, self.y0), (self.x1, self.y1), (self.x0, self.y1)]

    def as_list(self) -> List[float]:
        return [float(self.x0), float(self.y0), float(self.x1), float(self.y1)]


def union_all(rects: Iterable[Optional[Rect]]) -> Optional[Rect]:
    out: Optional[Rect] = None
    for r in rects:
        if r is None:
            continue
        out = r if out is None else out.union(r)
    return out


@dataclass(frozen=True)
class Affine:
    """2D affine transform, SVG matrix order: x' = a*x + c*y + e, y' = b*x + d*y + f."""

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    e: float = 0.0
    f: float = 0.0

    @staticmethod
    def identity() -> "Affine":
        return Affine()

    @staticmethod
    def translation(dx: float, dy: float) -> "Affine":
        return Affine(e=float(dx), f=float(dy))

    @staticmethod
    def scaling(sx: float, sy: Optional[float] = None) -> "Affine":
        sy = sx if sy is None else sy
        return Affine(a=float(sx), d=float(sy))

    @staticmethod
    def rotation(deg: float, cx: float = 0.0, cy: float = 0.0) -> "Affine":
        """Rotation by `deg` degrees, clockwise on screen (y-down), around (cx, cy)."""
        rad = math.radians(deg)
        cos_a = math.cos(rad)
        sin_a = math.sin(rad)
        rot = Affine(a=cos_a, b=sin_a, c=-sin_a, d=cos_a)
        if cx == 0.0 and cy == 0.0:
            return rot
        return Affine.translation(-cx, -cy).then(rot).then(Affine.translation(cx, cy))

    def then(self, other: "Affine") -> "Affine":
        """Compose: apply self first, then `other`."""
        return Affine(
            a=other.a * self.a + other.c * self.b,
            b=other.b * self.a + other.d * self.b,
            c=other.a * self.c + other.c * self.d,
            d=other.b * self.c + other.d * self.d,
            e=other.a * self.e + other.c * self.f + other.e,
            f=other.b * self.e + other.d * self.f + other.f,
        )

    def apply(self, p: Point) -> Point:
        x, y = p
        return (self.a * x + self.c * y + self.e, self.b * x + self.d * y + self.f)

    def is_identity(self) -> bool:
        return self == Affine()
