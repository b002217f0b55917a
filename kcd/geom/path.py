"""Path construction: move/line/cubic/close segments, arcs and rounded outlines.

Segments are plain tuples:
- ("M", x, y)
- ("L", x, y)
- ("C", x1, y1, x2, y2, x, y)
- ("Z",)

Quadratic curves and circular arcs are converted to cubics while building, so
every consumer (encoders, bounds) only has to handle four segment kinds.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from functools import cached_property
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from .primitives import EPS, Affine, Point, Rect

Segment = Tuple

# Cubic handle length for a 90 degree circular arc of radius 1.
KAPPA = 4.0 * (math.sqrt(2.0) - 1.0) / 3.0


@dataclass(frozen=True)
class Path:
    segments: Tuple[Segment, ...] = field(default_factory=tuple)

    @cached_property
    def bounds(self) -> Optional[Rect]:
        """Tight bounds (cubic extrema included). None for an empty path."""
        return _path_bounds(self.segments)

    def is_empty(self) -> bool:
        return not any(s[0] != "Z" for s in self.segments)

    def __iter__(self) -> Iterator[Segment]:
        return iter(self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    def subpath_count(self) -> int:
        return sum(1 for s in self.segments if s[0] == "M")

    def transform(self, affine: Affine) -> "Path":
        if affine.is_identity():
            return self
        out: List[Segment] = []
        for seg in self.segments:
            op = seg[0]
            if op == "Z":
                out.append(seg)
                continue
            coords = seg[1:]
            mapped: List[float] = []
            for i in range(0, len(coords), 2):
                x, y = affine.apply((coords[i], coords[i + 1]))
                mapped.extend((x, y))
            out.append((op, *mapped))
        return Path(tuple(out))

    def translate(self, dx: float, dy: float) -> "Path":
        return self.transform(Affine.translation(dx, dy))

    @staticmethod
    def join(paths: Iterable["Path"]) -> "Path":
        segs: List[Segment] = []
        for p in paths:
            segs.extend(p.segments)
        return Path(tuple(segs))


class PathBuilder:
    """Incremental builder. Keeps the current point for quad/arc conversion."""

    def __init__(self) -> None:
        self._segs: List[Segment] = []
        self._start: Optional[Point] = None
        self._cur: Optional[Point] = None

    @property
    def current(self) -> Optional[Point]:
        return self._cur

    def move_to(self, x: float, y: float) -> "PathBuilder":
        self._segs.append(("M", float(x), float(y)))
        self._start = self._cur = (float(x), float(y))
        return self

    def line_to(self, x: float, y: float) -> "PathBuilder":
        if self._cur is None:
            return self.move_to(x, y)
        self._segs.append(("L", float(x), float(y)))
        self._cur = (float(x), float(y))
        return self

    def cubic_to(self, x1: float, y1: float, x2: float, y2: float, x: float, y: float) -> "PathBuilder":
        if self._cur is None:
            self.move_to(x1, y1)
        self._segs.append(("C", float(x1), float(y1), float(x2), float(y2), float(x), float(y)))
        self._cur = (float(x), float(y))
        return self

    def quad_to(self, x1: float, y1: float, x: float, y: float) -> "PathBuilder":
        if self._cur is None:
            self.move_to(x1, y1)
        x0, y0 = self._cur  # type: ignore[misc]
        # Degree elevation: quad -> cubic.
        c1 = (x0 + 2.0 / 3.0 * (x1 - x0), y0 + 2.0 / 3.0 * (y1 - y0))
        c2 = (x + 2.0 / 3.0 * (x1 - x), y + 2.0 / 3.0 * (y1 - y))
        return self.cubic_to(c1[0], c1[1], c2[0], c2[1], x, y)

    def arc(self, cx: float, cy: float, r: float, start_deg: float, sweep_deg: float) -> "PathBuilder":
        """Circular arc around (cx, cy), angles in degrees (y-down, clockwise positive).

        Lines to the arc start if a current point exists, otherwise moves there.
        Split into <= 90 degree cubic pieces.
        """
        a0 = math.radians(start_deg)
        sx, sy = cx + r * math.cos(a0), cy + r * math.sin(a0)
        if self._cur is None:
            self.move_to(sx, sy)
        elif abs(self._cur[0] - sx) > EPS or abs(self._cur[1] - sy) > EPS:
            self.line_to(sx, sy)

        n = max(1, int(math.ceil(abs(sweep_deg) / 90.0 - 1e-9)))
        step = math.radians(sweep_deg) / n
        k = 4.0 / 3.0 * math.tan(step / 4.0)
        a = a0
        for _ in range(n):
            b = a + step
            p0 = (cx + r * math.cos(a), cy + r * math.sin(a))
            p3 = (cx + r * math.cos(b), cy + r * math.sin(b))
            c1 = (p0[0] - k * r * math.sin(a), p0[1] + k * r * math.cos(a))
            c2 = (p3[0] + k * r * math.sin(b), p3[1] - k * r * math.cos(b))
            self.cubic_to(c1[0], c1[1], c2[0], c2[1], p3[0], p3[1])
            a = b
        return self

    def close(self) -> "PathBuilder":
        if self._cur is not None:
            self._segs.append(("Z",))
            self._cur = self._start
        return self

    def build(self) -> Path:
        return Path(tuple(self._segs))


# ----------------------------
# Shapes
# ----------------------------

def rect_path(rect: Rect) -> Path:
    return rounded_polygon_path(rect.corners(), 0.0)


def round_rect_path(rect: Rect, radius: float) -> Path:
    """Rounded rectangle. The radius is clamped to half the shorter side."""
    return rounded_polygon_path(rect.corners(), radius)


def step_path(rect: Rect, radius: float) -> Path:
    """Lower step of a stepped keycap.

    Right corners are rounded; the top and bottom edges run `radius` past the
    left edge and curl back into it, so the step flares toward the raised face.
    """
    r = max(0.0, min(float(radius), rect.w / 2.0, rect.h / 2.0))
    x0, y0, x1, y1 = rect.x0, rect.y0, rect.x1, rect.y1
    b = PathBuilder()
    if r <= EPS:
        b.move_to(x0, y0).line_to(x1, y0).line_to(x1, y1).line_to(x0, y1)
        return b.close().build()
    b.move_to(x0, y0 + r)
    b.arc(x0 - r, y0 + r, r, 0.0, -90.0)
    b.arc(x1 - r, y0 + r, r, -90.0, 90.0)
    b.arc(x1 - r, y1 - r, r, 0.0, 90.0)
    b.arc(x0 - r, y1 - r, r, 90.0, -90.0)
    return b.close().build()


def circle_path(cx: float, cy: float, r: float) -> Path:
    return PathBuilder().arc(cx, cy, r, 0.0, 360.0).close().build()


def rounded_polygon_path(vertices: Sequence[Point], radius: float) -> Path:
    """Closed rectilinear polygon with every corner rounded by `radius`.

    Works for convex and concave corners alike: the handles follow the
    incoming/outgoing edge directions. Each corner's radius is clamped to half
    of its shorter adjacent edge.
    """
    pts = _drop_collinear(list(vertices))
    n = len(pts)
    if n < 3:
        return Path()

    corners: List[Tuple[Point, Point, float, Point, Point]] = []
    for i in range(n):
        prev_pt = pts[i - 1]
        pt = pts[i]
        next_pt = pts[(i + 1) % n]
        len_in = math.hypot(pt[0] - prev_pt[0], pt[1] - prev_pt[1])
        len_out = math.hypot(next_pt[0] - pt[0], next_pt[1] - pt[1])
        d_in = ((pt[0] - prev_pt[0]) / len_in, (pt[1] - prev_pt[1]) / len_in)
        d_out = ((next_pt[0] - pt[0]) / len_out, (next_pt[1] - pt[1]) / len_out)
        r = max(0.0, min(float(radius), len_in / 2.0, len_out / 2.0))
        before = (pt[0] - d_in[0] * r, pt[1] - d_in[1] * r)
        after = (pt[0] + d_out[0] * r, pt[1] + d_out[1] * r)
        corners.append((before, after, r, d_in, d_out))

    b = PathBuilder()
    first_after = corners[0][1]
    b.move_to(*first_after)
    for i in range(1, n + 1):
        before, after, r, d_in, d_out = corners[i % n]
        b.line_to(*before)
        if r > EPS:
            h = KAPPA * r
            b.cubic_to(
                before[0] + d_in[0] * h,
                before[1] + d_in[1] * h,
                after[0] - d_out[0] * h,
                after[1] - d_out[1] * h,
                after[0],
                after[1],
            )
    return b.close().build()


def rect_union_outlines(rects: Sequence[Rect]) -> List[List[Point]]:
    """Outline loops of the union of axis-aligned rectangles.

    Loops run clockwise on screen (y-down). Disjoint rectangles yield one loop
    each; overlapping or edge-sharing ones merge into a single loop.
    """
    rects = [r for r in rects if not r.is_degenerate()]
    if not rects:
        return []

    xs = sorted({v for r in rects for v in (r.x0, r.x1)})
    ys = sorted({v for r in rects for v in (r.y0, r.y1)})

    def filled(i: int, j: int) -> bool:
        if i < 0 or j < 0 or i >= len(xs) - 1 or j >= len(ys) - 1:
            return False
        cx = (xs[i] + xs[i + 1]) / 2.0
        cy = (ys[j] + ys[j + 1]) / 2.0
        return any(r.x0 < cx < r.x1 and r.y0 < cy < r.y1 for r in rects)

    edges: dict[Point, List[Point]] = {}

    def add(a: Point, b: Point) -> None:
        edges.setdefault(a, []).append(b)

    for i in range(len(xs) - 1):
        for j in range(len(ys) - 1):
            if not filled(i, j):
                continue
            x0, x1, y0, y1 = xs[i], xs[i + 1], ys[j], ys[j + 1]
            if not filled(i, j - 1):
                add((x0, y0), (x1, y0))
            if not filled(i + 1, j):
                add((x1, y0), (x1, y1))
            if not filled(i, j + 1):
                add((x1, y1), (x0, y1))
            if not filled(i - 1, j):
                add((x0, y1), (x0, y0))

    loops: List[List[Point]] = []
    while edges:
        start = min(edges)
        loop = [start]
        cur = start
        while True:
            nxt_list = edges.get(cur)
            if not nxt_list:
                break
            nxt = nxt_list.pop(0)
            if not nxt_list:
                del edges[cur]
            if nxt == start:
                break
            loop.append(nxt)
            cur = nxt
        loop = _drop_collinear(loop)
        if len(loop) >= 3:
            loops.append(_rotate_to_top_left(loop))
    return loops


def rounded_union_path(rects: Sequence[Rect], radius: float) -> Path:
    return Path.join(rounded_polygon_path(loop, radius) for loop in rect_union_outlines(rects))


# ----------------------------
# Internals
# ----------------------------

def _drop_collinear(pts: List[Point]) -> List[Point]:
    changed = True
    while changed and len(pts) >= 3:
        changed = False
        n = len(pts)
        for i in range(n):
            a, b, c = pts[i - 1], pts[i], pts[(i + 1) % n]
            cross = (b[0] - a[0]) * (c[1] - b[1]) - (b[1] - a[1]) * (c[0] - b[0])
            if abs(cross) <= EPS or (abs(a[0] - b[0]) <= EPS and abs(a[1] - b[1]) <= EPS):
                del pts[i]
                changed = True
                break
    return pts


def _rotate_to_top_left(loop: List[Point]) -> List[Point]:
    i = min(range(len(loop)), key=lambda k: (loop[k][1], loop[k][0]))
    return loop[i:] + loop[:i]


def _cubic_extrema(p0: float, p1: float, p2: float, p3: float) -> List[float]:
    """Parameter values in (0, 1) where the cubic's derivative is zero."""
    a = -p0 + 3.0 * p1 - 3.0 * p2 + p3
    b = 2.0 * (p0 - 2.0 * p1 + p2)
    c = p1 - p0
    out: List[float] = []
    if abs(a) < 1e-12:
        if abs(b) > 1e-12:
            out.append(-c / b)
    else:
        disc = b * b - 4.0 * a * c
        if disc >= 0.0:
            sq = math.sqrt(disc)
            out.append((-b + sq) / (2.0 * a))
            out.append((-b - sq) / (2.0 * a))
    return [t for t in out if 0.0 < t < 1.0]


def _cubic_at(p0: float, p1: float, p2: float, p3: float, t: float) -> float:
    mt = 1.0 - t
    return mt * mt * mt * p0 + 3.0 * mt * mt * t * p1 + 3.0 * mt * t * t * p2 + t * t * t * p3


def _path_bounds(segments: Sequence[Segment]) -> Optional[Rect]:
    xs: List[float] = []
    ys: List[float] = []
    cur: Optional[Point] = None
    start: Optional[Point] = None
    for seg in segments:
        op = seg[0]
        if op == "M":
            cur = start = (seg[1], seg[2])
        elif op == "L":
            if cur is not None:
                xs.append(cur[0])
                ys.append(cur[1])
            xs.append(seg[1])
            ys.append(seg[2])
            cur = (seg[1], seg[2])
        elif op == "C":
            p0 = cur if cur is not None else (seg[1], seg[2])
            x1, y1, x2, y2, x3, y3 = seg[1:]
            xs.extend((p0[0], x3))
            ys.extend((p0[1], y3))
            for t in _cubic_extrema(p0[0], x1, x2, x3):
                xs.append(_cubic_at(p0[0], x1, x2, x3, t))
            for t in _cubic_extrema(p0[1], y1, y2, y3):
                ys.append(_cubic_at(p0[1], y1, y2, y3, t))
            cur = (x3, y3)
        elif op == "Z":
            cur = start
    if not xs:
        return None
    return Rect(min(xs), min(ys), max(xs), max(ys))
