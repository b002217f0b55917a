# File: kcd/core/font.py
# Project: KeycapDraw (KCD)
# Version: 0.1.0
# Status: stable
# Date: 2026-10-19
# Purpose: Font model (glyph outlines, advances, metrics, kerning) on top of fontTools.
# Notes:
#   - Outlines are kept in font units with y flipped (y-down, baseline at 0).
#   - glyph() is total: unmapped codepoints resolve to .notdef, and a font
#     without a usable .notdef outline gets a built-in box glyph.
#   - Glyph cache is guarded by a lock; prepare() warms it before parallel passes.
from __future__ import annotations

import io
import logging
import threading
from dataclasses import dataclass
from pathlib import Path as FsPath
from typing import Dict, Iterable, List, Optional, Tuple

from fontTools.pens.basePen import BasePen
from fontTools.ttLib import TTFont

from kcd.geom.path import Path, PathBuilder, rect_path
from kcd.geom.primitives import Affine, Rect
from kcd.utils.errors import KcdFontError, KcdIOError

log = logging.getLogger(__name__)

# Metrics used by Font.default() and as ratios when a font lacks cap/x height.
DEFAULT_UNITS_PER_EM = 1000
DEFAULT_CAP_HEIGHT = 714
DEFAULT_X_HEIGHT = 523
DEFAULT_ASCENDER = 952
DEFAULT_DESCENDER = -213
DEFAULT_LINE_GAP = 0

LINE_BREAKS = ("\n", "\r")


@dataclass(frozen=True)
class Glyph:
    path: Path
    advance: float
    bounds: Optional[Rect]
    is_notdef: bool = False


@dataclass(frozen=True)
class FontMetrics:
    units_per_em: float
    cap_height: float
    x_height: float
    ascender: float
    descender: float  # negative below the baseline, as stored in hhea
    line_gap: float

    @property
    def line_height(self) -> float:
        return self.ascender - self.descender + self.line_gap


class _FlipPen(BasePen):
    """Records a glyph into a PathBuilder, flipping y to screen orientation.

    BasePen splits quadratic splines into single quads and hands them to
    _qCurveToOne, which defaults to a cubic conversion via _curveToOne.
    """

    def __init__(self, glyph_set) -> None:
        super().__init__(glyph_set)
        self.builder = PathBuilder()

    def _moveTo(self, pt):
        self.builder.move_to(pt[0], -pt[1])

    def _lineTo(self, pt):
        self.builder.line_to(pt[0], -pt[1])

    def _curveToOne(self, pt1, pt2, pt3):
        self.builder.cubic_to(pt1[0], -pt1[1], pt2[0], -pt2[1], pt3[0], -pt3[1])

    def _closePath(self):
        self.builder.close()

    def _endPath(self):
        # Open contours are closed for filling.
        self.builder.close()


def builtin_notdef(cap_height: float) -> Glyph:
    """Box-with-triangles notdef, cap-height tall, baseline at y=0 (y-down)."""
    s = cap_height / 1000.0
    outer = rect_path(Rect(0.0, -1000.0, 650.0, 0.0))
    tris = [
        [(80, 150), (270, 500), (80, 850)],
        [(125, 920), (325, 560), (525, 920)],
        [(570, 850), (380, 500), (570, 150)],
        [(525, 80), (325, 440), (125, 80)],
    ]
    b = PathBuilder()
    for tri in tris:
        b.move_to(tri[0][0], -tri[0][1])
        for x, y in tri[1:]:
            b.line_to(x, -y)
        b.close()
    path = Path.join([outer, b.build()]).transform(Affine.scaling(s))
    return Glyph(path=path, advance=650.0 * s, bounds=path.bounds, is_notdef=True)


class Font:
    """Shared, read-only font handle for one drawing pass."""

    def __init__(self, tt: Optional[TTFont] = None, *, name: str = "") -> None:
        self._tt = tt
        self._name = name
        self._lock = threading.RLock()
        self._glyphs: Dict[str, Glyph] = {}
        self._cmap: Dict[int, str] = {}
        self._glyph_set = None
        self._hmtx = None
        self._kern: Dict[Tuple[str, str], float] = {}
        self._notdef: Optional[Glyph] = None

        if tt is not None:
            self._cmap = dict(tt.getBestCmap() or {})
            self._glyph_set = tt.getGlyphSet()
            self._hmtx = tt["hmtx"]
            self._kern = _read_kern_pairs(tt)
        self._metrics = self._read_metrics()

    # ------------------------------
    # Constructors
    # ------------------------------
    @classmethod
    def default(cls) -> "Font":
        """Font-less handle: default metrics, every glyph is the built-in notdef."""
        return cls(None, name="default")

    @classmethod
    def from_bytes(cls, data: bytes, *, name: str = "") -> "Font":
        try:
            tt = TTFont(io.BytesIO(data))
            for tag in ("head", "hhea", "hmtx"):
                tt[tag]
            if "glyf" not in tt and "CFF " not in tt and "CFF2" not in tt:
                raise KcdFontError("Font has no glyph outlines (glyf/CFF)")
            return cls(tt, name=name or _font_name(tt))
        except KcdFontError:
            raise
        except Exception as e:
            raise KcdFontError(f"Could not parse font {name or '<bytes>'}: {e}") from e

    @classmethod
    def from_path(cls, path: str | FsPath) -> "Font":
        p = FsPath(path)
        try:
            data = p.read_bytes()
        except OSError as e:
            raise KcdIOError(f"Could not read font: {p}") from e
        return cls.from_bytes(data, name=p.stem)

    # ------------------------------
    # Queries
    # ------------------------------
    @property
    def name(self) -> str:
        return self._name

    def metrics(self) -> FontMetrics:
        return self._metrics

    def has_glyph(self, codepoint: int) -> bool:
        return codepoint in self._cmap

    def glyph(self, codepoint: int) -> Glyph:
        gname = self._cmap.get(codepoint)
        if gname is None:
            return self.notdef()
        with self._lock:
            g = self._glyphs.get(gname)
            if g is None:
                g = self._load_glyph(gname)
                self._glyphs[gname] = g
            return g

    def notdef(self) -> Glyph:
        with self._lock:
            if self._notdef is None:
                self._notdef = self._load_notdef()
            return self._notdef

    def kerning(self, left: int, right: int) -> float:
        if not self._kern:
            return 0.0
        lname = self._cmap.get(left)
        rname = self._cmap.get(right)
        if lname is None or rname is None:
            return 0.0
        return self._kern.get((lname, rname), 0.0)

    def prepare(self, text: Iterable[str]) -> None:
        """Load every glyph `text` needs so later lookups only read the cache."""
        self.notdef()
        for ch in text:
            if ch in LINE_BREAKS:
                continue
            self.glyph(ord(ch))

    def missing(self, text: str) -> List[int]:
        """Codepoints of `text` that resolve to notdef (unique, in order)."""
        out: List[int] = []
        for ch in text:
            if ch in LINE_BREAKS:
                continue
            cp = ord(ch)
            if not self.has_glyph(cp) and cp not in out:
                out.append(cp)
        return out

    # ------------------------------
    # Internals
    # ------------------------------
    def _draw(self, gname: str) -> Tuple[Path, float]:
        pen = _FlipPen(self._glyph_set)
        self._glyph_set[gname].draw(pen)  # type: ignore[index]
        advance = float(self._hmtx[gname][0])  # type: ignore[index]
        return pen.builder.build(), advance

    def _load_glyph(self, gname: str) -> Glyph:
        path, advance = self._draw(gname)
        return Glyph(path=path, advance=advance, bounds=path.bounds)

    def _load_notdef(self) -> Glyph:
        if self._tt is not None:
            order = self._tt.getGlyphOrder()
            if order:
                path, advance = self._draw(order[0])
                if not path.is_empty():
                    return Glyph(path=path, advance=advance, bounds=path.bounds, is_notdef=True)
            log.warning("No usable .notdef outline in font %s; using built-in box", self._name)
        return builtin_notdef(self._metrics.cap_height)

    def _read_metrics(self) -> FontMetrics:
        if self._tt is None:
            return FontMetrics(
                units_per_em=float(DEFAULT_UNITS_PER_EM),
                cap_height=float(DEFAULT_CAP_HEIGHT),
                x_height=float(DEFAULT_X_HEIGHT),
                ascender=float(DEFAULT_ASCENDER),
                descender=float(DEFAULT_DESCENDER),
                line_gap=float(DEFAULT_LINE_GAP),
            )

        tt = self._tt
        upm = float(tt["head"].unitsPerEm)
        hhea = tt["hhea"]
        ascender = float(hhea.ascent)
        descender = float(hhea.descent)
        line_gap = float(hhea.lineGap)
        line_height = ascender - descender + line_gap
        default_line = float(DEFAULT_ASCENDER - DEFAULT_DESCENDER + DEFAULT_LINE_GAP)

        cap = x = None
        if "OS/2" in tt:
            os2 = tt["OS/2"]
            cap = float(getattr(os2, "sCapHeight", 0) or 0) or None
            x = float(getattr(os2, "sxHeight", 0) or 0) or None

        if cap is None:
            cap = self._glyph_height("H")
        if cap is None:
            cap = DEFAULT_CAP_HEIGHT / default_line * line_height
        if x is None:
            x = self._glyph_height("x")
        if x is None:
            x = DEFAULT_X_HEIGHT / default_line * line_height

        return FontMetrics(
            units_per_em=upm,
            cap_height=float(cap),
            x_height=float(x),
            ascender=ascender,
            descender=descender,
            line_gap=line_gap,
        )

    def _glyph_height(self, ch: str) -> Optional[float]:
        gname = self._cmap.get(ord(ch))
        if gname is None:
            return None
        path, _ = self._draw(gname)
        b = path.bounds
        if b is None or b.h <= 0:
            return None
        return b.h


def _read_kern_pairs(tt: TTFont) -> Dict[Tuple[str, str], float]:
    """Flatten format-0 subtables of the legacy `kern` table."""
    pairs: Dict[Tuple[str, str], float] = {}
    if "kern" not in tt:
        return pairs
    for sub in tt["kern"].kernTables:
        table = getattr(sub, "kernTable", None)
        if not table:
            continue
        for key, value in table.items():
            pairs.setdefault(key, float(value))
    return pairs


def _font_name(tt: TTFont) -> str:
    if "name" not in tt:
        return ""
    return str(tt["name"].getDebugName(4) or tt["name"].getDebugName(1) or "")
