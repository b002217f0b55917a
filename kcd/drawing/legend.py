"""Legend layout: glyph runs, auto-fit and alignment inside the margin box.

Coordinates
- Font outlines arrive in font units, y-down, baseline at 0.
- A run is scaled by ``text_height / cap_height`` so capitals are exactly
  ``text_height`` mm tall; the last line sits on baseline 0 and earlier lines
  stack upwards by the font line height.
- Vertical alignment uses baseline and text height (not the ink bounds) so
  legends line up across keys whatever their glyphs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from kcd.core.color import Color
from kcd.core.font import Font
from kcd.core.models import Legend
from kcd.core.profile import LegendBox, Profile
from kcd.drawing.model import DrawWarning, KeyPath, Outline, PathRole, WarningKind
from kcd.geom.path import Path, rect_path
from kcd.geom.primitives import Affine, Rect

# A run within this much of the box counts as fitting (keeps fit() idempotent).
FIT_EPS = 1e-9

MARGIN_COLOR = Color.from_hex("#ff0000")
MARGIN_WIDTH_MM = 0.1


@dataclass(frozen=True)
class GlyphRun:
    """One laid-out legend in mm, before fitting and alignment."""

    path: Path
    x_min: float
    x_max: float
    height: float  # text height + line height * (lines - 1)
    missing: Tuple[int, ...]

    @property
    def width(self) -> float:
        return self.x_max - self.x_min


def slot_align(slot: int) -> Tuple[float, float]:
    """(x, y) alignment factor of a 3x3 slot: 0 = left/top, 0.5 = centre, 1 = right/bottom."""
    return ((slot % 3) * 0.5, (slot // 3) * 0.5)


def fit(run_width: float, run_height: float, box: Rect) -> float:
    """Uniform scale factor (<= 1) that makes the run fit inside `box`."""
    s = 1.0
    if run_width > box.w + FIT_EPS and run_width > 0.0:
        s = min(s, max(box.w, 0.0) / run_width)
    if run_height > box.h + FIT_EPS and run_height > 0.0:
        s = min(s, max(box.h, 0.0) / run_height)
    return s


def layout_run(lines: List[str], font: Font, text_height: float) -> GlyphRun:
    """Place glyphs by advance + kerning and scale font units to mm."""
    m = font.metrics()
    scale = text_height / m.cap_height
    line_height = m.line_height

    parts: List[Path] = []
    missing: List[int] = []
    adv_max = 0.0
    n = len(lines)
    for i, line in enumerate(lines):
        baseline = -(n - 1 - i) * line_height
        x = 0.0
        prev: Optional[int] = None
        for ch in line:
            cp = ord(ch)
            if prev is not None:
                x += font.kerning(prev, cp)
            g = font.glyph(cp)
            if g.is_notdef and cp not in missing:
                missing.append(cp)
            if not g.path.is_empty():
                parts.append(g.path.translate(x, baseline))
            x += g.advance
            prev = cp
        adv_max = max(adv_max, x)

    path = Path.join(parts).transform(Affine.scaling(scale))
    x_min, x_max = 0.0, adv_max * scale
    b = path.bounds
    if b is not None:
        x_min = min(x_min, b.x0)
        x_max = max(x_max, b.x1)

    height = text_height + line_height * scale * (n - 1)
    return GlyphRun(path=path, x_min=x_min, x_max=x_max, height=height, missing=tuple(missing))


def draw_legend(
    legend: Legend,
    slot: int,
    font: Font,
    profile: Profile,
    top_rect: Rect,
    key_index: int,
    *,
    show_margin: bool = False,
) -> Tuple[List[KeyPath], List[DrawWarning]]:
    """Glyph-run path (+ optional margin debug path) for one legend slot, key-local mm."""
    warnings: List[DrawWarning] = []
    box: LegendBox = profile.legend_box_for(legend.size, top_rect)

    if box.fell_back:
        target = "built-in minimal class" if box.resolved_class is None else f"class {box.resolved_class}"
        warnings.append(
            DrawWarning(
                kind=WarningKind.SIZE_CLASS_FALLBACK,
                key_index=key_index,
                slot=slot,
                text=legend.text,
                message=f"legend size class {legend.size} not in profile; using {target}",
            )
        )

    run = layout_run(legend.lines(), font, box.text_height)
    if run.missing:
        cps = ", ".join(f"U+{cp:04X}" for cp in run.missing)
        warnings.append(
            DrawWarning(
                kind=WarningKind.MISSING_GLYPH,
                key_index=key_index,
                slot=slot,
                text=legend.text,
                message=f"no glyph for {cps}; drawn as .notdef",
            )
        )

    margin = box.margin
    s = fit(run.width, run.height, margin)
    if s < 1.0:
        warnings.append(
            DrawWarning(
                kind=WarningKind.LEGEND_SHRUNK,
                key_index=key_index,
                slot=slot,
                text=legend.text,
                factor=s,
                message=(
                    f"legend {legend.text!r} ({run.width:.3f}x{run.height:.3f} mm) shrunk by {s:.4f} "
                    f"to fit {margin.w:.3f}x{margin.h:.3f} mm"
                ),
            )
        )

    bounds = Rect(run.x_min * s, -run.height * s, run.x_max * s, 0.0)
    ax, ay = slot_align(slot)
    px = margin.x0 + (margin.w - bounds.w) * ax
    py = margin.y0 + (margin.h - bounds.h) * ay
    xf = Affine.scaling(s).then(Affine.translation(px - bounds.x0, py - bounds.y0))

    out = [KeyPath(role=PathRole.LEGEND, path=run.path.transform(xf), fill=legend.color)]
    if show_margin:
        out.append(
            KeyPath(
                role=PathRole.MARGIN,
                path=rect_path(margin),
                outline=Outline(MARGIN_COLOR, MARGIN_WIDTH_MM),
            )
        )
    return out, warnings
