# File: kcd/core/color.py
# Project: KeycapDraw (KCD)
# Version: 0.1.0
# Status: stable
# Date: 2026-10-19
# Purpose: Flat RGB colour value (0..1 floats) + conversions per encoder.
# Notes: No colour management. Interpolation is linear in sRGB components.
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Tuple

from kcd.utils.errors import KcdValidationError

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def _to8(c: float) -> int:
    # Truncating scale, saturating at both ends.
    return max(0, min(255, int(c * 256.0)))


@dataclass(frozen=True)
class Color:
    r: float
    g: float
    b: float

    # ------------------------------
    # Constructors
    # ------------------------------
    @staticmethod
    def from_rgb8(r: int, g: int, b: int) -> "Color":
        return Color(r / 255.0, g / 255.0, b / 255.0)

    @staticmethod
    def from_hex(s: str) -> "Color":
        """Parse ``#rgb`` / ``#rrggbb`` (leading ``#`` optional)."""
        m = _HEX_RE.match(str(s or "").strip())
        if not m:
            raise KcdValidationError(f"Invalid colour: {s!r}")
        h = m.group(1)
        if len(h) == 3:
            h = "".join(ch * 2 for ch in h)
        return Color.from_rgb8(int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16))

    # ------------------------------
    # Operations
    # ------------------------------
    def lerp(self, other: "Color", t: float) -> "Color":
        return Color(
            self.r + (other.r - self.r) * t,
            self.g + (other.g - self.g) * t,
            self.b + (other.b - self.b) * t,
        )

    def lighter(self, val: float) -> "Color":
        return self.lerp(Color(1.0, 1.0, 1.0), val)

    def darker(self, val: float) -> "Color":
        return self.lerp(Color(0.0, 0.0, 0.0), val)

    def highlight(self, val: float) -> "Color":
        """Lighter for dark colours, darker for light ones (HSL lightness > 0.5)."""
        comps = (self.r, self.g, self.b)
        if max(comps) + min(comps) > 1.0:
            return self.darker(val)
        return self.lighter(val)

    # ------------------------------
    # Encoder representations
    # ------------------------------
    def rgb8(self) -> Tuple[int, int, int]:
        return (_to8(self.r), _to8(self.g), _to8(self.b))

    def to_hex(self) -> str:
        r, g, b = self.rgb8()
        return f"#{r:02x}{g:02x}{b:02x}"

    def pdf_components(self) -> str:
        """``r g b`` operands for the PDF ``rg``/``RG`` operators."""
        return " ".join(_pdf_num(max(0.0, min(1.0, c))) for c in (self.r, self.g, self.b))

    def is_close(self, other: "Color", tol: float = 1e-6) -> bool:
        return (
            abs(self.r - other.r) <= tol
            and abs(self.g - other.g) <= tol
            and abs(self.b - other.b) <= tol
        )


DEFAULT_KEY_COLOR = Color.from_hex("#cccccc")
DEFAULT_LEGEND_COLOR = Color.from_hex("#000000")


def coerce_color(v: Any, default: Color) -> Color:
    """Colour from a hex string / Color; `default` for None or empty strings."""
    if isinstance(v, Color):
        return v
    if v is None or (isinstance(v, str) and not v.strip()):
        return default
    return Color.from_hex(str(v))


def _pdf_num(v: float) -> str:
    s = f"{v:.4f}".rstrip("0").rstrip(".")
    return s if s not in ("", "-0") else "0"
