# File: kcd/export/svg_exporter.py
# Project: KeycapDraw (KCD)
# Version: 0.1.0
# Status: stable
# Date: 2026-10-19
# Purpose: Drawing -> SVG bytes (document units = mm).
# Notes:
#   - width/height carry the "mm" suffix; viewBox is the drawing bounds plus
#     half the widest outline (Drawing.canvas_bounds), so one
#     user unit is one millimetre at scale 1.
#   - One <g> per key record, one <path> per KeyPath, in paint order.
from __future__ import annotations

import logging
from typing import List
from xml.etree.ElementTree import Element, SubElement, tostring

from kcd.drawing.model import Drawing, KeyPath
from kcd.geom.path import Path
from kcd.utils.errors import KcdEncodeError

log = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"


def fmt_num(v: float) -> str:
    """Shortest decimal for `v` rounded to 1e-4 (no '-0')."""
    s = f"{round(float(v), 4):.4f}".rstrip("0").rstrip(".")
    return "0" if s in ("-0", "") else s


def path_data(path: Path) -> str:
    out: List[str] = []
    for seg in path:
        op = seg[0]
        if op == "Z":
            out.append("Z")
        else:
            out.append(op + " " + " ".join(fmt_num(v) for v in seg[1:]))
    return " ".join(out)


def _path_attrs(kp: KeyPath) -> dict:
    attrs = {
        "d": path_data(kp.path),
        "class": kp.role.value,
        "fill": kp.fill.to_hex() if kp.fill is not None else "none",
    }
    if kp.outline is not None and kp.outline.width > 0.0:
        attrs["stroke"] = kp.outline.color.to_hex()
        attrs["stroke-width"] = fmt_num(kp.outline.width)
        attrs["stroke-linejoin"] = "round"
    else:
        attrs["stroke"] = "none"
    return attrs


def encode_svg(drawing: Drawing, scale: float = 1.0) -> bytes:
    """Serialize a Drawing as a standalone SVG document.

    `scale` only changes the physical width/height; the viewBox (and so every
    coordinate) stays in drawing millimetres.
    """
    if not scale > 0.0:
        raise KcdEncodeError(f"SVG scale must be > 0 (got {scale})")

    b = drawing.canvas_bounds()
    if b is None:
        x0 = y0 = w = h = 0.0
        log.warning("Encoding an empty drawing as SVG")
    else:
        x0, y0, w, h = b.x0, b.y0, b.w, b.h

    svg = Element(
        "svg",
        {
            "xmlns": SVG_NS,
            "version": "1.1",
            "width": f"{fmt_num(w * scale)}mm",
            "height": f"{fmt_num(h * scale)}mm",
            "viewBox": " ".join(fmt_num(v) for v in (x0, y0, w, h)),
        },
    )

    n_paths = 0
    for rec in drawing.records:
        g = SubElement(svg, "g", {"id": f"key-{rec.key_index}"})
        for kp in rec.ordered_paths():
            if kp.path.is_empty():
                continue
            SubElement(g, "path", _path_attrs(kp))
            n_paths += 1

    log.debug("SVG encoded: %d keys, %d paths", len(drawing.records), n_paths)
    return tostring(svg, encoding="unicode").encode("utf-8")

