# File: kcd/export/registry.py
# Project: KeycapDraw (KCD)
# Version: 0.1.0
# Status: stable
# Date: 2026-10-19
# Purpose: Format name -> encoder, plus encode-to-file helper.
# Notes:
#   - "ai" is accepted as an alias of "pdf" (Illustrator opens PDF directly).
#   - `scale` means mm multiplier for svg/pdf and pixels per mm for png.
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict

from kcd.drawing.model import Drawing
from kcd.export.pdf_exporter import encode_pdf
from kcd.export.png_exporter import encode_png
from kcd.export.svg_exporter import encode_svg
from kcd.utils.errors import KcdEncodeError, KcdIOError

log = logging.getLogger(__name__)

Encoder = Callable[[Drawing, float], bytes]

ENCODERS: Dict[str, Encoder] = {
    "svg": encode_svg,
    "png": encode_png,
    "pdf": encode_pdf,
}

FORMAT_ALIASES = {"ai": "pdf"}


def normalize_format(fmt: str) -> str:
    f = str(fmt or "").strip().lower().lstrip(".")
    f = FORMAT_ALIASES.get(f, f)
    if f not in ENCODERS:
        raise KcdEncodeError(f"Unknown output format: {fmt!r} (expected one of: svg, png, pdf, ai)")
    return f


def format_from_suffix(path: str | Path) -> str:
    suffix = Path(path).suffix
    if not suffix:
        raise KcdEncodeError(f"Cannot infer output format from {path!s}: no file extension")
    return normalize_format(suffix)


def encode(drawing: Drawing, fmt: str, scale: float) -> bytes:
    return ENCODERS[normalize_format(fmt)](drawing, scale)


def export_drawing(drawing: Drawing, out_path: str | Path, *, fmt: str | None = None, scale: float) -> Path:
    """Encode and write; the format comes from `fmt` or the file extension."""
    p = Path(out_path)
    f = normalize_format(fmt) if fmt else format_from_suffix(p)
    data = encode(drawing, f, scale)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(data)
    except OSError as e:
        raise KcdIOError(f"Could not write {f.upper()} output: {p}") from e
    log.info("Exported %s: %s (%d bytes)", f.upper(), p, len(data))
    return p
