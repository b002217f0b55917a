# File: kcd/export/pdf_exporter.py
# Project: KeycapDraw (KCD)
# Version: 0.1.0
# Status: stable
# Date: 2026-10-19
# Purpose: Drawing -> single-page vector PDF bytes.
# Notes:
#   - Objects are assembled by hand (catalog, pages, page, contents, info) and
#     followed by a byte-exact xref table.
#   - 1 mm = 72/25.4 pt (times `scale`). PDF y grows upwards, so y is flipped
#     against the page height.
#   - The page is the stroke-padded canvas_bounds, the same box the SVG and PNG use.
#   - The content stream is Flate-compressed with zlib.
from __future__ import annotations

import logging
import zlib
from typing import List, Tuple

from kcd.core.version import APP_NAME, APP_VERSION, MM_PER_INCH, PT_PER_INCH
from kcd.drawing.model import Drawing, KeyPath
from kcd.utils.errors import KcdEncodeError

log = logging.getLogger(__name__)

PT_PER_MM = PT_PER_INCH / MM_PER_INCH
PDF_TITLE = "Keycap Layout"


def _num(v: float) -> str:
    s = f"{v:.4f}".rstrip("0").rstrip(".")
    return "0" if s in ("", "-0") else s


def _escape_pdf_text(s: str) -> str:
    return s.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


class _PageMapper:
    """Drawing mm -> page pt with y flipped."""

    def __init__(self, x0: float, y0: float, k: float, page_h: float) -> None:
        self.x0, self.y0, self.k, self.page_h = x0, y0, k, page_h

    def __call__(self, x: float, y: float) -> Tuple[str, str]:
        return _num((x - self.x0) * self.k), _num(self.page_h - (y - self.y0) * self.k)


def _path_ops(kp: KeyPath, to_page: _PageMapper) -> List[str]:
    ops: List[str] = []
    for seg in kp.path:
        op = seg[0]
        if op == "M":
            ops.append("%s %s m" % to_page(seg[1], seg[2]))
        elif op == "L":
            ops.append("%s %s l" % to_page(seg[1], seg[2]))
        elif op == "C":
            pts = to_page(seg[1], seg[2]) + to_page(seg[3], seg[4]) + to_page(seg[5], seg[6])
            ops.append("%s %s %s %s %s %s c" % pts)
        elif op == "Z":
            ops.append("h")

    has_fill = kp.fill is not None
    has_stroke = kp.outline is not None and kp.outline.width > 0.0
    if has_fill:
        ops.insert(0, f"{kp.fill.pdf_components()} rg")
    if has_stroke:
        ops.insert(0, f"{_num(kp.outline.width * to_page.k)} w")
        ops.insert(0, f"{kp.outline.color.pdf_components()} RG")

    # nonzero winding fill, like the SVG/PNG output
    if has_fill and has_stroke:
        ops.append("B")
    elif has_fill:
        ops.append("f")
    elif has_stroke:
        ops.append("S")
    else:
        ops.append("n")
    return ops


def content_stream(drawing: Drawing, scale: float = 1.0) -> Tuple[bytes, float, float]:
    """Uncompressed page operators plus the page size in pt."""
    b = drawing.canvas_bounds()
    if b is None:
        raise KcdEncodeError("Cannot encode an empty drawing as PDF")
    if not scale > 0.0:
        raise KcdEncodeError(f"PDF scale must be > 0 (got {scale})")

    k = PT_PER_MM * scale
    page_w, page_h = b.w * k, b.h * k
    to_page = _PageMapper(b.x0, b.y0, k, page_h)

    ops: List[str] = ["1 J 1 j"]
    for _, kp in drawing.iter_paths():
        if kp.path.is_empty():
            continue
        ops.append("q")
        ops.extend(_path_ops(kp, to_page))
        ops.append("Q")
    return "\n".join(ops).encode("ascii"), page_w, page_h


def encode_pdf(drawing: Drawing, scale: float = 1.0) -> bytes:
    """Serialize a Drawing as a one-page PDF 1.4 document."""
    raw, page_w, page_h = content_stream(drawing, scale)
    data = zlib.compress(raw)

    producer = _escape_pdf_text(f"{APP_NAME} {APP_VERSION}")
    objects: List[bytes] = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        (
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 {_num(page_w)} {_num(page_h)}] "
            "/Resources << >> /Contents 4 0 R >>"
        ).encode("ascii"),
        f"<< /Length {len(data)} /Filter /FlateDecode >>\nstream\n".encode("ascii") + data + b"\nendstream",
        (
            f"<< /Creator ({_escape_pdf_text(APP_NAME)}) /Producer ({producer}) "
            f"/Title ({_escape_pdf_text(PDF_TITLE)}) >>"
        ).encode("ascii"),
    ]

    buffer = bytearray()
    buffer.extend(b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n")
    offsets = [0]
    for idx, obj in enumerate(objects, start=1):
        offsets.append(len(buffer))
        buffer.extend(f"{idx} 0 obj\n".encode("ascii"))
        buffer.extend(obj)
        if not obj.endswith(b"\n"):
            buffer.extend(b"\n")
        buffer.extend(b"endobj\n")
    xref_offset = len(buffer)
    count = len(objects) + 1
    buffer.extend(f"xref\n0 {count}\n".encode("ascii"))
    buffer.extend(b"0000000000 65535 f \n")
    for offset in offsets[1:]:
        buffer.extend(f"{offset:010d} 00000 n \n".encode("ascii"))
    buffer.extend(
        f"trailer\n<< /Size {count} /Root 1 0 R /Info 5 0 R >>\nstartxref\n{xref_offset}\n%%EOF\n".encode("ascii")
    )

    log.debug("PDF encoded: %.2fx%.2f pt, %d bytes", page_w, page_h, len(buffer))
    return bytes(buffer)
