# File: kcd/export/png_exporter.py
# Project: KeycapDraw (KCD)
# Version: 0.1.0
# Status: stable
# Date: 2026-10-19
# Purpose: Drawing -> PNG bytes via QImage + QPainter (no widgets).
# Notes:
#   - `scale` is pixels per millimetre; image size is ceil(canvas_bounds * scale),
#     so outer outlines are not clipped.
#   - Background stays transparent. Runs headless: QT_QPA_PLATFORM defaults to
#     "offscreen" when unset.
from __future__ import annotations

import logging
import math
import os
import sys

from PySide6.QtCore import QBuffer, QByteArray, QIODevice, QPointF, Qt
from PySide6.QtGui import QBrush, QColor, QGuiApplication, QImage, QPainter, QPainterPath, QPen

from kcd.core.color import Color
from kcd.core.version import DEFAULT_PPI, MM_PER_INCH
from kcd.drawing.model import Drawing, KeyPath
from kcd.geom.path import Path
from kcd.utils.errors import KcdEncodeError

log = logging.getLogger(__name__)

# QImage refuses anything larger on either side.
MAX_DIMENSION_PX = 32767

DEFAULT_PX_PER_MM = DEFAULT_PPI / MM_PER_INCH


def _ensure_qt_app() -> None:
    """Create a minimal Qt app if none exists (some raster plugins need one)."""
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    if QGuiApplication.instance() is None:
        QGuiApplication(sys.argv[:1] or ["kcd-png"])


def _qcolor(c: Color) -> QColor:
    r, g, b = c.rgb8()
    return QColor(r, g, b)


def to_qpath(path: Path) -> QPainterPath:
    q = QPainterPath()
    q.setFillRule(Qt.WindingFill)
    for seg in path:
        op = seg[0]
        if op == "M":
            q.moveTo(seg[1], seg[2])
        elif op == "L":
            q.lineTo(seg[1], seg[2])
        elif op == "C":
            q.cubicTo(QPointF(seg[1], seg[2]), QPointF(seg[3], seg[4]), QPointF(seg[5], seg[6]))
        elif op == "Z":
            q.closeSubpath()
    return q


def _paint(painter: QPainter, kp: KeyPath) -> None:
    q = to_qpath(kp.path)
    painter.setBrush(QBrush(_qcolor(kp.fill)) if kp.fill is not None else Qt.NoBrush)
    if kp.outline is not None and kp.outline.width > 0.0:
        pen = QPen(_qcolor(kp.outline.color))
        pen.setWidthF(kp.outline.width)
        pen.setJoinStyle(Qt.RoundJoin)
        painter.setPen(pen)
    else:
        painter.setPen(Qt.NoPen)
    painter.drawPath(q)


def encode_png(drawing: Drawing, scale: float = DEFAULT_PX_PER_MM) -> bytes:
    """Rasterize a Drawing; `scale` is pixels per millimetre."""
    b = drawing.canvas_bounds()
    if b is None:
        raise KcdEncodeError("Cannot encode an empty drawing as PNG")
    if not scale > 0.0:
        raise KcdEncodeError(f"PNG scale must be > 0 (got {scale})")

    w_px = int(math.ceil(b.w * scale))
    h_px = int(math.ceil(b.h * scale))
    if w_px <= 0 or h_px <= 0 or w_px > MAX_DIMENSION_PX or h_px > MAX_DIMENSION_PX:
        raise KcdEncodeError(f"PNG dimensions out of range: {w_px}x{h_px} px")

    _ensure_qt_app()

    img = QImage(w_px, h_px, QImage.Format_ARGB32)
    if img.isNull():
        raise KcdEncodeError(f"Could not allocate a {w_px}x{h_px} image")
    img.fill(Qt.transparent)

    painter = QPainter(img)
    try:
        painter.setRenderHint(QPainter.Antialiasing, True)
        painter.scale(scale, scale)
        painter.translate(-b.x0, -b.y0)
        for _, kp in drawing.iter_paths():
            if not kp.path.is_empty():
                _paint(painter, kp)
    finally:
        painter.end()

    buf = QByteArray()
    dev = QBuffer(buf)
    dev.open(QIODevice.WriteOnly)
    ok = img.save(dev, "PNG")
    dev.close()
    if not ok:
        raise KcdEncodeError("Qt could not write PNG data")

    log.debug("PNG encoded: %dx%d px (%.4f px/mm)", w_px, h_px, scale)
    return bytes(buf.data())
