"""Re-measure exported SVG and compare bboxes (round-trip harness).

Purpose
- Parse every ``<path d>`` of an SVG document independently of the drawing
  pipeline (fontTools ``svgLib`` path parser into a ``BoundsPen``) and union
  the tight bounds.
- Compare that *observed* bbox against the Drawing's *expected* bbox and
  produce a JSON-serializable report with tolerances and a simple status.

Notes
- Stroke width is ignored on purpose: the Drawing bbox is geometric too.
- Coordinates are the SVG user units, i.e. millimetres for KCD output.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional

from fontTools.pens.boundsPen import BoundsPen
from fontTools.svgLib.path import parse_path

from kcd.geom.primitives import Rect
from kcd.utils.errors import KcdValidationError

log = logging.getLogger(__name__)


def measure_svg(data: bytes | str) -> Optional[Rect]:
    """Union of the tight bounds of every ``<path>`` in the document.

    Returns None when the document holds no drawable path.
    Raises KcdValidationError when the markup cannot be parsed.
    """
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise KcdValidationError(f"SVG could not be parsed: {e}") from e

    out: Optional[Rect] = None
    for el in root.iter():
        tag = el.tag
        if not isinstance(tag, str):
            continue
        if not (tag == "path" or tag.endswith("}path")):
            continue
        d = el.attrib.get("d")
        if not d:
            continue

        pen = BoundsPen(None)
        parse_path(d, pen)
        if pen.bounds is None:
            continue
        x0, y0, x1, y1 = pen.bounds
        r = Rect(float(x0), float(y0), float(x1), float(y1))
        out = r if out is None else out.union(r)
    return out


def compare_bboxes(
    expected: Optional[Rect],
    observed: Optional[Rect],
    *,
    tol_abs: float = 1e-3,
    warn_abs: float = 0.05,
) -> Dict[str, Any]:
    """Compare bboxes and return a JSON-serializable report.

    Status:
    - PASS: max_abs_err <= tol_abs
    - WARN: tol_abs < max_abs_err <= warn_abs
    - FAIL: max_abs_err > warn_abs
    - NO_EXPECTED: the Drawing is empty
    - NO_OBSERVED: nothing measurable in the SVG
    """

    notes: List[str] = []

    if expected is None:
        return {
            "status": "NO_EXPECTED",
            "tol_abs": float(tol_abs),
            "warn_abs": float(warn_abs),
            "expected_xyxy": None,
            "observed_xyxy": observed.as_list() if observed else None,
            "max_abs_err": None,
            "diff": None,
            "notes": ["drawing bbox not available"],
        }

    if observed is None:
        return {
            "status": "NO_OBSERVED",
            "tol_abs": float(tol_abs),
            "warn_abs": float(warn_abs),
            "expected_xyxy": expected.as_list(),
            "observed_xyxy": None,
            "max_abs_err": None,
            "diff": None,
            "notes": ["no path found in SVG"],
        }

    dx0 = float(observed.x0 - expected.x0)
    dy0 = float(observed.y0 - expected.y0)
    dx1 = float(observed.x1 - expected.x1)
    dy1 = float(observed.y1 - expected.y1)

    max_abs = max(abs(dx0), abs(dy0), abs(dx1), abs(dy1))

    if expected.is_degenerate():
        notes.append("expected bbox degenerate")
    if observed.is_degenerate():
        notes.append("observed bbox degenerate")

    if max_abs <= float(tol_abs):
        status = "PASS"
    elif max_abs <= float(warn_abs):
        status = "WARN"
    else:
        status = "FAIL"

    if status != "PASS":
        log.warning("SVG round-trip %s: max_abs_err=%.6f", status, max_abs)

    return {
        "status": status,
        "tol_abs": float(tol_abs),
        "warn_abs": float(warn_abs),
        "expected_xyxy": expected.as_list(),
        "observed_xyxy": observed.as_list(),
        "max_abs_err": float(max_abs),
        "diff": {
            "dx0": dx0,
            "dy0": dy0,
            "dx1": dx1,
            "dy1": dy1,
            "dw": float(observed.w - expected.w),
            "dh": float(observed.h - expected.h),
        },
        "notes": notes,
    }
