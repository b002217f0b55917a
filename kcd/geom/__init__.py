"""Geometry helpers.

This package is intentionally small and dependency-light: points are plain
``(x, y)`` tuples, rectangles and affine transforms are frozen dataclasses and
paths only ever hold move/line/cubic/close segments.

The only third-party import lives in ``svg_bbox`` (fontTools), used to
re-measure exported SVG for round-trip checks.
"""

from __future__ import annotations
