# File: kcd/drawing/engine.py
# Project: KeycapDraw (KCD)
# Version: 0.1.0
# Status: stable
# Date: 2026-10-19
# Purpose: Drawing pass: keys + profile + font -> Drawing (paths, bounds, warnings).
# Notes:
#   - Pure over immutable inputs. Keys are validated up front; a failure while
#     assembling any key aborts the whole pass (no partial Drawing).
#   - workers > 1 runs per-key assembly on a thread pool; map() keeps layout
#     order so the result does not depend on the worker count.
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from kcd.core.font import Font
from kcd.core.models import Key
from kcd.core.profile import Profile
from kcd.core.version import DEFAULT_OUTLINE_WIDTH_MM, UNIT_MM
from kcd.drawing.legend import draw_legend
from kcd.drawing.model import DrawWarning, Drawing, KeyDrawing, KeyPath, Outline, PathRole
from kcd.geom.primitives import Affine, union_all
from kcd.utils.errors import KcdInternalError, KcdValidationError

log = logging.getLogger(__name__)

OUTLINE_HIGHLIGHT = 0.15


@dataclass(frozen=True)
class DrawOptions:
    outline_width: float = DEFAULT_OUTLINE_WIDTH_MM
    show_keys: bool = True
    show_margin: bool = False
    workers: int = 1


def key_transform(key: Key) -> Affine:
    """Key-local mm -> drawing mm: translate to the key position, then rotate about its origin."""
    xf = Affine.translation(key.x * UNIT_MM, key.y * UNIT_MM)
    if key.rotation:
        xf = xf.then(Affine.rotation(key.rotation, key.rotation_x * UNIT_MM, key.rotation_y * UNIT_MM))
    return xf


def draw(
    keys: Sequence[Key],
    profile: Profile,
    font: Font,
    options: Optional[DrawOptions] = None,
) -> Drawing:
    """Compute every key's paths and assemble the Drawing."""
    opts = options or DrawOptions()

    for i, key in enumerate(keys):
        try:
            key.validate()
        except KcdValidationError as e:
            raise KcdValidationError(f"key {i}: {e}") from e

    def one(i: int) -> Tuple[KeyDrawing, List[DrawWarning]]:
        try:
            return _assemble(i, keys[i], profile, font, opts)
        except KcdInternalError:
            raise
        except Exception as e:
            raise KcdInternalError(f"drawing key {i} failed: {type(e).__name__}: {e}") from e

    n = len(keys)
    workers = max(1, int(opts.workers))
    if workers > 1 and n > 1:
        font.prepare(_all_legend_text(keys))
        with ThreadPoolExecutor(max_workers=min(workers, n)) as ex:
            results = list(ex.map(one, range(n)))
    else:
        results = [one(i) for i in range(n)]

    records: List[KeyDrawing] = []
    warnings: List[DrawWarning] = []
    for rec, warns in results:
        records.append(rec)
        warnings.extend(warns)
    bounds = union_all(rec.bounds() for rec in records)

    for w in warnings:
        log.info("[%s] key %d: %s", w.kind.value, w.key_index, w.message)
    log.info(
        "Drawing built: %d keys, %d warnings, bounds=%s",
        n,
        len(warnings),
        None if bounds is None else [round(v, 4) for v in bounds.as_list()],
    )
    return Drawing(records=tuple(records), bounds=bounds, warnings=tuple(warnings))


def _assemble(
    index: int, key: Key, profile: Profile, font: Font, opts: DrawOptions
) -> Tuple[KeyDrawing, List[DrawWarning]]:
    shape = profile.shape_for(key)
    paths: List[KeyPath] = []
    warnings: List[DrawWarning] = []
    outline = Outline(key.color.highlight(OUTLINE_HIGHLIGHT), opts.outline_width)

    draw_cap = opts.show_keys and not key.decal
    if draw_cap:
        paths.append(KeyPath(PathRole.KEY_BOTTOM, shape.bottom, fill=key.color, outline=outline))
        paths.append(KeyPath(PathRole.KEY_TOP, shape.top, fill=key.color, outline=outline))
        if shape.step is not None:
            paths.append(KeyPath(PathRole.STEP, shape.step, fill=key.color, outline=outline))

        kind = profile.homing_kind_for(key)
        feature = profile.homing_feature_for(key.homing, kind, shape.top_rect)
        if feature is not None:
            cx, cy = shape.top_rect.center
            paths.append(KeyPath(PathRole.HOMING, feature.translate(cx, cy), fill=key.color, outline=outline))

    for slot, legend in key.populated_legends():
        lpaths, lwarns = draw_legend(
            legend, slot, font, profile, shape.top_rect, index, show_margin=opts.show_margin
        )
        paths.extend(lpaths)
        warnings.extend(lwarns)

    xf = key_transform(key)
    placed = tuple(
        KeyPath(kp.role, kp.path.transform(xf), fill=kp.fill, outline=kp.outline) for kp in paths
    )
    return KeyDrawing(key_index=index, paths=placed), warnings


def _all_legend_text(keys: Sequence[Key]) -> str:
    seen = set()
    for key in keys:
        for _, legend in key.populated_legends():
            seen.update("".join(legend.lines()))
    return "".join(sorted(seen))
