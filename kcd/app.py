# File: kcd/app.py
# Project: KeycapDraw (KCD)
# Version: 0.1.0
# Status: stable
# Date: 2026-10-19
# Purpose: CLI entry-point: layout + profile + font -> SVG/PNG/PDF file.
# Notes:
#   - Defaults come from RenderSettings (kcd_settings.json + KCD_* env vars);
#     command-line flags win over both.
#   - Exit code 0 on success, 1 on any KcdError, 2 on usage errors (argparse).
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from kcd.core.font import Font
from kcd.core.kle import load_layout
from kcd.core.profile import Profile
from kcd.core.profile_io import load_profile
from kcd.core.settings import RenderSettings
from kcd.core.version import APP_NAME, APP_VERSION, MM_PER_INCH
from kcd.drawing.engine import DrawOptions, draw
from kcd.export.registry import export_drawing, format_from_suffix, normalize_format
from kcd.export.svg_exporter import encode_svg
from kcd.geom.svg_bbox import compare_bboxes, measure_svg
from kcd.utils.errors import KcdError, KcdIOError
from kcd.utils.log import get_logger, level_for, setup_logging

log = get_logger(__name__)


def _build_parser(settings: RenderSettings) -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="kcd",
        description=f"{APP_NAME}: draw a keycap layout as SVG, PNG or PDF.",
    )
    ap.add_argument("layout", help="Layout file (KLE raw JSON or native KCD JSON)")
    ap.add_argument("-o", "--out", required=True, help="Output file")
    ap.add_argument("--format", default="", help="svg, png, pdf or ai (default: from the output extension)")
    ap.add_argument("--profile", default=settings.profile_path or "", help="Profile .toml/.json (default: built-in)")
    ap.add_argument("--font", default=settings.font_path or "", help="TTF/OTF font (default: built-in notdef boxes)")
    ap.add_argument("--scale", type=float, default=settings.scale, help="Size multiplier for SVG/PDF")
    ap.add_argument("--ppi", type=float, default=settings.ppi, help="PNG pixels per inch at scale 1")
    ap.add_argument("--workers", type=int, default=settings.workers, help="Parallel key workers")
    ap.add_argument("--outline-width", type=float, default=settings.outline_width_mm, help="Key outline width (mm)")
    ap.add_argument("--show-margin", action="store_true", default=settings.show_margin, help="Draw legend margins")
    ap.add_argument("--hide-keys", action="store_true", default=not settings.show_keys, help="Legends only")
    ap.add_argument("--verify", action="store_true", help="Re-measure the SVG and compare against the drawing bbox")
    ap.add_argument("--report", default="", help="Write the --verify report to this JSON file")
    ap.add_argument("-v", "--verbose", action="count", default=0, help="More log output (-vv for debug)")
    ap.add_argument("-q", "--quiet", action="store_true", help="Only log errors")
    ap.add_argument("--log-dir", default="", help="Also write kcd.log into this directory")
    ap.add_argument("--version", action="version", version=f"{APP_NAME} {APP_VERSION}")
    return ap


def _load_profile(path: str) -> Profile:
    return load_profile(path) if path else Profile.default()


def _load_font(path: str) -> Font:
    if not path:
        log.info("No font given; legends are drawn with the built-in notdef glyph")
        return Font.default()
    return Font.from_path(path)


def _read_back(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise KcdIOError(f"Could not read back output: {path}") from e


def run(args: argparse.Namespace) -> int:
    fmt = normalize_format(args.format) if args.format else format_from_suffix(args.out)

    keys = load_layout(args.layout)
    profile = _load_profile(args.profile)
    font = _load_font(args.font)
    opts = DrawOptions(
        outline_width=max(0.0, args.outline_width),
        show_keys=not args.hide_keys,
        show_margin=args.show_margin,
        workers=max(1, args.workers),
    )

    drawing = draw(keys, profile, font, opts)
    for w in drawing.warnings:
        print(f"warning: [{w.kind.value}] key {w.key_index}: {w.message}", file=sys.stderr)

    # png scale is pixels per mm
    scale = args.ppi / MM_PER_INCH * args.scale if fmt == "png" else args.scale
    out = export_drawing(drawing, args.out, fmt=fmt, scale=scale)

    if args.verify:
        # Re-read the written SVG so the check covers what is on disk.
        svg = _read_back(out) if fmt == "svg" else encode_svg(drawing, 1.0)
        report = compare_bboxes(drawing.bounds, measure_svg(svg))
        print(f"verify: {report['status']}")
        if args.report:
            rp = Path(args.report)
            try:
                rp.write_text(json.dumps(report, indent=2, ensure_ascii=False), encoding="utf-8")
            except OSError as e:
                raise KcdIOError(f"Could not write report: {rp}") from e
        if report["status"] == "FAIL":
            return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    settings = RenderSettings.load(logger=log)
    args = _build_parser(settings).parse_args(argv)
    setup_logging(level_for(-1 if args.quiet else args.verbose), args.log_dir or None)
    log.info("%s started (v%s)", APP_NAME, APP_VERSION)
    try:
        return run(args)
    except KcdError as e:
        log.error("%s: %s", type(e).__name__, e)
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
