#!/usr/bin/env python3
"""Unit tests for the drawing pass (drawing/engine.py + drawing/legend.py)."""

from __future__ import annotations

import pytest

U = 19.05


def _legends(**slots):
    from kcd.core.models import Legend

    out = [None] * 9
    for slot, lg in slots.items():
        out[int(slot[1:])] = lg if isinstance(lg, Legend) else Legend(lg)
    return tuple(out)


def _draw(keys, profile, font, **opts):
    from kcd.drawing.engine import DrawOptions, draw

    return draw(keys, profile, font, DrawOptions(**opts))


def test_plain_1u_key_matches_profile_bottom() -> None:
    from kcd.core.font import Font
    from kcd.core.models import Key
    from kcd.core.profile import BottomSurface, Profile, TopSurface
    from kcd.drawing.model import PathRole

    prof = Profile(
        bottom=BottomSurface(18.29, 18.29, 0.38),
        top=TopSurface(11.81, 13.91, 1.52, -1.62),
    )
    d = _draw([Key()], prof, Font.default())

    assert d.bounds.w == pytest.approx(18.29)
    assert d.bounds.h == pytest.approx(18.29)
    assert d.bounds.center == pytest.approx((U / 2, U / 2))
    assert d.count(PathRole.KEY_BOTTOM) == 1
    assert d.count(PathRole.KEY_TOP) == 1
    assert d.count(PathRole.LEGEND) == 0
    assert d.count(PathRole.HOMING) == 0
    assert d.warnings == ()


def test_empty_layout_gives_empty_drawing(profile, font) -> None:
    d = _draw([], profile, font)
    assert d.is_empty()
    assert d.records == ()


def test_invalid_key_aborts_the_pass(profile, font) -> None:
    from kcd.core.models import Key
    from kcd.utils.errors import KcdValidationError

    with pytest.raises(KcdValidationError, match="key 1"):
        _draw([Key(), Key(width=0)], profile, font)


def test_homing_feature_only_on_homing_keys(profile, font, keys) -> None:
    from kcd.drawing.model import PathRole

    d = _draw(keys, profile, font)
    assert d.count(PathRole.HOMING) == 1
    rec = d.records[1]
    (bar,) = [kp for kp in rec.paths if kp.role == PathRole.HOMING]
    top = [kp for kp in rec.paths if kp.role == PathRole.KEY_TOP][0]
    assert top.path.bounds.contains(bar.path.bounds)
    assert bar.path.bounds.w == pytest.approx(3.81)


def test_paint_order_and_outline_colour(profile, font, keys) -> None:
    from kcd.drawing.model import ROLE_ORDER

    d = _draw(keys, profile, font, outline_width=0.3)
    for rec in d.records:
        order = [ROLE_ORDER[kp.role] for kp in rec.ordered_paths()]
        assert order == sorted(order)

    bottom = d.records[0].ordered_paths()[0]
    assert bottom.fill.to_hex() == "#cccccc"
    assert bottom.outline.width == pytest.approx(0.3)
    assert bottom.outline.color.r == pytest.approx(0.8 * 0.85)


def test_legends_stay_inside_their_margin(profile, font) -> None:
    from kcd.core.models import Key
    from kcd.drawing.model import PathRole

    key = Key(legends=_legends(s0="A", s4="AV", s8="V"))
    d = _draw([key], profile, font)
    shape = profile.shape_for(key)
    margin = profile.legend_box_for(3, shape.top_rect).margin

    legends = [kp for kp in d.records[0].ordered_paths() if kp.role == PathRole.LEGEND]
    assert len(legends) == 3
    for kp in legends:
        assert margin.contains(kp.path.bounds, tol=1e-6)

    top_left, centre, bottom_right = (kp.path.bounds for kp in legends)
    assert top_left.x0 == pytest.approx(margin.x0)
    assert top_left.y0 == pytest.approx(margin.y0)
    assert bottom_right.x1 == pytest.approx(margin.x1)
    assert bottom_right.y1 == pytest.approx(margin.y1)
    assert centre.center[0] == pytest.approx(margin.center[0])
    # Capitals are exactly text-height tall.
    assert top_left.h == pytest.approx(12 / 72 * U)


def test_long_legend_is_shrunk_to_fit(profile, font) -> None:
    from kcd.core.models import Key, Legend
    from kcd.drawing.model import PathRole, WarningKind

    key = Key(legends=_legends(s4=Legend("AVAVAVAVAV", size=9)))
    d = _draw([key], profile, font)
    margin = profile.legend_box_for(9, profile.shape_for(key).top_rect).margin

    (w,) = d.warnings_of(WarningKind.LEGEND_SHRUNK)
    assert w.key_index == 0 and w.slot == 4
    assert 0.0 < w.factor < 1.0
    (kp,) = [kp for kp in d.records[0].paths if kp.role == PathRole.LEGEND]
    assert kp.path.bounds.w == pytest.approx(margin.w)
    assert margin.contains(kp.path.bounds, tol=1e-6)


def test_fit_is_idempotent(profile, font) -> None:
    from kcd.drawing.legend import fit, layout_run

    box = profile.legend_box_for(9).margin
    run = layout_run(["AVAVAVAVAV"], font, 6.35)
    s = fit(run.width, run.height, box)
    assert s < 1.0
    assert fit(run.width * s, run.height * s, box) == 1.0
    assert fit(1.0, 1.0, box) == 1.0


def test_kerning_narrows_the_run(font) -> None:
    from kcd.drawing.legend import layout_run

    av = layout_run(["AV"], font, 7.0)
    aa = layout_run(["AA"], font, 7.0)
    scale = 7.0 / 700
    assert aa.width == pytest.approx(1200 * scale)
    assert av.width == pytest.approx(1130 * scale)


def test_multiline_run_height(font) -> None:
    from kcd.drawing.legend import layout_run

    run = layout_run(["A", "V"], font, 3.5)
    assert run.height == pytest.approx(3.5 + 1000 * 3.5 / 700)
    assert run.path.bounds.y1 == pytest.approx(0.0)
    assert run.path.subpath_count() == 2


def test_size_class_fallback_and_missing_glyph_warnings(font) -> None:
    from kcd.core.models import Key, Legend
    from kcd.core.profile import LegendClass, Profile
    from kcd.drawing.model import PathRole, WarningKind

    prof = Profile(legends=((3, LegendClass.uniform(3.0, 1.0)),))
    key = Key(legends=_legends(s0=Legend("AZ", size=5)))
    d = _draw([key], prof, font)

    (fb,) = d.warnings_of(WarningKind.SIZE_CLASS_FALLBACK)
    assert "class 3" in fb.message
    (miss,) = d.warnings_of(WarningKind.MISSING_GLYPH)
    assert "U+005A" in miss.message
    # Still drawn, with the notdef box in place of Z.
    assert d.count(PathRole.LEGEND) == 1
    (kp,) = [kp for kp in d.records[0].paths if kp.role == PathRole.LEGEND]
    assert kp.path.subpath_count() == 2
    assert kp.path.bounds.h == pytest.approx(3.0)


def test_decal_and_hidden_keys_draw_legends_only(profile, font) -> None:
    from kcd.core.models import Key
    from kcd.drawing.model import PathRole

    keys = [Key(decal=True, legends=_legends(s4="A")), Key(x=1, homing=True, legends=_legends(s4="V"))]
    decal = _draw(keys[:1], profile, font)
    assert decal.count(PathRole.KEY_BOTTOM) == 0
    assert decal.count(PathRole.LEGEND) == 1

    hidden = _draw(keys, profile, font, show_keys=False)
    assert hidden.count(PathRole.KEY_TOP) == 0
    assert hidden.count(PathRole.HOMING) == 0
    assert hidden.count(PathRole.LEGEND) == 2


def test_show_margin_adds_one_path_per_legend(profile, font, keys) -> None:
    from kcd.drawing.model import PathRole

    d = _draw(keys, profile, font, show_margin=True)
    assert d.count(PathRole.MARGIN) == d.count(PathRole.LEGEND) == 4
    m = next(kp for _, kp in d.iter_paths() if kp.role == PathRole.MARGIN)
    assert m.fill is None and m.outline is not None


def test_key_position_and_rotation(profile, font) -> None:
    from kcd.core.models import Key

    moved = _draw([Key(x=2, y=1)], profile, font)
    assert moved.bounds.x0 == pytest.approx(2 * U + 0.025 * U)
    assert moved.bounds.y0 == pytest.approx(U + 0.025 * U)

    rotated = _draw([Key(rotation=90)], profile, font)
    assert rotated.bounds.x1 == pytest.approx(-0.025 * U)
    assert rotated.bounds.y0 == pytest.approx(0.025 * U)


def test_parallel_pass_matches_serial(profile, font, keys) -> None:
    many = [k for k in keys for _ in range(5)]
    serial = _draw(many, profile, font, workers=1)
    parallel = _draw(many, profile, font, workers=4)
    assert parallel == serial
    assert [r.key_index for r in parallel.records] == list(range(len(many)))


def test_assembly_failure_is_internal_error(profile, font, monkeypatch) -> None:
    from kcd.core.models import Key
    from kcd.drawing import engine
    from kcd.utils.errors import KcdInternalError

    def boom(*args, **kwargs):
        raise ZeroDivisionError("boom")

    monkeypatch.setattr(engine, "draw_legend", boom)
    with pytest.raises(KcdInternalError, match="key 0"):
        _draw([Key(legends=_legends(s4="A"))], profile, font)


def test_draw_without_options_ignores_settings(tmp_path, monkeypatch) -> None:
    from kcd.core.font import Font
    from kcd.core.models import Key
    from kcd.core.profile import Profile
    from kcd.drawing.engine import draw
    from kcd.drawing.model import PathRole

    (tmp_path / "kcd_settings.json").write_text('{"render": {"show_keys": false, "outline_width_mm": 1.0}}')
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("KCD_SHOW_KEYS", "off")

    d = draw([Key()], Profile.default(), Font.default())
    assert d.count(PathRole.KEY_BOTTOM) == 1
    _, first = next(d.iter_paths())
    assert first.outline.width == pytest.approx(0.25)


def test_stepped_key_paints_step_after_top(profile, font) -> None:
    from kcd.core.models import Key
    from kcd.drawing.model import PathRole

    d = _draw([Key(width=1.25, width2=1.75, stepped=True), Key(x=2)], profile, font)
    assert d.count(PathRole.STEP) == 1
    caps, plain = d.records
    assert plain.count(PathRole.STEP) == 0

    roles = [kp.role for kp in caps.ordered_paths()]
    assert roles == [PathRole.KEY_BOTTOM, PathRole.KEY_TOP, PathRole.STEP]
    bottom, _, step = caps.ordered_paths()
    assert step.fill == bottom.fill
    assert bottom.path.bounds.contains(step.path.bounds)
