#!/usr/bin/env python3
"""Unit tests for core/profile_io.py (TOML / JSON profile files)."""

from __future__ import annotations

import json

import pytest

PROFILE_TOML = """
type = "cylindrical"
depth = 0.5

[bottom]
width = 18.29
height = 18.29
radius = 0.38

[top]
width = 11.81
height = 13.91
radius = 1.52
y-offset = -1.62

[legend.5]
size = 4.84
width = 9.45
height = 11.54
y-offset = 0

[legend.3]
size = 3.18
width = 9.45
height = 11.54

[homing]
default = "dish"

[homing.scoop]
depth = 1.5

[homing.bar]
width = 3.85
height = 0.4
y-offset = 5.25
"""


def test_load_toml_profile(tmp_path) -> None:
    from kcd.core.models import HomingKind
    from kcd.core.profile import SculptType, TopAnchor
    from kcd.core.profile_io import load_profile

    p = tmp_path / "cherry.toml"
    p.write_text(PROFILE_TOML, encoding="utf-8")
    prof = load_profile(p)

    assert prof.name == "cherry"
    assert prof.sculpt == SculptType.CYLINDRICAL
    assert prof.depth == pytest.approx(0.5)
    assert prof.bottom.width == pytest.approx(18.29)
    assert prof.top.y_offset == pytest.approx(-1.62)
    assert prof.top_anchor == TopAnchor.LARGER

    # Sorted by size class; boxes become side offsets from the top face.
    assert [idx for idx, _ in prof.legends] == [3, 5]
    lc = prof.legend_classes()[5]
    assert lc.text_height == pytest.approx(4.84)
    assert lc.left == pytest.approx((11.81 - 9.45) / 2)
    assert lc.top == pytest.approx((13.91 - 11.54) / 2)

    # Alias "dish" -> scoop; unspecified homing fields keep their defaults.
    assert prof.homing.default == HomingKind.SCOOP
    assert prof.homing.scoop_depth == pytest.approx(1.5)
    assert prof.homing.bar_y_offset == pytest.approx(5.25)
    assert prof.homing.bump_diameter == pytest.approx(0.51)


def test_json_profile_with_snake_case_keys(tmp_path) -> None:
    from kcd.core.profile import SculptType
    from kcd.core.profile_io import load_profile

    data = {
        "type": "flat",
        "bottom": {"width": 18, "height": 18, "radius": 0.5},
        "top": {"width": 12, "height": 13, "radius": 1, "y_offset": -1},
        "top_anchor": "primary",
    }
    p = tmp_path / "flat.json"
    p.write_text(json.dumps(data), encoding="utf-8")
    prof = load_profile(p)
    assert prof.sculpt == SculptType.FLAT
    assert prof.depth == 0.0
    assert prof.top.y_offset == pytest.approx(-1.0)
    # No [legend] table: the built-in size classes apply.
    assert len(prof.legends) == 10


def test_missing_bottom_table_is_schema_error() -> None:
    from kcd.core.profile_io import profile_from_dict
    from kcd.utils.errors import KcdSchemaError

    with pytest.raises(KcdSchemaError):
        profile_from_dict({"top": {"width": 12, "height": 13, "radius": 1}})


@pytest.mark.parametrize(
    "patch",
    [
        {"type": "conical"},
        {"top-anchor": "sideways"},
        {"bottom": {"width": "wide", "height": 18, "radius": 1}},
        {"bottom": {"width": 0, "height": 18, "radius": 1}},
        {"legend": {"big": {"size": 3, "width": 9, "height": 9}}},
        {"homing": {"default": "laser"}},
    ],
)
def test_bad_values_are_schema_errors(patch) -> None:
    from kcd.core.profile_io import profile_from_dict
    from kcd.utils.errors import KcdSchemaError

    d = {
        "bottom": {"width": 18, "height": 18, "radius": 1},
        "top": {"width": 12, "height": 13, "radius": 1},
    }
    d.update(patch)
    with pytest.raises(KcdSchemaError):
        profile_from_dict(d)


def test_invalid_toml_and_missing_file(tmp_path) -> None:
    from kcd.core.profile_io import load_profile
    from kcd.utils.errors import KcdIOError, KcdSchemaError

    bad = tmp_path / "bad.toml"
    bad.write_text("[bottom\nwidth = ", encoding="utf-8")
    with pytest.raises(KcdSchemaError):
        load_profile(bad)
    with pytest.raises(KcdIOError):
        load_profile(tmp_path / "nope.toml")
