#!/usr/bin/env python3
"""Unit tests for the layout loaders: KLE raw data and the native schema."""

from __future__ import annotations

import json

import pytest


def test_rows_advance_x_and_y() -> None:
    from kcd.core.kle import parse_kle

    keys = parse_kle([{"name": "meta"}, ["Q", "W"], [{"w": 2}, "Bksp", "X"]])
    assert [(k.x, k.y) for k in keys] == [(0, 0), (1, 0), (0, 1), (2, 1)]
    assert keys[2].width == 2.0
    assert keys[3].width == 1.0


def test_labels_follow_alignment_flags() -> None:
    from kcd.core.kle import parse_kle

    shifted, centred = parse_kle([["!\n1", {"a": 7}, "Esc"]])
    assert shifted.legends[0].text == "!"
    assert shifted.legends[6].text == "1"
    assert centred.legends[4].text == "Esc"
    assert [i for i, _ in centred.populated_legends()] == [4]


def test_iso_enter_secondary_footprint() -> None:
    from kcd.core.kle import parse_kle

    (enter,) = parse_kle([[{"x": 0.25, "w": 1.25, "h": 2, "w2": 1.5, "h2": 1, "x2": -0.25}, "Enter"]])
    assert enter.x == 0.25
    assert (enter.width, enter.height) == (1.25, 2.0)
    assert enter.has_secondary
    assert enter.secondary_rect().as_list() == [-0.25, 0.0, 1.25, 1.0]
    assert len(enter.footprints()) == 2


def test_rotation_cluster_resets_position() -> None:
    from kcd.core.kle import parse_kle

    a, b, c = parse_kle([[{"r": 15, "rx": 1, "ry": 2}, "R", "S"], ["T"]])
    assert (a.x, a.y, a.rotation, a.rotation_x, a.rotation_y) == (1, 2, 15, 1, 2)
    assert (b.x, b.y) == (2, 2)
    assert (c.x, c.y) == (1, 3)


def test_rotation_cluster_keeps_offsets_on_the_same_item() -> None:
    from kcd.core.kle import parse_kle

    a, b = parse_kle([[{"r": 15, "rx": 1, "ry": 2, "x": 0.5, "y": -1}, "A", "B"]])
    # The origin resets the cluster first, then x/y move away from it.
    assert (a.x, a.y) == (1.5, 1.0)
    assert (a.rotation_x, a.rotation_y) == (1, 2)
    assert (b.x, b.y) == (2.5, 1.0)


def test_stepped_flag_is_read_and_reset() -> None:
    from kcd.core.kle import parse_kle
    from kcd.core.models import Key

    caps, a = parse_kle([[{"w": 1.25, "w2": 1.75, "l": True}, "Caps", "A"]])
    assert caps.stepped
    assert (caps.width, caps.width2) == (1.25, 1.75)
    assert not a.stepped

    again = Key.from_dict(caps.to_dict())
    assert again.stepped
    assert "stepped" not in a.to_dict()


def test_colours_sizes_homing_and_ghosts() -> None:
    from kcd.core.color import Color
    from kcd.core.kle import parse_kle
    from kcd.core.models import HomingKind

    keys = parse_kle(
        [
            [{"c": "#ff0000", "t": "#00ff00", "f": 5}, "F", {"n": True}, "J"],
            [{"g": True}, "ghost", {"g": False, "p": "DSA SCOOPED"}, "K", {"c": "bogus"}, "L"],
        ]
    )
    f, j, k, l = keys
    assert f.color.is_close(Color.from_hex("#ff0000"))
    assert f.legends[0].color.is_close(Color.from_hex("#00ff00"))
    assert f.legends[0].size == 5
    assert j.homing and j.homing_kind is None
    # The ghost key is skipped but still takes up room.
    assert k.x == 1.0
    assert k.homing and k.homing_kind == HomingKind.SCOOP
    assert l.color.to_hex() == "#cccccc"


@pytest.mark.parametrize(
    "rows",
    [
        {"not": "a list"},
        [["A"], {"name": "late metadata"}],
        [["A", {"r": 10}, "B"]],
        [["A", 3]],
        [[{"w": "wide"}, "A"]],
        [[{"a": 9}, "A"]],
    ],
)
def test_malformed_kle_raises_schema_error(rows) -> None:
    from kcd.core.kle import parse_kle
    from kcd.utils.errors import KcdSchemaError

    with pytest.raises(KcdSchemaError):
        parse_kle(rows)


def test_load_layout_detects_native_and_kle(tmp_path) -> None:
    from kcd.core.kle import load_layout
    from kcd.core.models import HomingKind, Key, Legend, layout_to_dict

    native = [
        Key(x=1, y=0.5, width=1.5, legends=(Legend("Tab"),) + (None,) * 8),
        Key(x=0, y=2, homing=True, homing_kind=HomingKind.BUMP, rotation=10, rotation_x=1, rotation_y=1),
    ]
    p = tmp_path / "native.json"
    p.write_text(json.dumps(layout_to_dict(native)), encoding="utf-8")
    assert load_layout(p) == native

    k = tmp_path / "kle.json"
    k.write_text(json.dumps([["A", "B"]]), encoding="utf-8")
    assert len(load_layout(k)) == 2


def test_native_schema_errors(tmp_path) -> None:
    from kcd.core.kle import load_layout
    from kcd.core.models import layout_from_dict
    from kcd.utils.errors import KcdIOError, KcdSchemaError

    with pytest.raises(KcdSchemaError):
        layout_from_dict({"schema_version": 99, "keys": []})
    with pytest.raises(KcdSchemaError):
        layout_from_dict({"keys": [{"x": "left"}]})
    with pytest.raises(KcdSchemaError):
        layout_from_dict({"keys": [{"homing_kind": "laser"}]})

    bad = tmp_path / "bad.json"
    bad.write_text("{", encoding="utf-8")
    with pytest.raises(KcdSchemaError):
        load_layout(bad)
    with pytest.raises(KcdIOError):
        load_layout(tmp_path / "missing.json")


def test_key_validation() -> None:
    from kcd.core.models import Key, Legend
    from kcd.utils.errors import KcdValidationError

    Key().validate()
    for bad in (
        Key(width=0),
        Key(height=-1),
        Key(width2=0.0, height2=1.0),
        Key(x=float("nan")),
        Key(legends=(Legend("A"),)),
        Key(legends=(Legend("A", size=-1),) + (None,) * 8),
    ):
        with pytest.raises(KcdValidationError):
            bad.validate()


def test_legend_lines_and_blank() -> None:
    from kcd.core.models import Legend

    assert Legend("Page<br>Up").lines() == ["Page", "Up"]
    assert Legend("a\nb").lines() == ["a", "b"]
    assert Legend("  ").is_blank()
    assert not Legend("x").is_blank()
