from __future__ import annotations

import io
import os

import pytest

# Qt must never try to open a display during tests.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


def _poly_glyph(points):
    from fontTools.pens.ttGlyphPen import TTGlyphPen

    pen = TTGlyphPen(None)
    if points:
        pen.moveTo(points[0])
        for pt in points[1:]:
            pen.lineTo(pt)
        pen.closePath()
    return pen.glyph()


def build_test_font_bytes() -> bytes:
    """Tiny TrueType font: .notdef, A, V, space; cap 700, x 500, kern A/V -70."""
    from fontTools.fontBuilder import FontBuilder
    from fontTools.ttLib import newTable
    from fontTools.ttLib.tables._k_e_r_n import KernTable_format_0

    order = [".notdef", "A", "V", "space"]
    fb = FontBuilder(1000, isTTF=True)
    fb.setupGlyphOrder(order)
    fb.setupCharacterMap({0x41: "A", 0x56: "V", 0x20: "space"})
    fb.setupGlyf(
        {
            ".notdef": _poly_glyph([(50, 0), (50, 700), (450, 700), (450, 0)]),
            "A": _poly_glyph([(0, 0), (300, 700), (600, 0)]),
            "V": _poly_glyph([(0, 700), (600, 700), (300, 0)]),
            "space": _poly_glyph([]),
        }
    )
    fb.setupHorizontalMetrics({".notdef": (500, 50), "A": (600, 0), "V": (600, 0), "space": (250, 0)})
    fb.setupHorizontalHeader(ascent=800, descent=-200)
    fb.setupNameTable({"familyName": "KcdTest", "styleName": "Regular"})
    fb.setupOS2(sTypoAscender=800, usWinAscent=800, usWinDescent=200, sCapHeight=700, sxHeight=500)
    fb.setupPost()

    kern = newTable("kern")
    kern.version = 0
    sub = KernTable_format_0()
    sub.version = 0
    sub.format = 0
    sub.coverage = 1
    sub.kernTable = {("A", "V"): -70}
    kern.kernTables = [sub]
    fb.font["kern"] = kern

    buf = io.BytesIO()
    fb.save(buf)
    return buf.getvalue()


@pytest.fixture(scope="session")
def font_bytes() -> bytes:
    return build_test_font_bytes()


@pytest.fixture()
def font(font_bytes):
    from kcd.core.font import Font

    return Font.from_bytes(font_bytes, name="KcdTest")


@pytest.fixture()
def font_file(tmp_path, font_bytes):
    p = tmp_path / "kcdtest.ttf"
    p.write_bytes(font_bytes)
    return p


@pytest.fixture()
def profile():
    from kcd.core.profile import Profile

    return Profile.default()


@pytest.fixture()
def keys():
    """Small layout: plain key with legends, homing key, 2u key."""
    from kcd.core.models import Key, Legend

    def legends(**slots):
        out = [None] * 9
        for slot, text in slots.items():
            out[int(slot[1:])] = Legend(text)
        return tuple(out)

    return [
        Key(x=0, y=0, legends=legends(s0="A", s8="V")),
        Key(x=1, y=0, legends=legends(s4="AV"), homing=True),
        Key(x=2, y=0, width=2.0, legends=legends(s4="AVA")),
    ]
