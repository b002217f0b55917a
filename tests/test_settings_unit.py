#!/usr/bin/env python3
"""Unit tests for core/settings.py (kcd_settings.json + KCD_* env vars)."""

from __future__ import annotations

import json

import pytest


def _write_settings(d, data) -> None:
    (d / "kcd_settings.json").write_text(json.dumps(data), encoding="utf-8")


def test_defaults_without_file_or_env(tmp_path) -> None:
    from kcd.core.settings import RenderSettings
    from kcd.core.version import DEFAULT_OUTLINE_WIDTH_MM, DEFAULT_PPI

    s = RenderSettings.load(tmp_path, env={})
    assert s == RenderSettings()
    assert s.outline_width_mm == DEFAULT_OUTLINE_WIDTH_MM
    assert s.px_per_mm == pytest.approx(DEFAULT_PPI / 25.4)


def test_file_is_found_in_a_parent_directory(tmp_path) -> None:
    from kcd.core.settings import RenderSettings, find_project_settings_path

    _write_settings(
        tmp_path,
        {
            "render": {"outline_width_mm": 0.5, "show_margin": True, "workers": 4},
            "export": {"ppi": 300},
            "paths": {"profile": "cherry.toml"},
        },
    )
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    assert find_project_settings_path(nested) == (tmp_path / "kcd_settings.json").resolve()

    s = RenderSettings.load(nested, env={})
    assert s.outline_width_mm == pytest.approx(0.5)
    assert s.show_margin is True
    assert s.workers == 4
    assert s.ppi == pytest.approx(300)
    assert s.profile_path == "cherry.toml"
    assert s.font_path is None


def test_env_wins_over_file(tmp_path) -> None:
    from kcd.core.settings import RenderSettings

    _write_settings(tmp_path, {"render": {"workers": 2, "show_keys": True}})
    env = {"KCD_WORKERS": "8", "KCD_SHOW_KEYS": "off", "KCD_FONT": " /fonts/x.ttf ", "KCD_SCALE": ""}
    s = RenderSettings.load(tmp_path, env=env)
    assert s.workers == 8
    assert s.show_keys is False
    assert s.font_path == "/fonts/x.ttf"
    assert s.scale == 1.0


def test_env_is_read_from_os_environ(tmp_path, monkeypatch) -> None:
    from kcd.core.settings import RenderSettings

    monkeypatch.setenv("KCD_OUTLINE_WIDTH_MM", "0.1")
    assert RenderSettings.load(tmp_path).outline_width_mm == pytest.approx(0.1)


def test_bad_values_are_clamped_or_ignored(tmp_path) -> None:
    from kcd.core.settings import MAX_WORKERS, RenderSettings

    env = {
        "KCD_WORKERS": "999",
        "KCD_OUTLINE_WIDTH_MM": "thick",
        "KCD_PPI": "nan",
        "KCD_SHOW_MARGIN": "maybe",
        "KCD_SCALE": "-3",
    }
    s = RenderSettings.load(tmp_path, env=env)
    d = RenderSettings()
    assert s.workers == MAX_WORKERS
    assert s.outline_width_mm == d.outline_width_mm
    assert s.ppi == d.ppi
    assert s.show_margin is False
    assert s.scale == pytest.approx(0.01)


def test_invalid_settings_file_is_ignored(tmp_path) -> None:
    from kcd.core.settings import RenderSettings, load_project_settings

    (tmp_path / "kcd_settings.json").write_text("{oops", encoding="utf-8")
    assert load_project_settings(tmp_path) == {}
    assert RenderSettings.load(tmp_path, env={}) == RenderSettings()

    (tmp_path / "kcd_settings.json").write_text("[1, 2]", encoding="utf-8")
    assert load_project_settings(tmp_path) == {}
