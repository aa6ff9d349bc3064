"""Checks on the installable project metadata."""

from __future__ import annotations

from pathlib import Path

_PYPROJECT = Path(__file__).resolve().parent.parent / "pyproject.toml"


def test_design_notes_are_not_the_package_readme() -> None:
    text = _PYPROJECT.read_text(encoding="utf-8")
    assert "DESIGN.md" not in text


def test_console_script_points_at_cli() -> None:
    text = _PYPROJECT.read_text(encoding="utf-8")
    assert 'serpscout = "cli.main:app"' in text
