from __future__ import annotations

from pathlib import Path

import pytest

from gohtmlx.discovery import discover_sources
from gohtmlx.errors import SourceIOError


def _write(path: Path, content: str = "") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _rel(root: Path, paths: list[Path]) -> list[str]:
    return [p.relative_to(root).as_posix() for p in paths]


def test_discover_sources_recursive_and_sorted(tmp_path: Path) -> None:
    _write(tmp_path / "z.html")
    _write(tmp_path / "pages" / "home.HTML")
    _write(tmp_path / "a" / "b" / "card.html")
    _write(tmp_path / "notes.md")

    assert _rel(tmp_path, discover_sources(tmp_path)) == [
        "a/b/card.html",
        "pages/home.HTML",
        "z.html",
    ]


def test_discover_sources_custom_extensions(tmp_path: Path) -> None:
    _write(tmp_path / "a.gohtml")
    _write(tmp_path / "b.html")
    assert _rel(tmp_path, discover_sources(tmp_path, extensions=[".gohtml"])) == ["a.gohtml"]


def test_discover_sources_exclude_globs(tmp_path: Path) -> None:
    _write(tmp_path / "keep.html")
    _write(tmp_path / "drafts" / "wip.html")
    _write(tmp_path / "deep" / "drafts" / "wip.html")
    _write(tmp_path / "old.html")

    found = discover_sources(tmp_path, exclude=["**/drafts/*", "old.html"])
    assert _rel(tmp_path, found) == ["keep.html"]


def test_discover_sources_skips_output_dir(tmp_path: Path) -> None:
    _write(tmp_path / "card.html")
    _write(tmp_path / "dist" / "gohtmlxc" / "copy.html")
    found = discover_sources(tmp_path, output_dir=tmp_path / "dist" / "gohtmlxc")
    assert _rel(tmp_path, found) == ["card.html"]


def test_discover_sources_missing_root(tmp_path: Path) -> None:
    with pytest.raises(SourceIOError, match="source directory not found"):
        discover_sources(tmp_path / "missing")
