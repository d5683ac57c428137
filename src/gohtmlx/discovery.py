"""Discovery helpers: find component source files under the source directory."""

from __future__ import annotations

import fnmatch
from collections.abc import Iterable
from pathlib import Path

from gohtmlx.errors import SourceIOError

DEFAULT_EXTENSIONS = (".html",)


def _is_excluded(rel_posix: str, *, exclude: list[str]) -> bool:
    # Patterns are matched against a posix-style relative path.
    for pat in exclude:
        if fnmatch.fnmatchcase(rel_posix, pat):
            return True

        # `fnmatch` doesn't treat a leading `**/` as "zero or more directories".
        # Normalize by stripping leading `**/`.
        stripped = pat
        while stripped.startswith("**/"):
            stripped = stripped[3:]
            if fnmatch.fnmatchcase(rel_posix, stripped):
                return True

    return False


def _is_within(path: Path, parent: Path) -> bool:
    return path == parent or parent in path.parents


def discover_sources(
    root: Path,
    *,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    exclude: list[str] | None = None,
    output_dir: Path | None = None,
) -> list[Path]:
    """Return component files under `root`, sorted by path.

    - Matches files whose suffix is one of `extensions` (case-insensitive).
    - Skips anything under `output_dir` and any path matching a glob in
      `exclude` (matched against the posix-style path relative to `root`).
    """

    if not root.is_dir():
        raise SourceIOError(f"source directory not found: {root}", file_path=str(root))

    exts = {e.lower() for e in extensions}
    exclude = exclude or []
    out_resolved = output_dir.resolve() if output_dir is not None else None

    found: list[Path] = []
    for path in root.rglob("*"):
        if not path.is_file() or path.suffix.lower() not in exts:
            continue
        if out_resolved is not None and _is_within(path.resolve(), out_resolved):
            continue
        if _is_excluded(path.relative_to(root).as_posix(), exclude=exclude):
            continue
        found.append(path)

    return sorted(found, key=lambda p: p.relative_to(root).as_posix())
