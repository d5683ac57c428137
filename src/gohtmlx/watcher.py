"""Watch mode: rebuild the generated package when component files change.

One `Rebuilder` lives for the whole session and drives `pipeline.run`
directly. It keeps a sha256 digest of every source file as of the last good
build, so a batch of events that leaves each changed file byte-identical
(editor swap writes, ``touch``, saving without edits) skips the rebuild.
After a failed cycle the next change always rebuilds.
"""

from __future__ import annotations

import hashlib
import logging
import time
from collections.abc import AsyncIterator, Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from gohtmlx.diagnostics import format_error_with_hint
from gohtmlx.discovery import discover_sources
from gohtmlx.errors import GohtmlxError
from gohtmlx.paths import output_dir
from gohtmlx.pipeline import RunOptions, RunReport, run

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WatchCycleResult:
    """Outcome of one cycle: the run report on success, the attributed error on failure."""

    changed_paths: frozenset[Path]
    duration_s: float
    report: RunReport | None = None
    error: GohtmlxError | None = None
    unchanged: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


def check_watchfiles_available() -> None:
    """Raise ImportError with a helpful message if watchfiles is not installed."""
    import importlib

    try:
        importlib.import_module("watchfiles")
    except ImportError:
        raise ImportError(
            "watchfiles is required for watch mode. Install it with: pip install gohtmlx[watch]"
        ) from None


def file_digest(path: Path) -> str | None:
    """sha256 of the file's bytes, or None when it cannot be read (e.g. deleted)."""
    try:
        return hashlib.sha256(path.read_bytes()).hexdigest()
    except OSError:
        return None


def filter_source_files(
    changed_paths: frozenset[Path],
    *,
    source_dir: Path,
    output_dir: Path,
    extensions: Iterable[str],
) -> frozenset[Path]:
    """Keep component files under `source_dir`, dropping anything under `output_dir`."""
    exts = {e.lower() for e in extensions}
    kept: set[Path] = set()
    for p in changed_paths:
        if p.suffix.lower() not in exts:
            continue
        if p.is_relative_to(output_dir):
            continue
        if p.is_relative_to(source_dir):
            kept.add(p)
    return frozenset(kept)


class Rebuilder:
    """Callable that runs one watch cycle for a fixed project."""

    def __init__(
        self,
        src: Path,
        dist: Path,
        options: RunOptions | None = None,
        *,
        log: logging.Logger | None = None,
    ) -> None:
        self.src = src
        self.dist = dist
        self.options = options or RunOptions()
        self.log = log or logger
        self.digests: dict[Path, str | None] = {}
        self.last_ok = False

    def snapshot(self) -> dict[Path, str | None]:
        files = discover_sources(
            self.src,
            extensions=self.options.extensions,
            exclude=list(self.options.exclude),
            output_dir=output_dir(self.dist, self.options.package),
        )
        return {p.resolve(): file_digest(p) for p in files}

    def is_unchanged(self, changed: frozenset[Path]) -> bool:
        """True when the last build succeeded and every changed file still hashes the same.

        A path that was never built and is gone again also counts as unchanged.
        """
        if not self.last_ok or not changed:
            return False
        return all(self.digests.get(p.resolve()) == file_digest(p) for p in changed)

    def __call__(self, changed: frozenset[Path]) -> WatchCycleResult:
        t0 = time.monotonic()
        if self.is_unchanged(changed):
            self.log.debug("content unchanged for %d file(s); skipping rebuild", len(changed))
            return WatchCycleResult(
                changed_paths=changed, duration_s=time.monotonic() - t0, unchanged=True
            )

        try:
            # Hash before building: an edit that lands mid-build must still differ.
            digests = self.snapshot()
            report = run(self.src, self.dist, self.options, log=self.log)
        except GohtmlxError as e:
            self.last_ok = False
            return WatchCycleResult(
                changed_paths=changed, duration_s=time.monotonic() - t0, error=e
            )

        self.digests = digests
        self.last_ok = True
        return WatchCycleResult(
            changed_paths=changed, duration_s=time.monotonic() - t0, report=report
        )


def format_cycle(result: WatchCycleResult) -> str:
    """Render a cycle for stderr; errors keep their file:line attribution and hint."""
    lines: list[str] = []
    if result.changed_paths:
        names = ", ".join(str(p) for p in sorted(result.changed_paths))
        lines.append(f"[watch] change detected: {names}")

    if result.error is not None:
        lines.append(format_error_with_hint(result.error))
        lines.append("[watch] build failed; waiting for changes")
    elif result.unchanged:
        lines.append("[watch] content unchanged; skipped")
    elif result.report is not None and result.report.skipped:
        lines.append("[watch] output up to date; skipped")
    elif result.report is not None:
        lines.append(
            f"[watch] rebuilt {len(result.report.components)} component(s), "
            f"wrote {len(result.report.written)} file(s) in {result.duration_s:.2f}s"
        )
    return "\n".join(lines)


async def run_watch_loop(
    *,
    changes_iter: AsyncIterator[set[tuple[Any, str]]],
    rebuild: Callable[[frozenset[Path]], WatchCycleResult],
    on_result: Callable[[WatchCycleResult], None],
    source_dir: Path,
    output_dir: Path,
    extensions: Iterable[str],
) -> int:
    """Consume change batches and rebuild once per relevant batch; return the cycle count."""
    exts = tuple(extensions)
    cycles = 0
    async for raw_changes in changes_iter:
        paths = frozenset(Path(p) for _, p in raw_changes)
        relevant = filter_source_files(
            paths, source_dir=source_dir, output_dir=output_dir, extensions=exts
        )
        if not relevant:
            continue
        on_result(rebuild(relevant))
        cycles += 1
    return cycles


def make_watchfiles_iter(
    watch_paths: list[Path],
    *,
    debounce_ms: int = 300,
) -> AsyncIterator[set[tuple[Any, str]]]:
    """Create an async iterator over watchfiles.awatch() change batches."""
    import watchfiles  # type: ignore[import-untyped]

    return watchfiles.awatch(*watch_paths, debounce=debounce_ms)
