"""Comment-balance checker for component files.

A quick lint that only looks at ``<!-- X define "..." -->`` / ``<!-- X end -->``
markers (X is ``*``, ``+`` or ``|``) and reports blocks that do not pair up.
Nothing is compiled.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from gohtmlx.discovery import DEFAULT_EXTENSIONS, discover_sources

_OPEN_RE = re.compile(r'<!--\s*([*+|])\s+define\s+"([^"]*)"\s*-->')
_CLOSE_RE = re.compile(r"<!--\s*([*+|])\s+end\s*-->")


@dataclass(frozen=True, slots=True)
class BlockIssue:
    path: str
    line: int
    message: str

    def __str__(self) -> str:
        return f"{self.path}:{self.line}: {self.message}"


def check_text(text: str, path: str = "<text>") -> list[BlockIssue]:
    issues: list[BlockIssue] = []
    stack: list[str] = []
    lines = text.split("\n")

    for lineno, line in enumerate(lines, start=1):
        for m in _CLOSE_RE.finditer(line):
            marker = m.group(1)
            if not stack:
                issues.append(
                    BlockIssue(path, lineno, f"unexpected <!-- {marker} end --> (no open block)")
                )
                continue
            top = stack.pop()
            if top != marker:
                issues.append(
                    BlockIssue(
                        path,
                        lineno,
                        f"<!-- {marker} end --> does not match open <!-- {top} define -->",
                    )
                )
        for m in _OPEN_RE.finditer(line):
            stack.append(m.group(1))

    if stack:
        issues.append(
            BlockIssue(
                path,
                len(lines),
                f"unclosed block(s) <!-- {', '.join(stack)} define --> "
                f"(missing <!-- {stack[-1]} end -->)",
            )
        )
    return issues


def check_tree(
    src: Path,
    *,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    exclude: list[str] | None = None,
) -> list[BlockIssue]:
    """Check every component file under `src`; unreadable files are reported as issues."""

    issues: list[BlockIssue] = []
    for path in discover_sources(src, extensions=extensions, exclude=exclude):
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            issues.append(BlockIssue(str(path), 0, f"read: {e}"))
            continue
        issues.extend(check_text(text, str(path)))
    return issues
