"""Delimiter-based block sectioner.

A component file is structured with HTML comments that wrap named blocks::

    <!-- * define "imports" -->
    t "example.com/app/types"
    <!-- * end -->

    <!-- + define "Card" -->
      <!-- | define "props" -->
      title: string
      <!-- | end -->
      <!-- | define "html" -->
      <div class="card">{props.Title}</div>
      <!-- | end -->
    <!-- + end -->

The same mechanism is applied at three levels, each with its own open marker:
file imports (``*``), components (``+``) and component sub-blocks (``|``).
Markers of the other levels are plain text at any given level, so nesting
across levels needs no recursive parser.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from gohtmlx.errors import SectionError


@dataclass(frozen=True, slots=True)
class Delimiters:
    open: str
    close: str = " -->"

    def pattern(self) -> re.Pattern[str]:
        return re.compile(
            re.escape(self.open.strip())
            + r'\s*(?:define\s+"(?P<name>[^"]*)"|(?P<end>end))\s*'
            + re.escape(self.close.strip())
        )

    def describe(self, word: str) -> str:
        return f"{self.open.strip()} {word} {self.close.strip()}"


IMPORTS = Delimiters("<!-- *")
COMPONENTS = Delimiters("<!-- +")
SUB_BLOCKS = Delimiters("<!-- |")


@dataclass(frozen=True, slots=True)
class Block:
    name: str
    body: str
    line: int


def _line_at(text: str, offset: int) -> int:
    return 1 + text.count("\n", 0, offset)


def find_blocks(text: str, delimiters: Delimiters, *, path: str = "") -> list[Block]:
    """Return every top-level block for `delimiters`, in source order."""

    blocks: list[Block] = []
    first_line: dict[str, int] = {}
    # (name, body start offset, line of the define marker)
    current: tuple[str, int, int] | None = None

    for m in delimiters.pattern().finditer(text):
        line = _line_at(text, m.start())

        if m.group("end") is not None:
            if current is None:
                raise SectionError(
                    f"unexpected {delimiters.describe('end')} (no open block)",
                    file_path=path,
                    line=line,
                )
            name, body_start, define_line = current
            blocks.append(Block(name=name, body=text[body_start : m.start()], line=define_line))
            current = None
            continue

        name = m.group("name") or ""
        if current is not None:
            marker = delimiters.describe(f'define "{name}"')
            raise SectionError(
                f'{marker} is nested inside block "{current[0]}" (line {current[2]}); '
                f"close it with {delimiters.describe('end')} first",
                file_path=path,
                line=line,
            )
        if not name.strip():
            raise SectionError("block name must not be empty", file_path=path, line=line)
        if name in first_line:
            raise SectionError(
                f'block "{name}" already defined at line {first_line[name]}',
                file_path=path,
                line=line,
            )
        first_line[name] = line
        current = (name, m.end(), line)

    if current is not None:
        name, _, define_line = current
        raise SectionError(
            f'unclosed block "{name}" (missing {delimiters.describe("end")})',
            file_path=path,
            line=define_line,
        )

    return blocks


def split_sections(text: str, delimiters: Delimiters, *, path: str = "") -> dict[str, str]:
    """Map block name -> raw inner text for every define/end span at one level."""

    return {b.name: b.body for b in find_blocks(text, delimiters, path=path)}


def parse_imports(text: str) -> list[str]:
    """Split an ``imports`` block body into one Go import spec per non-empty line."""

    out: list[str] = []
    for raw in text.strip().split("\n"):
        s = raw.strip()
        if s:
            out.append(s)
    return out
