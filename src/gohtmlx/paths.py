"""Pure helpers for mapping components to generated files and locating Go modules."""

from __future__ import annotations

import re
from pathlib import Path

SINGLE_FILE_NAME = "comp_generated.go"

_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

# `go build` reads a trailing _GOOS, _GOARCH or _test in a file name as a
# build constraint.
_GOOS = frozenset(
    "aix android darwin dragonfly freebsd hurd illumos ios js linux nacl netbsd "
    "openbsd plan9 solaris wasip1 windows zos".split()
)
_GOARCH = frozenset(
    "386 amd64 amd64p32 arm armbe arm64 arm64be loong64 mips mipsle mips64 mips64le "
    "mips64p32 mips64p32le ppc ppc64 ppc64le riscv riscv64 s390 s390x sparc sparc64 wasm".split()
)


def is_identifier(name: str) -> bool:
    """True when `name` is usable as a Go identifier (ASCII letters, digits, underscore)."""
    return _IDENT_RE.fullmatch(name) is not None


def component_file_name(name: str) -> str:
    """File name for one component's generated source.

    The stem never starts with ``_`` and never ends in a build-constraint
    suffix, so `go build` always picks the file up.
    """

    chars: list[str] = []
    for ch in name:
        if ch.isascii() and (ch.isalnum() or ch == "_"):
            chars.append(ch)
        elif ch in (" ", "-"):
            chars.append("_")
    stem = "".join(chars) or "component"
    if stem.startswith("_"):
        stem = "component" + stem
    if "_" in stem:
        last = stem.rsplit("_", 1)[1].lower()
        if last == "test" or last in _GOOS or last in _GOARCH:
            stem += "_gen"
    return f"{stem}.go"


def output_dir(dist: Path, package: str) -> Path:
    return dist / package


def find_module_root(start: Path) -> Path | None:
    """Walk upward from `start` looking for a directory that contains `go.mod`."""

    cur = start.resolve()
    while True:
        if (cur / "go.mod").is_file():
            return cur
        if cur.parent == cur:
            return None
        cur = cur.parent
