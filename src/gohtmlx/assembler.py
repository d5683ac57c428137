"""Turn compiled components into Go source files.

Output must be byte-identical for identical inputs: components are emitted in
sorted name order, struct fields in sorted field order and imports sorted by
path, and nothing here depends on dict or set iteration order.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from gohtmlx.errors import AssemblyError
from gohtmlx.paths import is_identifier
from gohtmlx.schema import PropSchema

logger = logging.getLogger(__name__)

GENERATED_HEADER = "// Code generated by gohtmlx. DO NOT EDIT."
DEFAULT_RUNTIME_IMPORT = "github.com/abdheshnayak/gohtmlx/pkg/element"


def import_alias(spec: str) -> str:
    """Name a Go import spec is referenced by (``t "a/b"`` -> ``t``, ``"a/b"`` -> ``b``)."""

    parts = spec.strip().split()
    if len(parts) >= 2 and not parts[0].startswith('"'):
        return parts[0]
    if parts and parts[0].startswith('"'):
        return parts[0].strip('"').rsplit("/", 1)[-1]
    return ""


def import_path(spec: str) -> str:
    for part in spec.strip().split():
        if len(part) >= 2 and part.startswith('"') and part.endswith('"'):
            return part.strip('"')
    return ""


def _has_explicit_alias(spec: str) -> bool:
    parts = spec.strip().split()
    return len(parts) >= 2 and not parts[0].startswith('"')


def deduplicate_imports(imports: Iterable[str]) -> list[str]:
    """Keep one spec per import path, preferring the aliased form; sorted by path."""

    by_path: dict[str, str] = {}
    for spec in imports:
        path = import_path(spec)
        if not path:
            continue
        existing = by_path.get(path)
        if existing is None or (_has_explicit_alias(spec) and not _has_explicit_alias(existing)):
            by_path[path] = spec.strip()
    return [by_path[p] for p in sorted(by_path)]


def imports_used(imports: Iterable[str], *texts: str) -> list[str]:
    """Drop imports whose alias is never referenced as ``alias.`` in `texts`.

    The check is textual. Dot and blank imports are always kept.
    """

    out: list[str] = []
    for spec in imports:
        alias = import_alias(spec)
        if not alias or alias in (".", "_"):
            out.append(spec)
            continue
        needle = alias + "."
        if any(needle in t for t in texts):
            out.append(spec)
    return out


@dataclass(frozen=True, slots=True)
class GeneratedUnit:
    """One compiled component, ready to be placed into a file."""

    name: str
    struct: str
    code: str
    imports: tuple[str, ...] = ()
    source_path: str = ""


def render_struct(name: str, schema: PropSchema) -> str:
    lines = [f"type {name} struct {{"]
    for prop in schema.fields():
        lines.append(f"\t{prop.field} {prop.type}")
    lines.append("\tAttrs Attrs")
    lines.append("}")
    return "\n".join(lines)


def render_component(unit: GeneratedUnit) -> str:
    n = unit.name
    return "\n".join(
        [
            unit.struct,
            "",
            f"func {n}Comp(props {n}, attrs Attrs, children ...Element) Element {{",
            "\tprops.Attrs = attrs",
            "\tif props.Attrs == nil {",
            "\t\tprops.Attrs = Attrs{}",
            "\t}",
            f"\treturn {unit.code}",
            "}",
            "",
            f"func (c {n}) Get(children ...Element) Element {{",
            f"\treturn {n}Comp(c, c.Attrs, children...)",
            "}",
        ]
    )


def _file(package: str, runtime_import: str, imports: Sequence[str], bodies: Sequence[str]) -> str:
    if not is_identifier(package):
        raise AssemblyError(f"invalid Go package name {package!r}")
    if not runtime_import:
        raise AssemblyError("runtime import path must not be empty")

    user = [i for i in imports if import_path(i) != runtime_import]
    lines = [GENERATED_HEADER, "", f"package {package}", "", "import ("]
    lines.append(f'\t. "{runtime_import}"')
    if user:
        lines.append("")
        lines.extend(f"\t{i}" for i in user)
    lines.append(")")
    return "\n".join(lines) + "\n\n" + "\n\n".join(bodies) + "\n"


def assemble_single_file(
    units: Sequence[GeneratedUnit],
    imports: Iterable[str],
    *,
    package: str,
    runtime_import: str = DEFAULT_RUNTIME_IMPORT,
) -> str:
    ordered = sorted(units, key=lambda u: u.name)
    bodies = [render_component(u) for u in ordered]
    used = imports_used(deduplicate_imports(imports), *bodies)
    return _file(package, runtime_import, used, bodies)


def assemble_component_file(
    unit: GeneratedUnit,
    *,
    package: str,
    runtime_import: str = DEFAULT_RUNTIME_IMPORT,
) -> str:
    body = render_component(unit)
    used = imports_used(deduplicate_imports(unit.imports), unit.struct, unit.code)
    return _file(package, runtime_import, used, [body])


def format_source(
    text: str,
    *,
    gofmt: str = "gofmt",
    timeout_s: float = 30,
    name: str = "",
    log: logging.Logger | None = None,
) -> str:
    """Run `text` through gofmt; on any failure keep it unformatted and warn."""

    log = log or logger
    label = name or "<generated>"
    try:
        proc = subprocess.run(
            [gofmt],
            input=text,
            capture_output=True,
            text=True,
            timeout=timeout_s,
            check=False,
        )
    except FileNotFoundError:
        log.warning("%s: %s not found; writing unformatted output", label, gofmt)
        return text
    except subprocess.TimeoutExpired:
        log.warning("%s: %s timed out after %ss; writing unformatted output", label, gofmt, timeout_s)
        return text

    if proc.returncode != 0:
        log.warning("%s: %s failed: %s", label, gofmt, (proc.stderr or "").strip())
        return text
    return proc.stdout
