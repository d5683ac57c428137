"""Optional type check of the generated package with the Go toolchain.

The Go compiler is treated as an opaque subprocess: its first
``file:line[:col]: message`` diagnostic is mapped back to the component that
produced the offending code.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from gohtmlx.errors import (
    ValidationError,
    ValidationTimeoutError,
    line_for_component,
    snippet_at_line,
)
from gohtmlx.paths import find_module_root

logger = logging.getLogger(__name__)

_DIAGNOSTIC_RE = re.compile(r"([^:\s][^:]*\.go):(\d+)(?::(\d+))?:\s*(.+)")
_STRUCT_RE = re.compile(r"^type (\w+) struct\b", re.M)


@dataclass(frozen=True, slots=True)
class GoDiagnostic:
    file: str
    line: int
    column: int
    message: str
    raw: str


def parse_go_diagnostics(output: str) -> list[GoDiagnostic]:
    out: list[GoDiagnostic] = []
    for raw in output.splitlines():
        line = raw.strip()
        if not line:
            continue
        m = _DIAGNOSTIC_RE.match(line)
        if m is None:
            continue
        out.append(
            GoDiagnostic(
                file=m.group(1),
                line=int(m.group(2)),
                column=int(m.group(3) or 0),
                message=m.group(4).strip(),
                raw=line,
            )
        )
    return out


def component_at_line(text: str, line: int) -> str:
    """Name of the component whose block in a single generated file holds `line`."""

    owner = ""
    for m in _STRUCT_RE.finditer(text):
        if 1 + text.count("\n", 0, m.start()) > line:
            break
        owner = m.group(1)
    return owner


def remap_diagnostic(
    diag: GoDiagnostic,
    *,
    out_dir: Path,
    generated: Mapping[str, str],
    owners: Mapping[str, str],
    sources: Mapping[str, tuple[str, str]],
) -> ValidationError:
    """Build the error for `diag`, attributed to a component source when recognized.

    `generated` maps file basename -> generated text, `owners` maps file basename
    -> component name ("" for the single combined file), and `sources` maps
    component name -> (source path, source content).
    """

    base = Path(diag.file).name
    component = owners.get(base)
    if component == "" and base in generated:
        component = component_at_line(generated[base], diag.line)

    message = f"go build failed: {diag.message} (generated {base}:{diag.line})"
    if component and component in sources:
        path, content = sources[component]
        line = line_for_component(content, component)
        return ValidationError(
            message,
            component=component,
            file_path=path,
            line=line,
            snippet=snippet_at_line(content, line),
        )

    return ValidationError(
        f"go build failed: {diag.message}",
        component=component or "",
        file_path=str(out_dir / base),
        line=diag.line,
        snippet=diag.raw,
    )


def validate_package(
    out_dir: Path,
    *,
    generated: Mapping[str, str],
    owners: Mapping[str, str],
    sources: Mapping[str, tuple[str, str]],
    go: str = "go",
    timeout_s: float = 120,
    log: logging.Logger | None = None,
) -> None:
    """Run ``go build`` on the generated package; raise `ValidationError` on failure."""

    log = log or logger
    root = find_module_root(out_dir)
    if root is None:
        raise ValidationError(
            f"validate-types: no go.mod found in {out_dir} or any parent directory"
        )
    try:
        rel = out_dir.resolve().relative_to(root)
    except ValueError as e:
        raise ValidationError(f"validate-types: {out_dir} is outside module {root}") from e

    pkg_path = "./" + rel.as_posix()
    log.info("validating generated package %s (module root %s)", pkg_path, root)
    try:
        proc = subprocess.run(
            [go, "build", "-o", os.devnull, pkg_path],
            cwd=str(root),
            capture_output=True,
            text=True,
            timeout=timeout_s,
            check=False,
        )
    except FileNotFoundError as e:
        raise ValidationError(f"validate-types: {go} toolchain not found on PATH") from e
    except subprocess.TimeoutExpired as e:
        raise ValidationTimeoutError(
            f"validate-types: go build did not finish within {timeout_s}s"
        ) from e

    if proc.returncode == 0:
        return

    output = (proc.stderr or "") + (proc.stdout or "")
    diags = parse_go_diagnostics(output)
    if not diags:
        raise ValidationError("go build failed", file_path=str(out_dir), snippet=output.strip())
    raise remap_diagnostic(
        diags[0], out_dir=out_dir, generated=generated, owners=owners, sources=sources
    )
