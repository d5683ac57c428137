"""Error formatting and actionable hints for gohtmlx CLI output.

Keep this module small and dependency-light: it is imported by the CLI layer
and only depends on the error hierarchy.
"""

from __future__ import annotations

from gohtmlx.check import BlockIssue
from gohtmlx.errors import (
    CompileError,
    ConfigError,
    SchemaError,
    SectionError,
    SourceIOError,
    ValidationError,
    ValidationTimeoutError,
)


def format_block_issues(issues: list[BlockIssue]) -> str:
    """Format comment-balance issues into a human-readable stderr summary."""
    if not issues:
        return ""
    lines = [str(i) for i in issues]
    lines.append(f"\n{len(issues)} block issue(s) found")
    return "\n".join(lines) + "\n"


def format_hint(exc: BaseException) -> str | None:
    """Return an actionable hint for a known error, or None."""
    msg = str(exc)

    if isinstance(exc, ConfigError):
        if "version" in msg:
            return "add `version = 1` at the top of gohtmlx.toml"
        return None

    if isinstance(exc, SourceIOError):
        if "source directory not found" in msg:
            return "pass --src or set paths.source_dir in gohtmlx.toml"
        return None

    if isinstance(exc, SectionError):
        if "unclosed" in msg or "no open block" in msg or "nested" in msg:
            return "run `gohtmlx check` to list every unbalanced define/end marker"
        if "already defined" in msg:
            return "component names are global and case-insensitive; rename one of them"
        return None

    if isinstance(exc, SchemaError):
        if "invalid props block" in msg:
            return 'props are YAML `name: GoType` pairs; quote types like "[]string" or "*User"'
        return None

    if isinstance(exc, CompileError):
        if "unknown element" in msg:
            return "define the component, fix the tag name, or use a hyphenated custom element"
        if "$attrs" in msg:
            return "declare the collection as a prop and iterate {props.Items}"
        if "is reserved" in msg:
            return 'pick another loop variable name, e.g. as="row"'
        return None

    if isinstance(exc, ValidationTimeoutError):
        return "raise build.validate_timeout_s in gohtmlx.toml or check for a stuck go build"

    if isinstance(exc, ValidationError):
        if "go.mod" in msg:
            return "the output directory must be inside a Go module"
        if "toolchain not found" in msg:
            return "install Go or drop --validate-types"
        return None

    return None


def format_error_with_hint(exc: BaseException) -> str:
    """Format error message + optional hint for stderr output."""
    msg = (str(exc) or repr(exc)).strip()
    result = f"error: {msg}"
    hint = format_hint(exc)
    if hint:
        result += f"\nhint: {hint}"
    return result
