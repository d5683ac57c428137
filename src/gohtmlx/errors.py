"""gohtmlx exception hierarchy.

Keep this module small and dependency-free: it is imported broadly across the
project and by tests.

Every error carries the same attribution fields so callers can render
``file:line: message`` diagnostics without knowing which stage failed.
"""

from __future__ import annotations


class GohtmlxError(Exception):
    """Base exception for all gohtmlx errors."""

    category = "error"

    def __init__(
        self,
        message: str,
        *,
        component: str = "",
        file_path: str = "",
        line: int = 0,
        snippet: str = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.component = component
        self.file_path = file_path
        self.line = line
        self.snippet = snippet

    def location(self) -> str:
        if self.file_path and self.line > 0:
            return f"{self.file_path}:{self.line}"
        return self.file_path

    def __str__(self) -> str:
        loc = self.location()
        text = f"{loc}: {self.message}" if loc else self.message
        if self.snippet and loc:
            text += "\n" + self.snippet
        return text


class ConfigError(GohtmlxError):
    """Raised for invalid user configuration."""

    category = "config"


class SourceIOError(GohtmlxError):
    """Raised when a source file cannot be read or an output cannot be written."""

    category = "io"


class SectionError(GohtmlxError):
    """Raised for unbalanced, nested or duplicate define blocks."""

    category = "section"


class SchemaError(GohtmlxError):
    """Raised for malformed prop declarations and nameless slots."""

    category = "schema"


class CompileError(GohtmlxError):
    """Raised when markup cannot be compiled (bad for/if/slot usage, unknown tags)."""

    category = "compile"


class AssemblyError(GohtmlxError):
    """Raised when generated units cannot be assembled into source files."""

    category = "assembly"


class ValidationError(GohtmlxError):
    """Raised when the Go toolchain rejects the generated package."""

    category = "validation"


class ValidationTimeoutError(ValidationError):
    """Raised when the Go toolchain does not finish within the configured timeout."""


def line_for_component(content: str, name: str) -> int:
    """Return the 1-based line of the component's ``define "Name"`` marker (0 if absent)."""

    idx = content.find(f'define "{name}"')
    if idx < 0:
        return 0
    return 1 + content.count("\n", 0, idx)


def snippet_at_line(content: str, line: int, context_lines: int = 2) -> str:
    lines = content.split("\n")
    if line < 1 or line > len(lines):
        return ""
    start = max(0, line - 1 - context_lines)
    end = min(len(lines), line + context_lines)
    return "\n".join(lines[start:end])


def attribute(err: GohtmlxError, *, component: str, file_path: str, content: str) -> GohtmlxError:
    """Fill in missing attribution fields from the owning file's content.

    The error is updated in place and returned so callers can ``raise attribute(...)``.
    """

    if not err.component:
        err.component = component
    if not err.file_path:
        err.file_path = file_path
    if err.line <= 0 and content:
        err.line = line_for_component(content, component)
    if not err.snippet and err.line > 0 and content:
        err.snippet = snippet_at_line(content, err.line)
    return err
