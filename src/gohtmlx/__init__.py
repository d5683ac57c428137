from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError, version

from gohtmlx.errors import (
    AssemblyError,
    CompileError,
    ConfigError,
    GohtmlxError,
    SchemaError,
    SectionError,
    SourceIOError,
    ValidationError,
    ValidationTimeoutError,
)
from gohtmlx.pipeline import RunOptions, RunReport, run

logging.getLogger(__name__).addHandler(logging.NullHandler())


def _package_version() -> str:
    try:
        return version("gohtmlx")
    except PackageNotFoundError:
        # Running from a source checkout, or otherwise not installed.
        return "0.0.0"


__version__ = _package_version()

__all__ = [
    "AssemblyError",
    "CompileError",
    "ConfigError",
    "GohtmlxError",
    "RunOptions",
    "RunReport",
    "SchemaError",
    "SectionError",
    "SourceIOError",
    "ValidationError",
    "ValidationTimeoutError",
    "__version__",
    "run",
]
