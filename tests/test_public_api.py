from __future__ import annotations

import gohtmlx


def test_run_is_callable() -> None:
    assert callable(gohtmlx.run)
    assert gohtmlx.RunOptions().package == "gohtmlxc"


def test_exceptions_are_exported() -> None:
    from gohtmlx import (  # noqa: PLC0415
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

    for exc in (
        AssemblyError,
        CompileError,
        ConfigError,
        SchemaError,
        SectionError,
        SourceIOError,
        ValidationError,
        ValidationTimeoutError,
    ):
        assert issubclass(exc, GohtmlxError)


def test_version_is_a_string() -> None:
    assert isinstance(gohtmlx.__version__, str)
