"""Project configuration loading for gohtmlx.

This module only reads `gohtmlx.toml` and performs light validation. The file
is optional: a project without one builds with the defaults below.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from gohtmlx.assembler import DEFAULT_RUNTIME_IMPORT
from gohtmlx.errors import ConfigError
from gohtmlx.paths import is_identifier
from gohtmlx.pipeline import RunOptions
from gohtmlx.sections import Delimiters

CONFIG_FILE = "gohtmlx.toml"


@dataclass(frozen=True)
class PathsConfig:
    source_dir: str = "src"
    output_dir: str = "dist"
    exclude: list[str] = field(default_factory=list)
    extensions: list[str] = field(default_factory=lambda: [".html"])


@dataclass(frozen=True)
class BuildConfig:
    package: str = "gohtmlxc"
    single_file: bool = False
    incremental: bool = False
    validate_types: bool = False
    format: bool = True
    validate_timeout_s: int = 120


@dataclass(frozen=True)
class DelimitersConfig:
    imports: str = "<!-- *"
    components: str = "<!-- +"
    sections: str = "<!-- |"
    close: str = " -->"


@dataclass(frozen=True)
class RuntimeConfig:
    import_path: str = DEFAULT_RUNTIME_IMPORT


@dataclass(frozen=True)
class WatchConfig:
    debounce_ms: int = 300


@dataclass(frozen=True)
class GohtmlxConfig:
    root: Path
    version: int = 1
    paths: PathsConfig = field(default_factory=PathsConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    delimiters: DelimitersConfig = field(default_factory=DelimitersConfig)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)

    def source_path(self) -> Path:
        return self.root / self.paths.source_dir

    def output_path(self) -> Path:
        return self.root / self.paths.output_dir

    def run_options(self) -> RunOptions:
        d = self.delimiters
        return RunOptions(
            package=self.build.package,
            single_file=self.build.single_file,
            incremental=self.build.incremental,
            validate_types=self.build.validate_types,
            format=self.build.format,
            validate_timeout_s=self.build.validate_timeout_s,
            runtime_import=self.runtime.import_path,
            extensions=tuple(self.paths.extensions),
            exclude=tuple(self.paths.exclude),
            imports_delimiters=Delimiters(d.imports, d.close),
            component_delimiters=Delimiters(d.components, d.close),
            section_delimiters=Delimiters(d.sections, d.close),
        )


def find_project_root(start: Path) -> Path | None:
    """Walk upward from `start` (file or directory) looking for `gohtmlx.toml`."""

    cur = start
    try:
        if cur.is_file():
            cur = cur.parent
    except OSError:
        cur = cur.parent

    cur = cur.resolve()
    while True:
        if (cur / CONFIG_FILE).is_file():
            return cur
        if cur.parent == cur:
            return None
        cur = cur.parent


def _as_table(value: Any, *, name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"Expected [{name}] to be a table.")
    return value


def _as_str_list(value: Any, *, name: str) -> list[str]:
    if not isinstance(value, list) or any(not isinstance(x, str) for x in value):
        raise ConfigError(f"Expected {name} to be a list of strings.")
    return list(value)


def _as_bool(value: Any, *, name: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"Expected {name} to be a boolean.")
    return value


def _as_int(value: Any, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ConfigError(f"Expected {name} to be an integer.")
    return value


def _as_str(value: Any, *, name: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"Expected {name} to be a string.")
    return value


def _nonempty(value: str, *, name: str) -> str:
    if not value.strip():
        raise ConfigError(f"Invalid config: {name} must not be empty.")
    return value


def load_config(*, root: Path | None = None, config_path: Path | None = None) -> GohtmlxConfig:
    """Load and validate `gohtmlx.toml`.

    With neither argument, the project root is found by walking upward from the
    current working directory; if no config file exists anywhere above it, the
    defaults apply with the working directory as root. An explicit
    `config_path` must exist.
    """

    if config_path is None:
        if root is None:
            root = find_project_root(Path.cwd()) or Path.cwd()
        config_path = root / CONFIG_FILE
        if not config_path.is_file():
            return GohtmlxConfig(root=root)
    elif root is None:
        root = config_path.parent

    try:
        raw = config_path.read_bytes()
    except FileNotFoundError as e:
        raise ConfigError(f"Missing {CONFIG_FILE} at: {config_path}") from e
    except OSError as e:
        raise ConfigError(f"Failed reading config file: {config_path}") from e

    try:
        data = tomllib.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise ConfigError(f"Config is not valid UTF-8: {config_path}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e

    version = data.get("version", None)
    if version is None:
        raise ConfigError(f"Missing required `version = 1` in {CONFIG_FILE}.")
    version_i = _as_int(version, name="version")
    if version_i != 1:
        raise ConfigError(f"Unsupported config version: {version_i} (expected 1).")

    paths_tbl = _as_table(data.get("paths"), name="paths")
    build_tbl = _as_table(data.get("build"), name="build")
    delims_tbl = _as_table(data.get("delimiters"), name="delimiters")
    runtime_tbl = _as_table(data.get("runtime"), name="runtime")
    watch_tbl = _as_table(data.get("watch"), name="watch")

    p = PathsConfig()
    if "source_dir" in paths_tbl:
        p = replace(p, source_dir=_as_str(paths_tbl["source_dir"], name="paths.source_dir"))
    if "output_dir" in paths_tbl:
        p = replace(p, output_dir=_as_str(paths_tbl["output_dir"], name="paths.output_dir"))
    if "exclude" in paths_tbl:
        p = replace(p, exclude=_as_str_list(paths_tbl["exclude"], name="paths.exclude"))
    if "extensions" in paths_tbl:
        exts = _as_str_list(paths_tbl["extensions"], name="paths.extensions")
        if not exts or any(not e.startswith(".") for e in exts):
            raise ConfigError(
                "Invalid config: paths.extensions must be a non-empty list like [\".html\"]."
            )
        p = replace(p, extensions=exts)

    b = BuildConfig()
    if "package" in build_tbl:
        b = replace(b, package=_as_str(build_tbl["package"], name="build.package"))
    for key in ("single_file", "incremental", "validate_types", "format"):
        if key in build_tbl:
            b = replace(b, **{key: _as_bool(build_tbl[key], name=f"build.{key}")})
    if "validate_timeout_s" in build_tbl:
        b = replace(
            b,
            validate_timeout_s=_as_int(
                build_tbl["validate_timeout_s"], name="build.validate_timeout_s"
            ),
        )

    d = DelimitersConfig()
    for key in ("imports", "components", "sections", "close"):
        if key in delims_tbl:
            value = _nonempty(_as_str(delims_tbl[key], name=f"delimiters.{key}"), name=f"delimiters.{key}")
            d = replace(d, **{key: value})

    r = RuntimeConfig()
    if "import_path" in runtime_tbl:
        r = RuntimeConfig(
            import_path=_nonempty(
                _as_str(runtime_tbl["import_path"], name="runtime.import_path"),
                name="runtime.import_path",
            )
        )

    w = WatchConfig()
    if "debounce_ms" in watch_tbl:
        w = WatchConfig(debounce_ms=_as_int(watch_tbl["debounce_ms"], name="watch.debounce_ms"))

    # Validation
    if not is_identifier(b.package):
        raise ConfigError("Invalid config: build.package must be a valid Go package name.")
    if b.validate_timeout_s < 1:
        raise ConfigError("Invalid config: build.validate_timeout_s must be >= 1.")
    if w.debounce_ms < 0:
        raise ConfigError("Invalid config: watch.debounce_ms must be >= 0.")
    if len({d.imports.strip(), d.components.strip(), d.sections.strip()}) != 3:
        raise ConfigError("Invalid config: the three delimiter levels must be distinct.")

    return GohtmlxConfig(
        root=root,
        version=version_i,
        paths=p,
        build=b,
        delimiters=d,
        runtime=r,
        watch=w,
    )
