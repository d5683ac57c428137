"""Build orchestration: source files in, generated Go package out.

`run` is linear and all-or-nothing. Every component is sectioned, schema'd and
compiled in memory first; the output directory is only touched once the whole
set has compiled, so a failed run never leaves a half-written package behind.
"""

from __future__ import annotations

import logging
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path

from gohtmlx.assembler import (
    DEFAULT_RUNTIME_IMPORT,
    GeneratedUnit,
    assemble_component_file,
    assemble_single_file,
    deduplicate_imports,
    format_source,
    imports_used,
    render_struct,
)
from gohtmlx.compiler import compile_markup
from gohtmlx.discovery import DEFAULT_EXTENSIONS, discover_sources
from gohtmlx.errors import AssemblyError, GohtmlxError, SectionError, SourceIOError, attribute
from gohtmlx.markup import Document, parse_markup
from gohtmlx.paths import SINGLE_FILE_NAME, component_file_name, is_identifier, output_dir
from gohtmlx.printer import print_expr
from gohtmlx.schema import PropSchema, build_comp_info, build_prop_schema
from gohtmlx.sections import (
    COMPONENTS,
    IMPORTS,
    SUB_BLOCKS,
    Delimiters,
    find_blocks,
    parse_imports,
    split_sections,
)
from gohtmlx.validation import validate_package

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunOptions:
    package: str = "gohtmlxc"
    single_file: bool = False
    incremental: bool = False
    validate_types: bool = False
    format: bool = True
    validate_timeout_s: float = 120
    runtime_import: str = DEFAULT_RUNTIME_IMPORT
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    exclude: tuple[str, ...] = ()
    imports_delimiters: Delimiters = IMPORTS
    component_delimiters: Delimiters = COMPONENTS
    section_delimiters: Delimiters = SUB_BLOCKS
    gofmt: str = "gofmt"
    go: str = "go"


@dataclass(frozen=True)
class RunReport:
    out_dir: Path
    skipped: bool = False
    components: tuple[str, ...] = ()
    written: tuple[Path, ...] = ()
    duration_s: float = 0.0


@dataclass(frozen=True, slots=True)
class ComponentDefinition:
    name: str
    path: str
    content: str
    body: str
    line: int


@dataclass
class _Parsed:
    definition: ComponentDefinition
    schema: PropSchema
    markup: Document


def newest_mtime(root: Path, suffixes: tuple[str, ...]) -> float | None:
    """Newest modification time of files under `root` with one of `suffixes`."""

    if not root.is_dir():
        return None
    wanted = {s.lower() for s in suffixes}
    newest: float | None = None
    for p in root.rglob("*"):
        if p.is_file() and p.suffix.lower() in wanted:
            mtime = p.stat().st_mtime
            if newest is None or mtime > newest:
                newest = mtime
    return newest


def is_up_to_date(src: Path, out_dir: Path, extensions: tuple[str, ...]) -> bool:
    src_newest = newest_mtime(src, extensions)
    out_newest = newest_mtime(out_dir, (".go",))
    if src_newest is None or out_newest is None:
        return False
    return src_newest <= out_newest


def _read_source(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SourceIOError(f"cannot read source file: {e}", file_path=str(path)) from e


def collect_components(
    files: list[Path],
    options: RunOptions,
) -> tuple[list[ComponentDefinition], dict[str, list[str]]]:
    """Section every file into component definitions plus per-file imports.

    Returns the definitions in discovery order and a map of file path -> the
    import specs declared in that file.
    """

    defs: list[ComponentDefinition] = []
    owners: dict[str, ComponentDefinition] = {}
    file_imports: dict[str, list[str]] = {}

    for path in files:
        content = _read_source(path)
        spath = str(path)
        try:
            top = split_sections(content, options.imports_delimiters, path=spath)
            blocks = find_blocks(content, options.component_delimiters, path=spath)
        except GohtmlxError as e:
            raise attribute(e, component="", file_path=spath, content=content) from None

        file_imports[spath] = parse_imports(top["imports"]) if "imports" in top else []

        for block in blocks:
            if not is_identifier(block.name):
                raise attribute(
                    SectionError(
                        f'component name "{block.name}" is not a valid Go identifier',
                        line=block.line,
                    ),
                    component=block.name,
                    file_path=spath,
                    content=content,
                )
            prev = owners.get(block.name.lower())
            if prev is not None:
                where = "earlier in the same file" if prev.path == spath else f"in {prev.path}"
                raise attribute(
                    SectionError(
                        f'component "{block.name}" is already defined {where} '
                        f'(as "{prev.name}", line {prev.line}); also defined in {spath}',
                        line=block.line,
                    ),
                    component=block.name,
                    file_path=spath,
                    content=content,
                )
            d = ComponentDefinition(
                name=block.name, path=spath, content=content, body=block.body, line=block.line
            )
            owners[block.name.lower()] = d
            defs.append(d)

    return defs, file_imports


def _parse_component(d: ComponentDefinition, options: RunOptions) -> tuple[PropSchema, Document]:
    try:
        sub = split_sections(d.body, options.section_delimiters, path=d.path)
    except SectionError as e:
        # Sub-block lines are relative to the component body, which starts on
        # the define line.
        if e.line > 0:
            e.line = d.line + e.line - 1
        raise
    markup = parse_markup(sub.get("html", ""))
    return build_prop_schema(sub.get("props"), markup), markup


def write_atomic(path: Path, content: str) -> None:
    """Write `content` to `path` via a temp file in the same directory and `os.replace`."""

    fd, tmp = tempfile.mkstemp(dir=str(path.parent), prefix=".gohtmlx-tmp-", suffix=".go", text=True)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    finally:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass


def write_outputs(out_dir: Path, files: dict[str, str]) -> list[Path]:
    """Replace every ``*.go`` file in `out_dir` with `files` (basename -> text)."""

    written: list[Path] = []
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
        # Never mix single-file and per-component output.
        for old in sorted(out_dir.glob("*.go")):
            old.unlink()
        for name in sorted(files):
            path = out_dir / name
            write_atomic(path, files[name])
            written.append(path)
    except OSError as e:
        raise SourceIOError(f"cannot write generated output: {e}", file_path=str(out_dir)) from e
    return written


def run(
    src: Path,
    dist: Path,
    options: RunOptions | None = None,
    *,
    log: logging.Logger | None = None,
) -> RunReport:
    """Compile every component under `src` into ``dist/<package>``."""

    options = options or RunOptions()
    log = log or logger
    started = time.monotonic()
    out_dir = output_dir(dist, options.package)

    if options.incremental and is_up_to_date(src, out_dir, options.extensions):
        log.info("incremental: no source changes since last build; skipping")
        return RunReport(out_dir=out_dir, skipped=True)

    files = discover_sources(
        src,
        extensions=options.extensions,
        exclude=list(options.exclude),
        output_dir=out_dir,
    )
    log.debug("discovered %d source file(s) under %s", len(files), src)

    defs, file_imports = collect_components(files, options)
    defs.sort(key=lambda d: d.name)
    log.info("transpiling %d component(s) from %d file(s)", len(defs), len(files))

    # Phase 1: every schema, then freeze the shared snapshot.
    parsed: list[_Parsed] = []
    for d in defs:
        try:
            schema, markup = _parse_component(d, options)
        except GohtmlxError as e:
            raise attribute(e, component=d.name, file_path=d.path, content=d.content) from None
        parsed.append(_Parsed(definition=d, schema=schema, markup=markup))
    comp_info = build_comp_info((p.definition.name, p.schema) for p in parsed)

    # Phase 2: compile against the frozen snapshot.
    all_imports = deduplicate_imports(i for imps in file_imports.values() for i in imps)
    units: list[GeneratedUnit] = []
    for p in parsed:
        d = p.definition
        try:
            expr = compile_markup(p.markup, comp_info, schema=p.schema, component=d.name, log=log)
        except GohtmlxError as e:
            raise attribute(e, component=d.name, file_path=d.path, content=d.content) from None
        struct = render_struct(d.name, p.schema)
        code = print_expr(expr, depth=1)
        units.append(
            GeneratedUnit(
                name=d.name,
                struct=struct,
                code=code,
                imports=tuple(imports_used(all_imports, struct, code)),
                source_path=d.path,
            )
        )
        log.debug("compiled %s (%s)", d.name, d.path)

    outputs: dict[str, str] = {}
    owners: dict[str, str] = {}
    if options.single_file:
        outputs[SINGLE_FILE_NAME] = assemble_single_file(
            units, all_imports, package=options.package, runtime_import=options.runtime_import
        )
        owners[SINGLE_FILE_NAME] = ""
    else:
        for u in units:
            fname = component_file_name(u.name)
            if fname in owners:
                raise AssemblyError(
                    f"components {owners[fname]} and {u.name} both map to {fname}; rename one",
                    component=u.name,
                    file_path=u.source_path,
                )
            outputs[fname] = assemble_component_file(
                u, package=options.package, runtime_import=options.runtime_import
            )
            owners[fname] = u.name

    if options.format:
        outputs = {
            name: format_source(text, gofmt=options.gofmt, name=name, log=log)
            for name, text in outputs.items()
        }

    written = write_outputs(out_dir, outputs)

    if options.validate_types:
        validate_package(
            out_dir,
            generated=outputs,
            owners=owners,
            sources={d.name: (d.path, d.content) for d in defs},
            go=options.go,
            timeout_s=options.validate_timeout_s,
            log=log,
        )

    duration = time.monotonic() - started
    log.info("wrote %d file(s) to %s in %.2fs", len(written), out_dir, duration)
    return RunReport(
        out_dir=out_dir,
        components=tuple(d.name for d in defs),
        written=tuple(written),
        duration_s=duration,
    )
