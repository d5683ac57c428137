from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path

from gohtmlx import __version__
from gohtmlx.config import GohtmlxConfig, load_config
from gohtmlx.diagnostics import format_block_issues, format_error_with_hint
from gohtmlx.errors import AssemblyError, CompileError, GohtmlxError, ValidationError
from gohtmlx.paths import output_dir
from gohtmlx.pipeline import RunOptions

EXIT_OK = 0
EXIT_CONFIG_OR_SOURCE = 2
EXIT_COMPILE_ERROR = 3
EXIT_VALIDATION_ERROR = 4


def _add_common_flags(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--root",
        type=str,
        default=None,
        help="Project root (defaults to searching upward from cwd for gohtmlx.toml).",
    )
    p.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to gohtmlx.toml (defaults to <root>/gohtmlx.toml).",
    )
    p.add_argument("--src", type=str, default=None, help="Source directory override.")
    p.add_argument("-v", "--verbose", action="store_true", help="Log debug output.")
    p.add_argument("-q", "--quiet", action="store_true", help="Only log errors.")


def _add_build_flags(p: argparse.ArgumentParser) -> None:
    p.add_argument("--dist", type=str, default=None, help="Output directory override.")
    p.add_argument("--pkg", type=str, default=None, help="Go package name of the output.")
    p.add_argument(
        "--single-file",
        action="store_true",
        help="Emit one comp_generated.go instead of one file per component.",
    )
    p.add_argument(
        "--incremental",
        action="store_true",
        help="Skip the build when no source file is newer than the generated output.",
    )
    p.add_argument(
        "--validate-types",
        action="store_true",
        help="Run `go build` on the generated package after writing it.",
    )
    p.add_argument("--no-format", action="store_true", help="Do not run gofmt on the output.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gohtmlx")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    build_p = subparsers.add_parser("build", help="Compile HTML components to Go.")
    _add_common_flags(build_p)
    _add_build_flags(build_p)

    watch_p = subparsers.add_parser("watch", help="Rebuild whenever a component file changes.")
    _add_common_flags(watch_p)
    _add_build_flags(watch_p)
    watch_p.add_argument(
        "--debounce-ms",
        type=int,
        default=None,
        help="Debounce window for file changes (defaults to watch.debounce_ms).",
    )

    check_p = subparsers.add_parser(
        "check", help="Check define/end comment markers without compiling."
    )
    _add_common_flags(check_p)

    return parser


def parse_args(argv: list[str]) -> argparse.Namespace:
    return _build_parser().parse_args(argv)


def configure_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))

    pkg_logger = logging.getLogger("gohtmlx")
    pkg_logger.setLevel(level)
    pkg_logger.handlers = [handler]
    pkg_logger.propagate = False


def exit_code_for(e: GohtmlxError) -> int:
    if isinstance(e, ValidationError):
        return EXIT_VALIDATION_ERROR
    if isinstance(e, (CompileError, AssemblyError)):
        return EXIT_COMPILE_ERROR
    return EXIT_CONFIG_OR_SOURCE


def _load_config(args: argparse.Namespace) -> GohtmlxConfig:
    root = Path(args.root).resolve() if args.root else None
    config_path = Path(args.config).resolve() if args.config else None
    return load_config(root=root, config_path=config_path)


def _source_dir(args: argparse.Namespace, cfg: GohtmlxConfig) -> Path:
    return Path(args.src).resolve() if args.src else cfg.source_path()


def _resolve_build(
    args: argparse.Namespace, cfg: GohtmlxConfig
) -> tuple[Path, Path, RunOptions]:
    src = _source_dir(args, cfg)
    dist = Path(args.dist).resolve() if args.dist else cfg.output_path()

    options = cfg.run_options()
    changes: dict[str, object] = {}
    if args.pkg:
        changes["package"] = args.pkg
    if args.single_file:
        changes["single_file"] = True
    if args.incremental:
        changes["incremental"] = True
    if args.validate_types:
        changes["validate_types"] = True
    if args.no_format:
        changes["format"] = False
    if changes:
        options = replace(options, **changes)
    return src, dist, options


def _eprint(msg: str) -> None:
    print(msg, file=sys.stderr)


def cmd_build(args: argparse.Namespace) -> int:
    from gohtmlx import pipeline

    try:
        cfg = _load_config(args)
        src, dist, options = _resolve_build(args, cfg)
        pipeline.run(src, dist, options)
        return EXIT_OK
    except GohtmlxError as e:
        _eprint(format_error_with_hint(e))
        return exit_code_for(e)


def cmd_check(args: argparse.Namespace) -> int:
    from gohtmlx.check import check_tree

    try:
        cfg = _load_config(args)
        issues = check_tree(
            _source_dir(args, cfg),
            extensions=cfg.paths.extensions,
            exclude=cfg.paths.exclude,
        )
    except GohtmlxError as e:
        _eprint(format_error_with_hint(e))
        return exit_code_for(e)

    if issues:
        _eprint(format_block_issues(issues).rstrip())
        return EXIT_CONFIG_OR_SOURCE
    return EXIT_OK


def cmd_watch(args: argparse.Namespace) -> int:
    from gohtmlx import watcher

    try:
        watcher.check_watchfiles_available()
        cfg = _load_config(args)
        src, dist, options = _resolve_build(args, cfg)
    except ImportError as e:
        _eprint(f"error: {e}")
        return EXIT_CONFIG_OR_SOURCE
    except GohtmlxError as e:
        _eprint(format_error_with_hint(e))
        return exit_code_for(e)

    if not src.is_dir():
        _eprint(f"error: source directory not found: {src}")
        return EXIT_CONFIG_OR_SOURCE

    debounce_ms = args.debounce_ms if args.debounce_ms is not None else cfg.watch.debounce_ms

    def report(result: watcher.WatchCycleResult) -> None:
        _eprint(watcher.format_cycle(result))

    rebuild = watcher.Rebuilder(src, dist, options)
    _eprint(f"[watch] watching {src}")
    report(rebuild(frozenset()))

    try:
        asyncio.run(
            watcher.run_watch_loop(
                changes_iter=watcher.make_watchfiles_iter([src], debounce_ms=debounce_ms),
                rebuild=rebuild,
                on_result=report,
                source_dir=src.resolve(),
                output_dir=output_dir(dist, options.package).resolve(),
                extensions=options.extensions,
            )
        )
    except KeyboardInterrupt:
        _eprint("[watch] stopped")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    try:
        args = parse_args(list(sys.argv[1:] if argv is None else argv))
    except SystemExit as e:
        # argparse uses SystemExit for --help/--version and parse errors.
        code = e.code
        return int(code) if isinstance(code, int) else EXIT_CONFIG_OR_SOURCE

    configure_logging(verbose=args.verbose, quiet=args.quiet)

    if args.command == "build":
        return cmd_build(args)
    if args.command == "watch":
        return cmd_watch(args)
    if args.command == "check":
        return cmd_check(args)

    return EXIT_CONFIG_OR_SOURCE


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
