"""CLI entrypoints for solidgen commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .builder import Builder, BuildReport
from .config import ConfigError, SolidgenConfig, load_config
from .dart.parser import GrammarUnavailableError
from .logging import configure_logging
from .watch import SourceWatcher


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_tree_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--root",
        default=".",
        help="Project root containing .solidgen.yml (defaults to current directory).",
    )
    parser.add_argument("--source", help="Source directory relative to the root.")
    parser.add_argument("--output", help="Output directory relative to the root.")


def _add_format_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--no-format",
        action="store_true",
        help="Do not run `dart format` on generated files.",
    )


def _add_log_file_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--log-file",
        help="Also write a DEBUG-level log of the run to this file.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="solidgen",
        description="Transpile annotated Dart sources into flutter_solidart code.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser(
        "build",
        help="Transform the source tree into the output tree once.",
    )
    _add_verbose_option(build_parser, suppress_default=True)
    _add_tree_options(build_parser)
    _add_format_option(build_parser)
    _add_log_file_option(build_parser)

    watch_parser = subparsers.add_parser(
        "watch",
        help="Build, then rebuild changed files until interrupted.",
    )
    _add_verbose_option(watch_parser, suppress_default=True)
    _add_tree_options(watch_parser)
    _add_format_option(watch_parser)
    _add_log_file_option(watch_parser)

    clean_parser = subparsers.add_parser(
        "clean",
        help="Delete generated files that mirror source files.",
    )
    _add_verbose_option(clean_parser, suppress_default=True)
    _add_tree_options(clean_parser)

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service (requires the service extra).",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def _load(args: argparse.Namespace) -> SolidgenConfig:
    config = load_config(Path(args.root).expanduser().resolve())
    if args.source:
        config.source = args.source
    if args.output:
        config.output = args.output
    if getattr(args, "no_format", False):
        config.format.enabled = False
    if config.source_dir == config.output_dir:
        raise ConfigError("source and output directories must differ")
    return config


def _print_report(report: BuildReport) -> None:
    for result in report.skipped + report.failed:
        print(f"  {result.status}: {result.path}: {result.message}")
    print(f"Build complete: {report.summary()}")


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for solidgen commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    log_file = getattr(args, "log_file", None)
    configure_logging(
        verbose=bool(args.verbose),
        log_file=Path(log_file).expanduser() if log_file else None,
    )

    if args.command == "serve":
        from .service import run_service

        try:
            run_service(host=args.host, port=args.port)
        except RuntimeError as exc:
            parser.exit(1, f"{exc}\n")
        return

    try:
        config = _load(args)
    except ConfigError as exc:
        parser.exit(1, f"Invalid configuration: {exc}\n")
    builder = Builder(config)

    if args.command == "build":
        try:
            report = builder.build()
        except (FileNotFoundError, GrammarUnavailableError) as exc:
            parser.exit(1, f"{exc}\n")
        _print_report(report)
        if report.failed:
            parser.exit(1, "solidgen build failed for some files.\nRun with --verbose for more details.\n")
    elif args.command == "watch":
        try:
            report = builder.build()
        except (FileNotFoundError, GrammarUnavailableError) as exc:
            parser.exit(1, f"{exc}\n")
        _print_report(report)
        watcher = SourceWatcher(builder, config.watch, on_build=_print_report)
        watcher.start()
        print(f"Watching {_relativize(config.source_dir)} (Ctrl+C to stop)")
        try:
            watcher.wait()
        except KeyboardInterrupt:
            print("Stopping watcher")
        finally:
            watcher.stop(timeout=5)
    elif args.command == "clean":
        try:
            removed = builder.clean()
        except FileNotFoundError as exc:
            parser.exit(1, f"{exc}\n")
        for path in removed:
            print(f"Removed {_relativize(path)}")
        print(f"Removed {len(removed)} generated file(s)")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
