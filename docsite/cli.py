"""CLI entrypoints for docsite commands."""

from __future__ import annotations

import argparse
import signal
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .context import CancellationToken
from .logging import configure_logging
from .orchestrator import BuildOptions, BuildResult, Orchestrator
from .render import format_diagnostics


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


def _add_run_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Path to the documentation root (defaults to current directory).",
    )
    parser.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Write the JSON diagnostics report to this path.",
    )
    parser.add_argument(
        "--case-insensitive",
        action="store_true",
        default=None,
        help="Compare paths and anchors case-insensitively.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds allowed for each snippet check (default: 5).",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of worker threads for loading and validation.",
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Ignore and do not update the snippet validation cache.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docsite",
        description="Build a static HTML documentation site from Markdown sources.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write log records to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser(
        "build",
        help="Render the HTML site and write the diagnostics report.",
    )
    _add_verbose_option(build_parser, suppress_default=True)
    _add_run_options(build_parser)
    build_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Output directory for the site (defaults to <root>/_site).",
    )

    check_parser = subparsers.add_parser(
        "check",
        help="Validate links and snippets without writing the site.",
    )
    _add_verbose_option(check_parser, suppress_default=True)
    _add_run_options(check_parser)

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service exposing build and check.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for docsite commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command == "serve":
        from .service import run_service

        try:
            run_service(host=args.host, port=args.port)
        except RuntimeError as exc:
            parser.exit(2, f"{exc}\n")
        return

    options = BuildOptions(
        output_dir=getattr(args, "output", None),
        report_path=args.report,
        case_insensitive=args.case_insensitive,
        timeout=args.timeout,
        workers=args.workers,
        use_cache=not args.no_cache,
    )
    token = CancellationToken()
    orchestrator = Orchestrator(cancel_token=token)

    with _cancel_on_interrupt(token):
        if args.command == "build":
            result = orchestrator.run_build(args.root, options)
        elif args.command == "check":
            result = orchestrator.run_check(args.root, options)
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(2, "Unknown command\n")

    _print_summary(result, to_stdout_report=args.command == "check" and args.report is None)
    parser.exit(result.exit_code)


def _print_summary(result: BuildResult, *, to_stdout_report: bool) -> None:
    if to_stdout_report:
        print(result.report().to_json())
    for line in format_diagnostics(result.diagnostics):
        print(line, file=sys.stderr)
    if result.fatal:
        return
    if result.written and result.output_dir is not None:
        print(f"Site written to {_relativize(result.output_dir)}", file=sys.stderr)
    if result.report_path is not None:
        print(f"Diagnostics report written to {_relativize(result.report_path)}", file=sys.stderr)
    if result.cancelled:
        print("Run cancelled; results are partial", file=sys.stderr)


@contextmanager
def _cancel_on_interrupt(token: CancellationToken) -> Iterator[None]:
    def _handler(signum: int, frame: object) -> None:
        token.cancel()

    try:
        previous = signal.signal(signal.SIGINT, _handler)
    except ValueError:  # not on the main thread
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
