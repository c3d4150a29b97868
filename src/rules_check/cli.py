from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from rules_check import __version__
from rules_check.config import load_settings
from rules_check.errors import AbortedError, ConfigError
from rules_check.models import Severity
from rules_check.pipeline import run_check
from rules_check.reporting import EXIT_ABORTED, EXIT_CONFIG_ERROR, OutputFormat, render, render_text, write_report


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rules-check",
        description="Check a codebase against a directory of convention rule documents",
    )
    parser.add_argument("target_dir", help="Directory to check")
    parser.add_argument("--rules", required=True, dest="rules_dir", help="Directory of rule documents")
    parser.add_argument(
        "--severity-threshold",
        choices=[item.value for item in Severity],
        default=None,
        help="Lowest severity to report (default: warning)",
    )
    parser.add_argument(
        "--format",
        choices=[item.value for item in OutputFormat],
        default=None,
        help="Output format (default: text)",
    )
    parser.add_argument("--config", default=None, help="Optional JSON settings file")
    parser.add_argument("--output", default=None, help="Write the report to this file instead of stdout")
    parser.add_argument("-j", "--jobs", type=int, default=None, help="Worker count (capped by RULES_CHECK_CONCURRENCY)")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log debug details to stderr")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log errors")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def setup_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def main(argv: list[str] | None = None, *, cancel_event: threading.Event | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose, quiet=args.quiet)

    try:
        settings = load_settings(
            args.target_dir,
            args.rules_dir,
            config_path=args.config,
            overrides={
                "severity_threshold": args.severity_threshold,
                "format": args.format,
                "concurrency": args.jobs,
                "output_path": args.output,
            },
        )
    except ConfigError as exc:
        print(f"{parser.prog}: error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    cancel = cancel_event or threading.Event()
    try:
        with _cancel_on_signals(cancel):
            report = run_check(settings, cancel_event=cancel)
    except (AbortedError, KeyboardInterrupt):
        print(f"{parser.prog}: aborted, no report produced", file=sys.stderr)
        return EXIT_ABORTED
    except ConfigError as exc:
        print(f"{parser.prog}: error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    rendered = render(report, settings.output_format)
    if settings.output_path:
        write_report(settings.output_path, rendered)
        if report.load_issues:
            sys.stderr.write(render_text(report))
    else:
        sys.stdout.write(rendered)
    return report.exit_code


@contextmanager
def _cancel_on_signals(cancel: threading.Event) -> Iterator[None]:
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum, frame):
        logger.warning("Received signal %s, cancelling run", signum)
        cancel.set()

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, _handler)
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)


if __name__ == "__main__":
    raise SystemExit(main())
