from __future__ import annotations

import logging
import threading

from rules_check.config import Settings
from rules_check.engine import Checker
from rules_check.errors import AbortedError, RuleLoadError
from rules_check.models import Report
from rules_check.reporting import build_report
from rules_check.rules import load_rules
from rules_check.scope import iter_target_files
from rules_check.stats import RunStats


logger = logging.getLogger(__name__)


def run_check(
    settings: Settings,
    *,
    cancel_event: threading.Event | None = None,
    stats: RunStats | None = None,
) -> Report:
    """Load rules, check the target tree and build the report.

    A broken rule set yields a report carrying the load issues and exit code 2
    without checking any file. Cancellation raises AbortedError.
    """
    cancel = cancel_event or threading.Event()
    run_stats = stats or RunStats()
    run_stats.start()

    try:
        try:
            rules = load_rules(settings.rules_dir, timeout=settings.read_timeout_seconds)
        except RuleLoadError as exc:
            if cancel.is_set():
                raise AbortedError("check run was cancelled") from exc
            return build_report([], load_issues=exc.issues)

        paths = iter_target_files(settings.target_dir, exclude_dirs=set(settings.exclude_dirs))
        logger.info(
            "Checking %d file(s) under %s against %d rule(s) with %d worker(s)",
            len(paths),
            settings.target_dir,
            len(rules),
            settings.concurrency,
        )

        with Checker(
            workers=settings.concurrency,
            read_timeout=settings.read_timeout_seconds,
            max_file_size_bytes=settings.max_file_size_bytes,
            stats=run_stats,
            cancel_event=cancel,
        ) as checker:
            findings = checker.check(settings.target_dir, paths, rules)

        if cancel.is_set():
            raise AbortedError("check run was cancelled")

        snapshot = run_stats.flush()
        report = build_report(
            findings,
            threshold=settings.severity_threshold,
            files_scanned=snapshot["files_scanned"],
            rules_loaded=len(rules),
        )
        logger.info("Run finished: %d error(s), %d warning(s)", report.errors, report.warnings)
        return report
    finally:
        run_stats.close()
