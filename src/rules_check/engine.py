from __future__ import annotations

import logging
import threading
from bisect import bisect_right
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from pathlib import Path

from rules_check.detectors import DetectionResult, build_detector
from rules_check.errors import AbortedError
from rules_check.files import (
    DEFAULT_READ_TIMEOUT_SECONDS,
    FileReadError,
    TimedReader,
    decode_text,
    looks_binary,
)
from rules_check.models import DETECTOR_ERROR, READ_ERROR, Finding, Rule, Severity, TargetFile
from rules_check.scope import applicable_rules, detect_language
from rules_check.stats import RunStats


logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE_BYTES = 2_000_000
EVIDENCE_LIMIT = 300
CANCEL_POLL_SECONDS = 0.1


class Checker:
    def __init__(
        self,
        *,
        workers: int = 1,
        read_timeout: float = DEFAULT_READ_TIMEOUT_SECONDS,
        max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE_BYTES,
        stats: RunStats | None = None,
        cancel_event: threading.Event | None = None,
    ):
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.workers = workers
        self.max_file_size_bytes = max_file_size_bytes
        self.stats = stats or RunStats()
        self.cancel_event = cancel_event or threading.Event()
        self.reader = TimedReader(timeout=read_timeout)

    def close(self) -> None:
        self.reader.close()

    def __enter__(self) -> Checker:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def check(self, root: str | Path, paths: list[str], rules: list[Rule]) -> list[Finding]:
        """Check ``paths`` (relative to ``root``) and return findings in input order.

        Raises AbortedError when the cancel event is set before every file
        has been checked; nothing collected so far is returned.
        """
        base = Path(root)
        if self.workers == 1 or len(paths) <= 1:
            per_file = self._check_sequential(base, paths, rules)
        else:
            per_file = self._check_parallel(base, paths, rules)

        findings: list[Finding] = []
        for items in per_file:
            findings.extend(items)
        return findings

    def check_file(self, root: Path, path: str, rules: list[Rule]) -> list[Finding]:
        selected = applicable_rules(rules, path)
        if not selected:
            return []

        full_path = root / path
        try:
            size = full_path.stat().st_size
        except OSError as exc:
            return self._read_error_findings(path, selected, exc.strerror or str(exc))

        if size > self.max_file_size_bytes:
            logger.debug("Skipping %s: %d bytes exceeds limit", path, size)
            self.stats.record_skip()
            return []

        try:
            data = self.reader.read_bytes(full_path)
        except FileReadError as exc:
            return self._read_error_findings(path, selected, exc.reason)

        if looks_binary(data):
            logger.debug("Skipping %s: binary content", path)
            self.stats.record_skip()
            return []

        target = TargetFile(path=path, language=detect_language(path), content=decode_text(data))
        self.stats.record_file()

        findings: list[Finding] = []
        for rule in selected:
            findings.extend(self._run_rule(rule, target))
        return findings

    def _check_sequential(self, root: Path, paths: list[str], rules: list[Rule]) -> list[list[Finding]]:
        results: list[list[Finding]] = []
        for path in paths:
            self._raise_if_cancelled()
            results.append(self.check_file(root, path, rules))
        self._raise_if_cancelled()
        return results

    def _check_parallel(self, root: Path, paths: list[str], rules: list[Rule]) -> list[list[Finding]]:
        results: list[list[Finding] | None] = [None] * len(paths)
        pool = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="rules-check")
        try:
            futures: dict[Future, int] = {
                pool.submit(self._check_unless_cancelled, root, path, rules): index
                for index, path in enumerate(paths)
            }
            pending = set(futures)
            while pending:
                self._raise_if_cancelled()
                done, pending = wait(pending, timeout=CANCEL_POLL_SECONDS, return_when=FIRST_COMPLETED)
                for future in done:
                    results[futures[future]] = future.result()
            self._raise_if_cancelled()
        finally:
            pool.shutdown(wait=not self.cancel_event.is_set(), cancel_futures=True)

        return [items or [] for items in results]

    def _check_unless_cancelled(self, root: Path, path: str, rules: list[Rule]) -> list[Finding]:
        if self.cancel_event.is_set():
            return []
        return self.check_file(root, path, rules)

    def _raise_if_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise AbortedError("check run was cancelled")

    def _run_rule(self, rule: Rule, target: TargetFile) -> list[Finding]:
        try:
            result = build_detector(rule.detector).detect(rule, target)
        except Exception as exc:
            logger.exception("Detector for rule %s failed on %s", rule.id, target.path)
            result = DetectionResult(error=f"{type(exc).__name__}: {exc}")

        findings = _to_findings(rule, target, result)
        for item in findings:
            self.stats.record_finding(item.kind)
        return findings

    def _read_error_findings(self, path: str, rules: list[Rule], reason: str) -> list[Finding]:
        logger.warning("Could not read %s: %s", path, reason)
        findings = [
            Finding(
                rule_id=rule.id,
                file_path=path,
                line=None,
                message=f"could not read file: {reason}",
                severity=Severity.ERROR,
                kind=READ_ERROR,
            )
            for rule in rules
        ]
        for item in findings:
            self.stats.record_finding(item.kind)
        return findings


def _to_findings(rule: Rule, target: TargetFile, result: DetectionResult) -> list[Finding]:
    if result.error is not None:
        logger.warning("Rule %s could not run on %s: %s", rule.id, target.path, result.error)
        return [
            Finding(
                rule_id=rule.id,
                file_path=target.path,
                line=None,
                message=result.error,
                severity=Severity.ERROR,
                kind=DETECTOR_ERROR,
            )
        ]

    findings: list[Finding] = []
    if result.file_level:
        findings.append(
            Finding(
                rule_id=rule.id,
                file_path=target.path,
                line=None,
                message=rule.message,
                severity=rule.severity,
            )
        )

    if result.violations:
        line_starts = _line_starts(target.content)
        for match in result.violations:
            line_index = bisect_right(line_starts, match.start) - 1
            line_start = line_starts[line_index]
            line_end = target.content.find("\n", line_start)
            line_text = target.content[line_start:] if line_end == -1 else target.content[line_start:line_end]
            findings.append(
                Finding(
                    rule_id=rule.id,
                    file_path=target.path,
                    line=line_index + 1,
                    column=match.start - line_start + 1,
                    message=rule.message,
                    severity=rule.severity,
                    evidence=line_text.strip()[:EVIDENCE_LIMIT],
                )
            )

    return findings


def _line_starts(content: str) -> list[int]:
    starts = [0]
    index = content.find("\n")
    while index != -1:
        starts.append(index + 1)
        index = content.find("\n", index + 1)
    return starts
