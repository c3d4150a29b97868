from __future__ import annotations

import logging
import threading
import time
from typing import Any

from rules_check.models import DETECTOR_ERROR, READ_ERROR


logger = logging.getLogger(__name__)


class RunStats:
    """Counters for one check run.

    Constructed by the caller and handed to the engine; safe to update from
    worker threads. Lifecycle is ``start()`` -> ``record_*`` -> ``flush()`` ->
    ``close()``; recording after ``close()`` is an error.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._started_at: float | None = None
        self._closed = False
        self.files_scanned = 0
        self.files_skipped = 0
        self.findings = 0
        self.read_errors = 0
        self.detector_errors = 0

    def start(self) -> None:
        with self._lock:
            self._ensure_open()
            self._started_at = time.monotonic()

    def record_file(self) -> None:
        with self._lock:
            self._ensure_open()
            self.files_scanned += 1

    def record_skip(self) -> None:
        with self._lock:
            self._ensure_open()
            self.files_skipped += 1

    def record_finding(self, kind: str) -> None:
        with self._lock:
            self._ensure_open()
            self.findings += 1
            if kind == READ_ERROR:
                self.read_errors += 1
            elif kind == DETECTOR_ERROR:
                self.detector_errors += 1

    def flush(self) -> dict[str, Any]:
        with self._lock:
            elapsed = 0.0 if self._started_at is None else time.monotonic() - self._started_at
            snapshot = {
                "files_scanned": self.files_scanned,
                "files_skipped": self.files_skipped,
                "findings": self.findings,
                "read_errors": self.read_errors,
                "detector_errors": self.detector_errors,
                "elapsed_seconds": round(elapsed, 3),
            }
        logger.debug("Run stats: %s", snapshot)
        return snapshot

    def close(self) -> None:
        with self._lock:
            self._closed = True

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("RunStats is closed")
