from __future__ import annotations

import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path


DEFAULT_READ_TIMEOUT_SECONDS = 10.0
BINARY_SNIFF_BYTES = 8192


class FileReadError(RuntimeError):
    def __init__(self, path: str | Path, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"failed to read {self.path}: {reason}")


class TimedReader:
    """Reads files with a deadline so a stuck read cannot hang the caller.

    Every read runs on its own daemon thread. A read that exceeds the timeout
    raises FileReadError and its thread is abandoned; it neither delays later
    reads nor keeps the interpreter alive at exit.
    """

    def __init__(self, timeout: float = DEFAULT_READ_TIMEOUT_SECONDS):
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.timeout = timeout

    def read_bytes(self, path: str | Path) -> bytes:
        future: Future = Future()
        thread = threading.Thread(
            target=_read_into,
            args=(Path(path), future),
            name="rules-check-read",
            daemon=True,
        )
        thread.start()
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeoutError as exc:
            raise FileReadError(path, f"timed out after {self.timeout:g}s") from exc
        except OSError as exc:
            raise FileReadError(path, exc.strerror or str(exc)) from exc

    def close(self) -> None:
        pass

    def __enter__(self) -> TimedReader:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _read_into(path: Path, future: Future) -> None:
    try:
        data = path.read_bytes()
    except BaseException as exc:
        future.set_exception(exc)
    else:
        future.set_result(data)


def looks_binary(data: bytes) -> bool:
    return b"\x00" in data[:BINARY_SNIFF_BYTES]


def decode_text(data: bytes) -> str:
    return data.decode("utf-8-sig", errors="replace")
