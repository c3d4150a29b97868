import pytest

from rules_check.stats import RunStats


def test_lifecycle_and_snapshot():
    stats = RunStats()
    stats.start()
    stats.record_file()
    stats.record_file()
    stats.record_skip()
    stats.record_finding("violation")
    stats.record_finding("ReadError")
    stats.record_finding("DetectorError")

    snapshot = stats.flush()
    stats.close()

    assert snapshot["files_scanned"] == 2
    assert snapshot["files_skipped"] == 1
    assert snapshot["findings"] == 3
    assert snapshot["read_errors"] == 1
    assert snapshot["detector_errors"] == 1
    assert snapshot["elapsed_seconds"] >= 0


def test_recording_after_close_fails():
    stats = RunStats()
    stats.close()

    with pytest.raises(RuntimeError):
        stats.record_file()
