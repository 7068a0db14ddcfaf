from __future__ import annotations

import threading

import pytest

from clean_notes.scheduler import CleanupScheduler


class _CountingCleaner:
    def __init__(self, fail: bool = False):
        self.calls = 0
        self.fail = fail
        self.ran = threading.Event()

    def run(self, now=None, *, dry_run=False):
        self.calls += 1
        self.ran.set()
        if self.fail:
            raise OSError("vault unavailable")
        return None


def test_start_runs_immediately_then_stops():
    cleaner = _CountingCleaner()
    scheduler = CleanupScheduler(cleaner, interval_hours=24)

    scheduler.start()
    try:
        assert cleaner.ran.wait(5)
        assert scheduler.is_running
    finally:
        scheduler.stop()

    assert cleaner.calls == 1
    assert not scheduler.is_running


def test_start_twice_reuses_thread():
    scheduler = CleanupScheduler(_CountingCleaner(), interval_hours=24)
    try:
        assert scheduler.start() is scheduler.start()
    finally:
        scheduler.stop()


def test_tick_logs_and_survives_failures(caplog):
    cleaner = _CountingCleaner(fail=True)
    scheduler = CleanupScheduler(cleaner, interval_hours=1)

    scheduler.tick()

    assert cleaner.calls == 1
    assert "Scheduled cleanup failed" in caplog.text


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        CleanupScheduler(_CountingCleaner(), interval_hours=0)
