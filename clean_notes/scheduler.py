"""Periodic trigger for the note cleaner.

Runs once as soon as it is started (the host is ready), then every
`interval_hours`. Runs go through `NoteCleaner.run`, so a tick that lands while
a manual clean is in progress is dropped rather than interleaved.
"""

from __future__ import annotations

import logging
import threading

from .cleaner import NoteCleaner

logger = logging.getLogger(__name__)


class CleanupScheduler:
    def __init__(self, cleaner: NoteCleaner, interval_hours: float = 24.0):
        if interval_hours <= 0:
            raise ValueError("interval_hours must be positive")
        self.cleaner = cleaner
        self.interval_seconds = interval_hours * 3600
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def tick(self) -> None:
        try:
            self.cleaner.run()
        except Exception:
            logger.exception("Scheduled cleanup failed")

    def _loop(self) -> None:
        logger.info("Starting cleanup scheduler (every %.1fh)", self.interval_seconds / 3600)
        while not self._stop.is_set():
            self.tick()
            if self._stop.wait(self.interval_seconds):
                break
        logger.info("Cleanup scheduler stopped")

    def start(self) -> threading.Thread:
        if self.is_running:
            return self._thread  # type: ignore[return-value]
        self._stop.clear()
        thread = threading.Thread(target=self._loop, name="clean-notes-scheduler", daemon=True)
        thread.start()
        self._thread = thread
        return thread

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal the loop to exit. A run in progress finishes first."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run_forever(self) -> None:
        """Run the loop in the calling thread until interrupted."""
        self._stop.clear()
        try:
            self._loop()
        except KeyboardInterrupt:
            logger.info("Scheduler interrupted")
