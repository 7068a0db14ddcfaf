from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable

from .dates import is_eligible
from .settings import CleanupConfig, CleanupOptions, OptionsStore, Settings
from .transforms import apply_transforms
from .vault import Document, VaultStore, daily_notes_folder_provider

logger = logging.getLogger(__name__)

NOTICE_FOLDER_NOT_SET = "Daily notes folder not set"
NOTICE_FOLDER_NOT_FOUND = "Folder not found: {path}"
NOTICE_FINISHED = "Finished cleaning daily notes"


@dataclass
class CleanReport:
    scanned: int = 0
    eligible: int = 0
    modified: int = 0
    failed: list[str] = field(default_factory=list)
    notices: list[str] = field(default_factory=list)
    aborted: bool = False
    dry_run: bool = False


def clean_documents(
    documents: Iterable[Document],
    store: VaultStore,
    config: CleanupConfig,
    now: datetime,
    *,
    dry_run: bool = False,
    report: CleanReport | None = None,
) -> CleanReport:
    """Clean every eligible document, in the order given.

    A document is written only if its cleaned text differs from what was read.
    An I/O failure on one document is logged and recorded in `report.failed`;
    the remaining documents are still processed.
    """

    if report is None:
        report = CleanReport(dry_run=dry_run)
    for doc in documents:
        report.scanned += 1
        if not is_eligible(doc.identifier, config.threshold_days, now):
            continue
        report.eligible += 1

        try:
            original = store.read(doc)
            cleaned = apply_transforms(original, config)
            if cleaned == original:
                logger.debug("Already clean: %s", doc.identifier)
                continue
            if not dry_run:
                store.write(doc, cleaned)
        except (OSError, UnicodeError):
            logger.exception("Failed to clean %s", doc.path)
            report.failed.append(doc.identifier)
            continue

        report.modified += 1
        logger.info("%s %s", "Would clean" if dry_run else "Cleaned", doc.identifier)
    return report


class NoteCleaner:
    """Entry point shared by every trigger (CLI, API, scheduler).

    `options` is a callable so each run sees the current persisted options.
    `default_folder` is asked once, here, for the host's daily-notes folder.
    Only one run may be active at a time; a trigger that arrives while a run is
    in progress is dropped.
    """

    def __init__(
        self,
        store: VaultStore,
        options: Callable[[], CleanupOptions],
        *,
        default_folder: Callable[[], str | None] | None = None,
        notify: Callable[[str], None] | None = None,
    ):
        self.store = store
        self.options = options
        self.default_folder = default_folder() if default_folder else None
        self.notify = notify or (lambda message: None)
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def resolve_folder_path(self, options: CleanupOptions | None = None) -> str | None:
        opts = options or self.options()
        return opts.folder or self.default_folder or None

    def _notice(self, report: CleanReport, message: str) -> None:
        report.notices.append(message)
        self.notify(message)

    def run(self, now: datetime | None = None, *, dry_run: bool = False) -> CleanReport | None:
        if not self._lock.acquire(blocking=False):
            logger.info("Cleanup already in progress; skipping this trigger")
            return None
        try:
            return self._run(now or datetime.now(), dry_run=dry_run)
        finally:
            self._lock.release()

    def _run(self, now: datetime, *, dry_run: bool) -> CleanReport:
        report = CleanReport(dry_run=dry_run)
        opts = self.options()

        folder_path = self.resolve_folder_path(opts)
        if not folder_path:
            report.aborted = True
            self._notice(report, NOTICE_FOLDER_NOT_SET)
            return report

        folder = self.store.resolve_folder(folder_path)
        if folder is None:
            report.aborted = True
            self._notice(report, NOTICE_FOLDER_NOT_FOUND.format(path=folder_path))
            return report

        logger.info(
            "Cleaning %s (days_after=%s, dry_run=%s)", folder, opts.days_after, dry_run
        )
        clean_documents(
            self.store.list_documents(folder),
            self.store,
            opts.to_config(),
            now,
            dry_run=dry_run,
            report=report,
        )
        logger.info(
            "Cleanup done: scanned=%s eligible=%s modified=%s failed=%s",
            report.scanned,
            report.eligible,
            report.modified,
            len(report.failed),
        )
        self._notice(report, NOTICE_FINISHED)
        return report


def build_cleaner(
    settings: Settings, *, notify: Callable[[str], None] | None = None
) -> tuple[NoteCleaner, OptionsStore]:
    """Wire a cleaner to the vault and options file named in `settings`."""
    options_store = OptionsStore(settings.CLEAN_OPTIONS_PATH)
    cleaner = NoteCleaner(
        VaultStore(settings.CLEAN_VAULT_PATH),
        options_store.load,
        default_folder=daily_notes_folder_provider(settings.CLEAN_VAULT_PATH),
        notify=notify,
    )
    return cleaner, options_store
