"""Watch lifecycle: baseline scan, OS watch, and the detection loop."""

import asyncio
import contextlib
import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Protocol

from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from livedir.config import DEBOUNCE_SECONDS, DEFAULT_EXCLUDED_DIRS
from livedir.watch.classifier import PathClassifier, normalize_path
from livedir.watch.coalescer import CoalescingHandler, EventCoalescer
from livedir.watch.detector import ChangeDetector
from livedir.watch.fingerprint import ContentFingerprinter
from livedir.watch.ledger import ChangeLedger, LedgerAccessError
from livedir.watch.scanner import DirectoryScanner, ScanStats

logger = logging.getLogger(__name__)


class WatchSetupError(Exception):
    """Raised when the directory cannot be watched."""

    def __init__(self, root: Path, reason: str):
        self.root = root
        self.reason = reason
        super().__init__(f"Cannot watch {root}: {reason}")


class ReloadNotifier(Protocol):
    """Receives the signal that connected clients should reload."""

    def notify_reload(self) -> object: ...


class WatchService:
    """Watches a directory tree and notifies once per real content change.

    ``start`` scans the tree to establish the baseline, then starts the
    watchdog observer. Notifications flow observer thread -> coalescer ->
    batch queue -> a single consumer task, so batches are processed one at
    a time in arrival order.
    """

    def __init__(
        self,
        root: str | Path,
        ledger: ChangeLedger,
        notifier: ReloadNotifier,
        *,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        excluded_dirs: Iterable[str] = DEFAULT_EXCLUDED_DIRS,
        observer_factory: Callable[[], BaseObserver] = Observer,
    ):
        self.root = normalize_path(root)
        self.ledger = ledger
        self.notifier = notifier
        self.debounce_seconds = debounce_seconds

        self.classifier = PathClassifier(self.root, excluded_dirs)
        self.fingerprinter = ContentFingerprinter()
        self.scanner = DirectoryScanner(self.classifier, self.fingerprinter, ledger)
        self.detector = ChangeDetector(self.classifier, self.fingerprinter, ledger)

        self._observer_factory = observer_factory
        self._observer: BaseObserver | None = None
        self._consumer: asyncio.Task[None] | None = None
        self.coalescer: EventCoalescer | None = None
        self._stopping = False

        self.batches_processed = 0
        self.changes_detected = 0

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    async def start(self) -> ScanStats:
        """Scan the tree and begin watching it.

        Raises:
            WatchSetupError: If the root is missing or the OS watch cannot be
                established.
        """
        if self.running:
            raise RuntimeError("Watch service already started")
        if not self.root.is_dir():
            raise WatchSetupError(self.root, "not an existing directory")

        self._stopping = False
        self.coalescer = EventCoalescer(self.debounce_seconds, asyncio.get_running_loop())

        # Entries left over from an earlier run may describe files that are gone
        try:
            stale = await self.ledger.clear()
        except LedgerAccessError as e:
            self.coalescer.close()
            raise WatchSetupError(self.root, e.reason) from e
        if stale:
            logger.debug(f"Dropped {stale} ledger entries from a previous run")

        # Baseline must be complete before any event is delivered
        stats = await self.scanner.scan(self.root)

        observer = self._observer_factory()
        observer.daemon = True
        try:
            observer.schedule(CoalescingHandler(self.coalescer), str(self.root), recursive=True)
            observer.start()
        except OSError as e:
            self.coalescer.close()
            raise WatchSetupError(self.root, e.strerror or str(e)) from e
        self._observer = observer

        self._consumer = asyncio.create_task(
            self._consume(self.coalescer), name="livedir-detector"
        )
        logger.info(f"Watching {self.root} (debounce {self.debounce_seconds * 1000:.0f} ms)")
        return stats

    async def _consume(self, coalescer: EventCoalescer) -> None:
        while not self._stopping:
            batch = await coalescer.batches.get()
            if self._stopping:
                break

            try:
                changed = await self.detector.process(batch)
            except Exception as e:
                logger.error(f"Failed to process batch of {len(batch)} event(s): {e}")
                continue
            finally:
                self.batches_processed += 1

            if changed is not None and not self._stopping:
                self.changes_detected += 1
                self.notifier.notify_reload()

    async def stop(self) -> None:
        """Stop watching and release the OS watch handle.

        No reload fires once this has been called.
        """
        self._stopping = True

        if self.coalescer is not None:
            self.coalescer.close()

        if self._observer is not None:
            observer, self._observer = self._observer, None
            observer.stop()
            await asyncio.to_thread(observer.join, 5.0)

        if self._consumer is not None:
            consumer, self._consumer = self._consumer, None
            consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await consumer

        logger.info(f"Stopped watching {self.root}")
