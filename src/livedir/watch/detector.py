"""Turns coalesced notifications into a reload decision."""

import asyncio
import logging
from pathlib import Path

from livedir.watch.classifier import PathClassifier
from livedir.watch.events import CoalescedBatch
from livedir.watch.fingerprint import ContentFingerprinter, FingerprintError
from livedir.watch.ledger import ChangeLedger, LedgerAccessError

logger = logging.getLogger(__name__)


class ChangeDetector:
    """Decides whether a batch of notifications holds a real content change.

    Paths are checked in batch order. Each eligible path is fingerprinted and
    compared with the ledger. The first path whose content differs from the
    ledger is the change for the whole batch. Later triggers are not
    fingerprinted, since the caller reloads at most once per batch anyway.

    Removals and rename sources are forgotten wherever they fall in the
    batch, so a file that is deleted and later recreated counts as new
    content.
    """

    def __init__(
        self,
        classifier: PathClassifier,
        fingerprinter: ContentFingerprinter,
        ledger: ChangeLedger,
    ):
        self.classifier = classifier
        self.fingerprinter = fingerprinter
        self.ledger = ledger

    def _read(self, path: Path) -> str | None:
        """Fingerprint an eligible path, or return None if it is not eligible."""
        if not self.classifier.is_eligible(path):
            return None
        return self.fingerprinter.fingerprint(path)

    async def _forget(self, path: Path) -> None:
        try:
            if await self.ledger.forget(path):
                logger.debug(f"Forgot {path}")
        except LedgerAccessError as e:
            logger.warning(f"Could not forget {path}: {e}")

    async def check(self, path: Path) -> bool:
        """Check a single path for changed content, updating the ledger."""
        try:
            fingerprint = await asyncio.to_thread(self._read, path)
        except FingerprintError as e:
            logger.debug(f"Skipping unreadable {path}: {e.reason}")
            return False
        if fingerprint is None:
            return False

        try:
            return await self.ledger.record_update(path, fingerprint)
        except LedgerAccessError as e:
            logger.warning(f"No decision for {path}: {e}")
            return False

    async def process(self, batch: CoalescedBatch) -> Path | None:
        """Return the first path in the batch whose content changed, if any."""
        changed: Path | None = None
        for event in batch.events:
            for path in event.departed_paths:
                await self._forget(path)

            if changed is not None or not event.is_trigger:
                continue

            for path in event.paths:
                if await self.check(path):
                    logger.info(f"Changed: {path}")
                    changed = path
                    break

        return changed
