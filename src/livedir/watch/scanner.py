"""Baseline scan of the served tree."""

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from livedir.watch.classifier import PathClassifier, normalize_path
from livedir.watch.fingerprint import ContentFingerprinter, FingerprintError
from livedir.watch.ledger import ChangeLedger, LedgerAccessError

logger = logging.getLogger(__name__)


@dataclass
class ScanStats:
    tracked: int = 0
    skipped: int = 0
    failed: int = 0


class DirectoryScanner:
    """Records the fingerprint of every eligible file before watching starts.

    Files that exist at startup are part of the baseline, so they never
    cause a reload on their own. A file that cannot be read is skipped and
    the scan carries on.
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

    def _walk(self, root: Path) -> tuple[list[Path], int]:
        """Collect eligible files under root, pruning excluded directories."""
        eligible: list[Path] = []
        skipped = 0

        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if not self.classifier.is_excluded_dir(d))
            for filename in sorted(filenames):
                path = normalize_path(os.path.join(dirpath, filename))
                if self.classifier.is_eligible(path):
                    eligible.append(path)
                else:
                    skipped += 1

        return eligible, skipped

    async def scan(self, root: str | Path) -> ScanStats:
        """Seed the ledger with the current content of the tree under root."""
        root = normalize_path(root)
        paths, skipped = await asyncio.to_thread(self._walk, root)
        stats = ScanStats(skipped=skipped)

        for path in paths:
            try:
                fingerprint = await asyncio.to_thread(self.fingerprinter.fingerprint, path)
                await self.ledger.record_initial(path, fingerprint)
            except (FingerprintError, LedgerAccessError) as e:
                logger.debug(f"Error scanning {path}: {e}")
                stats.failed += 1
                continue
            stats.tracked += 1

        logger.info(
            f"Scanned {root}: {stats.tracked} tracked, {stats.skipped} skipped, "
            f"{stats.failed} failed"
        )
        return stats
