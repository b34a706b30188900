"""Change detection for the served tree.

Filesystem notifications are debounced into batches, filtered down to
eligible files, and compared by content fingerprint against a ledger so
that each real change triggers exactly one reload.
"""

from livedir.watch.classifier import PathClassifier, normalize_path
from livedir.watch.coalescer import CoalescerState, EventCoalescer
from livedir.watch.detector import ChangeDetector
from livedir.watch.events import CoalescedBatch, EventKind, RawEvent
from livedir.watch.fingerprint import ContentFingerprinter, FingerprintError
from livedir.watch.ledger import ChangeLedger, LedgerAccessError, LedgerEntry
from livedir.watch.scanner import DirectoryScanner, ScanStats
from livedir.watch.service import ReloadNotifier, WatchService, WatchSetupError

__all__ = [
    "ChangeDetector",
    "ChangeLedger",
    "CoalescedBatch",
    "CoalescerState",
    "ContentFingerprinter",
    "DirectoryScanner",
    "EventCoalescer",
    "EventKind",
    "FingerprintError",
    "LedgerAccessError",
    "LedgerEntry",
    "PathClassifier",
    "RawEvent",
    "ReloadNotifier",
    "ScanStats",
    "WatchService",
    "WatchSetupError",
    "normalize_path",
]
