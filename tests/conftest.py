"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from livedir.db import Database
from livedir.watch import (
    ChangeDetector,
    ChangeLedger,
    CoalescedBatch,
    ContentFingerprinter,
    DirectoryScanner,
    EventKind,
    PathClassifier,
    RawEvent,
    normalize_path,
)


@pytest.fixture
async def db() -> AsyncGenerator[Database, None]:
    """Create an in-memory database for testing."""
    database = Database()
    await database.connect()
    yield database
    await database.disconnect()


@pytest.fixture
def ledger(db: Database) -> ChangeLedger:
    return ChangeLedger(db)


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """Create a small served tree with a few files that must never be tracked."""
    root = tmp_path / "site"
    root.mkdir()
    (root / "index.html").write_text("<html><body><h1>Hello</h1></body></html>")
    (root / "a.txt").write_text("hello")
    (root / "css").mkdir()
    (root / "css" / "style.css").write_text("body { color: red; }")

    (root / ".git").mkdir()
    (root / ".git" / "HEAD").write_text("ref: refs/heads/main")
    (root / "target").mkdir()
    (root / "target" / "out.bin").write_bytes(b"\x00\x01")
    (root / "a.txt~").write_text("hello backup")
    return normalize_path(root)


@pytest.fixture
def classifier(site: Path) -> PathClassifier:
    return PathClassifier(site)


@pytest.fixture
def scanner(classifier: PathClassifier, ledger: ChangeLedger) -> DirectoryScanner:
    return DirectoryScanner(classifier, ContentFingerprinter(), ledger)


@pytest.fixture
def detector(classifier: PathClassifier, ledger: ChangeLedger) -> ChangeDetector:
    return ChangeDetector(classifier, ContentFingerprinter(), ledger)


def _make_batch(*events: tuple[EventKind, Path] | RawEvent) -> CoalescedBatch:
    batch = CoalescedBatch()
    for event in events:
        if not isinstance(event, RawEvent):
            kind, path = event
            event = RawEvent(kind=kind, paths=(normalize_path(path),))
        batch.add(event)
    return batch


@pytest.fixture
def make_batch():
    """Build a batch from ``(kind, path)`` pairs or ready-made events."""
    return _make_batch
