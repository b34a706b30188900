"""Filesystem notification types."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

from watchdog.events import (
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
)

from livedir.watch.classifier import normalize_path


class EventKind(str, Enum):
    """Kind of an OS-level filesystem notification."""

    CREATE = "create"
    MODIFY_DATA = "modify_data"
    MODIFY_OTHER = "modify_other"
    REMOVE = "remove"
    RENAME = "rename"
    OTHER = "other"


# Events that may stand for new content
TRIGGER_KINDS = frozenset({EventKind.CREATE, EventKind.MODIFY_DATA})

# Events that never trigger a reload but whose paths leave the tree
OBSERVED_KINDS = frozenset({EventKind.REMOVE, EventKind.RENAME})

_WATCHDOG_KINDS = {
    EVENT_TYPE_CREATED: EventKind.CREATE,
    EVENT_TYPE_MODIFIED: EventKind.MODIFY_DATA,
    EVENT_TYPE_CLOSED: EventKind.MODIFY_DATA,
    EVENT_TYPE_DELETED: EventKind.REMOVE,
    EVENT_TYPE_MOVED: EventKind.RENAME,
}


@dataclass(frozen=True)
class RawEvent:
    """One filesystem notification.

    For renames ``paths`` is ``(source, destination)``.
    """

    kind: EventKind
    paths: tuple[Path, ...]
    is_directory: bool = False

    @classmethod
    def from_watchdog(cls, event: FileSystemEvent) -> "RawEvent":
        """Translate a watchdog event."""
        kind = _WATCHDOG_KINDS.get(event.event_type, EventKind.OTHER)
        paths = [normalize_path(event.src_path)]
        dest_path = getattr(event, "dest_path", "")
        if kind == EventKind.RENAME and dest_path:
            paths.append(normalize_path(dest_path))
        return cls(kind=kind, paths=tuple(paths), is_directory=event.is_directory)

    @property
    def is_trigger(self) -> bool:
        return self.kind in TRIGGER_KINDS and not self.is_directory

    @property
    def is_observed(self) -> bool:
        return self.kind in OBSERVED_KINDS

    @property
    def departed_paths(self) -> tuple[Path, ...]:
        """Paths that no longer hold the content the ledger may have for them."""
        if self.kind == EventKind.REMOVE:
            return self.paths
        if self.kind == EventKind.RENAME:
            return self.paths[:1]
        return ()


@dataclass
class CoalescedBatch:
    """Notifications collected within one debounce window, in arrival order."""

    events: list[RawEvent] = field(default_factory=list)
    merged: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    _seen: set[RawEvent] = field(default_factory=set, repr=False)

    def __len__(self) -> int:
        return len(self.events)

    def add(self, event: RawEvent) -> bool:
        """Append an event unless an identical one is already pending."""
        if event in self._seen:
            self.merged += 1
            return False
        self._seen.add(event)
        self.events.append(event)
        return True
