"""Debouncing of bursty filesystem notifications.

Editors rarely save a file with a single write. A save usually shows up as a
burst of create, modify and close notifications, sometimes spread over
several files. The coalescer collects such a burst until the tree has been
quiet for one debounce window, then hands the whole burst downstream as a
single ``CoalescedBatch``:

    IDLE --event--> ACCUMULATING --quiet for window--> FLUSHING --> IDLE
                      ^      |
                      +------+ event (re-arms the timer)
"""

import asyncio
import logging
from enum import Enum

from watchdog.events import FileSystemEvent, FileSystemEventHandler

from livedir.watch.events import CoalescedBatch, RawEvent

logger = logging.getLogger(__name__)


class CoalescerState(Enum):
    """State of the debounce state machine."""

    IDLE = "idle"
    ACCUMULATING = "accumulating"
    FLUSHING = "flushing"


class EventCoalescer:
    """Merges notifications arriving within a debounce window into batches.

    Must be driven from the event loop thread. The watchdog observer thread
    goes through ``submit_threadsafe``. Flushed batches are put on
    ``self.batches`` in the order their windows closed.
    """

    def __init__(self, window: float, loop: asyncio.AbstractEventLoop | None = None):
        self.window = window
        self.batches: asyncio.Queue[CoalescedBatch] = asyncio.Queue()
        self._loop = loop or asyncio.get_running_loop()
        self._pending: CoalescedBatch | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._state = CoalescerState.IDLE
        self._closed = False

    @property
    def state(self) -> CoalescerState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    @staticmethod
    def is_relevant(event: RawEvent) -> bool:
        """Check if an event belongs in a batch.

        Creates and data modifications are candidate reload triggers. Removals
        and renames are carried along so the detector can forget the paths
        that left, but they never trigger a reload. Everything else
        (directories, metadata, opens) is dropped here.
        """
        if event.is_trigger:
            return True
        return event.is_observed

    def submit(self, event: RawEvent) -> bool:
        """Add an event to the current window. Returns True if it was kept."""
        if self._closed:
            return False
        if not self.is_relevant(event):
            logger.debug(f"Ignoring {event.kind.value} event for {event.paths[0]}")
            return False

        if self._pending is None:
            self._pending = CoalescedBatch()
        self._pending.add(event)
        self._state = CoalescerState.ACCUMULATING
        self._arm()
        return True

    def submit_threadsafe(self, event: RawEvent) -> None:
        """Schedule ``submit`` on the event loop from another thread."""
        if self._closed or self._loop.is_closed():
            return
        try:
            self._loop.call_soon_threadsafe(self.submit, event)
        except RuntimeError:
            # Loop shut down between the check and the call
            logger.debug("Event loop closed, dropping notification")

    def _arm(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._loop.call_later(self.window, self._flush)

    def _flush(self) -> None:
        self._timer = None
        batch, self._pending = self._pending, None
        if batch is None or self._closed:
            self._state = CoalescerState.IDLE
            return

        self._state = CoalescerState.FLUSHING
        logger.debug(f"Flushing batch of {len(batch)} event(s) ({batch.merged} merged)")
        self.batches.put_nowait(batch)
        self._state = CoalescerState.IDLE

    def close(self) -> None:
        """Stop accepting events and drop anything still pending."""
        self._closed = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending = None
        self._state = CoalescerState.IDLE


class CoalescingHandler(FileSystemEventHandler):
    """Watchdog handler forwarding every notification to a coalescer."""

    def __init__(self, coalescer: EventCoalescer):
        super().__init__()
        self.coalescer = coalescer

    def on_any_event(self, event: FileSystemEvent) -> None:
        self.coalescer.submit_threadsafe(RawEvent.from_watchdog(event))
