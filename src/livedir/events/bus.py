"""Reload hub broadcasting reload events to live-reload clients."""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from livedir.events.types import Event, EventType

logger = logging.getLogger(__name__)


class ReloadHub:
    """Fans reload signals out to connected clients.

    Each subscriber gets a queue holding at most one pending event. A reload
    is all-or-nothing, so when a client has not yet consumed its previous
    reload the new one is dropped for that client instead of waiting on it.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, asyncio.Queue[Event]] = {}
        self._callbacks: list[Callable[[Event], Any]] = []
        self.reload_count = 0

    def subscribe(self, subscriber_id: str) -> asyncio.Queue[Event]:
        """Subscribe to events and return a queue to receive them."""
        queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=1)
        self._subscribers[subscriber_id] = queue
        logger.debug(f"Subscriber {subscriber_id} connected")
        return queue

    def unsubscribe(self, subscriber_id: str) -> None:
        """Unsubscribe from events."""
        if self._subscribers.pop(subscriber_id, None) is not None:
            logger.debug(f"Subscriber {subscriber_id} disconnected")

    def add_callback(self, callback: Callable[[Event], Any]) -> None:
        """Add a callback to be called for every event."""
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[Event], Any]) -> None:
        """Remove a callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def publish(self, event: Event) -> None:
        """Hand an event to every subscriber without waiting on any of them."""
        logger.debug(f"Publishing event: {event.type.value}")

        for subscriber_id, queue in list(self._subscribers.items()):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.debug(f"Subscriber {subscriber_id} already has a pending event")

        for callback in self._callbacks:
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Callback error: {e}")

    def notify_reload(self) -> Event:
        """Tell every connected client to reload."""
        self.reload_count += 1
        event = Event(type=EventType.RELOAD)
        self.publish(event)
        logger.info(f"Reload sent to {self.subscriber_count} client(s)")
        return event

    @property
    def subscriber_count(self) -> int:
        """Get the number of active subscribers."""
        return len(self._subscribers)
