"""Reload events pushed to browsers over the live-reload websocket."""

from livedir.events.bus import ReloadHub
from livedir.events.types import Event, EventType

__all__ = ["Event", "EventType", "ReloadHub"]
