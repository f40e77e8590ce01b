"""Event plumbing between the ingestion task and the dispatcher."""

from playbot.bus.events import ChatEvent, EventError, parse_frame
from playbot.bus.queue import EventBus

__all__ = ["ChatEvent", "EventError", "EventBus", "parse_frame"]
