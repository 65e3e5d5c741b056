"""Request lifecycle events."""

from aihelper.events.bus import EventBus

__all__ = ["EventBus"]
