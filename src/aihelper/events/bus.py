"""Request lifecycle fan-out from the orchestrator to the UI."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable

from aihelper.types import ChatEvent, EventType

_logger = logging.getLogger(__name__)

ALL_EVENTS = "*"

Handler = Callable[[ChatEvent], Any]


class EventBus:
    """Delivers ``ChatEvent``s to subscribed handlers.

    Handlers may be plain functions or coroutines.  A failing handler is
    logged and never affects the request that emitted the event.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}

    def subscribe(self, event_type: EventType | str, handler: Handler) -> None:
        """Register *handler* for *event_type*, or ``"*"`` for every event."""
        key = event_type.value if isinstance(event_type, EventType) else event_type
        self._handlers.setdefault(key, []).append(handler)

    async def emit(self, event: ChatEvent) -> None:
        handlers = [
            *self._handlers.get(event.type.value, ()),
            *self._handlers.get(ALL_EVENTS, ()),
        ]
        if handlers:
            await asyncio.gather(*(self._deliver(h, event) for h in handlers))

    @staticmethod
    async def _deliver(handler: Handler, event: ChatEvent) -> None:
        try:
            result = handler(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            _logger.exception(
                "Handler %s failed for %s",
                getattr(handler, "__name__", handler), event.type.value,
            )
