"""Tests for the async EventBus."""

import pytest

from aihelper.events.bus import EventBus
from aihelper.types import ChatEvent, EventType


@pytest.fixture
def bus():
    return EventBus()


class TestSubscribeAndEmit:
    async def test_async_handler(self, bus: EventBus):
        received = []

        async def handler(event: ChatEvent):
            received.append(event)

        bus.subscribe(EventType.CHAT_STARTED, handler)
        ev = ChatEvent(type=EventType.CHAT_STARTED, data={"request_id": "r1"})
        await bus.emit(ev)

        assert len(received) == 1
        assert received[0] is ev

    async def test_sync_handler(self, bus: EventBus):
        received = []

        def handler(event: ChatEvent):
            received.append(event)

        bus.subscribe(EventType.CHAT_DONE, handler)
        await bus.emit(ChatEvent(type=EventType.CHAT_DONE))

        assert len(received) == 1

    async def test_no_cross_delivery(self, bus: EventBus):
        received = []
        bus.subscribe(EventType.CHAT_STARTED, received.append)
        await bus.emit(ChatEvent(type=EventType.CHAT_FAILED))
        assert received == []

    async def test_string_key_matches_enum(self, bus: EventBus):
        received = []
        bus.subscribe("chat.retrying", received.append)
        await bus.emit(ChatEvent(type=EventType.CHAT_RETRYING))
        assert len(received) == 1


class TestWildcard:
    async def test_wildcard_receives_all(self, bus: EventBus):
        received = []

        async def handler(event: ChatEvent):
            received.append(event.type)

        bus.subscribe("*", handler)
        await bus.emit(ChatEvent(type=EventType.CHAT_STARTED))
        await bus.emit(ChatEvent(type=EventType.CHAT_RETRYING))
        await bus.emit(ChatEvent(type=EventType.CHAT_CANCELLED))

        assert received == [
            EventType.CHAT_STARTED,
            EventType.CHAT_RETRYING,
            EventType.CHAT_CANCELLED,
        ]

    async def test_wildcard_plus_specific(self, bus: EventBus):
        calls = []

        async def specific(event: ChatEvent):
            calls.append("specific")

        async def wildcard(event: ChatEvent):
            calls.append("wildcard")

        bus.subscribe(EventType.CHAT_DONE, specific)
        bus.subscribe("*", wildcard)
        await bus.emit(ChatEvent(type=EventType.CHAT_DONE))

        assert sorted(calls) == ["specific", "wildcard"]


class TestNoSubscribers:
    async def test_emit_without_handlers(self, bus: EventBus):
        await bus.emit(ChatEvent(type=EventType.CHAT_DONE))

    async def test_handlers_for_other_types_untouched(self, bus: EventBus):
        received = []
        bus.subscribe(EventType.CHAT_DONE, received.append)
        await bus.emit(ChatEvent(type=EventType.CHAT_CANCELLED))
        await bus.emit(ChatEvent(type=EventType.CHAT_DONE))
        assert [e.type for e in received] == [EventType.CHAT_DONE]


class TestErrorHandling:
    async def test_handler_exception_does_not_propagate(self, bus: EventBus):
        async def bad_handler(event: ChatEvent):
            raise ValueError("boom")

        received = []

        bus.subscribe(EventType.CHAT_FAILED, bad_handler)
        bus.subscribe(EventType.CHAT_FAILED, received.append)

        await bus.emit(ChatEvent(type=EventType.CHAT_FAILED))
        assert len(received) == 1
