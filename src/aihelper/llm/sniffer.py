"""Content-based detection of JSON vs. server-sent-event response bodies.

Some proxies drop or mislabel ``Content-Type``, so the decision is made
from the first decoded chunk of the body, never from headers.
"""

from __future__ import annotations

import enum

_SSE_PREFIXES = ("data:", "event:", ":")


class ResponseMode(enum.Enum):
    JSON = "json"
    EVENT_STREAM = "event-stream"


def looks_like_json(text: str) -> bool:
    trimmed = text.lstrip()
    return trimmed.startswith("{") or trimmed.startswith("[")


def looks_like_event_stream(text: str) -> bool:
    if text.lstrip().startswith(_SSE_PREFIXES):
        return True
    return any(line.startswith(_SSE_PREFIXES) for line in text.split("\n"))


def sniff_response_mode(first_chunk: str) -> ResponseMode:
    """Classify a response from its first decoded chunk.

    A leading ``{`` or ``[`` wins over any event-stream signal; anything
    unrecognised is treated as JSON.
    """
    if looks_like_json(first_chunk):
        return ResponseMode.JSON
    if looks_like_event_stream(first_chunk):
        return ResponseMode.EVENT_STREAM
    return ResponseMode.JSON
