"""Text extraction for Responses-style API bodies and SSE streams.

Two entry points:

* ``extract_response_text`` pulls the reply text out of a complete JSON
  document (non-streaming responses, and the envelope carried by a
  ``response.completed`` event).
* ``EventStreamDecoder`` consumes a server-sent-event body chunk by
  chunk, frames it into event blocks and accumulates text.

Several upstream schemas are tolerated: the Responses API
(``output_text`` / ``output[].content[]`` / ``response.*`` events) and
chat-completions (``choices[0].message`` / ``choices[0].delta``).
"""

from __future__ import annotations

import codecs
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from aihelper.core.cancellation import CancellationToken
from aihelper.errors import StreamErrorEvent

_logger = logging.getLogger(__name__)

_DATA_PREFIX = "data:"
_DONE_SENTINEL = "[DONE]"
_BLOCK_SEPARATOR = "\n\n"

_TEXT_CONTENT_TYPES = ("output_text", "text")
_ERROR_EVENT_TYPES = ("response.error", "error")
_DEFAULT_STREAM_ERROR = "Response error."


# ---------------------------------------------------------------------------
# Whole-document extraction
# ---------------------------------------------------------------------------

def _first_choice(data: dict[str, Any]) -> dict[str, Any]:
    choices = data.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        return choices[0]
    return {}


def extract_response_text(data: Any) -> str:
    """Return the reply text from a complete response document.

    Checks, in order: top-level ``output_text``; text items of
    ``output[].content[]``; ``choices[0].message.content``;
    ``choices[0].text``.  Anything else yields ``""``.
    """
    if not isinstance(data, dict):
        return ""

    if isinstance(data.get("output_text"), str):
        return data["output_text"]

    output = data.get("output")
    chunks: list[str] = []
    if isinstance(output, list):
        for item in output:
            contents = item.get("content") if isinstance(item, dict) else None
            if not isinstance(contents, list):
                continue
            for c in contents:
                if not isinstance(c, dict):
                    continue
                if c.get("type") in _TEXT_CONTENT_TYPES and isinstance(c.get("text"), str):
                    chunks.append(c["text"])
    if chunks:
        return "".join(chunks)

    choice = _first_choice(data)
    message = choice.get("message")
    if isinstance(message, dict) and isinstance(message.get("content"), str):
        return message["content"]
    if isinstance(choice.get("text"), str):
        return choice["text"]
    return ""


def extract_stream_delta(payload: Any) -> str:
    """Return the incremental text carried by one stream event, or ``""``."""
    if not isinstance(payload, dict):
        return ""

    delta = payload.get("delta")
    if payload.get("type") == "response.output_text.delta" and isinstance(delta, str):
        return delta

    if isinstance(delta, dict) and isinstance(delta.get("content"), str):
        return delta["content"]

    choice_delta = _first_choice(payload).get("delta")
    if isinstance(choice_delta, dict):
        for key in ("content", "text"):
            if isinstance(choice_delta.get(key), str):
                return choice_delta[key]
    return ""


# ---------------------------------------------------------------------------
# Incremental text decoding
# ---------------------------------------------------------------------------

class IncrementalTextDecoder:
    """UTF-8 bytes -> text with every line terminator turned into ``\\n``.

    Multi-byte sequences and ``\\r\\n`` pairs split across chunk
    boundaries are held back until the next chunk, so the output does not
    depend on how the body was chunked.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending_cr = False

    def decode(self, data: bytes, final: bool = False) -> str:
        text = self._decoder.decode(data, final)
        if self._pending_cr:
            text = "\r" + text
            self._pending_cr = False
        if text.endswith("\r") and not final:
            text = text[:-1]
            self._pending_cr = True
        return text.replace("\r\n", "\n").replace("\r", "\n")

    def flush(self) -> str:
        return self.decode(b"", final=True)


# ---------------------------------------------------------------------------
# SSE decoding
# ---------------------------------------------------------------------------

@dataclass
class StreamAccumulator:
    """Per-response decoding state."""

    pending_buffer: str = ""
    incremental_chunks: list[str] = field(default_factory=list)
    final_declared_text: str = ""
    final_envelope: dict[str, Any] | None = None

    @property
    def streamed_text(self) -> str:
        return "".join(self.incremental_chunks)


def resolve_final_text(state: StreamAccumulator) -> str:
    """Pick the reply text once the stream is exhausted.

    A declared final text wins when it is at least as long as the
    concatenated deltas; otherwise deltas, then declared text, then the
    text of the last envelope seen.
    """
    streamed = state.streamed_text
    done_text = state.final_declared_text
    if done_text.strip() and len(done_text) >= len(streamed):
        return done_text
    if streamed.strip():
        return streamed
    if done_text.strip():
        return done_text
    return extract_response_text(state.final_envelope)


def _block_payload(block: str) -> str:
    data_lines = [
        line[len(_DATA_PREFIX):].lstrip()
        for line in block.split("\n")
        if line.startswith(_DATA_PREFIX)
    ]
    return "\n".join(data_lines).strip()


def _error_message(payload: dict[str, Any]) -> str:
    error = payload.get("error")
    msg = error.get("message") if isinstance(error, dict) else None
    if not isinstance(msg, str) and payload.get("type") == "error":
        msg = payload.get("message")
    if isinstance(msg, str) and msg.strip():
        return msg
    return _DEFAULT_STREAM_ERROR


class EventStreamDecoder:
    """Incremental decoder for a server-sent-event response body.

    Usage::

        decoder = EventStreamDecoder(token)
        async for chunk in response.aiter_bytes():
            decoder.feed(chunk)
        text = decoder.finish()

    ``feed`` raises ``StreamErrorEvent`` as soon as an error event is
    framed, and ``RequestCancelled`` once *token* has been triggered.
    """

    def __init__(
        self,
        token: CancellationToken | None = None,
        text_decoder: IncrementalTextDecoder | None = None,
    ) -> None:
        self.state = StreamAccumulator()
        self._token = token
        self._text = text_decoder or IncrementalTextDecoder()
        self._finished = False

    def feed(self, chunk: bytes) -> None:
        """Decode a raw byte chunk and process any completed blocks."""
        self.feed_text(self._text.decode(chunk))

    def feed_text(self, text: str) -> None:
        """Process already-decoded, newline-normalized text."""
        if self._token is not None:
            self._token.raise_if_cancelled()
        if not text:
            return
        self.state.pending_buffer += text
        self._drain()

    def finish(self) -> str:
        """Flush the unterminated tail and return the resolved text."""
        if not self._finished:
            self._finished = True
            self.feed_text(self._text.flush())
            tail = self.state.pending_buffer
            self.state.pending_buffer = ""
            if tail.strip():
                self._process_block(tail)
        return resolve_final_text(self.state)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _drain(self) -> None:
        while True:
            buffer = self.state.pending_buffer
            idx = buffer.find(_BLOCK_SEPARATOR)
            if idx == -1:
                return
            self.state.pending_buffer = buffer[idx + len(_BLOCK_SEPARATOR):]
            self._process_block(buffer[:idx])

    def _process_block(self, block: str) -> None:
        data = _block_payload(block)
        if not data or data == _DONE_SENTINEL:
            return

        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            # Keep unparseable event data as literal text
            self.state.incremental_chunks.append(data)
            return

        if not isinstance(payload, dict):
            return

        event_type = payload.get("type")
        envelope = payload.get("response")

        if event_type == "response.completed" and isinstance(envelope, dict):
            self.state.final_envelope = envelope
            return
        if event_type == "response.output_text.done" and isinstance(payload.get("text"), str):
            self.state.final_declared_text = payload["text"]
            return
        if event_type in _ERROR_EVENT_TYPES:
            message = _error_message(payload)
            _logger.warning("Upstream stream error event: %s", message)
            raise StreamErrorEvent(message)

        delta = extract_stream_delta(payload)
        if delta:
            self.state.incremental_chunks.append(delta)
        if isinstance(envelope, dict):
            self.state.final_envelope = envelope
