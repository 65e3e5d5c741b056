"""Async client for a Responses-style chat endpoint.

Builds the outbound request, sends it through ``fetch_with_retry`` and
turns the body into text, whether the upstream streamed it as
server-sent events or answered with a single JSON document.
"""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator

import httpx

from aihelper.config import build_auth_headers
from aihelper.core.cancellation import CancellationToken
from aihelper.errors import ApiStatusError, InvalidResponseError
from aihelper.types import ChatMessage, RequestDescriptor, Role

from .response_parser import (
    EventStreamDecoder,
    IncrementalTextDecoder,
    extract_response_text,
)
from .retry import RetryHook, RetryPolicy, fetch_with_retry
from .sniffer import (
    ResponseMode,
    looks_like_event_stream,
    looks_like_json,
    sniff_response_mode,
)

_logger = logging.getLogger(__name__)

INVALID_JSON_MESSAGE = "Invalid JSON response from API."


# ---------------------------------------------------------------------------
# Request building
# ---------------------------------------------------------------------------

def build_responses_input(messages: list[ChatMessage]) -> list[dict[str, Any]]:
    """Map conversation turns to the Responses API ``input`` shape."""
    items = []
    for m in messages:
        content_type = "output_text" if m.role is Role.ASSISTANT else "input_text"
        items.append({
            "role": m.role.value,
            "content": [{"type": content_type, "text": str(m.content or "")}],
        })
    return items


def build_payload(descriptor: RequestDescriptor) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "model": descriptor.model,
        "input": build_responses_input(descriptor.messages),
    }
    instructions = descriptor.system_prompt.strip()
    if instructions:
        payload["instructions"] = instructions
    payload["temperature"] = descriptor.temperature
    payload["max_output_tokens"] = descriptor.max_output_tokens
    payload["stream"] = True
    return payload


# ---------------------------------------------------------------------------
# Response reading
# ---------------------------------------------------------------------------

async def _next_chunk(chunks: AsyncIterator[bytes]) -> bytes | None:
    try:
        return await chunks.__anext__()
    except StopAsyncIteration:
        return None


def _parse_document(body: str) -> str:
    """Whole-document extraction for a fully buffered body."""
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        if looks_like_json(body):
            raise InvalidResponseError(INVALID_JSON_MESSAGE) from None
        _logger.debug("Body is neither JSON nor an event stream (%d chars)", len(body))
        return ""
    return extract_response_text(data)


def _parse_buffered_body(body: str, token: CancellationToken | None) -> str:
    """Parse a fully buffered body whose first chunk did not look like SSE.

    A short or blank first chunk can hide an event stream, so the whole
    body is sniffed again before it is treated as one document.
    """
    if looks_like_event_stream(body) and not looks_like_json(body):
        decoder = EventStreamDecoder(token)
        decoder.feed_text(body)
        result = decoder.finish()
        if result:
            return result
        _logger.debug("Buffered event stream produced no text, trying JSON")
    return _parse_document(body)


async def read_response_text(
    response: httpx.Response,
    token: CancellationToken | None = None,
) -> str:
    """Read an open streaming *response* and return its reply text.

    The first chunk decides between incremental event-stream decoding and
    buffering.  A buffered body that turns out to be an event stream is
    decoded in one pass; an event stream that yields no text is re-read as
    one JSON document.
    """
    text_decoder = IncrementalTextDecoder()
    chunks = response.aiter_bytes().__aiter__()

    first = await _next_chunk(chunks)
    if first is None:
        return ""
    first_text = text_decoder.decode(first)
    body_parts = [first_text]

    if sniff_response_mode(first_text) is ResponseMode.EVENT_STREAM:
        decoder = EventStreamDecoder(token)
        decoder.feed_text(first_text)
        async for chunk in chunks:
            text = text_decoder.decode(chunk)
            body_parts.append(text)
            decoder.feed_text(text)
        tail = text_decoder.flush()
        body_parts.append(tail)
        decoder.feed_text(tail)
        result = decoder.finish()
        if result:
            return result
        _logger.debug("Event stream produced no text, trying JSON fallback")
        return _parse_document("".join(body_parts))

    async for chunk in chunks:
        if token is not None:
            token.raise_if_cancelled()
        body_parts.append(text_decoder.decode(chunk))
    body_parts.append(text_decoder.flush())
    return _parse_buffered_body("".join(body_parts), token)


async def describe_http_error(response: httpx.Response) -> str:
    """Build ``HTTP <status>: <message>`` for a non-2xx response."""
    body = (await response.aread()).decode("utf-8", errors="replace")
    try:
        maybe = json.loads(body)
    except json.JSONDecodeError:
        maybe = None
    if isinstance(maybe, dict):
        error = maybe.get("error")
        msg = error.get("message") if isinstance(error, dict) else None
        if isinstance(msg, str) and msg.strip():
            return f"HTTP {response.status_code}: {msg}"
    return f"HTTP {response.status_code}: {body or response.reason_phrase}"


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class AsyncResponsesClient:
    """Sends chat requests and returns decoded reply text.

    Parameters
    ----------
    client:
        Shared ``httpx.AsyncClient``.  When omitted one is created and
        closed by ``close()``.
    timeout:
        Overall timeout in seconds for a created client.
    retry_policy:
        Transport retry budget.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = 300,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=30),
        )
        self.retry_policy = retry_policy or RetryPolicy()

    def build_request(
        self,
        descriptor: RequestDescriptor,
        api_url: str,
        token: str,
    ) -> httpx.Request:
        headers = {
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
            **build_auth_headers(token),
        }
        return self._client.build_request(
            "POST", api_url, headers=headers, json=build_payload(descriptor),
        )

    async def complete(
        self,
        descriptor: RequestDescriptor,
        api_url: str,
        token: str,
        cancel_token: CancellationToken | None = None,
        on_retry: RetryHook | None = None,
    ) -> str:
        """Run one chat request and return its text.

        Raises ``ApiStatusError`` for non-2xx answers; transport, decode
        and cancellation errors propagate from the lower layers.
        """
        request = self.build_request(descriptor, api_url, token)
        response = await fetch_with_retry(
            self._client, request, self.retry_policy, cancel_token, on_retry,
        )
        try:
            if not response.is_success:
                message = await describe_http_error(response)
                _logger.warning("API returned %s", message)
                raise ApiStatusError(message, status_code=response.status_code)
            return await read_response_text(response, cancel_token)
        finally:
            await response.aclose()

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()
