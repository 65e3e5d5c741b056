"""Chat request orchestrator.

    register → build request → retry/send → sniff → decode → retire

``submit_chat`` never raises for request failures: every outcome is
folded into a ``NormalizedResult``.  ``cancel_chat`` may be called at any
time from another task with the same request id.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Sequence

import httpx

from aihelper.config import AssistantConfig
from aihelper.core.cancellation import CancellationToken
from aihelper.core.registry import RequestRegistry
from aihelper.errors import ChatError, ConfigError, RequestCancelled
from aihelper.events.bus import EventBus
from aihelper.llm.client import AsyncResponsesClient
from aihelper.llm.retry import RetryPolicy
from aihelper.types import (
    CancelOutcome,
    ChatEvent,
    ChatMessage,
    EventType,
    NormalizedResult,
    RequestDescriptor,
)

_logger = logging.getLogger(__name__)

NETWORK_ERROR_MESSAGE = (
    "Network error: failed to reach the API "
    "(temporary connection issue or API unreachable)."
)

_MISSING_FIELD_MESSAGES = {
    "api_url": "Missing API URL (internal error).",
    "token": "Missing API token. Set it in aihelper.yaml or AIHELPER_TOKEN.",
    "model": "Missing model. Set it in aihelper.yaml.",
}


def make_request_id() -> str:
    return str(uuid.uuid4())


class ChatOrchestrator:
    """Runs chat requests against the configured endpoint.

    Parameters
    ----------
    config:
        Endpoint, token, model and generation settings.
    client:
        Responses client (optional).  Built from *config* when omitted.
    registry:
        Lifecycle registry shared with whoever issues cancellations
        (optional).
    event_bus:
        Event bus for UI decoupling (optional).
    """

    def __init__(
        self,
        config: AssistantConfig,
        client: AsyncResponsesClient | None = None,
        registry: RequestRegistry | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._config = config
        self._client = client or AsyncResponsesClient(
            timeout=config.timeout,
            retry_policy=RetryPolicy(
                retries=config.retries, base_delay=config.retry_delay,
            ),
        )
        self._registry = registry if registry is not None else RequestRegistry()
        self._event_bus = event_bus or EventBus()

    @property
    def registry(self) -> RequestRegistry:
        return self._registry

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    def build_descriptor(
        self,
        messages: Sequence[ChatMessage],
        request_id: str | None = None,
    ) -> RequestDescriptor:
        return RequestDescriptor(
            messages=list(messages),
            model=self._config.model.strip(),
            system_prompt=self._config.system_prompt,
            temperature=self._config.temperature,
            max_output_tokens=self._config.max_output_tokens,
            request_id=request_id,
        )

    async def submit_chat(
        self,
        messages: Sequence[ChatMessage],
        request_id: str | None = None,
    ) -> NormalizedResult:
        """Send *messages* and return the normalized outcome.

        *messages* is only read.  A blank or missing *request_id* is
        replaced by a fresh one.
        """
        rid = (request_id or "").strip() or make_request_id()
        token = CancellationToken()
        self._registry.register(rid, token)
        try:
            descriptor = self.build_descriptor(messages, rid)
            await self._emit(EventType.CHAT_STARTED, {
                "request_id": rid,
                "model": descriptor.model,
                "messages": len(descriptor.messages),
            })
            result = await self._run(descriptor, token)
        finally:
            self._registry.retire(rid, token)

        if result.is_ok:
            await self._emit(EventType.CHAT_DONE, {
                "request_id": rid, "length": len(result.text),
            })
        elif result.is_cancelled:
            await self._emit(EventType.CHAT_CANCELLED, {"request_id": rid})
        else:
            await self._emit(EventType.CHAT_FAILED, {
                "request_id": rid, "error": result.error,
            })
        return result

    def cancel_chat(self, request_id: str) -> CancelOutcome:
        """Cancel the in-flight request *request_id*, if any."""
        rid = str(request_id or "").strip()
        return CancelOutcome(was_cancelled=self._registry.cancel(rid))

    async def close(self) -> None:
        await self._client.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run(
        self,
        descriptor: RequestDescriptor,
        token: CancellationToken,
    ) -> NormalizedResult:
        task = asyncio.ensure_future(self._execute(descriptor, token))
        token.add_callback(task.cancel)
        try:
            text = await task
        except asyncio.CancelledError:
            if not token.cancelled:
                # The caller's own task is being cancelled
                raise
            return NormalizedResult.cancelled()
        except RequestCancelled:
            return NormalizedResult.cancelled()
        except httpx.ConnectError as e:
            _logger.warning("Request %s: connect failed: %s", descriptor.request_id, e)
            return NormalizedResult.failed(NETWORK_ERROR_MESSAGE)
        except ChatError as e:
            return NormalizedResult.failed(e.message)
        except httpx.HTTPError as e:
            _logger.warning("Request %s: %s", descriptor.request_id, e)
            return NormalizedResult.failed(str(e) or type(e).__name__)
        except Exception as e:
            _logger.exception("Request %s failed", descriptor.request_id)
            return NormalizedResult.failed(f"{type(e).__name__}: {e}")

        if token.cancelled:
            return NormalizedResult.cancelled()
        return NormalizedResult.ok(text)

    async def _execute(
        self,
        descriptor: RequestDescriptor,
        token: CancellationToken,
    ) -> str:
        missing = self._config.missing_fields()
        if missing:
            raise ConfigError(_MISSING_FIELD_MESSAGES[missing[0]])

        async def _on_retry(attempt: int, error: Exception) -> None:
            await self._emit(EventType.CHAT_RETRYING, {
                "request_id": descriptor.request_id,
                "attempt": attempt,
                "error": str(error),
            })

        _logger.debug(
            "Request %s: %d message(s) to %s",
            descriptor.request_id, len(descriptor.messages), self._config.api_url,
        )
        return await self._client.complete(
            descriptor,
            self._config.api_url.strip(),
            self._config.token,
            cancel_token=token,
            on_retry=_on_retry,
        )

    async def _emit(self, event_type: EventType, data: dict[str, Any]) -> None:
        await self._event_bus.emit(ChatEvent(type=event_type, data=data))
