"""Front-end chat session: history bookkeeping around the orchestrator."""

from __future__ import annotations

import logging

from aihelper.core.orchestrator import ChatOrchestrator, make_request_id
from aihelper.history import ChatHistory, build_user_message
from aihelper.types import CancelOutcome, NormalizedResult, PageContext

_logger = logging.getLogger(__name__)

EMPTY_REPLY_PLACEHOLDER = "(empty response)"


class ChatSession:
    """One conversation as seen by the UI.

    ``send()`` appends the user turn, submits the whole history and
    records the assistant reply.  A cancelled turn is removed from the
    history again; a failed one is kept so the user can retry.
    """

    def __init__(
        self,
        orchestrator: ChatOrchestrator,
        history: ChatHistory | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self.history = history if history is not None else ChatHistory()
        self._active_request_id: str | None = None

    @property
    def active_request_id(self) -> str | None:
        return self._active_request_id

    @property
    def busy(self) -> bool:
        return self._active_request_id is not None

    async def send(
        self,
        prompt: str,
        page_context: PageContext | None = None,
        include_page: bool = False,
    ) -> NormalizedResult:
        if self.busy:
            return NormalizedResult.failed("A request is already in flight.")
        content = build_user_message(prompt, page_context, include_page)
        if not content:
            return NormalizedResult.failed("Nothing to send.")

        user_message = self.history.add_user_message(content)
        request_id = make_request_id()
        self._active_request_id = request_id
        try:
            result = await self._orchestrator.submit_chat(
                self.history.messages, request_id,
            )
        finally:
            self._active_request_id = None

        if result.is_ok:
            self.history.add_assistant_message(
                result.text.strip() or EMPTY_REPLY_PLACEHOLDER,
            )
        elif result.is_cancelled:
            messages = self.history.messages
            if messages and messages[-1] is user_message:
                self.history.pop_last()
                _logger.debug("Request %s cancelled, user turn dropped", request_id)
        return result

    def cancel(self) -> CancelOutcome:
        """Cancel the request currently in flight, if any."""
        if self._active_request_id is None:
            return CancelOutcome(was_cancelled=False)
        return self._orchestrator.cancel_chat(self._active_request_id)
