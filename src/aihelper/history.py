"""In-memory conversation history and prompt composition."""

from __future__ import annotations

from typing import Iterable, Iterator

from aihelper.types import ChatMessage, PageContext, Role

MAX_MESSAGES = 30


def trim_chat_history(
    history: list[ChatMessage], max_messages: int = MAX_MESSAGES,
) -> list[ChatMessage]:
    """Keep only the last *max_messages* turns."""
    if len(history) <= max_messages:
        return list(history)
    return list(history[len(history) - max_messages:])


class ChatHistory:
    """Ordered conversation owned by the front end.

    The request pipeline only ever reads ``messages``; new turns are
    appended here after each exchange.
    """

    def __init__(
        self,
        messages: Iterable[ChatMessage] = (),
        max_messages: int = MAX_MESSAGES,
    ) -> None:
        self._max_messages = max_messages
        self._messages = trim_chat_history(list(messages), max_messages)

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    def append(self, role: Role, content: str) -> ChatMessage:
        message = ChatMessage(role=role, content=content)
        self._messages.append(message)
        self._messages = trim_chat_history(self._messages, self._max_messages)
        return message

    def add_user_message(self, content: str) -> ChatMessage:
        return self.append(Role.USER, content)

    def add_assistant_message(self, content: str) -> ChatMessage:
        return self.append(Role.ASSISTANT, content)

    def pop_last(self) -> ChatMessage | None:
        """Remove the newest turn (e.g. a user turn whose request was cancelled)."""
        if not self._messages:
            return None
        return self._messages.pop()

    def clear(self) -> None:
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(list(self._messages))


def build_user_message(
    user_text: str,
    page_context: PageContext | None,
    include_page: bool = True,
) -> str:
    """Compose the prompt text sent for one user turn.

    When *include_page* is set the page title, URL, selection and content
    are prepended ahead of the question.
    """
    text = (user_text or "").strip()
    if not text:
        return ""
    if not include_page or page_context is None:
        return text

    lines = ["Page context:"]
    if page_context.title:
        lines.append(f"Title: {page_context.title}")
    if page_context.url:
        lines.append(f"URL: {page_context.url}")
    if page_context.selection:
        lines.append("Selection:")
        lines.append(page_context.selection)
    if page_context.content:
        lines.append("Content:")
        lines.append(page_context.content)
    lines.append("")
    lines.append("User question:")
    lines.append(text)
    return "\n".join(lines)
