"""Shared data types for aihelper."""

from __future__ import annotations

import enum
import re
import time
from dataclasses import dataclass, field
from typing import Any

_TRAILING_SPACE_RE = re.compile(r"\s+\n")


# ---------------------------------------------------------------------------
# Conversation types
# ---------------------------------------------------------------------------

class Role(str, enum.Enum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    """A single conversation turn.  Immutable once appended."""

    role: Role
    content: str


@dataclass
class RequestDescriptor:
    """Everything needed for one chat call.  Consumed once."""

    messages: list[ChatMessage]
    model: str
    system_prompt: str = ""
    temperature: float = 0.2
    max_output_tokens: int = 1024
    request_id: str | None = None


@dataclass
class PageContext:
    """Text captured from the page the user is looking at."""

    title: str = ""
    url: str = ""
    selection: str = ""
    content: str = ""

    @classmethod
    def from_text(
        cls,
        text: str,
        max_chars: int,
        title: str = "",
        url: str = "",
        selection: str = "",
    ) -> PageContext:
        """Build a context from raw page text, clipping to *max_chars*."""
        cleaned = _TRAILING_SPACE_RE.sub("\n", text or "").strip()
        if len(cleaned) > max_chars:
            cleaned = cleaned[:max_chars] + "\n…(truncated)"
        return cls(
            title=title,
            url=url,
            selection=selection.strip(),
            content=cleaned,
        )


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

class ResultKind(enum.Enum):
    OK = "ok"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class NormalizedResult:
    """Outcome of ``submit_chat``: ``Ok(text) | Failed(message) | Cancelled``.

    ``text`` is always a string for ``OK`` results, possibly empty.
    """

    kind: ResultKind
    text: str = ""
    error: str = ""

    @classmethod
    def ok(cls, text: str) -> NormalizedResult:
        return cls(kind=ResultKind.OK, text=text or "")

    @classmethod
    def failed(cls, message: str) -> NormalizedResult:
        return cls(kind=ResultKind.FAILED, error=message or "Request failed.")

    @classmethod
    def cancelled(cls) -> NormalizedResult:
        return cls(kind=ResultKind.CANCELLED, error="Cancelled.")

    @property
    def is_ok(self) -> bool:
        return self.kind is ResultKind.OK

    @property
    def is_failed(self) -> bool:
        return self.kind is ResultKind.FAILED

    @property
    def is_cancelled(self) -> bool:
        return self.kind is ResultKind.CANCELLED


@dataclass(frozen=True)
class CancelOutcome:
    """Reply to ``cancel_chat``."""

    was_cancelled: bool


# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

class EventType(enum.Enum):
    """Request lifecycle events emitted via the EventBus."""

    CHAT_STARTED = "chat.started"
    CHAT_RETRYING = "chat.retrying"
    CHAT_DONE = "chat.done"
    CHAT_FAILED = "chat.failed"
    CHAT_CANCELLED = "chat.cancelled"


@dataclass
class ChatEvent:
    """Event emitted by the orchestrator via the EventBus."""

    type: EventType
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
