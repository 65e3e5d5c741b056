"""Request lifecycle registry: request id -> cancellation handle."""

from __future__ import annotations

import logging

from aihelper.core.cancellation import CancellationToken

_logger = logging.getLogger(__name__)


class RequestRegistry:
    """Table of in-flight requests that can still be cancelled.

    An entry is removed exactly once, by whichever of ``cancel()`` or
    ``retire()`` runs first; the other observes absence and does nothing.
    Callers must keep request ids unique among in-flight calls.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CancellationToken] = {}

    def register(self, request_id: str, handle: CancellationToken) -> None:
        """Insert *handle* for *request_id* (last writer wins)."""
        if request_id in self._entries:
            _logger.warning("Request id %s already registered, replacing", request_id)
        self._entries[request_id] = handle

    def cancel(self, request_id: str) -> bool:
        """Trigger and remove the entry for *request_id*.

        Returns True if a live entry was found.  Unknown or already
        finished ids are not an error.
        """
        handle = self._entries.pop(request_id, None)
        if handle is None:
            _logger.debug("Cancel for unknown request %s ignored", request_id)
            return False
        handle.cancel()
        _logger.debug("Cancelled request %s", request_id)
        return True

    def retire(
        self, request_id: str, handle: CancellationToken | None = None,
    ) -> None:
        """Remove the entry for *request_id* if still present.

        When *handle* is given, only an entry holding that same handle is
        removed, so a finished call cannot retire a newer registration
        that reused its id.
        """
        current = self._entries.get(request_id)
        if current is None:
            return
        if handle is not None and current is not handle:
            return
        del self._entries[request_id]

    def active_ids(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
