"""Cooperative cancellation handle for in-flight chat requests."""

from __future__ import annotations

import logging
from typing import Callable

from aihelper.errors import RequestCancelled

_logger = logging.getLogger(__name__)


class CancellationToken:
    """Signals that a request should stop.

    ``cancel()`` is idempotent.  Callbacks registered with
    ``add_callback()`` run once, at the moment of cancellation (or
    immediately if the token is already cancelled); the orchestrator uses
    one to cancel the task that owns the HTTP connection.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], object]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for cb in callbacks:
            try:
                cb()
            except Exception:
                _logger.exception("Cancellation callback %r raised", cb)

    def add_callback(self, callback: Callable[[], object]) -> None:
        if self._cancelled:
            callback()
            return
        self._callbacks.append(callback)

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RequestCancelled()
