"""Bounded retry around a single logical HTTP request."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable

import httpx

from aihelper.core.cancellation import CancellationToken
from aihelper.errors import RequestCancelled

_logger = logging.getLogger(__name__)

# Called as on_retry(next_attempt_number, error) before sleeping
RetryHook = Callable[[int, Exception], Any]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget: ``retries + 1`` attempts, linear backoff.

    The delay before attempt *k* (k >= 2) is ``base_delay * (k - 1)``.
    """

    retries: int = 1
    base_delay: float = 0.35  # seconds

    @property
    def attempts(self) -> int:
        return max(0, self.retries) + 1

    def delay_before(self, attempt: int) -> float:
        """Delay in seconds before 1-based *attempt*."""
        return self.base_delay * max(0, attempt - 1)


async def fetch_with_retry(
    client: httpx.AsyncClient,
    request: httpx.Request,
    policy: RetryPolicy | None = None,
    token: CancellationToken | None = None,
    on_retry: RetryHook | None = None,
) -> httpx.Response:
    """Send *request* in streaming mode, retrying transport failures.

    Only ``httpx.TransportError`` is retried.  HTTP error statuses are
    returned to the caller untouched.  A triggered *token* stops the loop
    with ``RequestCancelled``; ``asyncio.CancelledError`` propagates as is.
    After the budget is spent the last transport error is raised.

    The caller owns the returned response and must close it.
    """
    policy = policy or RetryPolicy()
    attempts = policy.attempts
    last_error: httpx.TransportError | None = None

    for attempt in range(1, attempts + 1):
        if token is not None:
            token.raise_if_cancelled()
        try:
            return await client.send(request, stream=True)
        except httpx.TransportError as e:
            if token is not None and token.cancelled:
                raise RequestCancelled() from e
            last_error = e
            if attempt >= attempts:
                break
            _logger.warning(
                "API transport error (attempt %d/%d): %s",
                attempt, attempts, e,
            )
            if on_retry is not None:
                result = on_retry(attempt + 1, e)
                if inspect.isawaitable(result):
                    await result
            await asyncio.sleep(policy.delay_before(attempt + 1))

    assert last_error is not None
    raise last_error
