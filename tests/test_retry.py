"""Tests for transport retry with linear backoff."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, call, patch

import httpx
import pytest

from aihelper.core.cancellation import CancellationToken
from aihelper.errors import RequestCancelled
from aihelper.llm.retry import RetryPolicy, fetch_with_retry

URL = "https://api.example.test/v1/responses"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _flaky(failures: int):
    """Handler failing with ConnectError *failures* times, then 200."""
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] <= failures:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"output_text": "ok"})

    return handler, calls


class TestRetryPolicy:
    def test_attempts(self):
        assert RetryPolicy(retries=0).attempts == 1
        assert RetryPolicy(retries=3).attempts == 4
        assert RetryPolicy(retries=-2).attempts == 1

    def test_linear_delays(self):
        p = RetryPolicy(retries=3, base_delay=0.35)
        assert p.delay_before(1) == 0
        assert p.delay_before(2) == pytest.approx(0.35)
        assert p.delay_before(3) == pytest.approx(0.70)
        assert p.delay_before(4) == pytest.approx(1.05)

    def test_defaults(self):
        p = RetryPolicy()
        assert p.retries == 1
        assert p.base_delay == 0.35


class TestFetchWithRetry:
    async def test_success_first_try(self):
        handler, calls = _flaky(0)
        async with _client(handler) as client:
            resp = await fetch_with_retry(client, client.build_request("POST", URL))
            await resp.aclose()
        assert resp.status_code == 200
        assert calls["n"] == 1

    async def test_recovers_within_budget(self):
        handler, calls = _flaky(1)
        async with _client(handler) as client:
            with patch("aihelper.llm.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
                resp = await fetch_with_retry(
                    client, client.build_request("POST", URL), RetryPolicy(retries=1),
                )
                await resp.aclose()
        assert resp.status_code == 200
        assert calls["n"] == 2
        sleep.assert_awaited_once_with(0.35)

    async def test_budget_is_deterministic(self):
        """Two failures exhaust retries=1 even though a third call would work."""
        handler, calls = _flaky(2)
        async with _client(handler) as client:
            with patch("aihelper.llm.retry.asyncio.sleep", new_callable=AsyncMock):
                with pytest.raises(httpx.ConnectError):
                    await fetch_with_retry(
                        client, client.build_request("POST", URL), RetryPolicy(retries=1),
                    )
        assert calls["n"] == 2

    async def test_backoff_is_linear(self):
        handler, calls = _flaky(10)
        async with _client(handler) as client:
            with patch("aihelper.llm.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
                with pytest.raises(httpx.ConnectError):
                    await fetch_with_retry(
                        client,
                        client.build_request("POST", URL),
                        RetryPolicy(retries=3, base_delay=1.0),
                    )
        assert calls["n"] == 4
        assert sleep.await_args_list == [call(1.0), call(2.0), call(3.0)]

    async def test_zero_retries(self):
        handler, calls = _flaky(1)
        async with _client(handler) as client:
            with pytest.raises(httpx.ConnectError):
                await fetch_with_retry(
                    client, client.build_request("POST", URL), RetryPolicy(retries=0),
                )
        assert calls["n"] == 1

    async def test_http_errors_not_retried(self):
        calls = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["n"] += 1
            return httpx.Response(503, text="unavailable")

        async with _client(handler) as client:
            resp = await fetch_with_retry(client, client.build_request("POST", URL))
            await resp.aclose()
        assert resp.status_code == 503
        assert calls["n"] == 1

    async def test_on_retry_hook(self):
        handler, _ = _flaky(1)
        seen = []
        async with _client(handler) as client:
            with patch("aihelper.llm.retry.asyncio.sleep", new_callable=AsyncMock):
                resp = await fetch_with_retry(
                    client,
                    client.build_request("POST", URL),
                    on_retry=lambda attempt, err: seen.append((attempt, type(err))),
                )
                await resp.aclose()
        assert seen == [(2, httpx.ConnectError)]


class TestCancellationNotRetried:
    async def test_cancelled_token_short_circuits(self):
        handler, calls = _flaky(0)
        token = CancellationToken()
        token.cancel()
        async with _client(handler) as client:
            with pytest.raises(RequestCancelled):
                await fetch_with_retry(client, client.build_request("POST", URL), token=token)
        assert calls["n"] == 0

    async def test_failure_after_cancel_not_retried(self):
        token = CancellationToken()
        calls = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["n"] += 1
            token.cancel()
            raise httpx.ReadError("aborted", request=request)

        async with _client(handler) as client:
            with pytest.raises(RequestCancelled):
                await fetch_with_retry(
                    client, client.build_request("POST", URL), RetryPolicy(retries=3), token,
                )
        assert calls["n"] == 1

    async def test_task_cancellation_propagates(self):
        started = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            started.set()
            await asyncio.Event().wait()
            return httpx.Response(200)

        async with _client(handler) as client:
            task = asyncio.create_task(
                fetch_with_retry(client, client.build_request("POST", URL)),
            )
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
