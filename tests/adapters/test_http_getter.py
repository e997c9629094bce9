from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import httpx
import pytest

from papershelf.adapters.http_resilience import HttpxGetter, ResilientClient
from papershelf.config.http_resilience import ResilienceConfig, RetryPolicy
from papershelf.domain.errors import SourceUnavailable

if TYPE_CHECKING:
    from collections.abc import Callable

    from papershelf.domain.ports import RawResponse

URL = "https://meta.test/lookup"


def _get(
    handler: Callable[[httpx.Request], httpx.Response],
    *,
    retry: RetryPolicy | None = None,
    headers: dict[str, str] | None = None,
) -> RawResponse:
    config = ResilienceConfig(
        name="test",
        retry=retry or RetryPolicy(),
        default_headers={"User-Agent": "papershelf-tests"},
    )

    async def fetch() -> RawResponse:
        client = ResilientClient(config, transport=httpx.MockTransport(handler))
        getter = HttpxGetter(client)
        try:
            return await getter.get(URL, headers=headers, timeout=2.0)
        finally:
            await getter.aclose()

    return asyncio.run(fetch())


def test_success_returns_raw_response() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"title": "A"})

    response = _get(handler, headers={"Accept": "application/json"})

    assert response.status_code == 200
    assert response.json() == {"title": "A"}
    assert response.url == URL
    assert seen[0].headers["User-Agent"] == "papershelf-tests"
    assert seen[0].headers["Accept"] == "application/json"


def test_non_success_status_is_source_unavailable() -> None:
    with pytest.raises(SourceUnavailable) as excinfo:
        _get(lambda request: httpx.Response(500, request=request))

    assert excinfo.value.status == 500
    assert excinfo.value.url == URL


def test_transport_errors_are_source_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(SourceUnavailable) as excinfo:
        _get(handler)

    assert excinfo.value.status is None


def test_timeouts_are_source_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(SourceUnavailable, match="Timed out"):
        _get(handler)


def test_retry_policy_retries_transient_statuses() -> None:
    statuses = iter([503, 200])
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        status = next(statuses)
        calls.append(status)
        return httpx.Response(status, json={}, request=request)

    response = _get(handler, retry=RetryPolicy(total=2, backoff_factor=0.0, backoff_jitter=0.0))

    assert response.status_code == 200
    assert calls == [503, 200]
