"""httpx client with retries, rate limiting and an optional response cache.

:class:`HttpxGetter` adapts :class:`ResilientClient` to the domain's
``HttpGetter`` port, translating transport failures and non-2xx answers into
``SourceUnavailable``.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, TypedDict

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage
from hishel.httpx import AsyncCacheClient
from httpx_retries import Retry, RetryTransport

from papershelf.config.storage import get_http_cache_path
from papershelf.domain.errors import SourceUnavailable
from papershelf.domain.ports import RawResponse

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

    from httpx._types import HeaderTypes, TimeoutTypes

    from papershelf.config.http_resilience import (
        CacheConfig,
        ResilienceConfig,
        RetryPolicy,
    )

log = getLogger(__name__)


class AsyncClientOptions(TypedDict, total=False):
    timeout: TimeoutTypes
    headers: HeaderTypes
    transport: httpx.AsyncBaseTransport
    follow_redirects: bool


def build_retry(policy: RetryPolicy) -> Retry:
    return Retry(
        total=policy.total,
        backoff_factor=policy.backoff_factor,
        max_backoff_wait=policy.max_backoff_wait,
        respect_retry_after_header=policy.respect_retry_after_header,
        allowed_methods=tuple(policy.allowed_methods),
        status_forcelist=tuple(policy.status_forcelist),
        retry_on_exceptions=policy.retry_on_exceptions,
        backoff_jitter=policy.backoff_jitter,
    )


class ResilientClient:
    """Shared outbound client for all metadata providers.

    ``transport`` replaces the network transport underneath the retry layer;
    tests pass an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: ResilienceConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._limiter: AsyncLimiter | None = (
            AsyncLimiter(config.ratelimit.max_calls, config.ratelimit.per_seconds)
            if config.ratelimit
            else None
        )

        client_kwargs: AsyncClientOptions = {
            "timeout": config.timeout_seconds,
            "transport": RetryTransport(transport=transport, retry=build_retry(config.retry)),
            "follow_redirects": config.follow_redirects,
        }
        if config.default_headers:
            client_kwargs["headers"] = dict(config.default_headers)

        storage = _build_cache_storage(config.cache)
        if storage is not None:
            self._client = AsyncCacheClient(**client_kwargs, storage=storage)
        else:
            self._client = httpx.AsyncClient(**client_kwargs)

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        request_timeout: TimeoutTypes = (
            timeout if timeout is not None else self.config.timeout_seconds
        )
        if self._limiter is None:
            return await self._client.get(url, headers=headers, timeout=request_timeout)
        async with self._limiter:
            return await self._client.get(url, headers=headers, timeout=request_timeout)


class HttpxGetter:
    """``HttpGetter`` backed by a :class:`ResilientClient`."""

    def __init__(self, client: ResilientClient) -> None:
        self._client = client

    async def get(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> RawResponse:
        try:
            response = await self._client.get(url, headers=headers, timeout=timeout)
        except httpx.TimeoutException as exc:
            raise SourceUnavailable(f"Timed out fetching {url}", url=url) from exc
        except httpx.HTTPError as exc:
            raise SourceUnavailable(f"Cannot fetch {url}: {exc}", url=url) from exc

        if not response.is_success:
            raise SourceUnavailable(
                f"{url} answered {response.status_code}",
                url=url,
                status=response.status_code,
            )
        log.debug("GET %s -> %s", url, response.status_code)
        return RawResponse(
            url=str(response.url),
            status_code=response.status_code,
            content=response.content,
            headers=dict(response.headers),
            encoding=response.encoding or "utf-8",
        )

    async def aclose(self) -> None:
        await self._client.aclose()


def _build_cache_storage(config: CacheConfig | None) -> AsyncSqliteStorage | None:
    if config is None or not config.enabled:
        return None

    if config.backend == "sqlite":
        database_path = config.sqlite_path or str(get_http_cache_path())
    elif config.backend == "memory":
        database_path = ":memory:"
    else:
        raise ValueError(f"Unsupported cache backend: {config.backend}")

    return AsyncSqliteStorage(
        database_path=database_path,
        default_ttl=config.default_ttl_seconds,
        refresh_ttl_on_access=config.refresh_ttl_on_access,
    )
