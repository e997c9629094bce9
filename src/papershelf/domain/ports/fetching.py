"""Ports for talking to external metadata sources."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True, slots=True)
class ScrapeRequest:
    """Outbound request descriptor produced by a provider."""

    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    timeout: float | None = None


@dataclass(frozen=True, slots=True)
class RawResponse:
    """Transport-neutral response handed to ``Provider.parse``."""

    url: str
    status_code: int
    content: bytes
    headers: Mapping[str, str] = field(default_factory=dict)
    encoding: str = "utf-8"

    @property
    def text(self) -> str:
        return self.content.decode(self.encoding, errors="replace")

    def json(self) -> object:
        return json.loads(self.content)


@runtime_checkable
class HttpGetter(Protocol):
    """HTTP GET capability injected into providers.

    Implementations enforce ``timeout`` and raise ``SourceUnavailable`` for
    transport errors, timeouts and non-2xx answers. They do not retry.
    """

    async def get(
        self,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> RawResponse: ...


__all__ = ["HttpGetter", "RawResponse", "ScrapeRequest"]
