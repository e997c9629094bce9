"""Provider contract shared by every metadata source."""

from __future__ import annotations

from abc import ABC, abstractmethod
from logging import getLogger
from typing import TYPE_CHECKING, ClassVar, Protocol, runtime_checkable

from papershelf.domain.errors import ParseFailure, SourceUnavailable
from papershelf.domain.resolution.merge import DEFAULT_MERGE_POLICY, MergePolicy

if TYPE_CHECKING:
    from collections.abc import Mapping

    from papershelf.domain.model import PaperRecord, PartialRecord
    from papershelf.domain.ports import HttpGetter, RawResponse, ScrapeRequest

log = getLogger(__name__)

# Errors a malformed payload can surface while it is being picked apart.
PAYLOAD_ERRORS: tuple[type[Exception], ...] = (
    ParseFailure,
    ValueError,
    KeyError,
    TypeError,
    IndexError,
)


@runtime_checkable
class Provider(Protocol):
    """One external metadata source."""

    @property
    def name(self) -> str: ...

    @property
    def enabled(self) -> bool: ...

    def applies(self, draft: PaperRecord) -> bool: ...

    def build_request(self, draft: PaperRecord) -> ScrapeRequest | None: ...

    def parse(self, response: RawResponse, draft: PaperRecord) -> PartialRecord | None: ...

    async def scrape(self, draft: PaperRecord, *, force: bool = False) -> PaperRecord: ...


class BaseProvider(ABC):
    """Template for HTTP-backed providers.

    Subclasses implement :meth:`build_request` and :meth:`parse`; ``scrape``
    wires them to the injected :class:`HttpGetter` and converts every expected
    failure into "no change".
    """

    preprint_only: ClassVar[bool] = False

    def __init__(
        self,
        *,
        name: str,
        http: HttpGetter,
        enabled: bool = True,
        timeout: float | None = None,
        headers: Mapping[str, str] | None = None,
        merge_policy: MergePolicy = DEFAULT_MERGE_POLICY,
    ) -> None:
        self._name = name
        self._http = http
        self._enabled = enabled
        self._timeout = timeout
        self._headers = dict(headers or {})
        self._merge_policy = merge_policy

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r}, enabled={self._enabled})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def enabled(self) -> bool:
        return self._enabled

    def applies(self, draft: PaperRecord) -> bool:
        if self.preprint_only:
            return draft.is_preprint
        return True

    @abstractmethod
    def build_request(self, draft: PaperRecord) -> ScrapeRequest | None: ...

    @abstractmethod
    def parse(self, response: RawResponse, draft: PaperRecord) -> PartialRecord | None: ...

    async def scrape(self, draft: PaperRecord, *, force: bool = False) -> PaperRecord:
        if not force:
            if not self._enabled:
                return draft
            if not self.applies(draft):
                log.debug("%s does not apply to paper %s", self._name, draft.id)
                return draft

        request = self.build_request(draft)
        if request is None:
            log.debug("%s has nothing to look up for paper %s", self._name, draft.id)
            return draft

        try:
            response = await self._http.get(
                request.url,
                headers={**self._headers, **request.headers},
                timeout=request.timeout if request.timeout is not None else self._timeout,
            )
        except SourceUnavailable as exc:
            log.warning("%s unavailable for paper %s: %s", self._name, draft.id, exc)
            return draft

        try:
            partial = self.parse(response, draft)
        except PAYLOAD_ERRORS as exc:
            log.warning(
                "%s returned an unusable payload for paper %s: %s", self._name, draft.id, exc
            )
            return draft

        if partial is None or partial.is_empty():
            return draft
        return self._merge_policy.apply(draft, partial, force=force)
