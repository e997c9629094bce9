"""DBLP lookups.

One configured ``dblp`` source fans out into several providers sharing its
name: a plain title search, title searches constrained to the paper's year
and the following years, and a venue lookup that expands the abbreviated
venue of a matched DBLP key into its full name.
"""

from __future__ import annotations

import re
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import urlencode

from pydantic import ValidationError

from papershelf.domain.errors import ParseFailure
from papershelf.domain.model import IdentifierKind, PartialRecord
from papershelf.domain.ports import ScrapeRequest
from papershelf.domain.resolution import BaseProvider

from .schema import DblpPublication, DblpPublicationResponse, DblpVenueResponse

if TYPE_CHECKING:
    from collections.abc import Mapping

    from papershelf.domain.model import PaperRecord
    from papershelf.domain.ports import RawResponse

log = getLogger(__name__)

# DBLP files arXiv preprints under CoRR
INFORMAL_VENUES = frozenset({"corr"})
INFORMAL_TYPES = frozenset({"informal publications", "informal and other publications"})
_NOT_ALNUM = re.compile(r"[^0-9a-z]+")
_HOMONYM_SUFFIX = re.compile(r"\s+\d{4}$")


def normalize_title(title: str) -> str:
    return _NOT_ALNUM.sub("", title.lower())


def _is_formal(publication: DblpPublication) -> bool:
    if publication.type and publication.type.lower() in INFORMAL_TYPES:
        return False
    return bool(publication.venue) and publication.venue.lower() not in INFORMAL_VENUES


class _DblpProvider(BaseProvider):
    def __init__(self, *, endpoint: str, max_hits: int = 10, **kwargs: object) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        self._endpoint = endpoint.rstrip("/")
        self._max_hits = max_hits

    def _search_url(self, api: str, query: str) -> str:
        params = urlencode({"q": query, "format": "json", "h": self._max_hits})
        return f"{self._endpoint}/search/{api}/api?{params}"


class DblpTitleProvider(_DblpProvider):
    """Matches the draft title against DBLP publications."""

    preprint_only = True

    def __init__(self, *, year_offset: int | None = None, **kwargs: object) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        self._year_offset = year_offset

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, year_offset={self._year_offset})"

    def applies(self, draft: PaperRecord) -> bool:
        if not draft.title.strip() or not super().applies(draft):
            return False
        return self._year_offset is None or draft.year is not None

    def build_request(self, draft: PaperRecord) -> ScrapeRequest | None:
        if not draft.title.strip():
            return None
        query = draft.title.strip()
        if self._year_offset is not None:
            if draft.year is None:
                return None
            query = f"{query} year:{draft.year + self._year_offset}"
        return ScrapeRequest(url=self._search_url("publ", query))

    def parse(self, response: RawResponse, draft: PaperRecord) -> PartialRecord | None:
        try:
            payload = DblpPublicationResponse.model_validate(response.json())
        except ValidationError as exc:
            raise ParseFailure(f"Unexpected DBLP payload from {response.url}") from exc

        wanted = normalize_title(draft.title)
        for hit in payload.result.hits.hit:
            publication = hit.info
            if normalize_title(publication.title) != wanted or not _is_formal(publication):
                continue
            return _publication_record(publication)
        log.debug("No published DBLP match for paper %s", draft.id)
        return None


class DblpVenueProvider(_DblpProvider):
    """Expands the abbreviated venue of a DBLP-matched paper."""

    def applies(self, draft: PaperRecord) -> bool:
        return _venue_stream(draft.identifiers) is not None and " " not in draft.venue.strip()

    def build_request(self, draft: PaperRecord) -> ScrapeRequest | None:
        stream = _venue_stream(draft.identifiers)
        if stream is None:
            return None
        return ScrapeRequest(url=self._search_url("venue", stream.split("/")[1]))

    def parse(self, response: RawResponse, draft: PaperRecord) -> PartialRecord | None:
        try:
            payload = DblpVenueResponse.model_validate(response.json())
        except ValidationError as exc:
            raise ParseFailure(f"Unexpected DBLP venue payload from {response.url}") from exc

        stream = _venue_stream(draft.identifiers)
        for hit in payload.result.hits.hit:
            venue = hit.info
            if venue.url and stream and venue.url.rstrip("/").endswith(f"/{stream}"):
                return PartialRecord(venue=venue.venue.strip())
        hits = payload.result.hits.hit
        if len(hits) == 1:
            return PartialRecord(venue=hits[0].info.venue.strip())
        return None


def _publication_record(publication: DblpPublication) -> PartialRecord:
    identifiers: dict[str, str] = {}
    if publication.key:
        identifiers[IdentifierKind.DBLP.value] = publication.key
    if publication.doi:
        identifiers[IdentifierKind.DOI.value] = publication.doi
    authors: tuple[str, ...] = ()
    if publication.authors is not None:
        authors = tuple(
            _HOMONYM_SUFFIX.sub("", author.text) for author in publication.authors.author
        )
    return PartialRecord(
        title=publication.title.rstrip("."),
        venue=publication.venue,
        year=publication.year,
        authors=authors or None,
        identifiers=identifiers or None,
    )


def _venue_stream(identifiers: Mapping[str, str]) -> str | None:
    """Return the stream part of a DBLP key (``conf/cvpr/HeZRS16`` -> ``conf/cvpr``)."""

    key = identifiers.get(IdentifierKind.DBLP)
    if not key:
        return None
    parts = key.split("/")
    if len(parts) < 3 or parts[0] not in {"conf", "journals"}:
        return None
    return "/".join(parts[:2])

