"""DOI resolution through doi.org content negotiation."""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import quote

from pydantic import ValidationError

from papershelf.domain.errors import ParseFailure
from papershelf.domain.model import IdentifierKind, PartialRecord
from papershelf.domain.ports import ScrapeRequest
from papershelf.domain.resolution import BaseProvider

from .schema import CslItem

if TYPE_CHECKING:
    from papershelf.domain.model import PaperRecord
    from papershelf.domain.ports import RawResponse

CSL_JSON = "application/vnd.citationstyles.csl+json"


class DoiProvider(BaseProvider):
    """Reads CSL JSON for papers that carry a DOI."""

    def __init__(self, *, endpoint: str, **kwargs: object) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        self._endpoint = endpoint

    def applies(self, draft: PaperRecord) -> bool:
        return bool(draft.doi)

    def build_request(self, draft: PaperRecord) -> ScrapeRequest | None:
        if not draft.doi:
            return None
        url = self._endpoint.format(doi=quote(draft.doi, safe="/"))
        return ScrapeRequest(url=url, headers={"Accept": CSL_JSON})

    def parse(
        self, response: RawResponse, draft: PaperRecord  # noqa: ARG002
    ) -> PartialRecord | None:
        try:
            item = CslItem.model_validate(response.json())
        except ValidationError as exc:
            raise ParseFailure(f"Unexpected CSL payload from {response.url}") from exc

        identifiers = {IdentifierKind.DOI.value: item.doi} if item.doi else None
        authors = tuple(name.display for name in item.author if name.display) or None
        return PartialRecord(
            title=item.title,
            venue=item.venue,
            year=item.year,
            authors=authors,
            identifiers=identifiers,
        )
