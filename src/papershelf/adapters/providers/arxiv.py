"""arXiv metadata from the export API's Atom feed."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING
from urllib.parse import urlencode

from papershelf.domain.errors import ParseFailure
from papershelf.domain.model import IdentifierKind, PartialRecord
from papershelf.domain.ports import ScrapeRequest
from papershelf.domain.resolution import BaseProvider

if TYPE_CHECKING:
    from papershelf.domain.model import PaperRecord
    from papershelf.domain.ports import RawResponse

ATOM_NS = {"atom": "http://www.w3.org/2005/Atom", "arxiv": "http://arxiv.org/schemas/atom"}
ARXIV_VENUE = "arXiv"
_VERSION_SUFFIX = re.compile(r"v\d+$")


class ArxivProvider(BaseProvider):
    """Fills preprints that carry an arXiv id."""

    preprint_only = True

    def __init__(self, *, endpoint: str, **kwargs: object) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        self._endpoint = endpoint

    def applies(self, draft: PaperRecord) -> bool:
        return bool(draft.arxiv_id) and super().applies(draft)

    def build_request(self, draft: PaperRecord) -> ScrapeRequest | None:
        if not draft.arxiv_id:
            return None
        query = urlencode({"id_list": _VERSION_SUFFIX.sub("", draft.arxiv_id), "max_results": 1})
        return ScrapeRequest(url=f"{self._endpoint}?{query}")

    def parse(
        self, response: RawResponse, draft: PaperRecord  # noqa: ARG002
    ) -> PartialRecord | None:
        try:
            root = ET.fromstring(response.content)  # noqa: S314
        except ET.ParseError as exc:
            raise ParseFailure(f"Malformed Atom feed from {response.url}") from exc

        entry = root.find("atom:entry", ATOM_NS)
        if entry is None:
            return None
        title = _read_text(entry, "atom:title")
        entry_id = _read_text(entry, "atom:id")
        # the API reports unknown ids as an entry titled "Error"
        if not title or title == "Error" or "/abs/" not in entry_id:
            return None

        published = _read_text(entry, "atom:published")
        authors = tuple(
            name
            for name in (
                _read_text(author, "atom:name") for author in entry.findall("atom:author", ATOM_NS)
            )
            if name
        )
        identifiers = {
            IdentifierKind.ARXIV.value: _VERSION_SUFFIX.sub("", entry_id.rsplit("/abs/", 1)[-1])
        }
        doi = _read_text(entry, "arxiv:doi")
        if doi:
            identifiers[IdentifierKind.DOI.value] = doi

        return PartialRecord(
            title=title,
            venue=ARXIV_VENUE,
            year=int(published[:4]) if published[:4].isdigit() else None,
            authors=authors or None,
            identifiers=identifiers,
        )


def _read_text(node: ET.Element, path: str) -> str:
    found = node.find(path, ATOM_NS)
    if found is None or found.text is None:
        return ""
    return " ".join(found.text.split())
