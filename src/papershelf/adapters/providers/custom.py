"""User-defined JSON endpoints."""

from __future__ import annotations

import string
from typing import TYPE_CHECKING
from urllib.parse import quote

from papershelf.domain.errors import ParseFailure
from papershelf.domain.model import IdentifierKind, PartialRecord
from papershelf.domain.ports import ScrapeRequest
from papershelf.domain.resolution import BaseProvider

if TYPE_CHECKING:
    from collections.abc import Mapping

    from papershelf.domain.model import PaperRecord
    from papershelf.domain.ports import RawResponse

TEMPLATE_FIELDS = frozenset({"title", "doi", "arxiv", "year"})
RECORD_FIELDS = frozenset({"title", "venue", "year", "authors", "doi", "arxiv"})


def template_placeholders(template: str) -> set[str]:
    return {name for _, name, _, _ in string.Formatter().parse(template) if name}


def lookup(payload: object, path: str) -> object:
    """Follow a dotted path through nested objects and lists (``hits.0.title``)."""

    current = payload
    for part in path.split("."):
        if isinstance(current, list) and part.isdigit():
            index = int(part)
            if index >= len(current):
                return None
            current = current[index]
        elif isinstance(current, dict):
            current = current.get(part)
        else:
            return None
        if current is None:
            return None
    return current


def _as_authors(value: object) -> tuple[str, ...] | None:
    if isinstance(value, str):
        return tuple(name.strip() for name in value.split(",") if name.strip())
    if not isinstance(value, list):
        return None
    names: list[str] = []
    for item in value:
        if isinstance(item, str):
            names.append(item)
        elif isinstance(item, dict) and isinstance(item.get("name"), str):
            names.append(item["name"])
    return tuple(names)


class CustomProvider(BaseProvider):
    """Fetches ``url_template`` and picks record fields out of the JSON answer."""

    def __init__(
        self,
        *,
        url_template: str,
        fields: Mapping[str, str],
        preprint_only: bool = False,
        **kwargs: object,
    ) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        unknown = template_placeholders(url_template) - TEMPLATE_FIELDS
        if unknown:
            raise ValueError(f"Unknown placeholders in url_template: {sorted(unknown)}")
        unmapped = set(fields) - RECORD_FIELDS
        if unmapped:
            raise ValueError(f"Unknown record fields in mapping: {sorted(unmapped)}")
        self._url_template = url_template
        self._fields = dict(fields)
        self._preprint_only = preprint_only

    def applies(self, draft: PaperRecord) -> bool:
        if self._preprint_only and not draft.is_preprint:
            return False
        return self._template_values(draft) is not None

    def build_request(self, draft: PaperRecord) -> ScrapeRequest | None:
        values = self._template_values(draft)
        if values is None:
            return None
        return ScrapeRequest(url=self._url_template.format(**values))

    def parse(
        self, response: RawResponse, draft: PaperRecord  # noqa: ARG002
    ) -> PartialRecord | None:
        payload = response.json()
        if not isinstance(payload, dict | list):
            raise ParseFailure(f"Expected a JSON document from {response.url}")

        picked = {name: lookup(payload, path) for name, path in self._fields.items()}
        identifiers = {
            kind.value: str(picked[kind.value])
            for kind in (IdentifierKind.DOI, IdentifierKind.ARXIV)
            if picked.get(kind.value) is not None
        }
        year = picked.get("year")
        title = picked.get("title")
        venue = picked.get("venue")
        return PartialRecord(
            title=str(title) if title is not None else None,
            venue=str(venue) if venue is not None else None,
            year=int(str(year)[:4]) if year is not None else None,
            authors=_as_authors(picked.get("authors")),
            identifiers=identifiers or None,
        )

    def _template_values(self, draft: PaperRecord) -> dict[str, str] | None:
        available = {
            "title": draft.title.strip() or None,
            "doi": draft.doi,
            "arxiv": draft.arxiv_id,
            "year": str(draft.year) if draft.year is not None else None,
        }
        values: dict[str, str] = {}
        for name in template_placeholders(self._url_template):
            value = available.get(name)
            if not value:
                return None
            values[name] = quote(value, safe="")
        return values
