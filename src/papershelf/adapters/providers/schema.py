"""Response schemas for the JSON metadata sources."""

from __future__ import annotations

import logging
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

log = logging.getLogger(__name__)


class SourceModel(BaseModel):
    """Lenient base model that reports unmodeled keys once per model."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)
    _logged_extra_keys: ClassVar[set[tuple[str, str]]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        model = type(self).__name__
        new_keys = {key for key in extras if (model, key) not in self._logged_extra_keys}
        if not new_keys:
            return
        self._logged_extra_keys.update((model, key) for key in new_keys)
        log.debug("%s: unmodeled keys: %s", model, ", ".join(sorted(new_keys)))


def _first_text(value: object) -> object:
    # CSL processors disagree on whether title fields are strings or lists
    if isinstance(value, list):
        return value[0] if value else None
    if isinstance(value, dict):
        return value.get("name")
    return value


# --- DOI content negotiation (CSL JSON) -------------------------------------


class CslName(SourceModel):
    given: str | None = None
    family: str | None = None
    literal: str | None = None

    @property
    def display(self) -> str:
        if self.literal:
            return self.literal
        return " ".join(part for part in (self.given, self.family) if part)


class CslDate(SourceModel):
    date_parts: list[list[int | str | None]] = Field(default_factory=list, alias="date-parts")

    @property
    def year(self) -> int | None:
        if not self.date_parts or not self.date_parts[0]:
            return None
        first = self.date_parts[0][0]
        if first is None:
            return None
        return int(first)


class CslItem(SourceModel):
    type: str | None = None
    title: str | None = None
    container_title: str | None = Field(default=None, alias="container-title")
    event: str | None = None
    publisher: str | None = None
    author: list[CslName] = Field(default_factory=list)
    issued: CslDate | None = None
    published_print: CslDate | None = Field(default=None, alias="published-print")
    doi: str | None = Field(default=None, alias="DOI")

    @field_validator("title", "container_title", "event", mode="before")
    @classmethod
    def _first_of_list(cls, value: object) -> object:
        return _first_text(value)

    @property
    def venue(self) -> str | None:
        return self.container_title or self.event or None

    @property
    def year(self) -> int | None:
        for date in (self.issued, self.published_print):
            if date is not None and date.year is not None:
                return date.year
        return None


# --- DBLP search APIs -------------------------------------------------------


class DblpAuthor(SourceModel):
    text: str
    pid: str | None = Field(default=None, alias="@pid")


class DblpAuthors(SourceModel):
    author: list[DblpAuthor] = Field(default_factory=list)

    @field_validator("author", mode="before")
    @classmethod
    def _single_author(cls, value: object) -> object:
        if isinstance(value, dict):
            return [value]
        return value


class DblpPublication(SourceModel):
    title: str
    venue: str | None = None
    year: int | None = None
    type: str | None = None
    key: str | None = None
    doi: str | None = None
    ee: str | list[str] | None = None
    authors: DblpAuthors | None = None

    @field_validator("venue", mode="before")
    @classmethod
    def _joined_venue(cls, value: object) -> object:
        if isinstance(value, list):
            return " / ".join(str(item) for item in value)
        return value


class DblpVenue(SourceModel):
    venue: str
    acronym: str | None = None
    type: str | None = None
    url: str | None = None


class DblpPublicationHit(SourceModel):
    info: DblpPublication


class DblpVenueHit(SourceModel):
    info: DblpVenue


class DblpPublicationHits(SourceModel):
    total: int = Field(default=0, alias="@total")
    hit: list[DblpPublicationHit] = Field(default_factory=list)


class DblpVenueHits(SourceModel):
    total: int = Field(default=0, alias="@total")
    hit: list[DblpVenueHit] = Field(default_factory=list)


class DblpPublicationResult(SourceModel):
    hits: DblpPublicationHits


class DblpVenueResult(SourceModel):
    hits: DblpVenueHits


class DblpPublicationResponse(SourceModel):
    result: DblpPublicationResult


class DblpVenueResponse(SourceModel):
    result: DblpVenueResult
