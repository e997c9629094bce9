"""Paper records.

Records are values: every change produces a new instance through
:meth:`PaperRecord.evolve`, so a provider can never keep a live alias of a
draft that another provider is about to change.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Final
from uuid import UUID, uuid4

from papershelf.domain.model.enums import IdentifierKind

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import datetime

PREPRINT_PATTERNS: Final[tuple[str, ...]] = ("rxiv", "openreview")


def new_id() -> UUID:
    return uuid4()


def is_preprint_venue(venue: str | None) -> bool:
    """Return whether ``venue`` is empty or names a preprint server."""

    if not venue or not venue.strip():
        return True
    lowered = venue.lower()
    return any(pattern in lowered for pattern in PREPRINT_PATTERNS)


def _frozen_mapping(values: Mapping[str, str] | None) -> Mapping[str, str]:
    if values is None:
        return MappingProxyType({})
    return MappingProxyType({str(key): value for key, value in values.items()})


@dataclass(frozen=True, kw_only=True)
class PaperRecord:
    """One paper, either an in-flight draft or a committed record."""

    id: UUID = field(default_factory=new_id)
    title: str = ""
    venue: str = ""
    year: int | None = None
    authors: tuple[str, ...] = ()
    identifiers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    tags: frozenset[str] = frozenset()
    folders: frozenset[str] = frozenset()
    main_path: Path | None = None
    supplementary_paths: tuple[Path, ...] = ()
    flagged: bool = False
    note: str = ""
    file_hash: str | None = None
    added_at: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "authors", tuple(self.authors))
        object.__setattr__(self, "identifiers", _frozen_mapping(self.identifiers))
        object.__setattr__(self, "tags", frozenset(self.tags))
        object.__setattr__(self, "folders", frozenset(self.folders))
        if self.main_path is not None and not isinstance(self.main_path, Path):
            object.__setattr__(self, "main_path", Path(self.main_path))
        supplementary = tuple(Path(path) for path in self.supplementary_paths)
        if len(set(supplementary)) != len(supplementary):
            raise ValueError(f"Duplicate supplementary paths for paper {self.id}")
        object.__setattr__(self, "supplementary_paths", supplementary)

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def is_preprint(self) -> bool:
        return is_preprint_venue(self.venue)

    @property
    def doi(self) -> str | None:
        return self.identifiers.get(IdentifierKind.DOI)

    @property
    def arxiv_id(self) -> str | None:
        return self.identifiers.get(IdentifierKind.ARXIV)

    @property
    def file_paths(self) -> tuple[Path, ...]:
        if self.main_path is None:
            return self.supplementary_paths
        return (self.main_path, *self.supplementary_paths)

    def evolve(self, **changes: object) -> PaperRecord:
        """Return a copy with ``changes`` applied; the id cannot change."""

        if "id" in changes and changes["id"] != self.id:
            raise ValueError("Paper ids are immutable")
        return dataclasses.replace(self, **changes)  # type: ignore[arg-type]

    def with_identifier(self, kind: str, value: str) -> PaperRecord:
        return self.evolve(identifiers={**self.identifiers, str(kind): value})

    def with_supplementary(self, paths: Iterable[Path]) -> PaperRecord:
        merged = list(self.supplementary_paths)
        for path in paths:
            if path not in merged:
                merged.append(path)
        return self.evolve(supplementary_paths=tuple(merged))

    def without_supplementary(self, path: Path) -> PaperRecord:
        remaining = tuple(p for p in self.supplementary_paths if p != path)
        return self.evolve(supplementary_paths=remaining)


@dataclass(frozen=True, kw_only=True)
class PartialRecord:
    """Fields one provider contributes; ``None`` means not provided."""

    title: str | None = None
    venue: str | None = None
    year: int | None = None
    authors: tuple[str, ...] | None = None
    identifiers: Mapping[str, str] | None = None

    def is_empty(self) -> bool:
        return all(
            value is None
            for value in (self.title, self.venue, self.year, self.authors, self.identifiers)
        )
