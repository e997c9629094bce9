"""Reference-counted named groups (tags and folders)."""

from __future__ import annotations

from dataclasses import dataclass

from papershelf.domain.model.enums import CategorizerKind


def categorizer_id(kind: CategorizerKind | str, name: str) -> str:
    """Derive the stable identifier of a categorizer from its name."""

    return f"{CategorizerKind(kind)}-{name}"


@dataclass(frozen=True, slots=True)
class Categorizer:
    kind: CategorizerKind
    name: str
    count: int = 0

    @property
    def id(self) -> str:
        return categorizer_id(self.kind, self.name)

    @property
    def prunable(self) -> bool:
        return self.count <= 0


@dataclass(frozen=True, slots=True)
class CategorizerDelta:
    """Reference count adjustments implied by replacing one record with another."""

    kind: CategorizerKind
    added: frozenset[str]
    removed: frozenset[str]

    @classmethod
    def between(
        cls,
        kind: CategorizerKind,
        before: frozenset[str],
        after: frozenset[str],
    ) -> CategorizerDelta:
        return cls(kind=kind, added=after - before, removed=before - after)
