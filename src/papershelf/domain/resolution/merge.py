"""Field-level merge of provider results into drafts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from papershelf.domain.model import EmptyValuePolicy

if TYPE_CHECKING:
    from collections.abc import Mapping

    from papershelf.domain.model import PaperRecord, PartialRecord

RESOLVED_FIELDS: Final[tuple[str, ...]] = ("title", "venue", "year", "authors")
IDENTIFIERS_FIELD: Final[str] = "identifiers"


def is_empty_value(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, tuple | list | frozenset | set | dict):
        return len(value) == 0
    return False


def _normalized(value: object) -> object:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list):
        return tuple(value)
    return value


@dataclass(frozen=True, slots=True)
class MergePolicy:
    """Decides which provider values land in a draft.

    Non-empty values always overwrite. Empty values follow the field's
    :class:`EmptyValuePolicy`: ``UNSET`` ignores them, ``VALUE`` writes them
    into empty fields, or over populated ones when the merge is forced.
    """

    empty_values: Mapping[str, EmptyValuePolicy] = field(default_factory=dict)
    default: EmptyValuePolicy = EmptyValuePolicy.UNSET

    def policy_for(self, field_name: str) -> EmptyValuePolicy:
        return self.empty_values.get(field_name, self.default)

    def apply(
        self,
        draft: PaperRecord,
        partial: PartialRecord,
        *,
        force: bool = False,
    ) -> PaperRecord:
        changes: dict[str, object] = {}
        for name in RESOLVED_FIELDS:
            value = getattr(partial, name)
            if value is None:
                continue
            value = _normalized(value)
            current = getattr(draft, name)
            if is_empty_value(value) and not self._accepts_empty(name, current, force=force):
                continue
            if value != current:
                changes[name] = value

        identifiers = self._merge_identifiers(draft, partial, force=force)
        if identifiers is not None:
            changes[IDENTIFIERS_FIELD] = identifiers

        if not changes:
            return draft
        return draft.evolve(**changes)

    def _accepts_empty(self, name: str, current: object, *, force: bool) -> bool:
        if self.policy_for(name) is EmptyValuePolicy.UNSET:
            return False
        return force or is_empty_value(current)

    def _merge_identifiers(
        self,
        draft: PaperRecord,
        partial: PartialRecord,
        *,
        force: bool,
    ) -> dict[str, str] | None:
        if not partial.identifiers:
            return None
        merged = dict(draft.identifiers)
        for kind, raw_value in partial.identifiers.items():
            value = raw_value.strip()
            if value:
                merged[str(kind)] = value
            elif self._accepts_empty(IDENTIFIERS_FIELD, merged.get(str(kind)), force=force):
                merged.pop(str(kind), None)
        if merged == dict(draft.identifiers):
            return None
        return merged


DEFAULT_MERGE_POLICY: Final[MergePolicy] = MergePolicy()
