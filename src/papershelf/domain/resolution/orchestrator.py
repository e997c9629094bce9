"""Drive drafts through the provider registry."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Final

from papershelf.domain.model import is_preprint_venue
from papershelf.domain.resolution.merge import IDENTIFIERS_FIELD, RESOLVED_FIELDS

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence

    from papershelf.domain.model import PaperRecord
    from papershelf.domain.resolution.registry import ProviderRegistry, RegistryEntry

log = getLogger(__name__)

# Fields whose preprint-like values are placeholders until a venue is found.
PLACEHOLDER_FIELDS: Final[frozenset[str]] = frozenset({"venue", "year"})


class _FieldClaims:
    """Priority at which each field was last set during one resolution.

    A provider may only change a field claimed at its own priority or lower.
    """

    def __init__(self) -> None:
        self._claims: dict[str, int] = {}

    def _allows(self, key: str, priority: int) -> bool:
        claimed = self._claims.get(key)
        return claimed is None or claimed <= priority

    def reconcile(self, before: PaperRecord, after: PaperRecord, priority: int) -> PaperRecord:
        changes: dict[str, object] = {}
        for name in RESOLVED_FIELDS:
            new = getattr(after, name)
            if getattr(before, name) == new or not self._allows(name, priority):
                continue
            changes[name] = new
            venue = changes.get("venue", before.venue)
            if name in PLACEHOLDER_FIELDS and is_preprint_venue(venue):  # type: ignore[arg-type]
                continue
            self._claims[name] = priority

        identifiers = dict(before.identifiers)
        for kind in sorted(before.identifiers.keys() | after.identifiers.keys()):
            value = after.identifiers.get(kind)
            if value == identifiers.get(kind):
                continue
            key = f"{IDENTIFIERS_FIELD}.{kind}"
            if not self._allows(key, priority):
                continue
            if value is None:
                identifiers.pop(kind, None)
            else:
                identifiers[kind] = value
            self._claims[key] = priority
        if identifiers != dict(before.identifiers):
            changes[IDENTIFIERS_FIELD] = identifiers

        if not changes:
            return before
        return before.evolve(**changes)


class ResolutionOrchestrator:
    """Runs every applicable provider over a draft, in registry order."""

    def __init__(self, registry: ProviderRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    async def resolve(self, draft: PaperRecord, excluded: Collection[str] = ()) -> PaperRecord:
        entries = [entry for entry in self._registry.entries() if entry.name not in excluded]
        return await self._run(draft, entries, force=False)

    async def resolve_one(self, draft: PaperRecord, only_name: str) -> PaperRecord:
        entries = self._registry.named(only_name)
        if not entries:
            log.warning("No provider named %r, paper %s left unchanged", only_name, draft.id)
            return draft
        return await self._run(draft, entries, force=True)

    async def _run(
        self,
        draft: PaperRecord,
        entries: Sequence[RegistryEntry],
        *,
        force: bool,
    ) -> PaperRecord:
        claims = _FieldClaims()
        for entry in entries:
            try:
                scraped = await entry.provider.scrape(draft, force=force)
            except Exception as exc:  # noqa: BLE001
                log.warning("Provider %s failed on paper %s: %s", entry.name, draft.id, exc)
                continue
            if scraped.id != draft.id:
                log.warning("Provider %s tried to change the id of paper %s", entry.name, draft.id)
                continue
            draft = claims.reconcile(draft, scraped, entry.priority)
        return draft
