"""Ordered snapshot of the configured providers."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from papershelf.config.errors import DuplicateProviderError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from papershelf.domain.resolution.provider import Provider

log = getLogger(__name__)


class ProviderSettings(Protocol):
    """The part of a provider config entry the registry relies on."""

    @property
    def kind(self) -> str: ...

    @property
    def name(self) -> str: ...

    @property
    def enabled(self) -> bool: ...

    @property
    def priority(self) -> int: ...


# Builds the providers of one config entry. Fan-out sources return several.
type ProviderFactory = Callable[[ProviderSettings], Sequence[Provider]]


@dataclass(frozen=True, slots=True)
class RegistryEntry:
    name: str
    provider: Provider
    priority: int
    enabled: bool = True


@dataclass(frozen=True, slots=True)
class _Snapshot:
    active: tuple[RegistryEntry, ...] = ()
    configured: tuple[RegistryEntry, ...] = ()


class ProviderRegistry:
    """Priority-ordered providers, rebuilt wholesale from configuration.

    Readers always see one complete snapshot: :meth:`rebuild` prepares the new
    entries off to the side and swaps them in with a single assignment. If
    building fails the previous snapshot stays active.
    """

    def __init__(self, factory: ProviderFactory) -> None:
        self._factory = factory
        self._snapshot = _Snapshot()

    def rebuild(self, configs: Iterable[ProviderSettings]) -> None:
        configs = list(configs)
        seen: set[str] = set()
        for config in configs:
            if config.name in seen:
                raise DuplicateProviderError(config.name)
            seen.add(config.name)

        entries: list[RegistryEntry] = []
        # sorted() is stable, so equal priorities keep their load order
        for config in sorted(configs, key=lambda item: item.priority, reverse=True):
            entries.extend(
                RegistryEntry(
                    name=config.name,
                    provider=provider,
                    priority=config.priority,
                    enabled=config.enabled,
                )
                for provider in self._factory(config)
            )

        configured = tuple(entries)
        self._snapshot = _Snapshot(
            active=tuple(entry for entry in configured if entry.enabled),
            configured=configured,
        )
        log.info("Provider registry rebuilt: %s", ", ".join(self.names()) or "<empty>")

    def entries(self) -> tuple[RegistryEntry, ...]:
        """Enabled entries in execution order."""

        return self._snapshot.active

    def named(self, name: str) -> tuple[RegistryEntry, ...]:
        """All configured entries with logical name ``name``, disabled ones included."""

        return tuple(entry for entry in self._snapshot.configured if entry.name == name)

    def names(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(entry.name for entry in self._snapshot.active))

    def __len__(self) -> int:
        return len(self._snapshot.active)
