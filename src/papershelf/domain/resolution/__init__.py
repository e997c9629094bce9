"""Metadata resolution: providers, their registry and the orchestrator."""

from __future__ import annotations

from papershelf.domain.resolution.merge import DEFAULT_MERGE_POLICY, MergePolicy
from papershelf.domain.resolution.orchestrator import ResolutionOrchestrator
from papershelf.domain.resolution.provider import BaseProvider, Provider
from papershelf.domain.resolution.registry import (
    ProviderFactory,
    ProviderRegistry,
    ProviderSettings,
    RegistryEntry,
)

__all__ = [
    "DEFAULT_MERGE_POLICY",
    "BaseProvider",
    "MergePolicy",
    "Provider",
    "ProviderFactory",
    "ProviderRegistry",
    "ProviderSettings",
    "RegistryEntry",
    "ResolutionOrchestrator",
]
