"""Bundled metadata providers and the factory that builds them from config."""

from __future__ import annotations

from typing import TYPE_CHECKING

from papershelf.config.env import require_env_vars
from papershelf.config.errors import ConfigurationError, UnknownProviderError
from papershelf.config.providers import (
    ArxivProviderConfig,
    CustomProviderConfig,
    DblpProviderConfig,
    DoiProviderConfig,
)

from .arxiv import ArxivProvider
from .custom import CustomProvider
from .dblp import DblpTitleProvider, DblpVenueProvider
from .doi import DoiProvider

if TYPE_CHECKING:
    from collections.abc import Callable

    from papershelf.domain.ports import HttpGetter
    from papershelf.domain.resolution import BaseProvider, ProviderSettings


def build_providers(config: ProviderSettings, http: HttpGetter) -> list[BaseProvider]:
    """Instantiate the provider(s) behind one config entry."""

    common = {
        "name": config.name,
        "http": http,
        "enabled": config.enabled,
        "timeout": getattr(config, "timeout_seconds", None),
        "headers": _headers(config),
    }
    match config:
        case DoiProviderConfig():
            return [DoiProvider(endpoint=config.endpoint, **common)]
        case ArxivProviderConfig():
            return [ArxivProvider(endpoint=config.endpoint, **common)]
        case DblpProviderConfig():
            providers: list[BaseProvider] = [
                DblpTitleProvider(endpoint=config.endpoint, max_hits=config.max_hits, **common)
            ]
            providers.extend(
                DblpTitleProvider(
                    endpoint=config.endpoint,
                    max_hits=config.max_hits,
                    year_offset=offset,
                    **common,
                )
                for offset in config.year_offsets
            )
            providers.append(
                DblpVenueProvider(endpoint=config.endpoint, max_hits=config.max_hits, **common)
            )
            return providers
        case CustomProviderConfig():
            try:
                return [
                    CustomProvider(
                        url_template=config.url_template,
                        fields=config.fields,
                        preprint_only=config.preprint_only,
                        **common,
                    )
                ]
            except ValueError as exc:
                raise ConfigurationError(f"Provider {config.name!r}: {exc}") from exc
        case _:
            raise UnknownProviderError(config.name, config.kind)


def _headers(config: ProviderSettings) -> dict[str, str]:
    headers = dict(getattr(config, "headers", None) or {})
    header_env: dict[str, str] = getattr(config, "header_env", None) or {}
    if header_env:
        values = require_env_vars(list(header_env.values()))
        headers.update({header: values[variable] for header, variable in header_env.items()})
    return headers


def provider_factory(http: HttpGetter) -> Callable[[ProviderSettings], list[BaseProvider]]:
    def factory(config: ProviderSettings) -> list[BaseProvider]:
        return build_providers(config, http)

    return factory


__all__ = [
    "ArxivProvider",
    "CustomProvider",
    "DblpTitleProvider",
    "DblpVenueProvider",
    "DoiProvider",
    "build_providers",
    "provider_factory",
]
