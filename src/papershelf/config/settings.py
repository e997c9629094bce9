"""Library settings loaded from ``papershelf.toml``.

Example::

    [ingest]
    max_concurrency = 4
    file_operation = "copy"

    [scheduler]
    interval_days = 7

    [[providers]]
    kind = "arxiv"
    priority = 8

    [[providers]]
    kind = "custom"
    name = "lookup"
    priority = 6
    url_template = "https://api.example.org/papers/DOI:{doi}?fields=title,venue,year"
    fields = { title = "title", venue = "venue", year = "year" }
"""

from __future__ import annotations

import os
import tomllib
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .env import optional_float_env
from .errors import ConfigurationError, UnknownProviderError
from .http_resilience import (
    DEFAULT_USER_AGENT,
    CacheConfig,
    RateLimit,
    ResilienceConfig,
    RetryPolicy,
)
from .providers import PROVIDER_KINDS, ProviderConfig, default_provider_configs
from .storage import StorageConfig, get_storage_config

if TYPE_CHECKING:
    from collections.abc import Mapping

log = getLogger(__name__)

DEFAULT_INTERVAL_DAYS = 7.0
DEFAULT_MAX_CONCURRENCY = 4


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class IngestConfig(_Section):
    max_concurrency: int = Field(default=DEFAULT_MAX_CONCURRENCY, ge=1)
    file_operation: Literal["copy", "move"] = "copy"


class SchedulerConfig(_Section):
    enabled: bool = True
    interval_days: float = Field(default=DEFAULT_INTERVAL_DAYS, gt=0)


class HttpConfig(_Section):
    timeout_seconds: float = Field(default=20.0, gt=0)
    retries: int = Field(default=0, ge=0)
    cache: Literal["off", "memory", "sqlite"] = "off"
    max_calls_per_second: float | None = Field(default=None, gt=0)
    user_agent: str = DEFAULT_USER_AGENT

    def resilience(self, *, storage: StorageConfig | None = None) -> ResilienceConfig:
        cache: CacheConfig | None = None
        if self.cache == "memory":
            cache = CacheConfig(backend="memory")
        elif self.cache == "sqlite":
            storage_config = storage or get_storage_config()
            cache = CacheConfig(
                backend="sqlite", sqlite_path=str(storage_config.http_cache_path())
            )
        ratelimit = (
            RateLimit(max_calls=1, per_seconds=1.0 / self.max_calls_per_second)
            if self.max_calls_per_second
            else None
        )
        return ResilienceConfig(
            name="providers",
            timeout_seconds=self.timeout_seconds,
            retry=RetryPolicy(total=self.retries),
            ratelimit=ratelimit,
            cache=cache,
            default_headers={"User-Agent": self.user_agent},
        )


class LibrarySettings(_Section):
    ingest: IngestConfig = Field(default_factory=IngestConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    providers: list[ProviderConfig] = Field(default_factory=default_provider_configs)


def parse_settings(document: Mapping[str, Any]) -> LibrarySettings:
    """Validate a decoded settings document."""

    for entry in document.get("providers", ()):
        if not isinstance(entry, dict):
            continue
        kind = entry.get("kind")
        if kind not in PROVIDER_KINDS:
            raise UnknownProviderError(str(entry.get("name") or kind), str(kind))
    try:
        return LibrarySettings.model_validate(document)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}") from exc


def settings_path(storage: StorageConfig | None = None) -> Path:
    env_path = os.getenv("PAPERSHELF_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    return (storage or get_storage_config()).settings_path()


def load_settings(
    path: Path | None = None,
    *,
    storage: StorageConfig | None = None,
) -> LibrarySettings:
    """Read the settings file, falling back to defaults when it does not exist."""

    resolved = path or settings_path(storage)
    if not resolved.exists():
        log.info("No settings file at %s, using defaults", resolved)
        settings = LibrarySettings()
    else:
        try:
            with resolved.open("rb") as handle:
                document = tomllib.load(handle)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise ConfigurationError(f"Cannot read settings file {resolved}: {exc}") from exc
        settings = parse_settings(document)

    interval = optional_float_env("PAPERSHELF_RESCRAPE_INTERVAL_DAYS")
    if interval is not None:
        if interval <= 0:
            raise ConfigurationError("PAPERSHELF_RESCRAPE_INTERVAL_DAYS must be positive")
        settings = settings.model_copy(
            update={"scheduler": settings.scheduler.model_copy(update={"interval_days": interval})}
        )
    return settings
