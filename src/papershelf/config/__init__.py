"""Application configuration helpers."""

from __future__ import annotations

from .env import require_env_vars
from .errors import (
    ConfigurationError,
    DuplicateProviderError,
    MissingConfigurationError,
    UnknownProviderError,
)
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .providers import (
    AnyProviderConfig,
    ArxivProviderConfig,
    CustomProviderConfig,
    DblpProviderConfig,
    DoiProviderConfig,
    ProviderConfig,
    default_provider_configs,
)
from .settings import (
    HttpConfig,
    IngestConfig,
    LibrarySettings,
    SchedulerConfig,
    load_settings,
    parse_settings,
)
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "AnyProviderConfig",
    "ArxivProviderConfig",
    "CacheConfig",
    "ConfigurationError",
    "CustomProviderConfig",
    "DatabaseConfig",
    "DblpProviderConfig",
    "DoiProviderConfig",
    "DuplicateProviderError",
    "HttpConfig",
    "IngestConfig",
    "LibrarySettings",
    "MissingConfigurationError",
    "ProviderConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "SchedulerConfig",
    "StorageConfig",
    "UnknownProviderError",
    "configure_logging",
    "default_provider_configs",
    "get_database_config",
    "get_storage_config",
    "load_settings",
    "parse_settings",
    "require_env_vars",
]
